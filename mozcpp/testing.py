"""Test doubles for mozcpp: use in unit and integration tests.

Usage::

    from mozcpp.testing import FakeHost, FakeProcessRunner

    runner = FakeProcessRunner()
    runner.add("environment", stdout='{"topobjdir": "/obj", "topsrcdir": "/src"}')
    runner.add("-dD", stdout="#define __clang__ 1\\n")
    host = FakeHost()
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

from mozcpp.exceptions import ProcessError
from mozcpp.paths import CmdArg, FilePath, render_args
from mozcpp.process import OutputChunk, ProcessResult, ProcessRunner, Stream

CommandMatcher = Callable[[list[str]], bool]


@dataclass
class ScriptedCommand:
    matcher: CommandMatcher
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    gate: asyncio.Event | None = None


@dataclass
class RecordedCall:
    args: list[str]
    cwd: FilePath | None = None
    env: dict[str, str] | None = None


class FakeProcessRunner(ProcessRunner):
    """Answers commands from a script instead of spawning processes.

    Rules added later take precedence. A command that matches no rule fails
    the way a missing binary would (exit code -1).
    """

    def __init__(self) -> None:
        self._commands: list[ScriptedCommand] = []
        self.calls: list[RecordedCall] = []

    def add(
        self,
        match: str | CommandMatcher,
        stdout: str = "",
        stderr: str = "",
        exit_code: int = 0,
        gate: asyncio.Event | None = None,
    ) -> ScriptedCommand:
        """Script a response. A string matches any command containing that argument."""
        if isinstance(match, str):
            needle = match
            matcher: CommandMatcher = lambda args: needle in args
        else:
            matcher = match
        command = ScriptedCommand(matcher, stdout, stderr, exit_code, gate)
        self._commands.append(command)
        return command

    def calls_matching(self, arg: str) -> list[RecordedCall]:
        return [c for c in self.calls if arg in c.args]

    async def run(
        self,
        args: Sequence[CmdArg],
        cwd: FilePath | None = None,
        env: Mapping[str, str] | None = None,
    ) -> ProcessResult:
        cmd = render_args(args)
        if not cmd:
            raise ValueError("No command given")
        self.calls.append(RecordedCall(cmd, cwd, dict(env) if env is not None else None))

        for command in reversed(self._commands):
            if command.matcher(cmd):
                break
        else:
            result = ProcessResult(args=cmd, exit_code=-1)
            raise ProcessError(f"Failed to execute '{cmd[0]}': not scripted", cmd[0], result)

        if command.gate is not None:
            await command.gate.wait()

        result = ProcessResult(args=cmd, exit_code=command.exit_code)
        if command.stdout:
            result.chunks.append(OutputChunk(Stream.STDOUT, command.stdout))
        if command.stderr:
            result.chunks.append(OutputChunk(Stream.STDERR, command.stderr))
        if command.exit_code != 0:
            raise ProcessError(
                f"Executing '{result.printable_command}' failed with exit code {command.exit_code}",
                result.printable_command,
                result,
            )
        return result


@dataclass
class RecordingCppToolsApi:
    """Records every notification sent to the code-intelligence host."""

    events: list[tuple[str, object]] = field(default_factory=list)
    disposed: bool = False

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def register_custom_configuration_provider(self, provider: object) -> None:
        self.events.append(("register", provider))

    def notify_ready(self, provider: object) -> None:
        self.events.append(("ready", provider))

    def did_change_custom_configuration(self, provider: object) -> None:
        self.events.append(("configuration_changed", provider))

    def did_change_custom_browse_configuration(self, provider: object) -> None:
        self.events.append(("browse_configuration_changed", provider))

    def dispose(self) -> None:
        self.disposed = True
        self.events.append(("dispose", None))


class FakeHost:
    """Editor host that records messages and hands out a fresh recording API."""

    def __init__(self, *, has_api: bool = True) -> None:
        self.has_api = has_api
        self.apis: list[RecordingCppToolsApi] = []
        self.errors: list[str] = []
        self.infos: list[str] = []

    @property
    def api(self) -> RecordingCppToolsApi | None:
        return self.apis[-1] if self.apis else None

    async def get_cpptools_api(self) -> RecordingCppToolsApi | None:
        if not self.has_api:
            return None
        api = RecordingCppToolsApi()
        self.apis.append(api)
        return api

    async def show_error_message(self, message: str) -> None:
        self.errors.append(message)

    async def show_information_message(self, message: str) -> None:
        self.infos.append(message)
