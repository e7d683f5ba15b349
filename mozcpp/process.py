"""Process runner: spawn external commands and capture their output in order."""

from __future__ import annotations

import asyncio
import codecs
import os
import subprocess
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum

import structlog

from mozcpp.exceptions import ProcessError
from mozcpp.paths import CmdArg, FilePath, render_args
from mozcpp.shell import shell_quote

logger = structlog.get_logger(__name__)

# Arguments shown after the command itself before eliding with "...".
MAX_PRINTABLE_ARGS = 9
# Amount of captured output included when logging a failure.
LOG_OUTPUT_TAIL = 2000
_READ_SIZE = 64 * 1024

MOZILLABUILD_BANNER = "MozillaBuild Install Directory:"


class Stream(str, Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass(frozen=True)
class OutputChunk:
    """A piece of output tagged with the stream it arrived on."""

    stream: Stream
    text: str


def printable_command(args: Sequence[str]) -> str:
    shown = list(args[: MAX_PRINTABLE_ARGS + 1])
    if len(args) > MAX_PRINTABLE_ARGS + 1:
        shown.append("...")
    return " ".join(shown)


@dataclass
class ProcessResult:
    """Captured result of a process execution.

    ``chunks`` records output in arrival order so the merged output can be
    reconstructed chronologically, or either stream can be read on its own.
    """

    args: list[str]
    exit_code: int = 0
    chunks: list[OutputChunk] = field(default_factory=list)

    def text(self, stream: Stream | None = None) -> str:
        return "".join(c.text for c in self.chunks if stream is None or c.stream == stream)

    def lines(self, stream: Stream | None = None) -> list[str]:
        return self.text(stream).splitlines()

    @property
    def stdout(self) -> str:
        return self.text(Stream.STDOUT)

    @property
    def stderr(self) -> str:
        return self.text(Stream.STDERR)

    @property
    def output(self) -> str:
        return self.text()

    @property
    def printable_command(self) -> str:
        return printable_command(self.args)

    def tail(self, limit: int = LOG_OUTPUT_TAIL) -> str:
        return self.output[-limit:]


async def _pump(reader: asyncio.StreamReader | None, stream: Stream, result: ProcessResult) -> None:
    if reader is None:
        return
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        data = await reader.read(_READ_SIZE)
        if not data:
            break
        text = decoder.decode(data)
        if text:
            result.chunks.append(OutputChunk(stream, text))
    text = decoder.decode(b"", final=True)
    if text:
        result.chunks.append(OutputChunk(stream, text))


class ProcessRunner:
    """Runs commands directly."""

    async def run(
        self,
        args: Sequence[CmdArg],
        cwd: FilePath | None = None,
        env: Mapping[str, str] | None = None,
    ) -> ProcessResult:
        """Run ``args`` and return its result.

        Raises:
            ProcessError: the command could not be started or exited non-zero.
                The partial result is attached.
        """
        cmd = render_args(args)
        if not cmd:
            raise ValueError("No command given")
        return await self._spawn(cmd, cwd, env)

    async def _spawn(
        self,
        cmd: list[str],
        cwd: FilePath | None,
        env: Mapping[str, str] | None,
    ) -> ProcessResult:
        result = ProcessResult(args=cmd)
        printable = result.printable_command
        logger.debug("process.exec", command=printable, cwd=str(cwd) if cwd else None)

        kwargs = {}
        if sys.platform == "win32":
            kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd.to_path() if cwd else None,
                env=dict(env) if env is not None else None,
                **kwargs,
            )
        except OSError as e:
            result.exit_code = -1
            logger.warning("process.spawn_failed", command=printable, error=str(e))
            raise ProcessError(f"Failed to execute '{cmd[0]}': {e}", printable, result) from e

        await asyncio.gather(
            _pump(proc.stdout, Stream.STDOUT, result),
            _pump(proc.stderr, Stream.STDERR, result),
        )
        result.exit_code = await proc.wait()

        if result.exit_code != 0:
            logger.warning(
                "process.failed",
                command=printable,
                exit_code=result.exit_code,
                output=result.tail(),
            )
            raise ProcessError(
                f"Executing '{printable}' failed with exit code {result.exit_code}",
                printable,
                result,
            )
        return result


def strip_banner(result: ProcessResult, banner: str = MOZILLABUILD_BANNER) -> None:
    """Remove a leading banner line from the captured stdout, in place."""
    stdout = result.stdout
    if not stdout.startswith(banner):
        return
    newline = stdout.find("\n")
    remaining = len(stdout) if newline < 0 else newline + 1

    kept: list[OutputChunk] = []
    for chunk in result.chunks:
        if remaining and chunk.stream == Stream.STDOUT:
            if len(chunk.text) <= remaining:
                remaining -= len(chunk.text)
                continue
            chunk = OutputChunk(chunk.stream, chunk.text[remaining:])
            remaining = 0
        kept.append(chunk)
    result.chunks[:] = kept


class MozillaBuildRunner(ProcessRunner):
    """Runs commands through the MozillaBuild login shell on Windows."""

    def __init__(self, mozillabuild: FilePath) -> None:
        self.mozillabuild = mozillabuild

    @property
    def shell(self) -> FilePath:
        return self.mozillabuild.join("msys", "bin", "bash.exe")

    def wrap(self, args: Sequence[CmdArg]) -> list[str]:
        command = shell_quote(args, lambda p: p.to_unixy())
        return [self.shell.to_path(), "--login", "-i", "-c", command]

    async def run(
        self,
        args: Sequence[CmdArg],
        cwd: FilePath | None = None,
        env: Mapping[str, str] | None = None,
    ) -> ProcessResult:
        if not args:
            raise ValueError("No command given")
        full_env = {"MOZILLABUILD": self.mozillabuild.to_path()}
        full_env.update(env if env is not None else os.environ)

        try:
            result = await self._spawn(self.wrap(args), cwd, full_env)
        except ProcessError as e:
            strip_banner(e.result)
            raise
        strip_banner(result)
        return result


def create_runner(mozillabuild: FilePath | None, platform: str = sys.platform) -> ProcessRunner:
    """Pick the runner appropriate for ``platform``."""
    if platform == "win32" and mozillabuild is not None:
        return MozillaBuildRunner(mozillabuild)
    return ProcessRunner()
