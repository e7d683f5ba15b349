"""Build introspection client: runs ``mach`` to learn about a source tree."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

import structlog
from pydantic import ValidationError

from mozcpp.core.config import FolderSettings
from mozcpp.exceptions import BuildNotPerformedYet, MalformedEnvironment, ProcessError
from mozcpp.models.build import MachEnvironment
from mozcpp.paths import CmdArg, FilePath, render_arg
from mozcpp.process import ProcessResult, ProcessRunner
from mozcpp.shell import shell_parse, unixy_path

logger = structlog.get_logger(__name__)

MACH = "mach"

# Diagnostics mach prints when asked about a tree without an object directory.
NOT_BUILT_MESSAGES: tuple[str, ...] = (
    "has not been built yet",
    "has not been configured yet",
)


def is_not_built(result: ProcessResult) -> bool:
    stdout = result.stdout
    return any(message in stdout for message in NOT_BUILT_MESSAGES)


class Mach:
    """Runs mach commands for one source tree.

    Every invocation runs in the source directory with the folder's
    ``mach.environment`` merged over the inherited environment.
    """

    def __init__(
        self,
        srcdir: FilePath,
        command: Sequence[CmdArg],
        settings: FolderSettings,
        runner: ProcessRunner,
    ) -> None:
        self.srcdir = srcdir
        self.command = list(command)
        self.settings = settings
        self._runner = runner

    @classmethod
    async def find(
        cls, srcdir: FilePath, settings: FolderSettings, runner: ProcessRunner
    ) -> Mach | None:
        """Return a client if ``srcdir`` has a mach entry point, else None."""
        mach_path = srcdir.join(MACH)
        if not await mach_path.is_file():
            logger.debug("mach.not_found", srcdir=str(srcdir))
            return None
        return cls(srcdir, [mach_path], settings, runner)

    def get_command(self) -> list[CmdArg]:
        if self.settings.mach_path:
            return shell_parse(self.settings.mach_path, unixy_path)
        return list(self.command)

    async def _exec(self, args: Sequence[CmdArg]) -> ProcessResult:
        command = self.get_command() + list(args)
        try:
            result = await self._runner.run(command, self.srcdir, self.settings.mach_env())
        except ProcessError as e:
            if is_not_built(e.result):
                raise BuildNotPerformedYet(
                    f"The tree at {self.srcdir} has not been built yet."
                ) from e
            raise
        if is_not_built(result):
            raise BuildNotPerformedYet(f"The tree at {self.srcdir} has not been built yet.")
        return result

    async def get_environment(self) -> MachEnvironment:
        """Run ``mach environment`` and parse its JSON output.

        Raises:
            MalformedEnvironment: the output is not JSON of the expected shape.
            BuildNotPerformedYet: mach reported the tree is not built.
            ProcessError: mach failed for any other reason.
        """
        result = await self._exec(["environment", "--format", "json"])
        data = result.stdout
        start = data.find("{")
        if start < 0:
            logger.error("mach.environment_unparseable", output=result.tail())
            raise MalformedEnvironment("mach environment did not return JSON.")

        try:
            environment = MachEnvironment.model_validate(json.loads(data[start:]))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error("mach.environment_unparseable", output=result.tail(), error=str(e))
            raise MalformedEnvironment(f"Unable to parse mach environment: {e}") from e

        logger.debug(
            "mach.environment",
            topsrcdir=environment.topsrcdir,
            topobjdir=environment.topobjdir,
        )
        return environment

    async def get_compile_flags(self, source: FilePath) -> str:
        """Run ``mach compileflags`` for ``source``; returns the raw command line."""
        result = await self._exec(["compileflags", source])
        return result.stdout.strip()

    async def to_state(self) -> dict[str, Any]:
        return {
            "command": [render_arg(a) for a in self.command],
            "override": self.settings.mach_path,
            "environment": dict(self.settings.mach_environment),
        }
