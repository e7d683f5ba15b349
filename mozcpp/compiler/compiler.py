"""A language compiler with its probed defaults."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from typing import Any

import structlog

from mozcpp.compiler.dialect import Dialect, get_dialect
from mozcpp.compiler.flags import add_compiler_arguments
from mozcpp.compiler.probe import probe_compiler, windows_sdk_version
from mozcpp.exceptions import MozCppError
from mozcpp.models.compiler import CompilerDefaults, CompilerSettings, FileConfig, FileType
from mozcpp.models.configuration import SourceFileConfiguration
from mozcpp.paths import CmdArg, FilePath, FilePathSet, render_arg
from mozcpp.process import ProcessResult, ProcessRunner

logger = structlog.get_logger(__name__)


def merge_configuration(
    defaults: CompilerDefaults,
    file_config: FileConfig,
    settings: CompilerSettings,
) -> SourceFileConfiguration:
    """Combine a compiler's defaults with one file's flags.

    Per-file includes come first, as they would on the real command line.
    Per-file defines override defaults with the same key.
    """
    includes = FilePathSet(file_config.includes)
    includes.update(defaults.user_includes)
    includes.update(defaults.includes)
    includes.update(file_config.framework_includes)
    includes.update(defaults.framework_includes)

    defines = dict(defaults.defines)
    defines.update(file_config.defines)

    return SourceFileConfiguration(
        include_path=includes.to_strings(),
        defines=[str(d) for d in defines.values()],
        forced_include=file_config.forced_includes.to_strings(),
        intelli_sense_mode=settings.intellisense_mode,
        standard=settings.standard,
        windows_sdk_version=settings.windows_sdk_version,
    )


class Compiler:
    """One compiler binary used for one file type."""

    def __init__(
        self,
        runner: ProcessRunner,
        command: Sequence[CmdArg],
        file_type: FileType,
        dialect: Dialect,
        settings: CompilerSettings,
        defaults: CompilerDefaults,
    ) -> None:
        self._runner = runner
        self.command = list(command)
        self.file_type = file_type
        self.dialect = dialect
        self.settings = settings
        self.defaults = defaults

    @classmethod
    async def create(
        cls,
        runner: ProcessRunner,
        command: Sequence[CmdArg],
        file_type: FileType,
        compiler_type: str | None,
        *,
        sdk_version: str | None = None,
        macos_sdk: FilePath | None = None,
    ) -> Compiler:
        """Resolve the dialect and probe the compiler's defaults.

        Raises:
            DiscoveryError: unknown dialect or no defines reported.
            ProcessError: the compiler could not be run.
        """
        dialect = get_dialect(compiler_type)
        settings = dialect.settings_for(file_type, sdk_version, macos_sdk)
        try:
            defaults = await probe_compiler(runner, command, file_type, dialect, settings)
        except MozCppError as e:
            logger.error(
                "compiler.defaults_failed",
                compiler=render_arg(command[0]) if command else None,
                file_type=file_type.value,
                error=str(e),
            )
            raise

        if settings.windows_sdk_version is None:
            sdk = windows_sdk_version(defaults.includes)
            if sdk is not None:
                settings = replace(settings, windows_sdk_version=sdk)
        return cls(runner, command, file_type, dialect, settings, defaults)

    @property
    def path(self) -> CmdArg:
        return self.command[0]

    def get_include_paths(self) -> list[FilePath]:
        paths = FilePathSet(self.defaults.user_includes)
        paths.update(self.defaults.includes)
        paths.update(self.defaults.framework_includes)
        return list(paths)

    def get_file_config(self, args: Sequence[CmdArg], cwd: FilePath | None = None) -> FileConfig:
        return add_compiler_arguments(args, self.dialect, FileConfig(), cwd)

    def get_source_configuration(
        self, args: Sequence[CmdArg], cwd: FilePath | None = None
    ) -> SourceFileConfiguration:
        return merge_configuration(self.defaults, self.get_file_config(args, cwd), self.settings)

    async def compile(
        self,
        source: FilePath,
        args: Sequence[CmdArg],
        cwd: FilePath | None = None,
    ) -> ProcessResult:
        """Syntax-check ``source`` with its flags. Raises ProcessError on failure."""
        invocation = self.dialect.compile_invocation(
            self.command, source, args, self.file_type, self.settings
        )
        return await self._runner.run(invocation, cwd)

    async def to_state(self) -> dict[str, Any]:
        return {
            "type": self.dialect.name,
            "command": [render_arg(a) for a in self.command],
            "file_type": self.file_type.value,
            "standard": self.settings.standard.value,
            "includes": len(self.defaults.includes),
            "frameworks": len(self.defaults.framework_includes),
            "defines": len(self.defaults.defines),
        }
