"""Compiler dialects: the closed set of command line conventions we understand."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace

from mozcpp.exceptions import DiscoveryError
from mozcpp.models.compiler import CompilerSettings, FileType, IntelliSenseMode, Standard
from mozcpp.paths import CmdArg, FilePath

# Language standards used when probing and test compiling.
STANDARDS: dict[FileType, Standard] = {
    FileType.C: Standard.C99,
    FileType.CPP: Standard.CPP14,
}


@dataclass(frozen=True)
class Dialect:
    """Flag spelling and invocation rules for one family of compiler drivers.

    ``flag_prefixes`` lists the characters that introduce a flag; flags are
    normalized to the ``-`` spelling before matching.
    """

    name: str
    intellisense_mode: IntelliSenseMode
    flag_prefixes: tuple[str, ...]
    forced_include: str
    language_flags: Mapping[FileType, tuple[str, ...]]
    version_flags: Mapping[FileType, str]
    syntax_only: tuple[str, ...]
    probe_flags: tuple[str, ...] | None = None
    forced_include_attached: bool = False
    supports_frameworks: bool = False
    supports_sysroot: bool = False

    def normalize_flag(self, arg: str) -> str | None:
        """Return ``arg`` in ``-`` spelling, or None if it is not a flag."""
        if len(arg) < 2 or arg[0] not in self.flag_prefixes:
            return None
        return "-" + arg[1:]

    def settings_for(
        self,
        file_type: FileType,
        windows_sdk_version: str | None = None,
        macos_sdk: FilePath | None = None,
    ) -> CompilerSettings:
        return CompilerSettings(
            intellisense_mode=self.intellisense_mode,
            standard=STANDARDS[file_type],
            version_flag=self.version_flags[file_type],
            windows_sdk_version=windows_sdk_version,
            macos_sdk=macos_sdk if self.supports_sysroot else None,
        )

    def _base_invocation(
        self, command: Sequence[CmdArg], file_type: FileType, settings: CompilerSettings
    ) -> list[CmdArg]:
        args: list[CmdArg] = list(command)
        if settings.version_flag:
            args.append(settings.version_flag)
        args.extend(self.language_flags[file_type])
        if settings.macos_sdk is not None and sys.platform == "darwin":
            args.extend(["-isysroot", settings.macos_sdk])
        return args

    def probe_invocation(
        self, command: Sequence[CmdArg], file_type: FileType, settings: CompilerSettings
    ) -> list[CmdArg]:
        """Build the preprocessor-dump command used to discover defaults."""
        if self.probe_flags is None:
            raise DiscoveryError(f"Compilers of type '{self.name}' cannot be probed for defaults")
        args = self._base_invocation(command, file_type, settings)
        args.extend(self.probe_flags)
        args.append(os.devnull)
        return args

    def compile_invocation(
        self,
        command: Sequence[CmdArg],
        source: FilePath,
        file_args: Sequence[CmdArg],
        file_type: FileType,
        settings: CompilerSettings,
    ) -> list[CmdArg]:
        """Build a syntax-only compile of ``source`` with its own flags."""
        args = self._base_invocation(command, file_type, settings)
        args.extend(file_args)
        args.extend(self.syntax_only)
        args.append(source)
        return args


CLANG = Dialect(
    name="clang",
    intellisense_mode=IntelliSenseMode.CLANG_X64,
    flag_prefixes=("-",),
    forced_include="-include",
    language_flags={FileType.C: ("-xc",), FileType.CPP: ("-xc++",)},
    version_flags={FileType.C: "-std=gnu99", FileType.CPP: "-std=c++14"},
    syntax_only=("-fsyntax-only",),
    probe_flags=("-Wp,-v", "-E", "-dD"),
    supports_frameworks=True,
    supports_sysroot=True,
)

GCC = replace(CLANG, name="gcc", intellisense_mode=IntelliSenseMode.GCC_X64)

CLANG_CL = Dialect(
    name="clang-cl",
    intellisense_mode=IntelliSenseMode.CLANG_X64,
    flag_prefixes=("-", "/"),
    forced_include="-FI",
    forced_include_attached=True,
    language_flags={FileType.C: ("-TC",), FileType.CPP: ("-TP",)},
    version_flags={FileType.C: "", FileType.CPP: "-std:c++14"},
    syntax_only=("-Zs",),
    probe_flags=("-E", "-Xclang", "-dM", "-v"),
)

MSVC = replace(
    CLANG_CL,
    name="msvc",
    intellisense_mode=IntelliSenseMode.MSVC_X64,
    probe_flags=None,
)

DIALECTS: dict[str, Dialect] = {d.name: d for d in (CLANG, GCC, CLANG_CL, MSVC)}


def get_dialect(compiler_type: str | None) -> Dialect:
    """Look up the dialect for a build system ``CC_TYPE`` value."""
    if not compiler_type:
        raise DiscoveryError("Unable to determine compiler type.")
    try:
        return DIALECTS[compiler_type]
    except KeyError:
        raise DiscoveryError(f"Unknown compiler type {compiler_type}.") from None
