"""Data models for compilers and per-file configuration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from mozcpp.paths import FilePath, FilePathSet


class FileType(str, Enum):
    C = "c"
    CPP = "cpp"


class IntelliSenseMode(str, Enum):
    MSVC_X64 = "msvc-x64"
    GCC_X64 = "gcc-x64"
    CLANG_X64 = "clang-x64"


class Standard(str, Enum):
    C89 = "c89"
    C99 = "c99"
    C11 = "c11"
    CPP98 = "c++98"
    CPP03 = "c++03"
    CPP11 = "c++11"
    CPP14 = "c++14"
    CPP17 = "c++17"


@dataclass(frozen=True)
class Define:
    """A preprocessor macro. A define given without a value means ``1``."""

    key: str
    value: str = "1"

    def __str__(self) -> str:
        return f"{self.key}={self.value}"


@dataclass
class FileConfig:
    """Flags contributed by one file's compiler command line."""

    includes: FilePathSet = field(default_factory=FilePathSet)
    defines: dict[str, Define] = field(default_factory=dict)
    forced_includes: FilePathSet = field(default_factory=FilePathSet)
    framework_includes: FilePathSet = field(default_factory=FilePathSet)

    def add_define(self, define: Define) -> None:
        self.defines[define.key] = define


@dataclass(frozen=True)
class CompilerDefaults:
    """Built-in includes and defines of one compiler for one file type.

    Never mutated after construction; a rebuild creates a new instance.
    """

    includes: tuple[FilePath, ...] = ()
    user_includes: tuple[FilePath, ...] = ()
    framework_includes: tuple[FilePath, ...] = ()
    defines: Mapping[str, Define] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "defines", MappingProxyType(dict(self.defines)))


@dataclass(frozen=True)
class CompilerSettings:
    """Fixed facts about a compiler reported to the code-intelligence host."""

    intellisense_mode: IntelliSenseMode
    standard: Standard
    version_flag: str
    windows_sdk_version: str | None = None
    macos_sdk: FilePath | None = None
