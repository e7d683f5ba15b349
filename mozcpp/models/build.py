"""Data models for the build tool's environment."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mozcpp.paths import FilePath


class MozConfig(BaseModel):
    """The ``mozconfig`` section of ``mach environment`` output."""

    model_config = ConfigDict(extra="ignore")

    path: str = ""
    configure_args: list[str] = []
    make_extra: list[str] = []
    make_flags: list[str] = []

    @field_validator("path", mode="before")
    @classmethod
    def _none_to_empty(cls, v: object) -> object:
        return "" if v is None else v

    @field_validator("configure_args", "make_extra", "make_flags", mode="before")
    @classmethod
    def _none_to_list(cls, v: object) -> object:
        return [] if v is None else v


class MachEnvironment(BaseModel):
    """Structured output of ``mach environment --format json``.

    Missing fields default to empty values; unknown fields are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    topobjdir: str = ""
    topsrcdir: str = ""
    mozconfig: MozConfig = Field(default_factory=MozConfig)

    @field_validator("topobjdir", "topsrcdir", mode="before")
    @classmethod
    def _none_to_empty(cls, v: object) -> object:
        return "" if v is None else v

    @field_validator("mozconfig", mode="before")
    @classmethod
    def _none_to_default(cls, v: object) -> object:
        return {} if v is None else v


@dataclass(frozen=True)
class BuildEnvironment:
    """Everything learned about a tree before any file is configured."""

    objdir: FilePath
    srcdir: FilePath
    macos_sdk: FilePath | None = None
    variables: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CompileReport:
    """Outcome of a diagnostic syntax-only compile of one file."""

    source: FilePath
    success: bool
    message: str
    exit_code: int | None = None
    output: str = ""

    def __str__(self) -> str:
        if not self.output:
            return self.message
        return f"{self.message}\n{self.output}"
