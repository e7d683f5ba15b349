"""Configuration payloads handed to the code-intelligence host."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from mozcpp.models.compiler import IntelliSenseMode, Standard


class _HostModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_host(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SourceFileConfiguration(_HostModel):
    include_path: list[str]
    defines: list[str]
    forced_include: list[str] = []
    intelli_sense_mode: IntelliSenseMode
    standard: Standard
    compiler_path: str | None = None
    windows_sdk_version: str | None = None


class SourceFileConfigurationItem(_HostModel):
    uri: str
    configuration: SourceFileConfiguration


class WorkspaceBrowseConfiguration(_HostModel):
    browse_path: list[str]
    compiler_path: str | None = None
    standard: Standard | None = None
    windows_sdk_version: str | None = None
