"""User configuration: per-folder overrides and global settings."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mozcpp.exceptions import SettingsError
from mozcpp.models.compiler import FileType
from mozcpp.paths import FilePath

SETTINGS_FILE = ".mozcpp.json"
DEFAULT_MOZILLABUILD = "C:\\mozilla-build"


class FolderSettings(BaseModel):
    """Settings that can differ per workspace folder.

    Keys use the dotted names of the editor settings they mirror
    (``c.compiler``, ``mach.path``, ...); field names are also accepted.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    c_compiler: str | None = Field(default=None, alias="c.compiler")
    cpp_compiler: str | None = Field(default=None, alias="cpp.compiler")
    mach_path: str | None = Field(default=None, alias="mach.path")
    mach_environment: dict[str, str] = Field(default_factory=dict, alias="mach.environment")
    flags_source: Literal["backend", "mach"] = Field(default="backend", alias="flags.source")

    @field_validator("c_compiler", "cpp_compiler", "mach_path", mode="before")
    @classmethod
    def _blank_to_none(cls, v: object) -> object:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    def compiler_for(self, file_type: FileType) -> str | None:
        return self.c_compiler if file_type is FileType.C else self.cpp_compiler

    def mach_env(self, base: Mapping[str, str] | None = None) -> dict[str, str]:
        """User overrides merged over ``base`` (the process environment by default)."""
        env = dict(os.environ if base is None else base)
        env.update(self.mach_environment)
        return env


class Settings(BaseModel):
    """Process-wide settings plus per-folder overrides keyed by folder path."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    mozillabuild: str = DEFAULT_MOZILLABUILD
    defaults: FolderSettings = Field(default_factory=FolderSettings)
    folders: dict[str, FolderSettings] = Field(default_factory=dict)

    def for_folder(self, root: FilePath) -> FolderSettings:
        """Effective settings for ``root``: folder overrides over defaults."""
        merged = self.defaults.model_dump()
        for key, override in self.folders.items():
            try:
                matches = FilePath(key) == root
            except ValueError:
                continue
            if matches:
                merged.update(override.model_dump(exclude_unset=True))
        return FolderSettings.model_validate(merged)

    def mozillabuild_path(self) -> FilePath | None:
        try:
            return FilePath(self.mozillabuild)
        except ValueError:
            return None


def load_settings(
    path: str | os.PathLike[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from a JSON file; ``MOZILLABUILD`` in the environment wins.

    A missing file yields default settings.

    Raises:
        SettingsError: the file is not valid JSON or does not match the schema.
    """
    environ = os.environ if environ is None else environ
    data: dict = {}
    if path is not None and Path(path).is_file():
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise SettingsError(f"Unable to read settings from {path}: {e}") from e
        if not isinstance(data, dict):
            raise SettingsError(f"Settings in {path} must be a JSON object")

    if environ.get("MOZILLABUILD"):
        data["mozillabuild"] = environ["MOZILLABUILD"]

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise SettingsError(f"Invalid settings: {e}") from e
