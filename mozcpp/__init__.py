"""mozcpp: compiler configuration discovery for mach-based C/C++ source trees."""

__version__ = "0.1.0"

from mozcpp.context import AppContext
from mozcpp.core.config import FolderSettings, Settings, load_settings
from mozcpp.exceptions import (
    BuildNotPerformedYet,
    DiscoveryError,
    MalformedEnvironment,
    MozCppError,
    ProcessError,
    SettingsError,
)
from mozcpp.folders import FolderState, SourceFolder, WorkspaceFolder
from mozcpp.models.configuration import (
    SourceFileConfiguration,
    SourceFileConfigurationItem,
    WorkspaceBrowseConfiguration,
)
from mozcpp.paths import FilePath
from mozcpp.provider import ConfigurationProvider
from mozcpp.workspace import Workspace

__all__ = [
    "AppContext",
    "BuildNotPerformedYet",
    "ConfigurationProvider",
    "DiscoveryError",
    "FilePath",
    "FolderSettings",
    "FolderState",
    "MalformedEnvironment",
    "MozCppError",
    "ProcessError",
    "Settings",
    "SettingsError",
    "SourceFileConfiguration",
    "SourceFileConfigurationItem",
    "SourceFolder",
    "Workspace",
    "WorkspaceBrowseConfiguration",
    "WorkspaceFolder",
    "load_settings",
]
