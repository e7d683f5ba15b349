"""Configuration provider answering the code-intelligence host's queries."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import structlog

from mozcpp.folders import SourceFolder
from mozcpp.host import CppToolsApi, EditorHost
from mozcpp.models.configuration import (
    SourceFileConfigurationItem,
    WorkspaceBrowseConfiguration,
)
from mozcpp.paths import FilePath, FilePathSet

logger = structlog.get_logger(__name__)

PROVIDER_NAME = "Mozilla"
EXTENSION_ID = "fractalbrew.mozillacpp"


@dataclass(frozen=True)
class FolderQueries:
    """The read-only view of the workspace the provider is allowed to use."""

    get_folder: Callable[[FilePath], SourceFolder | None]
    get_build_folders: Callable[[], list[SourceFolder]]


def _uri_path(uri: str) -> FilePath | None:
    try:
        return FilePath.from_uri(uri)
    except ValueError:
        logger.debug("provider.bad_uri", uri=uri)
        return None


class ConfigurationProvider:
    name = PROVIDER_NAME
    extension_id = EXTENSION_ID

    def __init__(self, api: CppToolsApi, queries: FolderQueries) -> None:
        self._api = api
        self._queries = queries
        self.disposed = False

    @classmethod
    async def create(
        cls, host: EditorHost, queries: FolderQueries
    ) -> ConfigurationProvider | None:
        """Register a new provider with the host. None if the host has no API."""
        api = await host.get_cpptools_api()
        if api is None:
            logger.warning("provider.no_api")
            return None
        provider = cls(api, queries)
        api.register_custom_configuration_provider(provider)
        api.notify_ready(provider)
        logger.info("provider.registered", name=cls.name)
        return provider

    def _folder_for(self, uri: str) -> tuple[FilePath, SourceFolder] | None:
        path = _uri_path(uri)
        if path is None:
            return None
        folder = self._queries.get_folder(path)
        if folder is None or not folder.can_provide_config():
            return None
        return path, folder

    async def can_provide_configuration(self, uri: str) -> bool:
        return self._folder_for(uri) is not None

    async def provide_configurations(
        self, uris: Sequence[str]
    ) -> list[SourceFileConfigurationItem]:
        """Configurations for every file that has one; the rest are left out."""
        items = await asyncio.gather(*(self._provide(uri) for uri in uris))
        return [item for item in items if item is not None]

    async def _provide(self, uri: str) -> SourceFileConfigurationItem | None:
        found = self._folder_for(uri)
        if found is None:
            return None
        path, folder = found

        try:
            configuration = await folder.get_source_configuration(path)
        except Exception as e:
            logger.warning(
                "provider.configuration_failed",
                path=str(path),
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        if self._queries.get_folder(path) is not folder:
            logger.debug("provider.stale_configuration", path=str(path))
            return None
        if configuration is None:
            logger.debug("provider.no_configuration", path=str(path))
            return None
        return SourceFileConfigurationItem(uri=uri, configuration=configuration)

    async def can_provide_browse_configuration(self) -> bool:
        return bool(self._queries.get_build_folders())

    async def provide_browse_configuration(self) -> WorkspaceBrowseConfiguration | None:
        folders = self._queries.get_build_folders()
        if not folders:
            return None
        paths = FilePathSet()
        for folder in folders:
            paths.update(folder.get_include_paths())
        return WorkspaceBrowseConfiguration(browse_path=paths.to_strings())

    async def can_provide_browse_configurations_per_folder(self) -> bool:
        return True

    async def provide_folder_browse_configuration(
        self, uri: str
    ) -> WorkspaceBrowseConfiguration | None:
        found = self._folder_for(uri)
        if found is None:
            return None
        return WorkspaceBrowseConfiguration(browse_path=found[1].get_include_paths().to_strings())

    def reset_configuration(self) -> None:
        if not self.disposed:
            self._api.did_change_custom_configuration(self)

    def reset_browse_configuration(self) -> None:
        if not self.disposed:
            self._api.did_change_custom_browse_configuration(self)

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        self._api.dispose()
        logger.info("provider.disposed", name=self.name)
