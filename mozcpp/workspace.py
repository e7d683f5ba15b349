"""Workspace coordinator: owns every SourceFolder and the provider registration."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

import structlog

from mozcpp.context import AppContext
from mozcpp.core.config import Settings
from mozcpp.folders import SourceFolder, WorkspaceFolder
from mozcpp.models.build import CompileReport
from mozcpp.models.configuration import SourceFileConfiguration
from mozcpp.paths import FilePath
from mozcpp.provider import ConfigurationProvider, FolderQueries

logger = structlog.get_logger(__name__)


class Workspace:
    """Tracks folders, the number of recognized build trees and the provider.

    The provider is registered when the first recognized folder appears and
    disposed when the last one goes away; it is registered again if another
    recognized folder is added later.
    """

    def __init__(self, context: AppContext) -> None:
        self.context = context
        self._folders: dict[FilePath, SourceFolder] = {}
        self._build_count = 0
        self._generation = 0
        # Generation of the newest rebuild in flight, per root.
        self._latest: dict[FilePath, int] = {}
        self._provider: ConfigurationProvider | None = None
        self._provider_pending = False
        self._queries = FolderQueries(
            get_folder=self.get_folder,
            get_build_folders=self.get_build_folders,
        )

    @property
    def build_count(self) -> int:
        return self._build_count

    @property
    def provider(self) -> ConfigurationProvider | None:
        return self._provider

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    # ── folder lifecycle ────────────────────────────────────────────────

    async def add_folder(self, folder: WorkspaceFolder) -> SourceFolder:
        """Probe and publish a folder; returns the existing one if already known."""
        root = folder.path
        existing = self._folders.get(root)
        if existing is not None:
            return existing

        source = SourceFolder(self.context, folder, self._next_generation())
        self._folders[root] = source
        await source.probe()

        if self._folders.get(root) is not source:
            # Removed or rebuilt while probing.
            source.dispose()
            return source

        if source.is_build_tree:
            self._build_count += 1
            created = await self._sync_provider()
            if not created:
                self.reset_configuration()
                self.reset_browse_configuration()
        logger.info(
            "workspace.folder_added",
            root=str(root),
            state=source.state.value,
            build_count=self._build_count,
        )
        return source

    async def add_folders(self, folders: Iterable[WorkspaceFolder]) -> list[SourceFolder]:
        return list(await asyncio.gather(*(self.add_folder(f) for f in folders)))

    async def remove_folder(self, root: FilePath) -> None:
        self._latest.pop(root, None)
        source = self._folders.pop(root, None)
        if source is None:
            return
        was_build = source.is_build_tree
        source.dispose()

        if was_build:
            self._build_count -= 1
            await self._sync_provider()
            self.reset_configuration()
            self.reset_browse_configuration()
        logger.info("workspace.folder_removed", root=str(root), build_count=self._build_count)

    async def change_folders(
        self,
        added: Iterable[WorkspaceFolder] = (),
        removed: Iterable[WorkspaceFolder] = (),
    ) -> None:
        """Apply an editor folder change notification."""
        for folder in removed:
            await self.remove_folder(folder.path)
        await self.add_folders(added)

    async def rebuild_folders(self, roots: Iterable[FilePath] | None = None) -> None:
        """Re-probe folders from scratch; all of them when ``roots`` is None."""
        targets = list(self._folders) if roots is None else [r for r in roots if r in self._folders]
        if not targets:
            return
        await asyncio.gather(*(self._rebuild(self._folders[root]) for root in targets))
        self.reset_configuration()
        self.reset_browse_configuration()

    async def _rebuild(self, old: SourceFolder) -> None:
        # Built unshared, then published in a single assignment.
        root = old.root
        new = SourceFolder(self.context, old.folder, self._next_generation())
        self._latest[root] = new.generation
        await new.probe()

        current = self._folders.get(root)
        if current is None or self._latest.get(root) != new.generation:
            # Removed, or superseded by a newer rebuild.
            logger.debug("workspace.rebuild_discarded", root=str(root), generation=new.generation)
            new.dispose()
            return

        del self._latest[root]
        self._folders[root] = new
        delta = int(new.is_build_tree) - int(current.is_build_tree)
        current.dispose()
        logger.info(
            "workspace.folder_rebuilt",
            root=str(new.root),
            state=new.state.value,
            generation=new.generation,
        )
        if delta:
            self._build_count += delta
            await self._sync_provider()

    async def update_settings(self, settings: Settings) -> None:
        """Apply new settings, rebuilding only the folders they affect."""
        previous = self.context.settings
        self.context.update_settings(settings)

        if previous.mozillabuild != settings.mozillabuild:
            affected = list(self._folders)
        else:
            # A rebuild in flight was started from older settings.
            affected = [
                root
                for root, folder in self._folders.items()
                if root in self._latest or folder.settings != settings.for_folder(root)
            ]
        logger.info("workspace.settings_changed", affected=[str(r) for r in affected])
        if affected:
            await self.rebuild_folders(affected)

    # ── provider ────────────────────────────────────────────────────────

    async def _sync_provider(self) -> bool:
        """Register or dispose the provider to match the build count.

        Returns True if a new provider was registered.
        """
        if self._build_count > 0 and self._provider is None:
            if self._provider_pending:
                return False
            self._provider_pending = True
            try:
                provider = await ConfigurationProvider.create(self.context.host, self._queries)
            finally:
                self._provider_pending = False
            if provider is None:
                return False
            self._provider = provider
            # The count may have dropped while the host was registering us.
            await self._sync_provider()
            return self._provider is provider

        if self._build_count == 0 and self._provider is not None:
            provider, self._provider = self._provider, None
            provider.dispose()
        return False

    def reset_configuration(self) -> None:
        if self._provider is not None:
            self._provider.reset_configuration()

    def reset_browse_configuration(self) -> None:
        if self._provider is not None:
            self._provider.reset_browse_configuration()

    # ── queries ─────────────────────────────────────────────────────────

    def get_folder(self, path: FilePath) -> SourceFolder | None:
        """The innermost folder containing ``path``."""
        best: SourceFolder | None = None
        for root, folder in self._folders.items():
            if path.is_under(root) and (best is None or root.is_under(best.root)):
                best = folder
        return best

    def get_all_folders(self) -> list[SourceFolder]:
        return list(self._folders.values())

    def get_build_folders(self) -> list[SourceFolder]:
        return [f for f in self._folders.values() if f.is_build_tree]

    def can_provide_config(self) -> bool:
        return any(f.can_provide_config() for f in self._folders.values())

    async def get_source_configuration(self, path: FilePath) -> SourceFileConfiguration | None:
        folder = self.get_folder(path)
        if folder is None:
            return None
        return await folder.get_source_configuration(path)

    async def test_compile(self, path: FilePath) -> CompileReport | None:
        folder = self.get_folder(path)
        if folder is None:
            return None
        return await folder.test_compile(path)

    async def to_state(self) -> dict[str, Any]:
        return {
            "build_count": self._build_count,
            "provider": self._provider.name if self._provider else None,
            "folders": [await f.to_state() for f in self._folders.values()],
        }

    def dispose(self) -> None:
        for folder in self._folders.values():
            folder.dispose()
        self._folders.clear()
        self._latest.clear()
        self._build_count = 0
        if self._provider is not None:
            self._provider.dispose()
            self._provider = None
