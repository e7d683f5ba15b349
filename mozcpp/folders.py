"""Workspace folders and their probe state."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from mozcpp.build.build import Build
from mozcpp.exceptions import BuildNotPerformedYet, MozCppError
from mozcpp.models.build import CompileReport
from mozcpp.models.configuration import SourceFileConfiguration
from mozcpp.paths import FilePath, FilePathSet

if TYPE_CHECKING:
    from mozcpp.context import AppContext

logger = structlog.get_logger(__name__)


class FolderState(str, Enum):
    UNPROBED = "unprobed"
    PROBING = "probing"
    RECOGNIZED = "recognized"
    NOT_A_BUILD_TREE = "not_a_build_tree"


@dataclass(frozen=True)
class WorkspaceFolder:
    """A root folder as the editor reports it."""

    uri: str
    name: str = ""

    @classmethod
    def from_path(cls, path: FilePath, name: str | None = None) -> WorkspaceFolder:
        return cls(uri=path.to_uri(), name=name if name is not None else path.name)

    @property
    def path(self) -> FilePath:
        return FilePath.from_uri(self.uri)


class SourceFolder:
    """One workspace folder and, when it is a recognized tree, its Build.

    ``generation`` increases every time the folder is rebuilt so results
    computed from an older model can be told apart.
    """

    def __init__(self, context: AppContext, folder: WorkspaceFolder, generation: int = 0) -> None:
        self.context = context
        self.folder = folder
        self.root = folder.path
        self.generation = generation
        self.settings = context.folder_settings(self.root)
        self.state = FolderState.UNPROBED
        self.build: Build | None = None
        self.error: Exception | None = None

    @classmethod
    async def create(
        cls, context: AppContext, folder: WorkspaceFolder, generation: int = 0
    ) -> SourceFolder:
        source = cls(context, folder, generation)
        await source.probe()
        return source

    @property
    def name(self) -> str:
        return self.folder.name or self.root.name

    @property
    def is_build_tree(self) -> bool:
        return self.state is FolderState.RECOGNIZED

    async def probe(self) -> None:
        """Run the probe once: UNPROBED -> PROBING -> RECOGNIZED | NOT_A_BUILD_TREE."""
        if self.state is not FolderState.UNPROBED:
            return
        self.state = FolderState.PROBING
        logger.debug("folder.probing", root=str(self.root), generation=self.generation)

        try:
            build = await Build.create(
                self.root, self.settings, self.context.runner, self.context.classifier
            )
        except BuildNotPerformedYet as e:
            self._fail(e)
            await self.context.show_message_once(
                f"not-built:{self.root}",
                f"The folder '{self.name}' has not been built yet. Run './mach build' "
                "and reload to enable code intelligence for it.",
                error=False,
            )
            return
        except Exception as e:
            if not isinstance(e, MozCppError):
                logger.error("folder.probe_crashed", root=str(self.root), exc_info=True)
            self._fail(e)
            await self.context.show_message_once(
                f"probe-failed:{self.root}:{type(e).__name__}",
                f"Unable to configure the folder '{self.name}': {e}",
            )
            return

        if build is None:
            self.state = FolderState.NOT_A_BUILD_TREE
            logger.info("folder.not_a_build_tree", root=str(self.root))
            return

        self.build = build
        self.state = FolderState.RECOGNIZED
        logger.info("folder.probed", root=str(self.root), objdir=str(build.objdir))

    def _fail(self, error: Exception) -> None:
        self.error = error
        self.state = FolderState.NOT_A_BUILD_TREE
        logger.warning(
            "folder.probe_failed",
            root=str(self.root),
            error_type=type(error).__name__,
            error=str(error),
        )

    def contains(self, path: FilePath) -> bool:
        return path.is_under(self.root)

    def can_provide_config(self) -> bool:
        return self.is_build_tree and self.build is not None

    async def get_source_configuration(self, path: FilePath) -> SourceFileConfiguration | None:
        if self.build is None:
            return None
        return await self.build.get_source_configuration(path)

    def get_include_paths(self) -> FilePathSet:
        if self.build is None:
            return FilePathSet()
        return self.build.get_include_paths()

    async def test_compile(self, path: FilePath) -> CompileReport | None:
        if self.build is None:
            return None
        return await self.build.test_compile(path)

    async def to_state(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "root": str(self.root),
            "state": self.state.value,
            "generation": self.generation,
            "error": str(self.error) if self.error else None,
            "settings": self.settings.model_dump(by_alias=True),
            "build": await self.build.to_state() if self.build else None,
        }

    def dispose(self) -> None:
        if self.build is not None:
            self.build.dispose()
