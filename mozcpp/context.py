"""Application context shared by every component of one running instance."""

from __future__ import annotations

import structlog

from mozcpp.build.build import FileClassifier, classify_file
from mozcpp.core.config import FolderSettings, Settings
from mozcpp.host import ConsoleHost, EditorHost
from mozcpp.paths import FilePath
from mozcpp.process import ProcessRunner, create_runner

logger = structlog.get_logger(__name__)


class AppContext:
    """Settings, process runner, editor host and file classifier.

    Several contexts can live in one process; nothing here is global.
    """

    def __init__(
        self,
        settings: Settings,
        runner: ProcessRunner,
        host: EditorHost,
        classifier: FileClassifier = classify_file,
        *,
        owns_runner: bool = False,
    ) -> None:
        self.settings = settings
        self.runner = runner
        self.host = host
        self.classifier = classifier
        self._owns_runner = owns_runner
        self._shown_messages: set[str] = set()

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        host: EditorHost | None = None,
        runner: ProcessRunner | None = None,
        classifier: FileClassifier = classify_file,
    ) -> AppContext:
        settings = settings if settings is not None else Settings()
        owns_runner = runner is None
        if runner is None:
            runner = create_runner(settings.mozillabuild_path())
        return cls(
            settings,
            runner,
            host if host is not None else ConsoleHost(),
            classifier,
            owns_runner=owns_runner,
        )

    def folder_settings(self, root: FilePath) -> FolderSettings:
        return self.settings.for_folder(root)

    def update_settings(self, settings: Settings) -> None:
        """Swap in new settings, recreating an owned runner if the install root moved."""
        previous = self.settings
        self.settings = settings
        if self._owns_runner and previous.mozillabuild != settings.mozillabuild:
            self.runner = create_runner(settings.mozillabuild_path())
            logger.info("context.runner_replaced", mozillabuild=settings.mozillabuild)

    async def show_message_once(self, key: str, message: str, *, error: bool = True) -> bool:
        """Show ``message`` unless one with the same key was already shown."""
        if key in self._shown_messages:
            return False
        self._shown_messages.add(key)
        if error:
            await self.host.show_error_message(message)
        else:
            await self.host.show_information_message(message)
        return True
