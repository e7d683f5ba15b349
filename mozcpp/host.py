"""Editor-side collaborators: the code-intelligence host API and user messages."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

import click
import structlog

if TYPE_CHECKING:
    from mozcpp.provider import ConfigurationProvider

logger = structlog.get_logger(__name__)


@runtime_checkable
class CppToolsApi(Protocol):
    """Registration and change notification surface of the code-intelligence host."""

    def register_custom_configuration_provider(self, provider: ConfigurationProvider) -> None: ...

    def notify_ready(self, provider: ConfigurationProvider) -> None: ...

    def did_change_custom_configuration(self, provider: ConfigurationProvider) -> None: ...

    def did_change_custom_browse_configuration(self, provider: ConfigurationProvider) -> None: ...

    def dispose(self) -> None: ...


@runtime_checkable
class EditorHost(Protocol):
    """What the core needs from the editor it runs inside."""

    async def get_cpptools_api(self) -> CppToolsApi | None: ...

    async def show_error_message(self, message: str) -> None: ...

    async def show_information_message(self, message: str) -> None: ...


class LoggingCppToolsApi:
    """A host API that only records notifications in the log."""

    def register_custom_configuration_provider(self, provider: ConfigurationProvider) -> None:
        logger.debug("cpptools.register", provider=provider.name)

    def notify_ready(self, provider: ConfigurationProvider) -> None:
        logger.debug("cpptools.ready", provider=provider.name)

    def did_change_custom_configuration(self, provider: ConfigurationProvider) -> None:
        logger.debug("cpptools.configuration_changed", provider=provider.name)

    def did_change_custom_browse_configuration(self, provider: ConfigurationProvider) -> None:
        logger.debug("cpptools.browse_configuration_changed", provider=provider.name)

    def dispose(self) -> None:
        logger.debug("cpptools.disposed")


class ConsoleHost:
    """Host used by the command line: messages go to stderr."""

    def __init__(self, api: CppToolsApi | None = None) -> None:
        self._api = api if api is not None else LoggingCppToolsApi()

    async def get_cpptools_api(self) -> CppToolsApi | None:
        return self._api

    async def show_error_message(self, message: str) -> None:
        click.echo(f"Error: {message}", err=True)

    async def show_information_message(self, message: str) -> None:
        click.echo(message, err=True)
