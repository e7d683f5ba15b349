"""Custom exceptions for mozcpp."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mozcpp.process import ProcessResult


class MozCppError(Exception):
    """Base exception for all mozcpp errors."""


class ProcessError(MozCppError):
    """Raised when an external command cannot be spawned or exits non-zero.

    The partial result is always attached so callers can inspect whatever
    output was captured before the failure.
    """

    def __init__(self, message: str, command: str, result: ProcessResult):
        self.command = command
        self.result = result
        super().__init__(message)

    @property
    def exit_code(self) -> int:
        return self.result.exit_code


class BuildNotPerformedYet(MozCppError):
    """Raised when the build tool reports the tree has not been built or configured."""


class DiscoveryError(MozCppError):
    """Raised when a compiler's built-in defaults cannot be discovered."""


class MalformedEnvironment(MozCppError):
    """Raised when the build tool's environment output is unusable."""


class SettingsError(MozCppError):
    """Raised when user settings cannot be loaded."""
