"""Livemark error hierarchy.

All livemark-specific errors inherit from LivemarkError for easy catching.
"""

from __future__ import annotations

from pathlib import Path


class LivemarkError(Exception):
    """Base error for all livemark operations."""


class ConfigError(LivemarkError):
    """Invalid or missing configuration (bad root, unreadable config file)."""


class DocumentError(LivemarkError):
    """A tracked document could not be read or stat'ed after startup.

    Recoverable: the store keeps the previously rendered artifact.

    Attributes:
        path: The file that failed.

    """

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class WatchError(LivemarkError):
    """The filesystem watch could not be started or stopped unexpectedly."""


class ReactiveError(LivemarkError):
    """Error in the reactive pipeline (classification, broadcasting)."""
