"""
Core domain package.

This package contains the storage and scanning logic, independent of the CLI.
Consumers should usually import from the specific module they need
(e.g. `medialib.core.library_db`).
"""

from __future__ import annotations

__all__: list[str] = [
    "CoreError",
    "NotFoundError",
    "DuplicateMediaError",
]


class CoreError(Exception):
    """Base class for core-layer exceptions."""


class NotFoundError(CoreError):
    """Raised when an entity (media/album) cannot be found."""


class DuplicateMediaError(CoreError):
    """Raised when a media row is inserted for a file that is already stored."""

    def __init__(self, file: str) -> None:
        super().__init__(f"Media file already stored: {file}")
        self.file = file
