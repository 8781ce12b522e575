"""
DB models (DTOs) and small normalization helpers.

This module is intentionally lightweight:
- No DB connection knowledge
- No SQL
- Pure dataclasses + helper functions
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

# Name of the sentinel album seeded at init and restored by the
# `ensure_default_album` trigger.
DEFAULT_ALBUM_NAME: Final[str] = "Unknown Album"


@dataclass(frozen=True, slots=True)
class AlbumRow:
    """
    Album record as stored in SQLite.

    `track` holds the album's total track count (not a track number).
    """

    id: int
    name: str
    year: int | None
    track: int | None
    cover: str | None

    @property
    def is_default(self) -> bool:
        """True for the "Unknown Album" sentinel shape (name + all-null metadata)."""
        return (
            self.name == DEFAULT_ALBUM_NAME
            and self.year is None
            and self.track is None
            and self.cover is None
        )


@dataclass(frozen=True, slots=True)
class MediaRow:
    """
    Media (track) record as stored in SQLite.

    Notes:
    - `file` is the stable unique identifier for a local file.
    - `album_id` may be None (unassigned) or point at a deleted album when
      foreign keys are not enforced.
    """

    id: int
    file: str
    name: str
    artist: str | None
    album_id: int | None
    track: int | None


@dataclass(frozen=True, slots=True)
class MediaWithAlbumRow:
    """Row of the `media_with_album` view."""

    id: int
    file: str
    name: str
    artist: str | None
    track: int | None
    album_name: str | None
    album_year: int | None
    album_cover: str | None


@dataclass(frozen=True, slots=True)
class NewAlbum:
    """Input record for album inserts/lookups."""

    name: str
    year: int | None = None
    track: int | None = None
    cover: str | None = None

    @classmethod
    def default(cls) -> NewAlbum:
        return cls(name=DEFAULT_ALBUM_NAME)


@dataclass(frozen=True, slots=True)
class NewMedia:
    """
    Input record used by scanners/importers.

    `file` is required and must identify the same file across scans.
    """

    file: str
    name: str
    artist: str | None = None
    track: int | None = None


def normalize_text(value: str | None) -> str | None:
    """
    Normalize optional text fields:
    - strip whitespace
    - coerce empty strings to None
    """
    if value is None:
        return None
    v = value.strip()
    return v if v else None


def normalize_int(value: int | None) -> int | None:
    """Normalize optional integer fields (coerce to int, keep None)."""
    if value is None:
        return None
    return int(value)
