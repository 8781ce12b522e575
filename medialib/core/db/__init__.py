"""
Internal DB subpackage for medialib.

Splits the storage layer into focused units (models, schema/migrations, and
query groups) while keeping `LibraryDb` as the single public interface that the
rest of the codebase imports.

External code should import `LibraryDb` from `medialib.core.library_db`.
"""

from __future__ import annotations

# Models / DTOs
from .models import (
    DEFAULT_ALBUM_NAME,
    AlbumRow,
    MediaRow,
    MediaWithAlbumRow,
    NewAlbum,
    NewMedia,
)

# Schema / migrations
from .schema import SCHEMA_VERSION, ensure_schema, migrate

__all__ = [
    # models
    "DEFAULT_ALBUM_NAME",
    "AlbumRow",
    "MediaRow",
    "MediaWithAlbumRow",
    "NewAlbum",
    "NewMedia",
    # schema
    "SCHEMA_VERSION",
    "ensure_schema",
    "migrate",
]
