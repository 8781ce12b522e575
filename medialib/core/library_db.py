"""
Media library database access layer.

Goals:
- Minimal and testable.
- SQLite + aiosqlite, async/await friendly.
- Schema evolves through `user_version` migrations.

This module is intentionally independent of the CLI.

Note:
- Models/DTOs and normalization helpers live in `medialib.core.db.models`
- Schema/migrations live in `medialib.core.db.schema`
- Query functions live in `medialib.core.db.queries_*` modules
- `LibraryDb` remains the public facade used by the rest of the codebase
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from types import TracebackType
from typing import Any, Final, Iterable, Mapping, Sequence

import aiosqlite

from medialib.core import DuplicateMediaError
from medialib.core.db import queries_albums, queries_media
from medialib.core.db.models import (
    AlbumRow,
    MediaRow,
    MediaWithAlbumRow,
    NewAlbum,
    NewMedia,
    normalize_int,
    normalize_text,
)
from medialib.core.db.ordering import AlbumsOrderBy, MediaOrderBy
from medialib.core.db.schema import ensure_schema as ensure_schema_sql

__all__ = [
    "LibraryDb",
    "AlbumRow",
    "MediaRow",
    "MediaWithAlbumRow",
    "NewAlbum",
    "NewMedia",
]

logger = logging.getLogger(__name__)

# Pending writes of `add_media` before an automatic commit.
DEFAULT_COMMIT_EVERY: Final[int] = 64


def _normalize_album(album: NewAlbum) -> NewAlbum:
    name = normalize_text(album.name)
    if name is None:
        raise ValueError("album name must not be empty")
    return NewAlbum(
        name=name,
        year=normalize_int(album.year),
        track=normalize_int(album.track),
        cover=normalize_text(album.cover),
    )


def _normalize_media(media: NewMedia) -> NewMedia:
    name = normalize_text(media.name)
    if name is None:
        # Fall back to the file stem, like the scanner does for untagged files.
        name = Path(media.file).stem or media.file
    return NewMedia(
        file=str(media.file),
        name=name,
        artist=normalize_text(media.artist),
        track=normalize_int(media.track),
    )


def _is_duplicate_file_error(exc: sqlite3.IntegrityError) -> bool:
    return "UNIQUE constraint failed: media.file" in str(exc)


class LibraryDb:
    """
    Async access layer for the media library DB.

    Usage:
        db = LibraryDb("db.sqlite")
        await db.open()
        await db.ensure_schema()
        ... queries ...
        await db.close()

    or `async with LibraryDb(path) as db: ...` (opens and ensures the schema).

    Notes:
    - Connections are not pooled; we keep a single connection.
    - `foreign_keys` controls `PRAGMA foreign_keys`. With it off, media rows
      may reference albums that do not exist; the view shows them with null
      album fields.
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        foreign_keys: bool = True,
        commit_every: int = DEFAULT_COMMIT_EVERY,
    ) -> None:
        if commit_every <= 0:
            raise ValueError("commit_every must be > 0")
        self._db_path = str(db_path)
        self._foreign_keys = foreign_keys
        self._commit_every = commit_every
        self._pending_writes = 0
        self._conn: aiosqlite.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def foreign_keys(self) -> bool:
        return self._foreign_keys

    @property
    def pending_writes(self) -> int:
        """Number of `add_media` writes not yet committed."""
        return self._pending_writes

    async def open(self) -> None:
        if self._conn is not None:
            return
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row

        fk = "ON" if self._foreign_keys else "OFF"
        await self._conn.execute(f"PRAGMA foreign_keys = {fk};")
        if self._db_path != ":memory:":
            await self._conn.execute("PRAGMA journal_mode = WAL;")
        await self._conn.execute("PRAGMA synchronous = NORMAL;")
        await self._conn.execute("PRAGMA temp_store = MEMORY;")
        logger.debug("Opened library DB %s (foreign_keys=%s)", self._db_path, fk)

    async def close(self) -> None:
        if self._conn is None:
            return
        if self._pending_writes:
            await self.flush()
        await self._conn.close()
        self._conn = None

    async def __aenter__(self) -> LibraryDb:
        await self.open()
        await self.ensure_schema()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None and self._conn is not None:
            await self._conn.rollback()
            self._pending_writes = 0
        await self.close()

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("LibraryDb is not open. Call await db.open() first.")
        return self._conn

    async def ensure_schema(self) -> None:
        """Create or migrate schema to current version."""
        conn = self._require_conn()
        await ensure_schema_sql(conn)

    async def execute(self, sql: str, params: Sequence[Any] | Mapping[str, Any] = ()) -> None:
        conn = self._require_conn()
        await conn.execute(sql, params)

    async def fetchall(
        self, sql: str, params: Sequence[Any] | Mapping[str, Any] = ()
    ) -> list[aiosqlite.Row]:
        conn = self._require_conn()
        cursor = await conn.execute(sql, params)
        return list(await cursor.fetchall())

    async def commit(self) -> None:
        conn = self._require_conn()
        await conn.commit()
        self._pending_writes = 0

    async def rollback(self) -> None:
        conn = self._require_conn()
        await conn.rollback()
        self._pending_writes = 0

    # ===========================================================================
    # Albums
    # ===========================================================================

    async def insert_album(self, album: NewAlbum) -> int:
        """Insert an album row and return its id."""
        return await queries_albums.insert_album(self._require_conn(), _normalize_album(album))

    async def get_album_by_id(self, album_id: int) -> AlbumRow | None:
        return await queries_albums.get_album_by_id(self._require_conn(), album_id)

    async def find_albums(self, name: str, cover: str | None = None) -> list[AlbumRow]:
        """Exact match on name and cover (None matches albums without a cover)."""
        return await queries_albums.find_albums(
            self._require_conn(), name, normalize_text(cover)
        )

    async def ensure_album(self, album: NewAlbum) -> int:
        """Get or create an album by name + cover, return ID."""
        album = _normalize_album(album)
        existing = await queries_albums.find_albums(self._require_conn(), album.name, album.cover)
        if existing:
            return existing[0].id
        return await queries_albums.insert_album(self._require_conn(), album)

    async def get_default_album(self) -> AlbumRow | None:
        return await queries_albums.get_default_album(self._require_conn())

    async def list_albums(
        self, *, limit: int = 500, offset: int = 0, order_by: AlbumsOrderBy = "name"
    ) -> list[AlbumRow]:
        return await queries_albums.list_albums(
            self._require_conn(), limit=limit, offset=offset, order_by=order_by
        )

    async def list_albums_with_media_counts(
        self, *, limit: int = 500, offset: int = 0
    ) -> list[dict[str, Any]]:
        return await queries_albums.list_albums_with_media_counts(
            self._require_conn(), limit=limit, offset=offset
        )

    async def count_albums(self) -> int:
        return await queries_albums.count_albums(self._require_conn())

    async def get_album_media_count(self, album_id: int) -> int:
        return await queries_albums.get_album_media_count(self._require_conn(), album_id)

    async def update_album(self, album_id: int, album: NewAlbum) -> bool:
        return await queries_albums.update_album(
            self._require_conn(), album_id, _normalize_album(album)
        )

    async def delete_album(self, album_id: int) -> bool:
        """
        Delete one album and commit.

        Media of the album are unassigned first (album_id -> NULL) so neither
        the foreign key nor the view ever sees a dangling id. If this was the
        last album, the `ensure_default_album` trigger inserts a new default.

        Writes still pending from `add_media` are flushed (committed) before
        the delete starts.
        """
        conn = self._require_conn()
        await self.flush()
        await conn.execute("SAVEPOINT delete_album_sp;")
        try:
            detached = await queries_albums.detach_media_from_albums(conn, [album_id])
            deleted = await queries_albums.delete_album(conn, album_id)
            await conn.execute("RELEASE SAVEPOINT delete_album_sp;")
        except Exception:
            await conn.execute("ROLLBACK TO SAVEPOINT delete_album_sp;")
            await conn.execute("RELEASE SAVEPOINT delete_album_sp;")
            raise
        await self.commit()

        if deleted:
            logger.info("Deleted album %d (%d media unassigned)", album_id, detached)
        return deleted

    async def delete_all_albums(self) -> int:
        """
        Delete every album in one statement and commit.

        Returns the number of deleted albums. Afterwards exactly one album
        exists: the default restored by the trigger.

        Pending `add_media` writes are flushed first, as in `delete_album`.
        """
        conn = self._require_conn()
        await self.flush()
        await conn.execute("SAVEPOINT delete_all_albums_sp;")
        try:
            detached = await queries_albums.detach_media_from_albums(conn, None)
            deleted = await queries_albums.delete_all_albums(conn)
            await conn.execute("RELEASE SAVEPOINT delete_all_albums_sp;")
        except Exception:
            await conn.execute("ROLLBACK TO SAVEPOINT delete_all_albums_sp;")
            await conn.execute("RELEASE SAVEPOINT delete_all_albums_sp;")
            raise
        await self.commit()

        logger.info("Deleted %d albums (%d media unassigned)", deleted, detached)
        return deleted

    # ===========================================================================
    # Media
    # ===========================================================================

    async def insert_media(self, media: NewMedia, album_id: int | None = None) -> int:
        """
        Insert a media row and return its id.

        Raises DuplicateMediaError if the file is already stored. Other
        integrity errors (e.g. an unknown album with foreign keys on) propagate
        as `sqlite3.IntegrityError`.
        """
        media = _normalize_media(media)
        try:
            return await queries_media.insert_media(self._require_conn(), media, album_id)
        except sqlite3.IntegrityError as e:
            if _is_duplicate_file_error(e):
                raise DuplicateMediaError(media.file) from e
            raise

    async def upsert_media(self, media: NewMedia, album_id: int | None = None) -> int:
        """Insert or update a media row by its file. Returns the media id."""
        return await queries_media.upsert_media(
            self._require_conn(), _normalize_media(media), album_id
        )

    async def add_media(self, media: NewMedia, album: NewAlbum | None = None) -> int:
        """
        Store a media row together with its album.

        The album is resolved by name + cover (created when missing); without
        an album the media goes to the default album. Writes are committed
        automatically every `commit_every` calls; call `flush()` at the end.
        """
        if album is None:
            default = await self.get_default_album()
            album_id = default.id if default is not None else await self.ensure_album(
                NewAlbum.default()
            )
        else:
            album_id = await self.ensure_album(album)

        media_id = await self.upsert_media(media, album_id)

        self._pending_writes += 1
        if self._pending_writes >= self._commit_every:
            logger.debug("Committing %d pending media writes", self._pending_writes)
            await self.commit()
        return media_id

    async def add_media_batch(self, items: Iterable[tuple[NewMedia, NewAlbum | None]]) -> int:
        """Bulk `add_media` followed by a flush. Returns the number of stored rows."""
        count = 0
        for media, album in items:
            await self.add_media(media, album)
            count += 1
        await self.flush()
        return count

    async def flush(self) -> None:
        """Commit writes left over from `add_media`."""
        if self._pending_writes:
            logger.debug("Flushing %d pending media writes", self._pending_writes)
        await self.commit()

    async def get_media_by_id(self, media_id: int) -> MediaRow | None:
        return await queries_media.get_media_by_id(self._require_conn(), media_id)

    async def get_media_by_file(self, file: str) -> MediaRow | None:
        return await queries_media.get_media_by_file(self._require_conn(), str(file))

    async def list_media(
        self, *, limit: int = 500, offset: int = 0, order_by: MediaOrderBy = "name"
    ) -> list[MediaRow]:
        return await queries_media.list_media(
            self._require_conn(), limit=limit, offset=offset, order_by=order_by
        )

    async def list_media_by_album(
        self,
        album_id: int,
        *,
        limit: int = 500,
        offset: int = 0,
        order_by: MediaOrderBy = "track",
    ) -> list[MediaRow]:
        return await queries_media.list_media_by_album(
            self._require_conn(), album_id, limit=limit, offset=offset, order_by=order_by
        )

    async def list_media_files_under(self, directory: str | Path) -> list[str]:
        return await queries_media.list_media_files_under(self._require_conn(), str(directory))

    async def count_media(self) -> int:
        return await queries_media.count_media(self._require_conn())

    async def set_media_album(self, media_id: int, album_id: int | None) -> bool:
        return await queries_media.set_media_album(self._require_conn(), media_id, album_id)

    async def delete_media_by_file(self, file: str) -> bool:
        return await queries_media.delete_media_by_file(self._require_conn(), str(file))

    # ===========================================================================
    # media_with_album view
    # ===========================================================================

    async def list_media_with_album(
        self, *, limit: int = 500, offset: int = 0, order_by: MediaOrderBy = "name"
    ) -> list[MediaWithAlbumRow]:
        return await queries_media.list_media_with_album(
            self._require_conn(), limit=limit, offset=offset, order_by=order_by
        )

    async def get_media_with_album_by_file(self, file: str) -> MediaWithAlbumRow | None:
        return await queries_media.get_media_with_album_by_file(self._require_conn(), str(file))

    async def search_media(
        self, query: str, *, limit: int = 100, offset: int = 0
    ) -> list[MediaWithAlbumRow]:
        return await queries_media.search_media(
            self._require_conn(), query, limit=limit, offset=offset
        )
