"""
Media-related DB queries used by `medialib.core.library_db.LibraryDb`.

Covers the `media` table and the read-only `media_with_album` view.

Design:
- Functions are *pure DB helpers*: they take an open `aiosqlite.Connection`
  and return rows/materialized dataclasses.
- Ordering is centralized via `medialib.core.db.ordering`.
- These functions assume `conn.row_factory = aiosqlite.Row`.

Important:
- Do NOT interpolate user input into SQL. Any dynamic SQL here is limited to
  ORDER BY clauses selected from a small whitelist.
"""

from __future__ import annotations

import os

import aiosqlite

from medialib.core.db.models import MediaRow, MediaWithAlbumRow, NewMedia
from medialib.core.db.ordering import (
    MediaOrderBy,
    media_order_clause,
    media_view_order_clause,
)

_MEDIA_COLUMNS = "m.id, m.file, m.name, m.artist, m.album_id, m.track"
_VIEW_COLUMNS = (
    "v.id, v.file, v.name, v.artist, v.track, v.album_name, v.album_year, v.album_cover"
)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_media(row: aiosqlite.Row) -> MediaRow:
    """Convert an aiosqlite Row to a MediaRow dataclass."""
    return MediaRow(
        id=int(row["id"]),
        file=str(row["file"]),
        name=str(row["name"]),
        artist=row["artist"],
        album_id=row["album_id"],
        track=row["track"],
    )


def _row_to_media_with_album(row: aiosqlite.Row) -> MediaWithAlbumRow:
    return MediaWithAlbumRow(
        id=int(row["id"]),
        file=str(row["file"]),
        name=str(row["name"]),
        artist=row["artist"],
        track=row["track"],
        album_name=row["album_name"],
        album_year=row["album_year"],
        album_cover=row["album_cover"],
    )


# ---------------------------------------------------------------------------
# media table
# ---------------------------------------------------------------------------


async def get_media_by_id(conn: aiosqlite.Connection, media_id: int) -> MediaRow | None:
    cursor = await conn.execute(
        f"SELECT {_MEDIA_COLUMNS} FROM media m WHERE m.id = ?;",
        (int(media_id),),
    )
    row = await cursor.fetchone()
    return _row_to_media(row) if row else None


async def get_media_by_file(conn: aiosqlite.Connection, file: str) -> MediaRow | None:
    cursor = await conn.execute(
        f"SELECT {_MEDIA_COLUMNS} FROM media m WHERE m.file = ?;",
        (file,),
    )
    row = await cursor.fetchone()
    return _row_to_media(row) if row else None


async def list_media(
    conn: aiosqlite.Connection,
    *,
    limit: int,
    offset: int,
    order_by: MediaOrderBy = "name",
) -> list[MediaRow]:
    order_sql = media_order_clause(order_by)
    cursor = await conn.execute(
        f"""
        SELECT {_MEDIA_COLUMNS}
        FROM media m
        {order_sql}
        LIMIT ? OFFSET ?;
        """,
        (int(limit), int(offset)),
    )
    rows = await cursor.fetchall()
    return [_row_to_media(r) for r in rows]


async def list_media_by_album(
    conn: aiosqlite.Connection,
    album_id: int,
    *,
    limit: int,
    offset: int,
    order_by: MediaOrderBy = "track",
) -> list[MediaRow]:
    order_sql = media_order_clause(order_by)
    cursor = await conn.execute(
        f"""
        SELECT {_MEDIA_COLUMNS}
        FROM media m
        WHERE m.album_id = ?
        {order_sql}
        LIMIT ? OFFSET ?;
        """,
        (int(album_id), int(limit), int(offset)),
    )
    rows = await cursor.fetchall()
    return [_row_to_media(r) for r in rows]


async def list_media_files_under(conn: aiosqlite.Connection, directory: str) -> list[str]:
    """Return stored files located below `directory` (at any depth)."""
    prefix = directory if directory.endswith(os.sep) else directory + os.sep
    cursor = await conn.execute(
        "SELECT file FROM media WHERE file LIKE ? ESCAPE '\\' ORDER BY file;",
        (f"{_escape_like(prefix)}%",),
    )
    rows = await cursor.fetchall()
    return [str(r["file"]) for r in rows]


async def count_media(conn: aiosqlite.Connection) -> int:
    cursor = await conn.execute("SELECT COUNT(*) AS c FROM media;")
    row = await cursor.fetchone()
    return int(row["c"]) if row else 0


async def insert_media(
    conn: aiosqlite.Connection, media: NewMedia, album_id: int | None
) -> int:
    """Plain INSERT; a duplicate `file` raises `sqlite3.IntegrityError`."""
    cursor = await conn.execute(
        """
        INSERT INTO media (file, name, artist, album_id, track)
        VALUES (?, ?, ?, ?, ?);
        """,
        (media.file, media.name, media.artist, album_id, media.track),
    )
    if cursor.lastrowid is None:
        raise RuntimeError("Insert failed: no rowid returned for media.")
    return int(cursor.lastrowid)


async def upsert_media(
    conn: aiosqlite.Connection, media: NewMedia, album_id: int | None
) -> int:
    """Insert or update a media row by its file. Returns the row id."""
    await conn.execute(
        """
        INSERT INTO media (file, name, artist, album_id, track)
        VALUES (:file, :name, :artist, :album_id, :track)
        ON CONFLICT(file) DO UPDATE SET
            name     = excluded.name,
            artist   = excluded.artist,
            album_id = excluded.album_id,
            track    = excluded.track
        """,
        {
            "file": media.file,
            "name": media.name,
            "artist": media.artist,
            "album_id": album_id,
            "track": media.track,
        },
    )

    # lastrowid is not reliable on the UPDATE branch; fetch id deterministically.
    cursor = await conn.execute("SELECT id FROM media WHERE file = ?;", (media.file,))
    row = await cursor.fetchone()
    if row is None:
        raise RuntimeError("Upsert failed: media row not found after insert/update.")
    return int(row["id"])


async def set_media_album(
    conn: aiosqlite.Connection, media_id: int, album_id: int | None
) -> bool:
    cursor = await conn.execute(
        "UPDATE media SET album_id = ? WHERE id = ?;",
        (album_id, int(media_id)),
    )
    return cursor.rowcount > 0


async def delete_media_by_file(conn: aiosqlite.Connection, file: str) -> bool:
    cursor = await conn.execute("DELETE FROM media WHERE file = ?;", (file,))
    return cursor.rowcount > 0


# ---------------------------------------------------------------------------
# media_with_album view
# ---------------------------------------------------------------------------


async def list_media_with_album(
    conn: aiosqlite.Connection,
    *,
    limit: int,
    offset: int,
    order_by: MediaOrderBy = "name",
) -> list[MediaWithAlbumRow]:
    order_sql = media_view_order_clause(order_by)
    cursor = await conn.execute(
        f"""
        SELECT {_VIEW_COLUMNS}
        FROM media_with_album v
        {order_sql}
        LIMIT ? OFFSET ?;
        """,
        (int(limit), int(offset)),
    )
    rows = await cursor.fetchall()
    return [_row_to_media_with_album(r) for r in rows]


async def get_media_with_album_by_file(
    conn: aiosqlite.Connection, file: str
) -> MediaWithAlbumRow | None:
    cursor = await conn.execute(
        f"SELECT {_VIEW_COLUMNS} FROM media_with_album v WHERE v.file = ?;",
        (file,),
    )
    row = await cursor.fetchone()
    return _row_to_media_with_album(row) if row else None


async def search_media(
    conn: aiosqlite.Connection,
    query: str,
    *,
    limit: int,
    offset: int,
) -> list[MediaWithAlbumRow]:
    """Case-insensitive substring search over name, artist and album name."""
    like = f"%{_escape_like(query)}%"
    cursor = await conn.execute(
        f"""
        SELECT {_VIEW_COLUMNS}
        FROM media_with_album v
        WHERE v.name LIKE ? ESCAPE '\\'
           OR v.artist LIKE ? ESCAPE '\\'
           OR v.album_name LIKE ? ESCAPE '\\'
        ORDER BY v.name COLLATE NOCASE ASC, v.id ASC
        LIMIT ? OFFSET ?;
        """,
        (like, like, like, int(limit), int(offset)),
    )
    rows = await cursor.fetchall()
    return [_row_to_media_with_album(r) for r in rows]
