"""
Album-related DB queries used by `medialib.core.library_db.LibraryDb`.

Design:
- Functions are *pure DB helpers*: they take an open `aiosqlite.Connection`
  and return rows/materialized dataclasses.
- Ordering is centralized via `medialib.core.db.ordering.albums_order_clause`.
- These functions assume `conn.row_factory = aiosqlite.Row`.
- Nothing here commits; transaction boundaries belong to the caller.
"""

from __future__ import annotations

from typing import Any, Sequence

import aiosqlite

from medialib.core.db.models import DEFAULT_ALBUM_NAME, AlbumRow, NewAlbum
from medialib.core.db.ordering import AlbumsOrderBy, albums_order_clause


def _row_to_album(row: aiosqlite.Row) -> AlbumRow:
    """Convert an aiosqlite Row to an AlbumRow dataclass."""
    return AlbumRow(
        id=int(row["id"]),
        name=str(row["name"]),
        year=row["year"],
        track=row["track"],
        cover=row["cover"],
    )


# ---------------------------------------------------------------------------
# Basic get/list/count
# ---------------------------------------------------------------------------


async def get_album_by_id(conn: aiosqlite.Connection, album_id: int) -> AlbumRow | None:
    cursor = await conn.execute(
        "SELECT id, name, year, track, cover FROM album WHERE id = ?;",
        (int(album_id),),
    )
    row = await cursor.fetchone()
    return _row_to_album(row) if row else None


async def find_albums(
    conn: aiosqlite.Connection, name: str, cover: str | None
) -> list[AlbumRow]:
    """
    Exact lookup by name + cover. A None cover matches NULL covers only
    (`IS` compares NULLs as equal).
    """
    cursor = await conn.execute(
        """
        SELECT id, name, year, track, cover
        FROM album
        WHERE name = ? AND cover IS ?
        ORDER BY id ASC;
        """,
        (name, cover),
    )
    rows = await cursor.fetchall()
    return [_row_to_album(r) for r in rows]


async def get_default_album(conn: aiosqlite.Connection) -> AlbumRow | None:
    """Return the oldest album with the default shape, if any."""
    cursor = await conn.execute(
        """
        SELECT id, name, year, track, cover
        FROM album
        WHERE name = ? AND year IS NULL AND track IS NULL AND cover IS NULL
        ORDER BY id ASC
        LIMIT 1;
        """,
        (DEFAULT_ALBUM_NAME,),
    )
    row = await cursor.fetchone()
    return _row_to_album(row) if row else None


async def list_albums(
    conn: aiosqlite.Connection,
    *,
    limit: int,
    offset: int,
    order_by: AlbumsOrderBy = "name",
) -> list[AlbumRow]:
    order_sql = albums_order_clause(order_by)
    cursor = await conn.execute(
        f"""
        SELECT a.id, a.name, a.year, a.track, a.cover
        FROM album a
        {order_sql}
        LIMIT ? OFFSET ?;
        """,
        (int(limit), int(offset)),
    )
    rows = await cursor.fetchall()
    return [_row_to_album(r) for r in rows]


async def count_albums(conn: aiosqlite.Connection) -> int:
    cursor = await conn.execute("SELECT COUNT(*) AS c FROM album;")
    row = await cursor.fetchone()
    return int(row["c"]) if row else 0


async def get_album_media_count(conn: aiosqlite.Connection, album_id: int) -> int:
    cursor = await conn.execute(
        "SELECT COUNT(*) AS c FROM media WHERE album_id = ?;",
        (int(album_id),),
    )
    row = await cursor.fetchone()
    return int(row["c"]) if row else 0


async def list_albums_with_media_counts(
    conn: aiosqlite.Connection,
    *,
    limit: int,
    offset: int,
) -> list[dict[str, Any]]:
    cursor = await conn.execute(
        """
        SELECT
            a.id,
            a.name,
            a.year,
            a.cover,
            (SELECT COUNT(*) FROM media m WHERE m.album_id = a.id) AS media_count
        FROM album a
        ORDER BY a.name COLLATE NOCASE, a.id
        LIMIT ? OFFSET ?;
        """,
        (int(limit), int(offset)),
    )
    rows = await cursor.fetchall()
    return [
        {
            "id": int(r["id"]),
            "name": r["name"],
            "year": r["year"],
            "cover": r["cover"],
            "media_count": int(r["media_count"]),
        }
        for r in rows
    ]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def insert_album(conn: aiosqlite.Connection, album: NewAlbum) -> int:
    cursor = await conn.execute(
        """
        INSERT INTO album (name, year, track, cover)
        VALUES (?, ?, ?, ?);
        """,
        (album.name, album.year, album.track, album.cover),
    )
    if cursor.lastrowid is None:
        raise RuntimeError("Insert failed: no rowid returned for album.")
    return int(cursor.lastrowid)


async def update_album(conn: aiosqlite.Connection, album_id: int, album: NewAlbum) -> bool:
    cursor = await conn.execute(
        """
        UPDATE album
        SET name = ?, year = ?, track = ?, cover = ?
        WHERE id = ?;
        """,
        (album.name, album.year, album.track, album.cover, int(album_id)),
    )
    return cursor.rowcount > 0


async def detach_media_from_albums(
    conn: aiosqlite.Connection, album_ids: Sequence[int] | None = None
) -> int:
    """
    Unassign media from the given albums (all albums when `album_ids` is None).
    Returns the number of media rows touched.
    """
    if album_ids is None:
        cursor = await conn.execute(
            "UPDATE media SET album_id = NULL WHERE album_id IS NOT NULL;"
        )
        return cursor.rowcount

    ids = [int(i) for i in album_ids]
    if not ids:
        return 0
    placeholders = ",".join("?" for _ in ids)
    cursor = await conn.execute(
        f"UPDATE media SET album_id = NULL WHERE album_id IN ({placeholders});",
        ids,
    )
    return cursor.rowcount


async def delete_album(conn: aiosqlite.Connection, album_id: int) -> bool:
    cursor = await conn.execute("DELETE FROM album WHERE id = ?;", (int(album_id),))
    return cursor.rowcount > 0


async def delete_all_albums(conn: aiosqlite.Connection) -> int:
    cursor = await conn.execute("DELETE FROM album;")
    return cursor.rowcount
