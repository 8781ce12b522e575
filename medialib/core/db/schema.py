"""
Database schema + migrations for medialib.

- Connection management and the public `LibraryDb` facade live in `library_db.py`
- Schema creation, schema versioning, and forward-only migrations live here

Design notes:
- We use SQLite `PRAGMA user_version` as the schema version.
- Migrations are forward-only (no downgrade support).
- Every statement of the base schema uses `IF NOT EXISTS`, so running it again
  against a store created by an older tool (tables present, no version stamp)
  neither fails nor duplicates anything.
"""

from __future__ import annotations

import logging
from typing import Final

import aiosqlite

from medialib.core.db.models import DEFAULT_ALBUM_NAME

logger = logging.getLogger(__name__)

# Bump when you change the schema and add a migration in `migrate()`.
SCHEMA_VERSION: Final[int] = 1

CREATE_ALBUM_TABLE: Final[str] = """
    CREATE TABLE IF NOT EXISTS album (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        year INTEGER,
        track INTEGER,
        cover TEXT
    )
"""

CREATE_MEDIA_TABLE: Final[str] = """
    CREATE TABLE IF NOT EXISTS media (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        file TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        artist TEXT,
        album_id INTEGER,
        track INTEGER,
        FOREIGN KEY (album_id) REFERENCES album(id)
    )
"""

CREATE_INDEXES: Final[tuple[str, ...]] = (
    "CREATE INDEX IF NOT EXISTS idx_media_album_id ON media(album_id);",
    "CREATE INDEX IF NOT EXISTS idx_media_artist ON media(artist);",
    "CREATE INDEX IF NOT EXISTS idx_media_name ON media(name);",
    "CREATE INDEX IF NOT EXISTS idx_album_name ON album(name);",
)

# Condition-gated: only inserts into an empty album table.
SEED_DEFAULT_ALBUM: Final[str] = f"""
    INSERT INTO album (name, year, track, cover)
    SELECT '{DEFAULT_ALBUM_NAME}', NULL, NULL, NULL
    WHERE NOT EXISTS (SELECT 1 FROM album LIMIT 1)
"""

# SQLite triggers are row-level; rowids of a DELETE are collected before the
# first row is removed, so a multi-row delete reaching zero inserts one row
# and that row is not deleted by the same statement.
CREATE_DEFAULT_ALBUM_TRIGGER: Final[str] = f"""
    CREATE TRIGGER IF NOT EXISTS ensure_default_album
    AFTER DELETE ON album
    WHEN (SELECT COUNT(*) FROM album) = 0
    BEGIN
        INSERT INTO album (name, year, track, cover)
        VALUES ('{DEFAULT_ALBUM_NAME}', NULL, NULL, NULL);
    END
"""

CREATE_MEDIA_WITH_ALBUM_VIEW: Final[str] = """
    CREATE VIEW IF NOT EXISTS media_with_album AS
    SELECT
        m.id,
        m.file,
        m.name,
        m.artist,
        m.track,
        a.name AS album_name,
        a.year AS album_year,
        a.cover AS album_cover
    FROM media m
    LEFT JOIN album a ON m.album_id = a.id
"""


def base_schema_statements() -> tuple[str, ...]:
    """
    Statements of the base (v1) schema in dependency order:
    tables, indexes, seed, trigger, view.
    """
    return (
        CREATE_ALBUM_TABLE,
        CREATE_MEDIA_TABLE,
        *CREATE_INDEXES,
        SEED_DEFAULT_ALBUM,
        CREATE_DEFAULT_ALBUM_TRIGGER,
        CREATE_MEDIA_WITH_ALBUM_VIEW,
    )


async def apply_base_schema(conn: aiosqlite.Connection) -> None:
    """Execute the base schema statements. Idempotent."""
    for statement in base_schema_statements():
        await conn.execute(statement)
    await conn.commit()


async def get_schema_version(conn: aiosqlite.Connection) -> int:
    cursor = await conn.execute("PRAGMA user_version;")
    row = await cursor.fetchone()
    return int(row[0]) if row is not None else 0


async def ensure_schema(conn: aiosqlite.Connection) -> None:
    """
    Create or migrate schema to current version.

    This function assumes:
    - `conn` is an open aiosqlite connection
    - `conn.row_factory` is configured by the caller if desired
    - foreign_keys pragma is set by the caller
    """
    current = await get_schema_version(conn)

    if current > SCHEMA_VERSION:
        raise RuntimeError(
            f"Database schema version {current} is newer than supported {SCHEMA_VERSION}."
        )

    if current == SCHEMA_VERSION:
        return

    logger.info("Migrating library schema from v%d to v%d", current, SCHEMA_VERSION)
    await migrate(conn, from_version=current, to_version=SCHEMA_VERSION)
    await conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION};")
    await conn.commit()


async def migrate(conn: aiosqlite.Connection, *, from_version: int, to_version: int) -> None:
    """
    Perform forward-only migrations.

    Keep migrations small. If you need a big refactor, create a new DB.
    """
    # v0 -> v1
    if from_version == 0 and to_version >= 1:
        await apply_base_schema(conn)
        from_version = 1

    if from_version != to_version:
        raise RuntimeError(f"No migration path from {from_version} to {to_version}.")
