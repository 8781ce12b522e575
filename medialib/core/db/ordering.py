"""
Shared ORDER BY clause helpers for LibraryDb queries.

These helpers centralize the translation from higher-level sort keys into
SQL snippets (including COLLATE/NULL handling) so the logic doesn't get
duplicated across query modules.

Important:
- The returned strings are *static SQL fragments* selected from a small
  whitelist. Do NOT concatenate user input into ORDER BY.
"""

from __future__ import annotations

from typing import Literal

MediaOrderBy = Literal[
    "name",
    "artist",
    "album",
    "track",
    "file",
    "id",
]

AlbumsOrderBy = Literal[
    "name",
    "year",
    "id",
]


def media_order_clause(order_by: MediaOrderBy) -> str:
    """
    Return an ORDER BY clause for queries over `media m`.

    Unknown values fall back to ordering by name.
    """
    if order_by == "artist":
        return "ORDER BY m.artist COLLATE NOCASE ASC, COALESCE(m.track, 0) ASC, m.id ASC"
    if order_by == "album":
        # album_id is the closest proxy on the base table; the view variant sorts by name.
        return "ORDER BY m.album_id ASC, COALESCE(m.track, 0) ASC, m.id ASC"
    if order_by == "track":
        return "ORDER BY COALESCE(m.track, 0) ASC, m.name COLLATE NOCASE ASC, m.id ASC"
    if order_by == "file":
        return "ORDER BY m.file ASC"
    if order_by == "id":
        return "ORDER BY m.id ASC"
    return "ORDER BY m.name COLLATE NOCASE ASC, m.id ASC"


def media_view_order_clause(order_by: MediaOrderBy) -> str:
    """Return an ORDER BY clause for queries over the `media_with_album v` view."""
    if order_by == "album":
        return (
            "ORDER BY "
            "v.album_name COLLATE NOCASE ASC, "
            "COALESCE(v.track, 0) ASC, "
            "v.name COLLATE NOCASE ASC, "
            "v.id ASC"
        )
    if order_by == "artist":
        return (
            "ORDER BY "
            "v.artist COLLATE NOCASE ASC, "
            "v.album_name COLLATE NOCASE ASC, "
            "COALESCE(v.track, 0) ASC, "
            "v.id ASC"
        )
    if order_by == "track":
        return "ORDER BY COALESCE(v.track, 0) ASC, v.name COLLATE NOCASE ASC, v.id ASC"
    if order_by == "file":
        return "ORDER BY v.file ASC"
    if order_by == "id":
        return "ORDER BY v.id ASC"
    return "ORDER BY v.name COLLATE NOCASE ASC, v.id ASC"


def albums_order_clause(order_by: AlbumsOrderBy) -> str:
    """Return an ORDER BY clause for queries over `album a`."""
    if order_by == "year":
        # Albums without a year go last.
        return "ORDER BY a.year IS NULL, a.year ASC, a.name COLLATE NOCASE ASC, a.id ASC"
    if order_by == "id":
        return "ORDER BY a.id ASC"
    return "ORDER BY a.name COLLATE NOCASE ASC, a.id ASC"
