from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import NewType, Sequence

from medialib.core import NotFoundError
from medialib.core.db.models import MediaWithAlbumRow, NewAlbum, NewMedia
from medialib.core.library_db import LibraryDb
from medialib.core.scanner import (
    DEFAULT_AUDIO_EXTENSIONS,
    ScanConfig,
    TrackMetadata,
    scan_music_folder,
)

logger = logging.getLogger(__name__)

AlbumId = NewType("AlbumId", int)
MediaId = NewType("MediaId", int)


@dataclass(frozen=True, slots=True)
class Album:
    id: AlbumId
    name: str
    year: int | None = None
    track_count: int | None = None
    cover: str | None = None
    is_default: bool = False


@dataclass(frozen=True, slots=True)
class Track:
    id: MediaId
    file: str
    name: str
    artist: str | None = None
    track_no: int | None = None
    album_name: str | None = None
    album_year: int | None = None
    album_cover: str | None = None


@dataclass(frozen=True, slots=True)
class ScanSummary:
    scanned_files: int
    stored_tracks: int
    removed_tracks: int
    errors: int


class MediaLibraryError(RuntimeError):
    """Base error for MediaLibrary operations."""


class MediaLibraryNotReadyError(MediaLibraryError):
    """Raised when operations are attempted before the library is initialized."""


def _track_from_view(row: MediaWithAlbumRow) -> Track:
    return Track(
        id=MediaId(row.id),
        file=row.file,
        name=row.name,
        artist=row.artist,
        track_no=row.track,
        album_name=row.album_name,
        album_year=row.album_year,
        album_cover=row.album_cover,
    )


def _to_records(meta: TrackMetadata) -> tuple[NewMedia, NewAlbum | None]:
    media = NewMedia(
        file=str(meta.path),
        name=meta.title,
        artist=meta.artist,
        track=meta.track_number,
    )
    if meta.album is None:
        return media, None
    album = NewAlbum(
        name=meta.album,
        year=meta.year,
        track=meta.album_track_total,
        cover=meta.cover,
    )
    return media, album


class MediaLibrary:
    """
    High-level facade for the media library.

    Dependencies:
    - `LibraryDb` for persistence
    - `scanner` for tag extraction
    """

    def __init__(
        self,
        *,
        db: LibraryDb,
        music_folders: Sequence[Path] = (),
        extensions: frozenset[str] = DEFAULT_AUDIO_EXTENSIONS,
    ) -> None:
        self._db = db
        self._music_folders = tuple(music_folders)
        self._extensions = extensions
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def music_folders(self) -> tuple[Path, ...]:
        return self._music_folders

    async def initialize(self) -> None:
        """
        Prepare the library.

        Contract:
        - `LibraryDb` must already be open.
        - schema/migrations are ensured here for convenience.
        """
        if not self._db.is_open:
            raise MediaLibraryError(
                "LibraryDb is not open. Open it before initializing MediaLibrary."
            )

        await self._db.ensure_schema()
        self._initialized = True

    # ---- Scanning ----

    def _scan_roots(self, roots: Sequence[Path] | None) -> list[Path]:
        scan_roots = list(roots) if roots is not None else list(self._music_folders)
        if not scan_roots:
            raise MediaLibraryError("No scan roots provided and no music folders configured.")
        return scan_roots

    async def scan(self, *, roots: Sequence[Path] | None = None) -> ScanSummary:
        """
        Scan music folders and store what was found.

        Scanning & persistence stay separate:
        - scanner returns normalized metadata
        - db upserts rows (idempotent by file)
        Tracks without an album tag are filed under the default album.
        """
        self._require_initialized()

        scanned_files = 0
        errors = 0
        stored = 0

        for root in self._scan_roots(roots):
            logger.info("Scanning %s", root)
            result = await scan_music_folder(ScanConfig(root=root, extensions=self._extensions))

            scanned_files += len(result.tracks) + len(result.issues)
            errors += len(result.issues)
            stored += await self._db.add_media_batch(_to_records(tm) for tm in result.tracks)

        logger.info(
            "Scan complete: %d files, %d tracks, %d errors", scanned_files, stored, errors
        )
        return ScanSummary(
            scanned_files=scanned_files,
            stored_tracks=stored,
            removed_tracks=0,
            errors=errors,
        )

    async def refresh(self, *, roots: Sequence[Path] | None = None) -> ScanSummary:
        """
        Rescan and drop media rows under the roots whose files are gone.

        Every root must be an existing directory; otherwise nothing is
        removed and `MediaLibraryError` is raised.
        """
        self._require_initialized()
        scan_roots = self._scan_roots(roots)
        missing_roots = [root for root in scan_roots if not Path(root).is_dir()]
        if missing_roots:
            raise MediaLibraryError(
                "Refresh aborted, scan roots not found: "
                + ", ".join(str(root) for root in missing_roots)
            )

        removed = 0
        for root in scan_roots:
            for file in await self._db.list_media_files_under(root):
                if not Path(file).exists():
                    await self._db.delete_media_by_file(file)
                    removed += 1
        await self._db.commit()
        if removed:
            logger.info("Removed %d missing tracks", removed)

        summary = await self.scan(roots=scan_roots)
        return ScanSummary(
            scanned_files=summary.scanned_files,
            stored_tracks=summary.stored_tracks,
            removed_tracks=removed,
            errors=summary.errors,
        )

    # ---- Browse APIs ----

    async def get_albums(self, *, offset: int = 0, limit: int = 100) -> tuple[Album, ...]:
        self._require_initialized()
        self._validate_paging(offset=offset, limit=limit)

        rows = await self._db.list_albums(limit=limit, offset=offset)
        return tuple(
            Album(
                id=AlbumId(r.id),
                name=r.name,
                year=r.year,
                track_count=r.track,
                cover=r.cover,
                is_default=r.is_default,
            )
            for r in rows
        )

    async def get_tracks(
        self,
        *,
        album_id: AlbumId | None = None,
        offset: int = 0,
        limit: int = 200,
    ) -> tuple[Track, ...]:
        """
        Return tracks with their album context.

        If album_id is provided, returns tracks for that album in track order.
        """
        self._require_initialized()
        self._validate_paging(offset=offset, limit=limit)

        if album_id is None:
            rows = await self._db.list_media_with_album(
                limit=limit, offset=offset, order_by="artist"
            )
            return tuple(_track_from_view(r) for r in rows)

        album = await self._db.get_album_by_id(int(album_id))
        if album is None:
            raise NotFoundError(f"Album not found: {album_id}")
        media = await self._db.list_media_by_album(int(album_id), limit=limit, offset=offset)
        return tuple(
            Track(
                id=MediaId(m.id),
                file=m.file,
                name=m.name,
                artist=m.artist,
                track_no=m.track,
                album_name=album.name,
                album_year=album.year,
                album_cover=album.cover,
            )
            for m in media
        )

    async def get_track_by_file(self, file: str | Path) -> Track | None:
        """Exact lookup by the stored file path."""
        self._require_initialized()
        row = await self._db.get_media_with_album_by_file(str(file))
        return _track_from_view(row) if row is not None else None

    async def search(self, query: str, *, limit: int = 50) -> tuple[Track, ...]:
        self._require_initialized()
        if not query.strip():
            return ()
        if limit <= 0:
            raise ValueError("limit must be > 0")

        rows = await self._db.search_media(query.strip(), limit=limit)
        return tuple(_track_from_view(r) for r in rows)

    async def remove_album(self, album_id: AlbumId) -> None:
        """Delete an album; its tracks become unassigned."""
        self._require_initialized()
        if not await self._db.delete_album(int(album_id)):
            raise NotFoundError(f"Album not found: {album_id}")

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise MediaLibraryNotReadyError(
                "MediaLibrary is not initialized. Call await MediaLibrary.initialize() first."
            )

    @staticmethod
    def _validate_paging(*, offset: int, limit: int) -> None:
        if offset < 0:
            raise ValueError("offset must be >= 0")
        if limit <= 0:
            raise ValueError("limit must be > 0")
        if limit > 10_000:
            raise ValueError("limit is unreasonably large")
