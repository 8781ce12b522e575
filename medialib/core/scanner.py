from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from mutagen import File as mutagen_file

logger = logging.getLogger(__name__)


DEFAULT_AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".flac",
        ".wav",
        ".ogg",
        ".aac",
        ".mp3",
    }
)

# Image files next to the audio that are taken as the album cover, in order of preference.
COVER_FILE_NAMES: tuple[str, ...] = (
    "cover.jpg",
    "cover.jpeg",
    "cover.png",
    "folder.jpg",
    "folder.jpeg",
    "folder.png",
    "front.jpg",
    "front.png",
)


@dataclass(frozen=True, slots=True)
class ScanConfig:
    """Configuration for scanning a music folder."""

    root: Path
    extensions: frozenset[str] = DEFAULT_AUDIO_EXTENSIONS
    follow_symlinks: bool = False
    max_concurrency: int = 8


@dataclass(frozen=True, slots=True)
class TrackMetadata:
    """
    Normalized metadata extracted from an audio file.

    `album_track_total` feeds `album.track` (total track count of the album).
    `cover` is the path of a cover image found beside the file, if any.
    """

    path: Path
    title: str
    artist: str | None
    album: str | None
    track_number: int | None = None
    album_track_total: int | None = None
    year: int | None = None
    cover: str | None = None


@dataclass(frozen=True, slots=True)
class ScanIssue:
    path: Path
    message: str


@dataclass(frozen=True, slots=True)
class ScanResult:
    tracks: list[TrackMetadata]
    issues: list[ScanIssue]


def _clean_str(value: str | None) -> str | None:
    if value is None:
        return None
    s = value.strip()
    return s if s else None


def _first_text(value: Any) -> str | None:
    """
    Mutagen returns different shapes depending on container/tag type:
    - ID3 frames
    - lists of strings
    - plain strings
    - objects with `.text`
    We normalize to a single string (first item if multiple).
    """
    if value is None:
        return None

    if isinstance(value, (list, tuple)):
        if not value:
            return None
        return _first_text(value[0])

    # ID3 frames carry a `.text` list
    text = getattr(value, "text", None)
    if text is not None:
        return _first_text(text)

    val = getattr(value, "value", None)
    if val is not None:
        return _first_text(val)

    try:
        s = str(value)
    except Exception:
        return None

    return _clean_str(s)


def _parse_int_maybe(value: Any) -> int | None:
    """
    Parse things like:
    - "3"
    - "3/12"
    - ["3/12"]
    - mutagen frame objects
    - MP4 `trkn` tuples: [(3, 12)]
    """
    if isinstance(value, list) and value and isinstance(value[0], tuple):
        value = value[0][0] if value[0] else None
        return int(value) if isinstance(value, int) and value > 0 else None

    s = _first_text(value)
    if not s:
        return None

    if "/" in s:
        s = s.split("/", 1)[0].strip()

    try:
        return int(s)
    except ValueError:
        return None


def _parse_total_maybe(value: Any) -> int | None:
    """
    Extract the total from "3/12"-style values (12), or MP4 `trkn` tuples.
    Plain numbers are NOT a total here; use a dedicated total tag for those.
    """
    if isinstance(value, list) and value and isinstance(value[0], tuple):
        pair = value[0]
        total = pair[1] if len(pair) > 1 else None
        return int(total) if isinstance(total, int) and total > 0 else None

    s = _first_text(value)
    if not s or "/" not in s:
        return None

    total = s.split("/", 1)[1].strip()
    try:
        n = int(total)
    except ValueError:
        return None
    return n if n > 0 else None


def _parse_year_maybe(value: Any) -> int | None:
    """
    Accept "1999" or "1999-01-01" or "1999/.." formats.
    """
    s = _first_text(value)
    if not s:
        return None

    for i in range(0, max(0, len(s) - 3)):
        chunk = s[i : i + 4]
        if chunk.isdigit():
            year = int(chunk)
            if 1000 <= year <= 3000:
                return year
    return None


def _tags_get(tags: dict[str, Any] | None, keys: Iterable[str]) -> Any:
    if not tags:
        return None
    for k in keys:
        if k in tags:
            return tags.get(k)
    return None


def _find_cover(directory: Path) -> str | None:
    """Return the path of a well-known cover image in `directory`, if present."""
    try:
        entries = {p.name.lower(): p for p in directory.iterdir() if p.is_file()}
    except OSError:
        return None
    for name in COVER_FILE_NAMES:
        found = entries.get(name)
        if found is not None:
            return str(found)
    return None


def _extract_metadata(path: Path) -> TrackMetadata:
    """
    Extract metadata using mutagen.

    Synchronous on purpose; scanning runs it in a thread to keep the event loop
    responsive.
    """
    audio = mutagen_file(path)
    if audio is None:
        raise ValueError("unsupported or unreadable audio file")

    tags: dict[str, Any] | None = None
    if hasattr(audio, "tags") and audio.tags is not None:
        try:
            tags = dict(audio.tags)
        except Exception:
            # Some tag containers may not be directly castable
            tags = audio.tags  # type: ignore[assignment]

    # Keys: ID3=TIT2, Vorbis=title, MP4=©nam
    title = _first_text(_tags_get(tags, ("TIT2", "title", "TITLE", "©nam"))) or path.stem

    # Keys: ID3=TPE1, Vorbis=artist, MP4=©ART
    artist = _first_text(_tags_get(tags, ("TPE1", "artist", "ARTIST", "©ART")))

    # Keys: ID3=TALB, Vorbis=album, MP4=©alb
    album = _first_text(_tags_get(tags, ("TALB", "album", "ALBUM", "©alb")))

    # Keys: ID3=TRCK, Vorbis=tracknumber, MP4=trkn
    track_tag = _tags_get(tags, ("TRCK", "tracknumber", "TRACKNUMBER", "trkn"))
    track_number = _parse_int_maybe(track_tag)

    album_track_total = _parse_int_maybe(
        _tags_get(tags, ("tracktotal", "TRACKTOTAL", "totaltracks", "TOTALTRACKS"))
    ) or _parse_total_maybe(track_tag)

    # Keys: ID3=TDRC/TYER, Vorbis=date, MP4=©day
    year = _parse_year_maybe(_tags_get(tags, ("TDRC", "TYER", "date", "DATE", "YEAR", "©day")))

    return TrackMetadata(
        path=path,
        title=title,
        artist=_clean_str(artist),
        album=_clean_str(album),
        track_number=track_number,
        album_track_total=album_track_total,
        year=year,
        cover=_find_cover(path.parent),
    )


async def iter_audio_files(config: ScanConfig) -> AsyncIterator[Path]:
    """
    Asynchronously yields audio file paths under `config.root`.

    The walk runs in a thread; filtering is by extension only.
    """
    root = config.root
    if not root.exists():
        raise FileNotFoundError(root)
    if not root.is_dir():
        raise NotADirectoryError(root)

    def _walk() -> list[Path]:
        paths: list[Path] = []
        for p in root.rglob("*"):
            try:
                if not config.follow_symlinks and p.is_symlink():
                    continue
                if not p.is_file():
                    continue
                if p.suffix.lower() not in config.extensions:
                    continue
                paths.append(p)
            except OSError:
                # Broken permissions/paths are skipped during the walk.
                continue
        return paths

    paths = await asyncio.to_thread(_walk)
    for p in paths:
        yield p


async def scan_music_folder(config: ScanConfig) -> ScanResult:
    """
    Scan a folder for audio files and extract metadata.

    Returns a pure in-memory result; persisting to the DB is the library's job.

    Concurrency:
    - filesystem walk: runs in a thread
    - metadata extraction: bounded concurrency using threads via asyncio.to_thread
    """
    semaphore = asyncio.Semaphore(max(1, config.max_concurrency))

    tracks: list[TrackMetadata] = []
    issues: list[ScanIssue] = []

    async def _process(path: Path) -> None:
        async with semaphore:
            try:
                meta = await asyncio.to_thread(_extract_metadata, path)
            except Exception as e:  # noqa: BLE001 - one bad file must not stop a scan
                msg = f"{type(e).__name__}: {e}"
                issues.append(ScanIssue(path=path, message=msg))
                logger.debug("Scan issue for %s: %s", path, msg)
                return
            tracks.append(meta)

    tasks: list[asyncio.Task[None]] = []
    async for path in iter_audio_files(config):
        tasks.append(asyncio.create_task(_process(path)))

    if tasks:
        await asyncio.gather(*tasks)

    # Deterministic ordering is useful for tests and predictable output.
    tracks.sort(key=lambda t: str(t.path).lower())

    return ScanResult(tracks=tracks, issues=issues)
