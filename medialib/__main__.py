"""
medialib - Entry Point

Run with: python -m medialib
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from medialib import __version__
from medialib.config import LibraryConfig, load_config
from medialib.core import CoreError
from medialib.core.library import AlbumId, MediaLibrary, MediaLibraryError, Track
from medialib.core.library_db import LibraryDb

logger = logging.getLogger("medialib")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="medialib",
        description="medialib - a personal media library store",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the TOML config file",
    )

    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to the library database (overrides the config file)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create or migrate the library database")

    scan = sub.add_parser("scan", help="Scan folders and store the tracks found")
    scan.add_argument("paths", nargs="*", type=Path, help="Folders (default: configured)")

    refresh = sub.add_parser("refresh", help="Rescan folders and drop missing tracks")
    refresh.add_argument("paths", nargs="*", type=Path, help="Folders (default: configured)")

    sub.add_parser("albums", help="List albums")

    tracks = sub.add_parser("tracks", help="List tracks")
    tracks.add_argument("--album", type=int, default=None, help="Only tracks of this album id")
    tracks.add_argument("--limit", type=int, default=200)

    search = sub.add_parser("search", help="Search tracks by name, artist or album")
    search.add_argument("query")

    delete = sub.add_parser("delete-album", help="Delete an album (its tracks are unassigned)")
    delete.add_argument("album_id", type=int)

    return parser


def _format_track(track: Track) -> str:
    number = f"{track.track_no:>2}. " if track.track_no is not None else "    "
    album = track.album_name or "-"
    artist = track.artist or "-"
    return f"{track.id:>6}  {number}{track.name}  [{artist} / {album}]"


async def run_command(args: argparse.Namespace, config: LibraryConfig) -> int:
    """Execute one CLI command against the library database."""
    db = LibraryDb(
        config.db_path,
        foreign_keys=config.foreign_keys,
        commit_every=config.commit_every,
    )
    await db.open()
    try:
        library = MediaLibrary(
            db=db, music_folders=config.music_folders, extensions=config.extensions
        )
        await library.initialize()

        if args.command == "init":
            logger.info("Library database ready at %s", config.db_path)

        elif args.command in ("scan", "refresh"):
            roots = args.paths or None
            if args.command == "scan":
                summary = await library.scan(roots=roots)
            else:
                summary = await library.refresh(roots=roots)
            print(
                f"scanned={summary.scanned_files} stored={summary.stored_tracks} "
                f"removed={summary.removed_tracks} errors={summary.errors}"
            )

        elif args.command == "albums":
            for album in await library.get_albums(limit=10_000):
                year = album.year if album.year is not None else "----"
                marker = " (default)" if album.is_default else ""
                print(f"{album.id:>6}  {year}  {album.name}{marker}")

        elif args.command == "tracks":
            album_id = AlbumId(args.album) if args.album is not None else None
            for track in await library.get_tracks(album_id=album_id, limit=args.limit):
                print(_format_track(track))

        elif args.command == "search":
            for track in await library.search(args.query):
                print(_format_track(track))

        elif args.command == "delete-album":
            await library.remove_album(AlbumId(args.album_id))
            print(f"Deleted album {args.album_id}")

        return 0
    finally:
        await db.close()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the application."""
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose)

    try:
        config = load_config(args.config)
        if args.db is not None:
            config.db_path = args.db
        return asyncio.run(run_command(args, config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except (CoreError, MediaLibraryError, ValueError, OSError) as e:
        logger.error("%s", e)
        return 1
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
