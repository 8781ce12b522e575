"""
Configuration management for medialib.

Settings are read from a TOML file:

    [library]
    db_path = "/home/me/.local/share/medialib/db.sqlite"
    music_folders = ["/home/me/Music"]
    extensions = ["flac", "mp3"]
    commit_every = 64
    foreign_keys = true

A missing file means defaults.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from medialib.core.library_db import DEFAULT_COMMIT_EVERY
from medialib.core.scanner import DEFAULT_AUDIO_EXTENSIONS

logger = logging.getLogger(__name__)

APP_NAME = "medialib"
DB_FILE_NAME = "db.sqlite"
CONFIG_FILE_NAME = "config.toml"


def default_data_dir() -> Path:
    """
    Directory for the database file.

    `$MEDIALIB_DATA_DIR` wins, then `$XDG_DATA_HOME/medialib`, then
    `~/.local/share/medialib`.
    """
    explicit = os.environ.get("MEDIALIB_DATA_DIR")
    if explicit:
        return Path(explicit).expanduser()
    xdg = os.environ.get("XDG_DATA_HOME")
    base = Path(xdg).expanduser() if xdg else Path.home() / ".local" / "share"
    return base / APP_NAME


def default_config_path() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg).expanduser() if xdg else Path.home() / ".config"
    return base / APP_NAME / CONFIG_FILE_NAME


@dataclass
class LibraryConfig:
    """Loaded library configuration."""

    db_path: Path = field(default_factory=lambda: default_data_dir() / DB_FILE_NAME)
    music_folders: list[Path] = field(default_factory=list)
    extensions: frozenset[str] = DEFAULT_AUDIO_EXTENSIONS
    commit_every: int = DEFAULT_COMMIT_EVERY
    foreign_keys: bool = True

    def __post_init__(self) -> None:
        if self.commit_every <= 0:
            raise ValueError("commit_every must be > 0")


def _parse_extensions(values: object) -> frozenset[str]:
    if not isinstance(values, list) or not values:
        return DEFAULT_AUDIO_EXTENSIONS
    return frozenset("." + str(v).lower().lstrip(".") for v in values)


def load_config(config_path: Path | None = None) -> LibraryConfig:
    """
    Load library configuration from a TOML file.

    Args:
        config_path: Path to the TOML file. If None, uses the default location.

    Returns:
        Loaded LibraryConfig instance (defaults if the file does not exist).
    """
    if config_path is None:
        config_path = default_config_path()

    if not config_path.exists():
        logger.debug("No config file at %s, using defaults", config_path)
        return LibraryConfig()

    logger.debug("Loading library config from %s", config_path)

    with config_path.open("rb") as f:
        data = tomllib.load(f)

    section = data.get("library", {})
    defaults = LibraryConfig()

    db_path = section.get("db_path")
    return LibraryConfig(
        db_path=Path(db_path).expanduser() if db_path else defaults.db_path,
        music_folders=[Path(p).expanduser() for p in section.get("music_folders", [])],
        extensions=_parse_extensions(section.get("extensions")),
        commit_every=int(section.get("commit_every", DEFAULT_COMMIT_EVERY)),
        foreign_keys=bool(section.get("foreign_keys", True)),
    )


# Global singleton instance (lazy loaded)
_config: LibraryConfig | None = None


def get_config() -> LibraryConfig:
    """
    Get the global library configuration (lazy loaded singleton).

    Returns:
        The LibraryConfig instance.
    """
    global _config

    if _config is None:
        _config = load_config()

    return _config


def reload_config(config_path: Path | None = None) -> LibraryConfig:
    """
    Force reload of the library configuration.

    Returns:
        The newly loaded LibraryConfig instance.
    """
    global _config
    _config = load_config(config_path)
    return _config
