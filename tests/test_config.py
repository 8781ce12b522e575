"""
Tests for medialib.config.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from medialib import config as config_module
from medialib.config import (
    DB_FILE_NAME,
    LibraryConfig,
    default_data_dir,
    load_config,
    reload_config,
)
from medialib.core.scanner import DEFAULT_AUDIO_EXTENSIONS


class TestDefaults:
    def test_data_dir_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MEDIALIB_DATA_DIR", str(tmp_path / "data"))
        assert default_data_dir() == tmp_path / "data"

    def test_data_dir_from_xdg(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MEDIALIB_DATA_DIR", raising=False)
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
        assert default_data_dir() == tmp_path / "medialib"

    def test_missing_file_gives_defaults(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("MEDIALIB_DATA_DIR", str(tmp_path))
        cfg = load_config(tmp_path / "nope.toml")

        assert cfg.db_path == tmp_path / DB_FILE_NAME
        assert cfg.music_folders == []
        assert cfg.extensions == DEFAULT_AUDIO_EXTENSIONS
        assert cfg.commit_every == 64
        assert cfg.foreign_keys is True

    def test_invalid_commit_every(self) -> None:
        with pytest.raises(ValueError):
            LibraryConfig(commit_every=0)


class TestLoadConfig:
    def test_reads_library_section(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text(
            f"""
[library]
db_path = "{tmp_path / 'lib.sqlite'}"
music_folders = ["{tmp_path / 'Music'}"]
extensions = ["FLAC", ".mp3"]
commit_every = 16
foreign_keys = false
""",
            encoding="utf-8",
        )

        cfg = load_config(path)

        assert cfg.db_path == tmp_path / "lib.sqlite"
        assert cfg.music_folders == [tmp_path / "Music"]
        assert cfg.extensions == frozenset({".flac", ".mp3"})
        assert cfg.commit_every == 16
        assert cfg.foreign_keys is False

    def test_empty_section_uses_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("[library]\n", encoding="utf-8")

        cfg = load_config(path)
        assert cfg.extensions == DEFAULT_AUDIO_EXTENSIONS
        assert cfg.commit_every == 64

    def test_reload_replaces_singleton(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("[library]\ncommit_every = 8\n", encoding="utf-8")

        cfg = reload_config(path)

        assert cfg.commit_every == 8
        assert config_module.get_config() is cfg
        config_module._config = None
