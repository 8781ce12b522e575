"""
Tests for the medialib command line entry point.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from medialib.__main__ import build_parser, main


@pytest.fixture
def cli_args(tmp_path: Path) -> list[str]:
    """Common arguments pointing the CLI at a throwaway DB and no config file."""
    return ["--config", str(tmp_path / "none.toml"), "--db", str(tmp_path / "lib.sqlite")]


class TestParser:
    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_tracks_options(self) -> None:
        args = build_parser().parse_args(["tracks", "--album", "3", "--limit", "10"])
        assert args.command == "tracks"
        assert args.album == 3
        assert args.limit == 10


class TestMain:
    def test_init_creates_database(self, cli_args: list[str], tmp_path: Path) -> None:
        assert main([*cli_args, "init"]) == 0
        assert (tmp_path / "lib.sqlite").exists()

    def test_albums_lists_default(
        self, cli_args: list[str], capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main([*cli_args, "albums"]) == 0
        out = capsys.readouterr().out
        assert "Unknown Album (default)" in out

    def test_scan_then_tracks(
        self,
        cli_args: list[str],
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
        write_silent_wav,
    ) -> None:
        music = tmp_path / "Music"
        write_silent_wav(music / "Songbird.wav")

        assert main([*cli_args, "scan", str(music)]) == 0
        assert "stored=1" in capsys.readouterr().out

        assert main([*cli_args, "search", "songbird"]) == 0
        assert "Songbird" in capsys.readouterr().out

    def test_scan_without_roots_fails(self, cli_args: list[str]) -> None:
        assert main([*cli_args, "scan"]) == 1

    def test_delete_unknown_album_fails(self, cli_args: list[str]) -> None:
        assert main([*cli_args, "delete-album", "9999"]) == 1

    def test_delete_default_album(
        self, cli_args: list[str], capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main([*cli_args, "delete-album", "1"]) == 0
        capsys.readouterr()

        assert main([*cli_args, "albums"]) == 0
        out = capsys.readouterr().out
        assert out.count("Unknown Album") == 1
        assert out.split()[0] == "2"

    def test_malformed_config_fails(self, tmp_path: Path) -> None:
        config = tmp_path / "medialib.toml"
        config.write_text("[library\ndb_path = ", encoding="utf-8")

        assert main(["--config", str(config), "init"]) == 1

    def test_invalid_commit_every_fails(self, tmp_path: Path) -> None:
        config = tmp_path / "medialib.toml"
        config.write_text("[library]\ncommit_every = 0\n", encoding="utf-8")

        assert main(["--config", str(config), "--db", str(tmp_path / "lib.sqlite"), "init"]) == 1
