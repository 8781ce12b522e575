"""
Tests for medialib.core.scanner.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from medialib.core.scanner import (
    ScanConfig,
    _find_cover,
    _first_text,
    _parse_int_maybe,
    _parse_total_maybe,
    _parse_year_maybe,
    iter_audio_files,
    scan_music_folder,
)


class TestScannerHelpers:
    def test_first_text_string(self) -> None:
        assert _first_text("hello") == "hello"
        assert _first_text("  spaced  ") == "spaced"
        assert _first_text("") is None

    def test_first_text_list(self) -> None:
        assert _first_text(["first", "second"]) == "first"
        assert _first_text([]) is None

    def test_first_text_none(self) -> None:
        assert _first_text(None) is None

    def test_parse_int_maybe(self) -> None:
        assert _parse_int_maybe("5") == 5
        assert _parse_int_maybe("3/12") == 3
        assert _parse_int_maybe(["7/10"]) == 7
        assert _parse_int_maybe([(4, 11)]) == 4

    def test_parse_int_maybe_invalid(self) -> None:
        assert _parse_int_maybe("abc") is None
        assert _parse_int_maybe("") is None
        assert _parse_int_maybe(None) is None

    def test_parse_total_maybe(self) -> None:
        assert _parse_total_maybe("3/12") == 12
        assert _parse_total_maybe(["2/11"]) == 11
        assert _parse_total_maybe([(4, 11)]) == 11

    def test_parse_total_maybe_without_total(self) -> None:
        assert _parse_total_maybe("3") is None
        assert _parse_total_maybe("3/") is None
        assert _parse_total_maybe([(4, 0)]) is None
        assert _parse_total_maybe(None) is None

    def test_parse_year_maybe(self) -> None:
        assert _parse_year_maybe("1977") == 1977
        assert _parse_year_maybe("1977-02-04") == 1977
        assert _parse_year_maybe("abc") is None
        assert _parse_year_maybe(None) is None


class TestFindCover:
    def test_prefers_cover_over_folder(self, tmp_path: Path) -> None:
        (tmp_path / "folder.jpg").write_bytes(b"x")
        (tmp_path / "cover.jpg").write_bytes(b"x")
        assert _find_cover(tmp_path) == str(tmp_path / "cover.jpg")

    def test_case_insensitive(self, tmp_path: Path) -> None:
        (tmp_path / "Folder.JPG").write_bytes(b"x")
        assert _find_cover(tmp_path) == str(tmp_path / "Folder.JPG")

    def test_none_when_missing(self, tmp_path: Path) -> None:
        (tmp_path / "notes.txt").write_text("hi")
        assert _find_cover(tmp_path) is None


class TestScanMusicFolder:
    async def test_missing_root_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            async for _ in iter_audio_files(ScanConfig(root=tmp_path / "missing")):
                pass

    async def test_filters_by_extension(self, tmp_path: Path, write_silent_wav) -> None:
        write_silent_wav(tmp_path / "a" / "one.wav")
        (tmp_path / "a" / "readme.txt").write_text("not audio")

        paths = [p async for p in iter_audio_files(ScanConfig(root=tmp_path))]
        assert paths == [tmp_path / "a" / "one.wav"]

    async def test_untagged_wav_uses_stem(self, tmp_path: Path, write_silent_wav) -> None:
        write_silent_wav(tmp_path / "Songbird.wav")
        (tmp_path / "cover.png").write_bytes(b"x")

        result = await scan_music_folder(ScanConfig(root=tmp_path))

        assert result.issues == []
        assert len(result.tracks) == 1
        track = result.tracks[0]
        assert track.title == "Songbird"
        assert track.album is None
        assert track.cover == str(tmp_path / "cover.png")

    async def test_unreadable_file_becomes_issue(self, tmp_path: Path, write_silent_wav) -> None:
        (tmp_path / "broken.mp3").write_bytes(b"definitely not an mp3 file")
        write_silent_wav(tmp_path / "ok.wav")

        result = await scan_music_folder(ScanConfig(root=tmp_path))

        assert [t.path.name for t in result.tracks] == ["ok.wav"]
        assert [i.path.name for i in result.issues] == ["broken.mp3"]
