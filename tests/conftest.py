from __future__ import annotations

import wave
from collections.abc import Callable
from pathlib import Path

import pytest


def _write_silent_wav(path: Path, frames: int = 800) -> Path:
    """Write a short, untagged mono WAV file that mutagen can read."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with wave.open(str(path), "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(8000)
        w.writeframes(b"\x00\x00" * frames)
    return path


@pytest.fixture
def write_silent_wav() -> Callable[..., Path]:
    return _write_silent_wav
