"""Shared fixtures for lyric timing tests."""

import pytest
from pydub import AudioSegment

from lyric_timing.models import Char, Document, Line, Voice, Word, Block
from lyric_timing.segmenter import segment_lyrics
from lyric_timing.transport import ClockTransport


class FakeClock:
    """Monotonic clock stand-in; tests move time by assigning ``now``."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def tiny_wav(tmp_path):
    """Generate a 1000ms silent WAV for testing (no ffmpeg needed)."""
    path = tmp_path / "song.wav"
    silence = AudioSegment.silent(duration=1000)
    silence.export(str(path), format="wav")
    return path


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport(clock):
    """Paused transport driven by the fake clock."""
    return ClockTransport(duration_ms=60000, clock=clock)


@pytest.fixture
def two_blocks():
    """"ab cd / ef" then "gh": 2 blocks, 3 lines, 4 words, 8 chars."""
    return segment_lyrics("ab cd\nef\n\ngh")


@pytest.fixture
def spaced_document():
    """One line whose middle word and char are whitespace."""
    line = Line(
        text="a b",
        words=[
            Word(text="a", chars=[Char(text="a")]),
            Word(text=" ", chars=[Char(text=" ")]),
            Word(text="b", chars=[Char(text="b")]),
        ],
    )
    return Document(blocks=[Block(lines=[line], position="C")], voices=[Voice(id=1)])
