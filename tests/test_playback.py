"""Tests for playback module (Layer 2)."""

import pytest

from lyric_timing.models import Block, Document, Line, Mode, Token, Voice, Word
from lyric_timing.playback import (
    ACTIVE,
    FUTURE,
    PAST,
    frame_at,
    generate_linear_timing,
    has_any_timing,
    inferred_bounds,
    prepare_for_playback,
    progress,
    token_phase,
)
from lyric_timing.segmenter import segment_lyrics
from lyric_timing.token_index import TokenIndex


# --- Progress ---

@pytest.mark.parametrize("time_ms,expected", [
    (999, 0.0),
    (1000, 0.0),
    (1500, 50.0),
    (1999, 99.9),
    (2000, 100.0),
    (2500, 100.0),
])
def test_progress(time_ms, expected):
    assert progress(Token(start=1000, end=2000), time_ms) == pytest.approx(expected)


@pytest.mark.parametrize("start,end", [(1000, 2000), (0, 3), (250, 7777)])
def test_progress_strictly_increasing(start, end):
    """Across a token's span progress rises at every step from 0 to 100."""
    token = Token(start=start, end=end)
    steps = [start + (end - start) * k / 200 for k in range(201)]
    values = [progress(token, t) for t in steps]
    assert values[0] == 0.0
    assert values[-1] == 100.0
    for earlier, later in zip(values, values[1:]):
        assert later > earlier


def test_progress_zero_length():
    """A zero-length token jumps from 0 to 100 at its start."""
    token = Token(start=1000, end=1000)
    assert progress(token, 999) == 0.0
    assert progress(token, 1000) == 100.0


def test_token_phase():
    token = Token(start=1000, end=2000)
    assert token_phase(token, 500) == FUTURE
    assert token_phase(token, 1000) == ACTIVE
    assert token_phase(token, 2000) == ACTIVE
    assert token_phase(token, 2001) == PAST


def test_has_any_timing(two_blocks):
    assert not has_any_timing(two_blocks)
    two_blocks.blocks[1].lines[0].words[0].chars[1].end = 10
    assert has_any_timing(two_blocks)


# --- Linear timing ---

def test_linear_timing_per_char():
    """3 + 5 characters over 8 seconds: one second each."""
    doc = segment_lyrics("abc defgh")

    timed = generate_linear_timing(doc, 8000)

    chars = TokenIndex(timed, Mode.CHARS)
    assert [(c.start, c.end) for c in chars][:2] == [(0, 1000), (1000, 2000)]
    words = timed.blocks[0].lines[0].words
    assert [(w.start, w.end) for w in words] == [(0, 3000), (3000, 8000)]
    line = timed.blocks[0].lines[0]
    assert (line.start, line.end) == (0, 8000)
    assert (timed.blocks[0].start, timed.blocks[0].end) == (0, 8000)
    assert not has_any_timing(doc)


def test_linear_timing_sub_millisecond_chars():
    """Ten characters over 3 ms still get distinct, increasing stamps."""
    timed = generate_linear_timing(segment_lyrics("abcdefghij"), 3)

    chars = TokenIndex(timed, Mode.CHARS)
    assert all(c.node.is_timed for c in chars)
    assert [(c.start, c.end) for c in chars] == [(i, i + 1) for i in range(10)]
    word = timed.blocks[0].lines[0].words[0]
    assert (word.start, word.end) == (0, 10)


def test_linear_timing_words_without_chars():
    """Char-less words take one share per character of their text."""
    doc = Document(
        blocks=[Block(lines=[Line(text="ab cde", words=[Word(text="ab"), Word(text="cde")])])],
        voices=[Voice(id=1)],
    )
    timed = generate_linear_timing(doc, 5000)
    words = timed.blocks[0].lines[0].words
    assert [(w.start, w.end) for w in words] == [(0, 2000), (2000, 5000)]


def test_linear_timing_skips_timed_document(two_blocks):
    two_blocks.blocks[0].start, two_blocks.blocks[0].end = 100, 200
    assert generate_linear_timing(two_blocks, 8000) is two_blocks


def test_linear_timing_no_chars():
    """Nothing to divide the duration over."""
    doc = Document(blocks=[Block(lines=[Line(text="legacy")])], voices=[Voice(id=1)])
    assert generate_linear_timing(doc, 8000) is doc


def test_prepare_for_playback_untimed_uses_linear():
    doc = segment_lyrics("abc defgh")
    ready = prepare_for_playback(doc, 8000)
    line = ready.blocks[0].lines[0]
    assert (line.start, line.end) == (0, 8000)
    assert line.text == ""
    assert line.words[0].chars[0].text == "a"


def test_prepare_for_playback_timed_cleans():
    doc = segment_lyrics("one two")
    line = doc.blocks[0].lines[0]
    line.start, line.end = 0, 1000
    line.words[0].start, line.words[0].end = 0, 300
    ready = prepare_for_playback(doc, 8000)
    assert [(w.start, w.end) for w in ready.blocks[0].lines[0].words] == [(0, 500), (500, 1000)]


# --- Whitespace bounds ---

def test_inferred_bounds_for_space(spaced_document):
    """A space spans the gap between its neighbours."""
    words = spaced_document.blocks[0].lines[0].words
    words[0].start, words[0].end = 100, 200
    words[2].start, words[2].end = 300, 400
    index = TokenIndex(spaced_document, Mode.WORDS)
    assert inferred_bounds(index, 1) == (200, 300)
    assert inferred_bounds(index, 2) == (300, 400)


# --- Frames ---

def test_frame_at():
    """Active token and progress per mode at a single instant."""
    doc = generate_linear_timing(segment_lyrics("abc defgh"), 8000)

    frame = frame_at(doc, 3500)

    assert frame.active[Mode.WORDS] == 1
    assert frame.progress[Mode.WORDS] == pytest.approx(10.0)
    assert frame.active[Mode.CHARS] == 3
    assert frame.progress[Mode.CHARS] == pytest.approx(50.0)
    assert frame.progress[Mode.LINES] == pytest.approx(43.75)
    data = frame.to_dict()
    assert data["active"]["blocks"] == 0
    assert data["progress"]["chars"] == 50.0


def test_frame_at_before_anything(two_blocks):
    frame = frame_at(two_blocks, 100)
    assert frame.active[Mode.LINES] is None
    assert frame.progress[Mode.LINES] == 0.0
