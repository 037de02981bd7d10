"""Segment plain lyric text into an untimed block/line/word/char document."""

import re

from lyric_timing.constants import DEFAULT_POSITION
from lyric_timing.models import Block, Char, Document, Line, Voice, Word

# Blocks are separated by one or more empty (or whitespace-only) lines
_BLOCK_SPLIT_RE = re.compile(r"\n\s*\n")


def normalize_newlines(text: str) -> str:
    """Convert \\r\\n and bare \\r line endings to \\n."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _segment_word(text: str) -> Word:
    return Word(text=text, chars=[Char(text=ch) for ch in text])


def _segment_line(text: str) -> Line:
    # Single spaces separate words; runs of spaces leave empty pieces behind
    words = [piece for piece in text.split(" ") if piece.strip()]
    return Line(text=text, words=[_segment_word(word) for word in words])


def _segment_block(text: str) -> Block:
    lines = [line for line in text.split("\n") if line.strip()]
    return Block(
        text="",
        position=DEFAULT_POSITION,
        lines=[_segment_line(line) for line in lines],
    )


def segment_lyrics(text: str, audio_file: str | None = None) -> Document:
    """Build the initial skeleton for a lyric text.

    Blank lines separate blocks, newlines separate lines, spaces separate
    words, and every word gets one Char per character. All timings start at
    the (0, 0) sentinel with no voice assigned; the document carries a single
    default voice.
    """
    normalized = normalize_newlines(text)
    block_texts = [block for block in _BLOCK_SPLIT_RE.split(normalized) if block.strip()]

    return Document(
        blocks=[_segment_block(block) for block in block_texts],
        voices=[Voice(id=1)],
        audio_file=audio_file,
    )


def lyrics_text(document: Document) -> str:
    """Rebuild the plain lyric text of a document (blocks joined by blank lines)."""
    return "\n\n".join(
        "\n".join(line_text(line) for line in block.lines)
        for block in document.blocks
    )


def line_text(line: Line) -> str:
    """A line's text, rebuilt from its words when export cleared it."""
    if line.text or not line.words:
        return line.text
    return " ".join(word_text(word) for word in line.words)


def word_text(word: Word) -> str:
    """A word's text, rebuilt from its chars when export cleared it."""
    if word.text or not word.chars:
        return word.text
    return "".join(char.text for char in word.chars)
