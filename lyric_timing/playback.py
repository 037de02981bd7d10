"""Playback-side timing: per-token progress, phases and linear timing fallback."""

import copy
import logging
from dataclasses import dataclass, field

from lyric_timing.models import Document, Mode, Token
from lyric_timing.propagation import bubble_up, cleanup, round_ms
from lyric_timing.token_index import TokenIndex

logger = logging.getLogger(__name__)

PAST = "past"
ACTIVE = "active"
FUTURE = "future"


def progress(token: Token, time_ms: float) -> float:
    """Percentage (0-100) of a token elapsed at ``time_ms``.

    A zero-length token jumps straight from 0 to 100 at its start.
    """
    if time_ms < token.start:
        return 0.0
    if time_ms >= token.end:
        return 100.0
    elapsed = (time_ms - token.start) / (token.end - token.start) * 100
    return max(0.0, min(100.0, elapsed))


def token_phase(token: Token, time_ms: float) -> str:
    """past / active / future relative to the playhead, for colouring."""
    if time_ms > token.end:
        return PAST
    if token.start <= time_ms <= token.end:
        return ACTIVE
    return FUTURE


def has_any_timing(document: Document) -> bool:
    return any(node.is_timed for mode in Mode for _, node in document.iter_nodes(mode))


def _char_units(document: Document) -> int:
    total = 0
    for _, word in document.iter_nodes(Mode.WORDS):
        total += len(word.chars) if word.chars else len(word.text)
    return total


def generate_linear_timing(document: Document, total_ms: int) -> Document:
    """Spread ``total_ms`` evenly over every character of an untimed document.

    Each character gets ``total_ms / total_chars``; words without chars take
    one share per character of their text. Each unit lasts at least 1 ms,
    so very short durations overrun ``total_ms`` rather than repeat a stamp.
    Ancestors are derived from their children. Returns a timed copy, or the
    input itself when it already has timing or contains no characters.
    """
    if has_any_timing(document):
        return document
    total_chars = _char_units(document)
    if total_chars == 0:
        return document

    timed = copy.deepcopy(document)
    per_char = total_ms / total_chars
    cursor = 0
    last_end = 0
    for _, word in timed.iter_nodes(Mode.WORDS):
        pieces = [(char, 1) for char in word.chars] if word.chars else [(word, len(word.text))]
        for token, units in pieces:
            # At least 1 ms per unit, so stamps strictly increase
            token.start = max(round_ms(cursor * per_char), last_end)
            cursor += units
            token.end = max(round_ms(cursor * per_char), token.start + 1)
            last_end = token.end

    bubble_up(timed, Mode.CHARS)
    logger.info("Generated linear timing for %d characters over %dms", total_chars, total_ms)
    return timed


def prepare_for_playback(document: Document, duration_ms: int | None = None) -> Document:
    """Cleaned copy ready to render; untimed documents get linear timing."""
    if duration_ms and not has_any_timing(document):
        document = generate_linear_timing(document, duration_ms)
    return cleanup(document)


def inferred_bounds(tokens: TokenIndex, index: int) -> tuple[int, int]:
    """Bounds of a token, inferring whitespace tokens from their neighbours.

    A whitespace token spans from the previous token's end to the next
    token's start.
    """
    ref = tokens[index]
    if not ref.is_space:
        return ref.start, ref.end
    previous = tokens.previous_non_space(index)
    following = tokens.next_non_space(index)
    start = tokens[previous].end if previous is not None else 0
    end = tokens[following].start if following is not None else start
    return start, max(start, end)


def active_index(tokens: TokenIndex, time_ms: float) -> int | None:
    """First timed token containing ``time_ms``, if any."""
    for ref in tokens:
        if ref.node.is_timed and ref.start <= time_ms <= ref.end:
            return ref.index
    return None


@dataclass
class PlaybackFrame:
    """Everything a renderer needs for one tick. Recomputed from scratch each time."""

    time_ms: float
    active: dict[Mode, int | None] = field(default_factory=dict)
    progress: dict[Mode, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "time_ms": self.time_ms,
            "active": {mode.value: index for mode, index in self.active.items()},
            "progress": {mode.value: round(value, 1) for mode, value in self.progress.items()},
        }


def frame_at(document: Document, time_ms: float) -> PlaybackFrame:
    frame = PlaybackFrame(time_ms=time_ms)
    for mode in Mode:
        tokens = TokenIndex(document, mode)
        index = active_index(tokens, time_ms)
        frame.active[mode] = index
        frame.progress[mode] = progress(tokens[index].node, time_ms) if index is not None else 0.0
    return frame
