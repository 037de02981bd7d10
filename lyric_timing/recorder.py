"""Write hold-key timestamps into the active token."""

import logging

from lyric_timing.controller import EditorSession
from lyric_timing.models import Document
from lyric_timing.propagation import bubble_up, round_ms
from lyric_timing.token_index import TokenIndex

logger = logging.getLogger(__name__)

RECORD_KINDS = ("start", "end")


def to_ms(seconds: float) -> int:
    """Transport seconds to whole milliseconds."""
    return round_ms(seconds * 1000)


def record(session: EditorSession, document: Document, kind: str, timestamp_ms: int) -> bool:
    """Stamp the active token of the session's mode.

    A start stamp also assigns the session's current voice. Ancestors are
    widened afterwards; the caller refreshes the unlocked modes. Returns False
    (nothing written) for whitespace tokens or an out-of-range cursor.
    """
    if kind not in RECORD_KINDS:
        raise ValueError(f"Unknown timestamp kind: {kind!r}")

    ref = TokenIndex(document, session.mode).get(session.active_index)
    if ref is None:
        logger.debug("No %s token at index %d", session.mode.value, session.active_index)
        return False
    if ref.is_space:
        logger.debug("Skipping whitespace token at index %d", ref.index)
        return False

    token = ref.node
    if kind == "start":
        token.start = timestamp_ms
        token.voice = session.current_voice
    else:
        token.end = timestamp_ms
    logger.debug("Recorded %s=%dms for %s %r", kind, timestamp_ms, session.mode.value, ref.text)

    bubble_up(document, session.mode)
    return True
