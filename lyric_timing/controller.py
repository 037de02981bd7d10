"""Recording mode state machine: mode unlocking, cursor movement, mode switches.

All edit state lives in an immutable EditorSession; every operation takes a
session and returns the next one together with an Event for the host.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum

from lyric_timing.constants import ALWAYS_UNLOCKED
from lyric_timing.models import Document, Mode
from lyric_timing.token_index import TokenIndex

logger = logging.getLogger(__name__)


class Event(str, Enum):
    MOVED = "moved"
    NONE = "none"
    MODE_COMPLETE = "mode_complete"  # end of mode reached, next mode offered
    ALL_COMPLETE = "all_complete"    # end of chars reached
    REJECTED = "rejected"            # target mode still locked


def _base_unlocked() -> frozenset:
    return frozenset(Mode(name) for name in ALWAYS_UNLOCKED)


@dataclass(frozen=True)
class EditorSession:
    mode: Mode = Mode.BLOCKS
    active_index: int = 0
    unlocked: frozenset = field(default_factory=_base_unlocked)
    holding: bool = False       # hold key is down
    recording: bool = False     # start stamped, waiting for the release
    current_voice: int = 1
    sync_locked: bool = False

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "active_index": self.active_index,
            "unlocked": sorted((mode.value for mode in self.unlocked), key=lambda m: Mode(m).depth),
            "current_voice": self.current_voice,
            "sync_locked": self.sync_locked,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EditorSession":
        """Restore a saved session. Hold state is never persisted."""
        unlocked = _base_unlocked() | frozenset(Mode(m) for m in data.get("unlocked", []))
        return cls(
            mode=Mode(data.get("mode", Mode.BLOCKS.value)),
            active_index=int(data.get("active_index", 0)),
            unlocked=unlocked,
            current_voice=int(data.get("current_voice", 1)),
            sync_locked=bool(data.get("sync_locked", False)),
        )


def refresh_unlocked(session: EditorSession, document: Document) -> EditorSession:
    """Recompute the unlocked modes from the document's timing.

    Blocks and lines are always available. A mode whose tokens are all
    complete unlocks the next one; so does a complete active token in the
    current mode. The current mode always stays unlocked.
    """
    unlocked = set(_base_unlocked())
    for mode in Mode:
        if mode.child is not None and TokenIndex(document, mode).is_complete():
            unlocked.add(mode.child)

    if session.mode.child is not None:
        active = TokenIndex(document, session.mode).get(session.active_index)
        if active is not None and active.node.is_complete:
            unlocked.add(session.mode.child)

    unlocked.add(session.mode)
    newly = unlocked - session.unlocked
    if newly:
        logger.info("Unlocked modes: %s", ", ".join(m.value for m in sorted(newly, key=lambda m: m.depth)))
    return replace(session, unlocked=frozenset(unlocked))


def select_mode(session: EditorSession, document: Document, mode: Mode) -> tuple[EditorSession, Event]:
    """Switch to another unlocked mode, keeping the cursor on the related token."""
    if mode not in session.unlocked:
        logger.info("Mode %s is locked", mode.value)
        return session, Event.REJECTED
    if mode is session.mode:
        return session, Event.NONE

    target = TokenIndex(document, mode)
    current = TokenIndex(document, session.mode).get(session.active_index)
    index = target.related(current) if current is not None else target.first_non_space()
    index = target.nearest_non_space(index)

    logger.info("Switched to %s mode at token %d", mode.value, index)
    return replace(session, mode=mode, active_index=index), Event.MOVED


def go_to_next(session: EditorSession, document: Document) -> tuple[EditorSession, Event]:
    """Advance after a recording. Past the last token the next mode is offered."""
    tokens = TokenIndex(document, session.mode)
    index = tokens.next_non_space(session.active_index)
    if index is not None:
        return replace(session, active_index=index), Event.MOVED
    if session.mode.child is None:
        logger.info("All recording modes finished")
        return session, Event.ALL_COMPLETE
    logger.info("Finished %s mode", session.mode.value)
    return session, Event.MODE_COMPLETE


def go_to_previous(session: EditorSession, document: Document) -> tuple[EditorSession, Event]:
    tokens = TokenIndex(document, session.mode)
    index = tokens.previous_non_space(session.active_index)
    if index is None:
        return session, Event.NONE
    return replace(session, active_index=index), Event.MOVED


def accept_next_mode(session: EditorSession, document: Document) -> tuple[EditorSession, Event]:
    """Take the offered transition into the next finer mode."""
    mode = session.mode.child
    if mode is None:
        return session, Event.NONE
    index = TokenIndex(document, mode).first_non_space()
    logger.info("Proceeding to %s mode", mode.value)
    session = replace(session, mode=mode, active_index=index, unlocked=session.unlocked | {mode})
    return session, Event.MOVED


def navigate(session: EditorSession, document: Document, direction: int) -> tuple[EditorSession, Event]:
    """Move one non-whitespace token forwards (+1) or backwards (-1)."""
    tokens = TokenIndex(document, session.mode)
    if direction > 0:
        index = tokens.next_non_space(session.active_index)
    else:
        index = tokens.previous_non_space(session.active_index)
    if index is None:
        return session, Event.NONE
    return replace(session, active_index=index), Event.MOVED


def navigate_parent(session: EditorSession, document: Document, direction: int) -> tuple[EditorSession, Event]:
    """Jump to the first token of the next (+1) or previous (-1) ancestor.

    Ancestors without tokens in the current mode are skipped. No-op in blocks
    mode, which has no ancestor.
    """
    parent_mode = session.mode.parent
    if parent_mode is None:
        return session, Event.NONE

    tokens = TokenIndex(document, session.mode)
    current = tokens.get(session.active_index)
    if current is None:
        return session, Event.NONE

    parents = TokenIndex(document, parent_mode)
    parent_index = parents.index_of(current.path[:parent_mode.depth + 1])
    step = 1 if direction > 0 else -1
    candidate = parent_index + step
    while 0 <= candidate < len(parents):
        index = tokens.first_descendant(parents[candidate].path)
        if index is not None:
            return replace(session, active_index=tokens.nearest_non_space(index)), Event.MOVED
        candidate += step
    return session, Event.NONE
