"""Keep ancestor timing consistent with children: bubble-up and export cleanup."""

import copy
import logging
import math

from lyric_timing.models import Document, Mode, Token, is_space_text

logger = logging.getLogger(__name__)


def round_ms(value: float) -> int:
    """Round to the nearest millisecond, halves rounding up."""
    return int(math.floor(value + 0.5))


def widen_from_children(parent: Token) -> bool:
    """Widen a parent's bounds to cover its complete children.

    Bounds only ever grow: the start moves earlier when the parent is untimed
    or starts after the earliest child, the end moves later when it is unset
    or ends before the latest child. Returns True if anything changed.
    """
    children = parent.children
    if not children:
        return False
    complete = [child for child in children if child.is_complete]
    if not complete:
        return False

    lo = min(child.start for child in complete)
    hi = max(child.end for child in complete)
    should_update_start = not parent.is_timed or parent.start > lo
    should_update_end = parent.end == 0 or parent.end < hi

    if should_update_start:
        parent.start = lo
    if should_update_end:
        parent.end = hi
    return should_update_start or should_update_end


def bubble_up(document: Document, mode: Mode) -> int:
    """Recompute ancestor bounds from the edited level up to the blocks.

    Returns the number of ancestors whose bounds were widened.
    """
    updated = 0
    level = mode
    while level.parent is not None:
        for path, parent in document.iter_nodes(level.parent):
            if widen_from_children(parent):
                updated += 1
                logger.debug(
                    "Widened %s %s to %d-%d from child %s",
                    level.parent.value, path, parent.start, parent.end, level.value,
                )
        level = level.parent
    return updated


def _inherited_voice(document: Document, path: tuple[int, ...]) -> int:
    """Voice of the nearest ancestor-or-self along a path that has one."""
    for depth in range(len(path), 0, -1):
        voice = document.node(path[:depth]).voice
        if voice:
            return voice
    return 0


def _is_space(token: Token) -> bool:
    """Whitespace token, looking through text cleared by a previous export."""
    if token.text or not token.children:
        return is_space_text(token.text)
    return all(_is_space(child) for child in token.children)


def _refit_descendants(token: Token, old_start: int, old_end: int) -> None:
    """Move a token's timed descendants from its old span into its current one."""
    children = token.children
    if not children or not any(child.is_timed for child in children):
        return
    if old_end <= old_start:
        spoken = [child for child in children if not _is_space(child)]
        if spoken:
            _spread(token, spoken, token.voice)
        return

    scale = (token.end - token.start) / (old_end - old_start)
    for child in children:
        if not child.is_timed:
            continue
        previous = (child.start, child.end)
        child.start = round_ms(token.start + (child.start - old_start) * scale)
        if child.end:
            child.end = round_ms(token.start + (child.end - old_start) * scale)
        _refit_descendants(child, *previous)


def _spread(parent: Token, children: list, voice: int) -> None:
    count = len(children)
    step = (parent.end - parent.start) / count
    for index, child in enumerate(children):
        previous = (child.start, child.end)
        child.start = round_ms(parent.start + index * step)
        child.end = round_ms(parent.start + (index + 1) * step)
        child.voice = child.voice or voice
        _refit_descendants(child, *previous)


def interpolate_children(parent: Token, voice: int = 0) -> bool:
    """Spread a partially timed child list evenly over the parent's span.

    Only applies when some, but not all, non-whitespace children are timed;
    the partial child timing is discarded and whitespace children stay
    untimed. Timed descendants of a moved child are rescaled into its new
    span. Children without a voice take ``voice``. Returns True if the
    children were rewritten.
    """
    children = parent.children
    if not children:
        return False
    spoken = [child for child in children if not _is_space(child)]
    timed = sum(1 for child in spoken if child.is_timed)
    if timed == 0 or timed == len(spoken):
        return False
    if not parent.is_timed:
        logger.warning(
            "Cannot interpolate %d/%d timed children under an untimed parent",
            timed, len(spoken),
        )
        return False

    _spread(parent, spoken, voice)
    return True


def _clear_parent_text(document: Document) -> None:
    for mode in (Mode.BLOCKS, Mode.LINES, Mode.WORDS):
        for _, node in document.iter_nodes(mode):
            if node.children:
                node.text = ""


def cleanup(document: Document) -> Document:
    """Finalize timing for export. Returns a cleaned deep copy.

    Levels are processed bottom-up (chars per word, words per line, lines per
    block). A child list that is partly timed is redistributed evenly over its
    parent, carrying already timed grandchildren along; a chars or words list that was never timed is removed. A final
    bubble-up keeps every ancestor covering its timed descendants, and parent
    text is cleared wherever children carry the text. Running it twice gives
    the same result as running it once.
    """
    cleaned = copy.deepcopy(document)
    bubble_up(cleaned, Mode.CHARS)

    for level in (Mode.CHARS, Mode.WORDS, Mode.LINES):
        for path, parent in cleaned.iter_nodes(level.parent):
            children = parent.children
            if children is None:
                continue
            if not any(child.is_timed for child in children):
                # Lines are always kept; finer levels were simply never used here
                if level is not Mode.LINES:
                    parent.children = None
                continue
            if interpolate_children(parent, _inherited_voice(cleaned, path)):
                logger.debug("Interpolated %d %s under %s", len(children), level.value, path)

    bubble_up(cleaned, Mode.CHARS)
    _clear_parent_text(cleaned)
    return cleaned
