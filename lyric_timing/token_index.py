"""Flat, ordered token lists per granularity and lookups over them."""

from dataclasses import dataclass, field
from typing import Callable, Iterator

from lyric_timing.constants import CONTEXT_WINDOW
from lyric_timing.models import Document, Mode, Token, is_space_text
from lyric_timing.segmenter import line_text, word_text


@dataclass(frozen=True)
class TokenRef:
    """One entry of a flattened mode: flat index, node path and display text."""

    index: int
    mode: Mode
    path: tuple[int, ...]
    text: str
    node: Token = field(compare=False, repr=False)

    @property
    def start(self) -> int:
        return self.node.start

    @property
    def end(self) -> int:
        return self.node.end

    @property
    def is_space(self) -> bool:
        return is_space_text(self.text)

    @property
    def block_index(self) -> int:
        return self.path[0]

    @property
    def line_index(self) -> int | None:
        return self.path[1] if len(self.path) > 1 else None

    @property
    def word_index(self) -> int | None:
        return self.path[2] if len(self.path) > 2 else None


def _block_text(node: Token) -> str:
    return "\n".join(line_text(line) for line in node.lines)


# Display text handler per mode
_DISPLAY_TEXT: dict[Mode, Callable[[Token], str]] = {
    Mode.BLOCKS: _block_text,
    Mode.LINES: line_text,
    Mode.WORDS: word_text,
    Mode.CHARS: lambda node: node.text,
}


class TokenIndex:
    """Ordered token list for one mode of a document.

    Built on demand from the current tree; entries reference the live nodes,
    so timing written through ``ref.node`` lands in the document.
    """

    def __init__(self, document: Document, mode: Mode) -> None:
        self.mode = mode
        text_of = _DISPLAY_TEXT[mode]
        self.tokens = [
            TokenRef(index=i, mode=mode, path=path, text=text_of(node), node=node)
            for i, (path, node) in enumerate(document.iter_nodes(mode))
        ]
        self._by_path = {ref.path: ref.index for ref in self.tokens}

    def __len__(self) -> int:
        return len(self.tokens)

    def __iter__(self) -> Iterator[TokenRef]:
        return iter(self.tokens)

    def __getitem__(self, index: int) -> TokenRef:
        return self.tokens[index]

    def get(self, index: int) -> TokenRef | None:
        """Token at ``index``, or None when out of range."""
        if 0 <= index < len(self.tokens):
            return self.tokens[index]
        return None

    def index_of(self, path: tuple[int, ...]) -> int | None:
        return self._by_path.get(path)

    def next_non_space(self, index: int) -> int | None:
        """Index of the next non-whitespace token after ``index``, None at the end."""
        candidate = index + 1
        while candidate < len(self.tokens) and self.tokens[candidate].is_space:
            candidate += 1
        return candidate if candidate < len(self.tokens) else None

    def previous_non_space(self, index: int) -> int | None:
        """Index of the previous non-whitespace token before ``index``, None at the start."""
        candidate = min(index, len(self.tokens)) - 1
        while candidate >= 0 and self.tokens[candidate].is_space:
            candidate -= 1
        return candidate if candidate >= 0 else None

    def first_non_space(self) -> int:
        """First non-whitespace token, falling back to 0."""
        found = self.next_non_space(-1)
        return 0 if found is None else found

    def nearest_non_space(self, index: int) -> int:
        """``index`` itself if it is not whitespace, else the next (or previous) non-space token."""
        ref = self.get(index)
        if ref is not None and not ref.is_space:
            return index
        found = self.next_non_space(index)
        if found is None:
            found = self.previous_non_space(index)
        return index if found is None else found

    def find_at_time(self, time_ms: float) -> int | None:
        """Token to select when the playhead is moved to ``time_ms``.

        Only timed tokens are considered. A token containing the time wins;
        in a gap the following token wins; before the first timed token that
        token is chosen, after the last one the last token is. Ties go to the
        earliest position. None when nothing in this mode is timed.
        """
        last = None
        for ref in self.tokens:
            if not ref.node.is_timed:
                continue
            if ref.start <= time_ms <= ref.end or time_ms < ref.start:
                return ref.index
            last = ref.index
        return last

    def related(self, ref: TokenRef) -> int:
        """Map a token from another mode onto this one.

        To a coarser mode: the ancestor containing the token. To a finer mode:
        the token's first descendant. Positional, falls back to 0.
        """
        depth = self.mode.depth
        if ref.mode.depth > depth:
            found = self.index_of(ref.path[:depth + 1])
        elif ref.mode.depth < depth:
            found = self.first_descendant(ref.path)
        else:
            found = ref.index if self.get(ref.index) is not None else None
        return 0 if found is None else found

    def first_descendant(self, path: tuple[int, ...]) -> int | None:
        size = len(path)
        for ref in self.tokens:
            if ref.path[:size] == path:
                return ref.index
        return None

    def context(self, index: int) -> list[TokenRef]:
        """Non-whitespace tokens shown around the active one.

        Blocks and lines show a fixed window above and below; words show the
        active line with its neighbours in the same block; chars show only the
        active line.
        """
        if not self.tokens:
            return []
        active = self.tokens[max(0, min(index, len(self.tokens) - 1))]

        if self.mode in (Mode.BLOCKS, Mode.LINES):
            span = CONTEXT_WINDOW[self.mode.value]
            window = self.tokens[max(0, active.index - span):active.index + span + 1]
        elif self.mode is Mode.WORDS:
            nearby = (active.line_index - 1, active.line_index, active.line_index + 1)
            window = [
                ref for ref in self.tokens
                if ref.block_index == active.block_index and ref.line_index in nearby
            ]
        else:
            window = [ref for ref in self.tokens if ref.path[:2] == active.path[:2]]

        return [ref for ref in window if not ref.is_space]

    def is_complete(self) -> bool:
        """Every token that can be timed has both timestamps."""
        return all(ref.node.is_complete for ref in self.tokens if not ref.is_space)

    def timed_count(self) -> int:
        return sum(1 for ref in self.tokens if ref.node.is_complete)
