"""Data models for timed lyric documents."""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Iterator

from lyric_timing.constants import (
    DEFAULT_POSITION,
    DEFAULT_VOICE_COLOR,
    DOCUMENT_VERSION,
    MODES,
    UNASSIGNED_VOICE,
    UNSET_MS,
)


class DocumentError(ValueError):
    """Raised when a document cannot be read as timed lyrics."""


class Mode(str, Enum):
    """Timing granularity, ordered coarse to fine."""

    BLOCKS = "blocks"
    LINES = "lines"
    WORDS = "words"
    CHARS = "chars"

    @property
    def depth(self) -> int:
        return MODES.index(self.value)

    @property
    def parent(self) -> "Mode | None":
        """Next coarser mode, None for blocks."""
        if self.depth == 0:
            return None
        return Mode(MODES[self.depth - 1])

    @property
    def child(self) -> "Mode | None":
        """Next finer mode, None for chars."""
        if self.depth == len(MODES) - 1:
            return None
        return Mode(MODES[self.depth + 1])


def is_space_text(text: str) -> bool:
    """Whitespace-only (or empty) text is never timed directly."""
    return text.strip() == ""


def _int_field(data: dict, key: str, default: int) -> int:
    value = data.get(key, default)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DocumentError(f"Field '{key}' must be a number, got {value!r}")
    return int(round(value))


def _str_field(data: dict, key: str, default: str) -> str:
    value = data.get(key, default)
    if value is None:
        return default
    return str(value)


@dataclass
class Voice:
    id: int
    name: str = ""
    default_position: str = DEFAULT_POSITION
    color: str = DEFAULT_VOICE_COLOR

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "default_position": self.default_position,
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Voice":
        if not isinstance(data, dict):
            raise DocumentError(f"Voice entries must be objects, got {data!r}")
        position = data.get("default_position", data.get("defaultPosition", DEFAULT_POSITION))
        return cls(
            id=_int_field(data, "id", 0),
            name=_str_field(data, "name", ""),
            default_position=position or DEFAULT_POSITION,
            color=_str_field(data, "color", DEFAULT_VOICE_COLOR),
        )


@dataclass
class Token:
    """Timed text span. Subclasses add an ordered list of child tokens."""

    text: str = ""
    start: int = UNSET_MS
    end: int = UNSET_MS
    voice: int = UNASSIGNED_VOICE
    position: str = ""

    children_field: ClassVar[str | None] = None
    child_type: ClassVar[type | None] = None

    @property
    def is_timed(self) -> bool:
        """Anything other than the (0, 0) sentinel."""
        return not (self.start == UNSET_MS and self.end == UNSET_MS)

    @property
    def is_complete(self) -> bool:
        """Both timestamps recorded. A start of exactly 0 ms is a real value."""
        return self.is_timed and self.end > 0

    @property
    def children(self) -> list | None:
        if self.children_field is None:
            return None
        return getattr(self, self.children_field)

    @children.setter
    def children(self, value: list | None) -> None:
        setattr(self, self.children_field, value)

    def to_dict(self) -> dict:
        data = {
            "text": self.text,
            "start": self.start,
            "end": self.end,
            "voice": self.voice,
            "position": self.position,
        }
        children = self.children
        if children is not None:
            data[self.children_field] = [child.to_dict() for child in children]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Token":
        if not isinstance(data, dict):
            raise DocumentError(f"{cls.__name__} entries must be objects, got {data!r}")
        node = cls(
            text=_str_field(data, "text", ""),
            start=_int_field(data, "start", UNSET_MS),
            end=_int_field(data, "end", UNSET_MS),
            voice=_int_field(data, "voice", UNASSIGNED_VOICE),
            position=_str_field(data, "position", ""),
        )
        if cls.children_field is not None:
            raw = data.get(cls.children_field)
            if raw is None:
                node.children = None
            elif isinstance(raw, list):
                node.children = [cls.child_type.from_dict(item) for item in raw]
            else:
                raise DocumentError(f"'{cls.children_field}' must be an array")
        return node


@dataclass
class Char(Token):
    pass


@dataclass
class Word(Token):
    chars: list[Char] | None = None

    children_field: ClassVar[str | None] = "chars"
    child_type: ClassVar[type | None] = Char


@dataclass
class Line(Token):
    words: list[Word] | None = None  # absent on legacy, word-less lines

    children_field: ClassVar[str | None] = "words"
    child_type: ClassVar[type | None] = Word


@dataclass
class Block(Token):
    lines: list[Line] = field(default_factory=list)

    children_field: ClassVar[str | None] = "lines"
    child_type: ClassVar[type | None] = Line

    @classmethod
    def from_dict(cls, data: dict) -> "Block":
        block = super().from_dict(data)
        if block.lines is None:
            block.lines = []
        return block


@dataclass
class Document:
    """Voices plus the block/line/word/char tree.

    Nodes are addressed positionally: (b,), (b, l), (b, l, w), (b, l, w, c).
    """

    blocks: list[Block] = field(default_factory=list)
    voices: list[Voice] = field(default_factory=list)
    audio_file: str | None = None
    version: str = DOCUMENT_VERSION

    def node(self, path: tuple[int, ...]) -> Token:
        """Resolve a node path. Raises IndexError for paths outside the tree."""
        if not path:
            raise IndexError("empty node path")
        node = self.blocks[path[0]]
        for index in path[1:]:
            children = node.children
            if children is None:
                raise IndexError(f"node path {path} descends into a missing level")
            node = children[index]
        return node

    def iter_nodes(self, mode: Mode) -> Iterator[tuple[tuple[int, ...], Token]]:
        """Yield (path, node) for every node at a level, in reading order."""
        for b, block in enumerate(self.blocks):
            if mode is Mode.BLOCKS:
                yield (b,), block
                continue
            for l, line in enumerate(block.lines):
                if mode is Mode.LINES:
                    yield (b, l), line
                    continue
                for w, word in enumerate(line.words or []):
                    if mode is Mode.WORDS:
                        yield (b, l, w), word
                        continue
                    for c, char in enumerate(word.chars or []):
                        yield (b, l, w, c), char

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "audioFile": self.audio_file,
            "voices": [voice.to_dict() for voice in self.voices],
            "blocks": [block.to_dict() for block in self.blocks],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Document":
        """Build a document from parsed JSON.

        Any object with a top-level "blocks" array is accepted; everything
        else is optional and defaults to the untimed state.
        """
        if not isinstance(data, dict):
            raise DocumentError("Document must be a JSON object")
        blocks = data.get("blocks")
        if not isinstance(blocks, list):
            raise DocumentError("Document has no 'blocks' array")

        raw_voices = data.get("voices") or []
        if not isinstance(raw_voices, list):
            raise DocumentError("'voices' must be an array")
        voices = [Voice.from_dict(item) for item in raw_voices]
        if not voices:
            voices = [Voice(id=1)]

        audio_file = data.get("audioFile")
        return cls(
            blocks=[Block.from_dict(item) for item in blocks],
            voices=voices,
            audio_file=str(audio_file) if audio_file is not None else None,
            version=str(data.get("version") or DOCUMENT_VERSION),
        )
