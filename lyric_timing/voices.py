"""Voice roster management and voice id resolution."""

import logging
import re

from lyric_timing.constants import DEFAULT_POSITION, NEW_VOICE_COLOR, POSITIONS
from lyric_timing.models import Document, Mode, Voice

logger = logging.getLogger(__name__)

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
VOICE_FIELDS = ("name", "default_position", "color")


def find_voice(voices: list[Voice], voice_id: int) -> Voice | None:
    for voice in voices:
        if voice.id == voice_id:
            return voice
    return None


def add_voice(voices: list[Voice]) -> list[Voice]:
    """Append a new blank voice with the next free id."""
    next_id = max((voice.id for voice in voices), default=0) + 1
    logger.info("Added voice %d", next_id)
    return voices + [Voice(id=next_id, name="", default_position=DEFAULT_POSITION, color=NEW_VOICE_COLOR)]


def remove_voice(voices: list[Voice], voice_id: int, current: int) -> tuple[list[Voice], int]:
    """Remove a voice, keeping at least one.

    Returns the new roster and the current voice id, moved to the first
    remaining voice when the current one was removed.
    """
    if len(voices) <= 1:
        raise ValueError("Cannot remove the last voice")
    if find_voice(voices, voice_id) is None:
        raise ValueError(f"No voice with id {voice_id}")

    remaining = [voice for voice in voices if voice.id != voice_id]
    if current == voice_id:
        current = remaining[0].id
        logger.info("Removed current voice %d, switched to voice %d", voice_id, current)
    return remaining, current


def update_voice(voices: list[Voice], voice_id: int, field_name: str, value: str) -> list[Voice]:
    """Change one field of a voice. Positions and colours are validated."""
    if field_name not in VOICE_FIELDS:
        raise ValueError(f"Unknown voice field '{field_name}', expected one of {VOICE_FIELDS}")
    if field_name == "default_position" and value not in POSITIONS:
        raise ValueError(f"Invalid position '{value}', expected one of {POSITIONS}")
    if field_name == "color" and not _COLOR_RE.match(value):
        raise ValueError(f"Invalid colour '{value}', expected #RRGGBB")
    if find_voice(voices, voice_id) is None:
        raise ValueError(f"No voice with id {voice_id}")

    updated = []
    for voice in voices:
        if voice.id == voice_id:
            voice = Voice(**{**voice.__dict__, field_name: value})
        updated.append(voice)
    return updated


def unresolved_voice_ids(document: Document) -> set[int]:
    """Voice ids used by tokens but missing from the roster (0 is unassigned)."""
    known = {voice.id for voice in document.voices}
    used = {node.voice for mode in Mode for _, node in document.iter_nodes(mode)}
    return {voice_id for voice_id in used if voice_id and voice_id not in known}


def effective_voice(document: Document, path: tuple[int, ...]) -> Voice | None:
    """Voice a renderer uses for a node: its own, else the nearest ancestor's."""
    for depth in range(len(path), 0, -1):
        voice_id = document.node(path[:depth]).voice
        voice = find_voice(document.voices, voice_id)
        if voice is not None:
            return voice
        if voice_id:
            logger.warning("Unknown voice %d at %s, using the parent's voice", voice_id, path[:depth])
    return None
