"""Import timed lyric JSON and export cleaned documents with a manifest."""

import json
import logging
import os
from datetime import datetime, timezone

from lyric_timing.constants import DEFAULT_EXPORT_NAME, DOCUMENT_VERSION, VERSION
from lyric_timing.models import Document, DocumentError, Mode, Voice
from lyric_timing.propagation import cleanup
from lyric_timing.token_index import TokenIndex
from lyric_timing.voices import unresolved_voice_ids

logger = logging.getLogger(__name__)


def parse_document(text: str) -> Document:
    """Parse exported (or hand-written) JSON back into a document.

    Raises DocumentError with a message fit for the operator when the text
    is not JSON or has no "blocks" array.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DocumentError(f"Invalid JSON: {e.msg} (line {e.lineno})") from e

    document = Document.from_dict(data)
    missing = unresolved_voice_ids(document)
    if missing:
        logger.warning("Tokens reference unknown voice ids: %s", sorted(missing))
    return document


def load_document(path: str) -> Document:
    with open(path, encoding="utf-8") as f:
        return parse_document(f.read())


def export_document(document: Document, voices: list[Voice] | None = None) -> dict:
    """Cleaned, interpolated export dict. The input document is not modified."""
    cleaned = cleanup(document)
    if voices is not None:
        cleaned.voices = list(voices)
    cleaned.version = DOCUMENT_VERSION
    return cleaned.to_dict()


def export_filename(audio_file: str | None) -> str:
    """"song.mp3" → "song.mp3.json"; no audio file → "karaoke.json"."""
    name = os.path.basename(audio_file) if audio_file else ""
    return f"{name or DEFAULT_EXPORT_NAME}.json"


def timing_stats(document: Document) -> dict:
    """Timed / total token counts per mode."""
    stats = {}
    for mode in Mode:
        tokens = TokenIndex(document, mode)
        stats[mode.value] = {"timed": tokens.timed_count(), "total": len(tokens)}
    return stats


def write_export(
    document: Document,
    output_dir: str,
    voices: list[Voice] | None = None,
    project: str = "",
) -> str:
    """Write the cleaned export and an output.json manifest into output_dir.

    Returns path to the exported document.
    """
    os.makedirs(output_dir, exist_ok=True)
    data = export_document(document, voices)

    output_path = os.path.join(output_dir, export_filename(document.audio_file))
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

    manifest = {
        "project": project,
        "document": os.path.basename(output_path),
        "audio_file": document.audio_file,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "engine_version": VERSION,
        "voices": len(data["voices"]),
        "stats": timing_stats(document),
    }
    manifest_path = os.path.join(output_dir, "output.json")
    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)

    logger.info("Exported %s", output_path)
    return output_path
