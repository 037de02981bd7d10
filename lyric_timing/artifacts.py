"""Project directory management, JSON artifacts, and per-project status."""

import json
import os
import re
import shutil

from lyric_timing.constants import OUTPUT_DIR
from lyric_timing.controller import EditorSession
from lyric_timing.models import Document, Mode
from lyric_timing.token_index import TokenIndex

DOCUMENT_FILE = "lyrics.json"
SESSION_FILE = "session.json"
PROJECT_FILE = "project.json"
FINAL_DIR = "final"


def slug_from_path(source_path: str) -> str:
    """Convert a lyrics filename to an output directory slug.

    "Bohemian Rhapsody.txt" → "bohemian_rhapsody"
    "/path/to/My Song (live).json" → "my_song_live"
    """
    basename = os.path.splitext(os.path.basename(source_path))[0]
    # Replace non-alphanumeric with underscore, collapse multiples, strip edges
    slug = re.sub(r"[^a-zA-Z0-9]+", "_", basename).strip("_").lower()
    return slug


def init_output_dir(source_path: str, output_base: str = OUTPUT_DIR) -> str:
    """Create output/<slug>/ and its final/ subdirectory.

    Returns the project directory path.
    """
    project_dir = os.path.join(output_base, slug_from_path(source_path))
    os.makedirs(os.path.join(project_dir, FINAL_DIR), exist_ok=True)
    return project_dir


def write_artifact(project_dir: str, filename: str, data: dict) -> str:
    """Write JSON artifact to project_dir/filename.

    Returns path to the written file.
    """
    path = os.path.join(project_dir, filename)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    return path


def load_artifact(project_dir: str, filename: str) -> dict | None:
    """Read JSON artifact. Returns None if file doesn't exist."""
    path = os.path.join(project_dir, filename)
    if not os.path.exists(path):
        return None
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def save_document(project_dir: str, document: Document) -> str:
    return write_artifact(project_dir, DOCUMENT_FILE, document.to_dict())


def load_document(project_dir: str) -> Document | None:
    data = load_artifact(project_dir, DOCUMENT_FILE)
    return Document.from_dict(data) if data is not None else None


def save_session(project_dir: str, session: EditorSession) -> str:
    return write_artifact(project_dir, SESSION_FILE, session.to_dict())


def load_session(project_dir: str) -> EditorSession | None:
    data = load_artifact(project_dir, SESSION_FILE)
    return EditorSession.from_dict(data) if data is not None else None


def invalidate_export(project_dir: str) -> bool:
    """Delete a stale final/ export after the working document changed.

    Returns True if anything was deleted.
    """
    final_dir = os.path.join(project_dir, FINAL_DIR)
    if not os.path.isdir(final_dir) or not os.listdir(final_dir):
        return False
    shutil.rmtree(final_dir)
    os.makedirs(final_dir, exist_ok=True)  # recreate empty dir
    return True


def get_project_status(project_dir: str) -> dict:
    """Return dict describing timing progress per mode and the export state."""
    status = {}

    document = load_document(project_dir)
    if document is None:
        status["document"] = {"state": "pending"}
    else:
        status["document"] = {"state": "done", "blocks": len(document.blocks)}
        for mode in Mode:
            tokens = TokenIndex(document, mode)
            timed = tokens.timed_count()
            if len(tokens) and tokens.is_complete():
                state = "done"
            elif timed:
                state = "partial"
            else:
                state = "pending"
            status[mode.value] = {"state": state, "timed": timed, "total": len(tokens)}

    final_dir = os.path.join(project_dir, FINAL_DIR)
    exported = os.path.isdir(final_dir) and any(
        name.endswith(".json") and name != "output.json" for name in os.listdir(final_dir)
    )
    status["export"] = {"state": "done" if exported else "pending"}
    return status


def list_projects(output_base: str = OUTPUT_DIR) -> list[str]:
    """List all project slugs under the output directory.

    Returns sorted list of directory names that contain a lyrics.json.
    """
    if not os.path.exists(output_base):
        return []
    projects = []
    for name in os.listdir(output_base):
        project_dir = os.path.join(output_base, name)
        if os.path.isdir(project_dir) and os.path.exists(os.path.join(project_dir, DOCUMENT_FILE)):
            projects.append(name)
    return sorted(projects)
