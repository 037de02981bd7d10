"""CLI interface with subcommand routing and recording script replay."""

import argparse
import logging
import os
import sys

from lyric_timing.artifacts import (
    FINAL_DIR,
    PROJECT_FILE,
    get_project_status,
    init_output_dir,
    invalidate_export,
    list_projects,
    load_artifact,
    load_document,
    load_session,
    save_document,
    save_session,
    slug_from_path,
    write_artifact,
)
from lyric_timing.constants import OUTPUT_DIR, VERSION
from lyric_timing.controller import Event
from lyric_timing.editor import Editor
from lyric_timing.exporter import load_document as read_document_file
from lyric_timing.exporter import write_export
from lyric_timing.models import DocumentError, Mode
from lyric_timing.playback import frame_at, generate_linear_timing, has_any_timing, prepare_for_playback
from lyric_timing.recorder import to_ms
from lyric_timing.segmenter import segment_lyrics
from lyric_timing.token_index import TokenIndex
from lyric_timing.transport import ClockTransport, audio_duration_ms


def _fail(message: str, hint: str | None = None):
    print(f"Error: {message}", file=sys.stderr)
    if hint:
        print(hint, file=sys.stderr)
    raise SystemExit(1)


def _get_project_dir(slug: str) -> str:
    """Get project directory path, verify it exists."""
    project_dir = os.path.join(OUTPUT_DIR, slug)
    if not os.path.isdir(project_dir):
        _fail(f"Project '{slug}' not found.", "Run 'lyric-timing new <lyrics.txt>' to create a project.")
    if load_artifact(project_dir, PROJECT_FILE) is None or load_document(project_dir) is None:
        _fail(f"Project '{slug}' is incomplete (no lyrics.json).")
    return project_dir


def _probe_audio(audio_path: str | None) -> int | None:
    """Duration of the project's audio file, validated up front."""
    if not audio_path:
        return None
    if not os.path.exists(audio_path):
        _fail(f"Audio file not found: {audio_path}")
    try:
        return audio_duration_ms(audio_path)
    except Exception as e:
        _fail(f"Could not read audio file: {e}")


def _create_project(source_path: str, document, audio_path: str | None) -> str:
    slug = slug_from_path(source_path)
    if not slug:
        _fail(f"Cannot derive a project name from: {source_path}")
    if os.path.exists(os.path.join(OUTPUT_DIR, slug, PROJECT_FILE)):
        _fail(f"Project '{slug}' already exists.", f"Use 'lyric-timing record {slug} <script>' to continue timing.")

    duration_ms = _probe_audio(audio_path)
    if audio_path:
        document.audio_file = os.path.basename(audio_path)

    project_dir = init_output_dir(source_path, output_base=OUTPUT_DIR)
    editor = Editor()
    editor.load_document(document)
    save_document(project_dir, editor.document)
    save_session(project_dir, editor.session)
    write_artifact(project_dir, PROJECT_FILE, {
        "source": os.path.abspath(source_path),
        "audio": os.path.abspath(audio_path) if audio_path else None,
        "duration_ms": duration_ms,
    })
    return slug


def _token_counts(document) -> str:
    counts = [f"{len(TokenIndex(document, mode))} {mode.value}" for mode in Mode]
    return ", ".join(counts)


def cmd_new(args):
    """Create a new project from a plain lyrics file."""
    file_path = args.file
    if not os.path.exists(file_path):
        _fail(f"File not found: {file_path}")

    with open(file_path, encoding="utf-8") as f:
        text = f.read()
    if not text.strip():
        _fail(f"File is empty: {file_path}")

    document = segment_lyrics(text)
    slug = _create_project(file_path, document, args.audio)

    print(f"Created project: {slug}")
    print(f"Segmented {_token_counts(document)}")
    print(f"Run 'lyric-timing status {slug}' to review, or 'lyric-timing record {slug} <script>' to time it.")


def cmd_import(args):
    """Create a project from a previously exported timing file."""
    file_path = args.file
    if not os.path.exists(file_path):
        _fail(f"File not found: {file_path}")
    try:
        document = read_document_file(file_path)
    except DocumentError as e:
        _fail(f"Could not import {file_path}: {e}")

    slug = _create_project(file_path, document, args.audio)
    print(f"Imported project: {slug}")
    print(f"Loaded {_token_counts(document)}")


def cmd_status(args):
    """Show project status."""
    slug = args.slug
    project_dir = _get_project_dir(slug)
    project = load_artifact(project_dir, PROJECT_FILE)
    document = load_document(project_dir)
    session = load_session(project_dir)
    status = get_project_status(project_dir)

    print(f"Project: {slug}")
    print(f"Source:  {project.get('source', 'unknown')}")
    if project.get("audio"):
        print(f"Audio:   {project['audio']} ({project.get('duration_ms') or 0} ms)")
    else:
        print("Audio:   none")

    print("Voices:")
    current = session.current_voice if session else None
    for voice in document.voices:
        marker = "*" if voice.id == current else " "
        name = voice.name or "(unnamed)"
        print(f"  {marker} {voice.id:<3} {name:<15} {voice.default_position:<3} {voice.color}")

    if session:
        unlocked = ", ".join(m.value for m in sorted(session.unlocked, key=lambda m: m.depth))
        print(f"Mode:    {session.mode.value} (token {session.active_index})")
        print(f"Unlocked: {unlocked}")
        print(f"Sync lock: {'on' if session.sync_locked else 'off'}")

    print("Timing:")
    for mode in Mode:
        info = status.get(mode.value, {"state": "pending", "timed": 0, "total": 0})
        state = info["state"]
        marker = "[done]" if state == "done" else "[part]" if state == "partial" else "[----]"
        print(f"  {marker} {mode.value:<7} {info['timed']}/{info['total']}")

    export_marker = "[done]" if status["export"]["state"] == "done" else "[----]"
    print(f"  {export_marker} export")


# --- Recording scripts ---

def _script_clock() -> float:
    """Replays only move the playhead through explicit timestamps."""
    return 0.0


def _parse_time(value: str) -> int:
    """'1250' is milliseconds, '1.25s' is seconds."""
    if value.endswith("s"):
        return to_ms(float(value[:-1]))
    return int(value)


def _parse_direction(value: str) -> int:
    direction = int(value)
    if direction not in (1, -1):
        raise ValueError(f"direction must be +1 or -1, got {value}")
    return direction


def _report(event: Event, editor: Editor) -> None:
    mode = editor.session.mode
    if event is Event.MODE_COMPLETE:
        print(f"Finished {mode.value} mode. Use 'accept' to proceed to {mode.child.value} mode.")
    elif event is Event.ALL_COMPLETE:
        print("Finished all recording modes. Your timing file is ready to export.")
    elif event is Event.REJECTED:
        print("Mode is locked: record more of the current mode first.")


def _apply_event(editor: Editor, transport: ClockTransport, command: str, values: list[str]) -> None:
    """Apply one script line to the editor."""
    if command == "down":
        if values:
            transport.seek(_parse_time(values[0]))
        editor.hold_down()
    elif command == "up":
        if values:
            transport.seek(_parse_time(values[0]))
        _report(editor.hold_up(), editor)
    elif command == "next":
        editor.navigate(1)
    elif command == "prev":
        editor.navigate(-1)
    elif command == "parent":
        editor.navigate_parent(_parse_direction(values[0]))
    elif command == "mode":
        _report(editor.select_mode(Mode(values[0])), editor)
    elif command == "accept":
        editor.accept_next_mode()
    elif command == "voice":
        editor.set_current_voice(int(values[0]))
    elif command == "seek":
        editor.seek(_parse_time(values[0]))
    elif command == "lock":
        if values[0] not in ("on", "off"):
            raise ValueError("'lock' requires 'on' or 'off'")
        editor.set_sync_lock(values[0] == "on")
    elif command == "play":
        transport.play()
    elif command == "pause":
        transport.pause()
    else:
        raise ValueError(f"Unknown event '{command}'")


def cmd_record(args):
    """Replay a script of hold-key and navigation events against a project."""
    slug = args.slug
    project_dir = _get_project_dir(slug)
    project = load_artifact(project_dir, PROJECT_FILE)

    if args.script == "-":
        lines = sys.stdin.read().splitlines()
    else:
        if not os.path.exists(args.script):
            _fail(f"File not found: {args.script}")
        with open(args.script, encoding="utf-8") as f:
            lines = f.read().splitlines()

    transport = ClockTransport(duration_ms=project.get("duration_ms"), clock=_script_clock)
    transport.play()
    editor = Editor(load_document(project_dir), transport=transport, session=load_session(project_dir))

    for number, line in enumerate(lines, start=1):
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        command, *values = line.split()
        try:
            _apply_event(editor, transport, command, values)
        except (ValueError, IndexError) as e:
            _fail(f"Line {number}: {line!r}: {e}", "Nothing was saved.")

    # A hold left open at the end of the script is released at the current playhead
    if editor.session.holding:
        _report(editor.hold_up(), editor)

    save_document(project_dir, editor.document)
    save_session(project_dir, editor.session)
    if invalidate_export(project_dir):
        print(f"Invalidated: {FINAL_DIR} (re-run export)")

    ref = editor.active_token
    where = f"{ref.index} {ref.text!r}" if ref is not None else str(editor.session.active_index)
    print(f"Mode: {editor.session.mode.value}, token {where}")


# --- Settings ---

SET_KEYS = {
    "voice-add", "voice-remove", "voice-name", "voice-position", "voice-color",
    "current-voice", "sync-lock", "mode",
}


def cmd_set(args):
    """Update voices and session settings."""
    slug = args.slug
    project_dir = _get_project_dir(slug)
    key = args.key
    values = args.values

    if key not in SET_KEYS:
        _fail(f"Invalid setting key: {key}", f"Valid keys: {', '.join(sorted(SET_KEYS))}")

    editor = Editor(load_document(project_dir), session=load_session(project_dir))
    try:
        if key == "voice-add":
            voice_id = editor.add_voice()
            message = f"Added voice {voice_id}"
        elif key == "voice-remove":
            if not values:
                _fail("'set voice-remove' requires <id>")
            editor.remove_voice(int(values[0]))
            message = f"Removed voice {values[0]}"
        elif key in ("voice-name", "voice-position", "voice-color"):
            if len(values) < 2:
                _fail(f"'set {key}' requires <id> and <value>")
            field_name = {"voice-name": "name", "voice-position": "default_position", "voice-color": "color"}[key]
            value = " ".join(values[1:])
            editor.update_voice(int(values[0]), field_name, value)
            message = f"Updated: voice {values[0]} {field_name} → {value}"
        elif key == "current-voice":
            if not values:
                _fail("'set current-voice' requires <id>")
            editor.set_current_voice(int(values[0]))
            message = f"Updated: current voice → {values[0]}"
        elif key == "sync-lock":
            if not values or values[0] not in ("on", "off"):
                _fail("'set sync-lock' requires 'on' or 'off'")
            editor.set_sync_lock(values[0] == "on")
            message = f"Updated: sync lock → {values[0]}"
        else:
            if not values:
                _fail("'set mode' requires <mode>")
            if editor.select_mode(Mode(values[0])) is Event.REJECTED:
                _fail(f"Mode '{values[0]}' is locked.")
            message = f"Updated: mode → {values[0]}"
    except ValueError as e:
        _fail(str(e))

    save_document(project_dir, editor.document)
    save_session(project_dir, editor.session)
    print(message)
    if key.startswith("voice-") and invalidate_export(project_dir):
        print(f"Invalidated: {FINAL_DIR} (re-run export)")


def cmd_fill(args):
    """Spread linear timing over an untimed project."""
    project_dir = _get_project_dir(args.slug)
    project = load_artifact(project_dir, PROJECT_FILE)
    document = load_document(project_dir)

    if has_any_timing(document):
        _fail("Project already has timing; linear fill only applies to untimed lyrics.")
    duration_ms = args.duration_ms or project.get("duration_ms")
    if not duration_ms:
        _fail("No duration known.", "Pass --duration-ms or create the project with --audio.")

    timed = generate_linear_timing(document, duration_ms)
    if timed is document:
        _fail("Lyrics contain no characters to time.")
    save_document(project_dir, timed)
    invalidate_export(project_dir)
    print(f"Filled linear timing over {duration_ms} ms")


def _bar(percent: float, width: int = 20) -> str:
    filled = int(percent / 100 * width)
    return "#" * filled + "." * (width - filled)


def cmd_play(args):
    """Show what the renderer highlights at a point in time."""
    project_dir = _get_project_dir(args.slug)
    project = load_artifact(project_dir, PROJECT_FILE)
    document = prepare_for_playback(load_document(project_dir), project.get("duration_ms"))

    frame = frame_at(document, args.at)
    print(f"At {args.at} ms:")
    for mode in Mode:
        index = frame.active[mode]
        if index is None:
            print(f"  {mode.value:<7} -")
            continue
        text = TokenIndex(document, mode)[index].text.replace("\n", " / ")
        percent = frame.progress[mode]
        print(f"  {mode.value:<7} [{_bar(percent)}] {percent:5.1f}%  {text!r}")


def cmd_export(args):
    """Write the cleaned timing document."""
    slug = args.slug
    project_dir = _get_project_dir(slug)
    output_dir = args.output or os.path.join(project_dir, FINAL_DIR)
    path = write_export(load_document(project_dir), output_dir, project=slug)
    print(f"Exported: {path}")


def cmd_list(args):
    """List all projects."""
    projects = list_projects(output_base=OUTPUT_DIR)
    if not projects:
        print("No projects found.")
        return
    print("Projects:")
    for name in projects:
        status = get_project_status(os.path.join(OUTPUT_DIR, name))
        export_state = status.get("export", {}).get("state", "pending")
        marker = "[done]" if export_state == "done" else "[----]"
        print(f"  {marker} {name}")


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="lyric-timing",
        description="Lyric timing editor: align lyrics to audio by block, line, word and character",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # new
    new_parser = subparsers.add_parser("new", help="Create a new project from a lyrics text file")
    new_parser.add_argument("file", help="Path to the lyrics text file")
    new_parser.add_argument("--audio", help="Audio file the lyrics are timed against")
    new_parser.set_defaults(func=cmd_new)

    # import
    import_parser = subparsers.add_parser("import", help="Create a project from an exported timing file")
    import_parser.add_argument("file", help="Path to the timing JSON file")
    import_parser.add_argument("--audio", help="Audio file the lyrics are timed against")
    import_parser.set_defaults(func=cmd_import)

    # status
    status_parser = subparsers.add_parser("status", help="Show project status")
    status_parser.add_argument("slug", help="Project slug")
    status_parser.set_defaults(func=cmd_status)

    # record
    record_parser = subparsers.add_parser("record", help="Replay a script of recording events")
    record_parser.add_argument("slug", help="Project slug")
    record_parser.add_argument("script", help="Event script file, or '-' for stdin")
    record_parser.set_defaults(func=cmd_record)

    # set
    set_parser = subparsers.add_parser("set", help="Update voices and session settings")
    set_parser.add_argument("slug", help="Project slug")
    set_parser.add_argument("key", help="Setting key")
    set_parser.add_argument("values", nargs="*", help="Setting value(s)")
    set_parser.set_defaults(func=cmd_set)

    # fill
    fill_parser = subparsers.add_parser("fill", help="Spread linear timing over untimed lyrics")
    fill_parser.add_argument("slug", help="Project slug")
    fill_parser.add_argument("--duration-ms", type=int, help="Total duration (defaults to the audio length)")
    fill_parser.set_defaults(func=cmd_fill)

    # play
    play_parser = subparsers.add_parser("play", help="Show the highlighted tokens at a time")
    play_parser.add_argument("slug", help="Project slug")
    play_parser.add_argument("--at", type=int, required=True, help="Playhead position in ms")
    play_parser.set_defaults(func=cmd_play)

    # export
    export_parser = subparsers.add_parser("export", help="Export the cleaned timing document")
    export_parser.add_argument("slug", help="Project slug")
    export_parser.add_argument("-o", "--output", help="Output directory (default: project final/)")
    export_parser.set_defaults(func=cmd_export)

    # list
    list_parser = subparsers.add_parser("list", help="List all projects")
    list_parser.set_defaults(func=cmd_list)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    args.func(args)


if __name__ == "__main__":
    main()
