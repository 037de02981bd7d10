"""Tests for editor module (Layer 3)."""

import json

import pytest

from lyric_timing.controller import Event
from lyric_timing.editor import Editor, EditorError
from lyric_timing.models import DocumentError, Mode
from lyric_timing.transport import ClockTransport


def _editor(transport, text="ab cd\nef\n\ngh"):
    editor = Editor(transport=transport)
    editor.load_text(text)
    return editor


def _hold(editor, clock, start_s, end_s):
    """Press the hold key at start_s and release at end_s (transport playing)."""
    clock.now = start_s
    editor.hold_down()
    clock.now = end_s
    return editor.hold_up()


# --- Loading ---

def test_no_document_export_raises():
    with pytest.raises(EditorError):
        Editor().export()
    with pytest.raises(EditorError):
        Editor().hold_down()


def test_load_text_starts_on_first_block(transport):
    editor = _editor(transport)
    assert editor.session.mode is Mode.BLOCKS
    assert editor.session.active_index == 0
    assert editor.active_token.text == "ab cd\nef"
    assert editor.session.unlocked == {Mode.BLOCKS, Mode.LINES}


def test_load_json_invalid_keeps_state(transport):
    """A bad file leaves the loaded document and session alone."""
    editor = _editor(transport)
    editor.navigate(1)
    document, session = editor.document, editor.session

    with pytest.raises(DocumentError):
        editor.load_json('{"foo": []}')

    assert editor.document is document
    assert editor.session is session


def test_load_json_reedit(transport):
    editor = _editor(transport)
    editor.load_json(json.dumps({"blocks": [{"lines": [{"text": "x", "start": 5, "end": 9}]}]}))
    assert editor.tokens(Mode.LINES)[0].end == 9


# --- Recording ---

def test_hold_records_and_advances(transport, clock):
    editor = _editor(transport)
    transport.play()

    event = _hold(editor, clock, 1.0, 5.0)

    block = editor.document.blocks[0]
    assert (block.start, block.end) == (1000, 5000)
    assert block.voice == 1
    assert event is Event.MOVED
    assert editor.session.active_index == 1


def test_hold_blocks_leaves_lines_untimed(transport, clock):
    """Recording blocks never touches finer levels."""
    editor = _editor(transport)
    transport.play()
    _hold(editor, clock, 1.0, 5.0)
    assert all(not line.is_timed for line in editor.document.blocks[0].lines)


def test_hold_last_token_offers_next_mode(transport, clock):
    editor = _editor(transport)
    transport.play()
    _hold(editor, clock, 1.0, 5.0)

    event = _hold(editor, clock, 6.0, 8.0)

    assert event is Event.MODE_COMPLETE
    assert editor.session.mode is Mode.BLOCKS
    assert editor.accept_next_mode() is Event.MOVED
    assert editor.session.mode is Mode.LINES
    assert editor.session.active_index == 0


def test_hold_while_paused_records_nothing(transport, clock):
    editor = _editor(transport)
    clock.now = 1.0
    assert not editor.hold_down()
    assert editor.hold_up() is Event.NONE
    assert not editor.document.blocks[0].is_timed
    assert editor.session.active_index == 0


def test_hold_at_end_of_track_records_nothing(clock):
    editor = _editor(ClockTransport(duration_ms=2000, clock=clock))
    editor.transport.play()
    editor.transport.seek(5000)

    assert editor.transport.is_ended
    assert not editor.hold_down()
    assert editor.hold_up() is Event.NONE
    assert not editor.document.blocks[0].is_timed


def test_repeated_hold_down_ignored(transport, clock):
    editor = _editor(transport)
    transport.play()
    clock.now = 1.0
    assert editor.hold_down()
    clock.now = 2.0
    assert not editor.hold_down()
    assert editor.document.blocks[0].start == 1000


def test_hold_unlocks_words_after_line(transport, clock):
    """A recorded line lets the operator try words."""
    editor = _editor(transport)
    editor.select_mode(Mode.LINES)
    transport.play()
    _hold(editor, clock, 1.0, 2.0)
    assert Mode.WORDS in editor.session.unlocked


def test_chars_mode_hold_plays_and_pauses(transport, clock):
    """In chars mode the hold key drives playback."""
    editor = _editor(transport, "ab")
    transport.play()
    _hold(editor, clock, 0.5, 2.0)       # block
    editor.accept_next_mode()
    _hold(editor, clock, 0.5, 2.0)       # line
    editor.select_mode(Mode.WORDS)
    _hold(editor, clock, 2.0, 3.0)       # word
    assert editor.select_mode(Mode.CHARS) is Event.MOVED
    transport.pause()

    clock.now = 10.0
    editor.hold_down()
    assert not transport.is_paused
    clock.now = 10.5
    event = editor.hold_up()

    assert transport.is_paused
    char = editor.document.blocks[0].lines[0].words[0].chars[0]
    assert (char.start, char.end) == (3000, 3500)
    assert event is Event.MOVED


def test_voice_stamped_on_start(transport, clock):
    editor = _editor(transport)
    voice_id = editor.add_voice()
    editor.set_current_voice(voice_id)
    transport.play()
    _hold(editor, clock, 1.0, 2.0)
    assert editor.document.blocks[0].voice == voice_id


# --- Seeking and sync lock ---

def test_seek_dropped_while_holding(transport, clock):
    editor = _editor(transport)
    transport.play()
    clock.now = 1.0
    editor.hold_down()
    assert not editor.seek(30000)
    assert transport.current_time_ms == pytest.approx(1000.0)


def test_seek_with_sync_lock_selects_token(transport, clock):
    editor = _editor(transport)
    transport.play()
    _hold(editor, clock, 1.0, 5.0)
    _hold(editor, clock, 6.0, 8.0)
    transport.pause()
    editor.set_sync_lock(True)

    assert editor.seek(2000)
    assert editor.session.active_index == 0
    editor.seek(5500)
    assert editor.session.active_index == 1


def test_seek_without_sync_lock_keeps_token(transport, clock):
    editor = _editor(transport)
    transport.play()
    _hold(editor, clock, 1.0, 5.0)
    transport.pause()
    editor.seek(2000)
    assert editor.session.active_index == 1


def test_navigate_with_sync_lock_moves_playhead(transport, clock):
    editor = _editor(transport)
    transport.play()
    _hold(editor, clock, 1.0, 5.0)
    _hold(editor, clock, 6.0, 8.0)
    transport.pause()
    editor.set_sync_lock(True)

    editor.navigate(-1)

    assert editor.session.active_index == 0
    assert transport.current_time_ms == 1000.0


def test_navigate_to_untimed_token_keeps_playhead(transport):
    editor = _editor(transport)
    editor.set_sync_lock(True)
    transport.seek(4200)
    editor.navigate(1)
    assert editor.session.active_index == 1
    assert transport.current_time_ms == 4200.0


# --- Views, voices and export ---

def test_context_for_active_line(transport):
    editor = _editor(transport)
    editor.select_mode(Mode.LINES)
    assert [ref.text for ref in editor.context()] == ["ab cd", "ef", "gh"]


def test_select_locked_mode(transport):
    editor = _editor(transport)
    assert editor.select_mode("chars") is Event.REJECTED
    assert editor.session.mode is Mode.BLOCKS


def test_set_unknown_voice(transport):
    editor = _editor(transport)
    with pytest.raises(ValueError):
        editor.set_current_voice(9)


def test_remove_current_voice(transport):
    editor = _editor(transport)
    second = editor.add_voice()
    editor.set_current_voice(second)
    editor.remove_voice(second)
    assert editor.session.current_voice == 1
    assert [v.id for v in editor.document.voices] == [1]


def test_update_voice(transport):
    editor = _editor(transport)
    editor.update_voice(1, "name", "Lead")
    assert editor.export()["voices"][0]["name"] == "Lead"


def test_export_and_filename(transport, clock):
    editor = Editor(transport=transport)
    editor.load_text("la la", audio_file="track.mp3")
    transport.play()
    _hold(editor, clock, 1.0, 2.0)

    data = editor.export()

    assert data["blocks"][0]["start"] == 1000
    assert "words" not in data["blocks"][0]["lines"][0]
    assert editor.export_filename() == "track.mp3.json"
