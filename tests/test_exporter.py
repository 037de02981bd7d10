"""Tests for exporter module (Layer 2)."""

import json
import logging
import os

import pytest

from lyric_timing.exporter import (
    export_document,
    export_filename,
    load_document,
    parse_document,
    timing_stats,
    write_export,
)
from lyric_timing.models import DocumentError, Voice
from lyric_timing.segmenter import segment_lyrics


def _recorded():
    """"one two three" with its line and two words recorded."""
    doc = segment_lyrics("one two three", audio_file="song.mp3")
    line = doc.blocks[0].lines[0]
    line.start, line.end, line.voice = 400, 1600, 1
    line.words[0].start, line.words[0].end = 500, 800
    line.words[2].start, line.words[2].end = 1200, 1500
    return doc


# --- Import ---

def test_parse_document_minimal():
    doc = parse_document('{"blocks": [{"lines": [{"text": "la", "start": 10, "end": 20}]}]}')
    assert doc.blocks[0].lines[0].end == 20
    assert [v.id for v in doc.voices] == [1]


@pytest.mark.parametrize("text", [
    "not json",
    '{"foo": []}',
    "[1, 2]",
    '{"blocks": {"a": 1}}',
    '{"blocks": [{"lines": [{"text": "x", "start": "late"}]}]}',
])
def test_parse_document_rejects(text):
    with pytest.raises(DocumentError):
        parse_document(text)


def test_parse_document_error_message():
    with pytest.raises(DocumentError, match="Invalid JSON"):
        parse_document("{")


def test_parse_document_warns_unknown_voice(caplog):
    text = json.dumps({"voices": [{"id": 1}], "blocks": [{"voice": 4, "lines": []}]})
    with caplog.at_level(logging.WARNING, logger="lyric_timing.exporter"):
        doc = parse_document(text)
    assert doc.blocks[0].voice == 4
    assert "unknown voice ids: [4]" in caplog.text


def test_load_document(tmp_path):
    path = tmp_path / "song.json"
    path.write_text(json.dumps(segment_lyrics("la la").to_dict()))
    doc = load_document(str(path))
    assert doc.blocks[0].lines[0].words[1].text == "la"


# --- Export ---

def test_export_document_cleans():
    doc = _recorded()
    data = export_document(doc)
    words = data["blocks"][0]["lines"][0]["words"]
    assert [(w["start"], w["end"]) for w in words] == [(400, 800), (800, 1200), (1200, 1600)]
    assert data["version"] == "1"
    assert data["audioFile"] == "song.mp3"
    # Working document untouched
    assert doc.blocks[0].lines[0].words[1].end == 0


def test_export_document_voices_override():
    data = export_document(_recorded(), voices=[Voice(id=1, name="Lead"), Voice(id=2)])
    assert [v["name"] for v in data["voices"]] == ["Lead", ""]


def test_export_round_trip():
    """Re-importing an export and exporting again is lossless."""
    first = export_document(_recorded())
    second = export_document(parse_document(json.dumps(first)))
    assert second == first


def test_export_filename():
    assert export_filename("song.mp3") == "song.mp3.json"
    assert export_filename("/music/My Song.wav") == "My Song.wav.json"
    assert export_filename(None) == "karaoke.json"
    assert export_filename("") == "karaoke.json"


def test_timing_stats():
    stats = timing_stats(_recorded())
    assert stats["lines"] == {"timed": 1, "total": 1}
    assert stats["words"] == {"timed": 2, "total": 3}
    assert stats["chars"]["timed"] == 0


def test_write_export(tmp_path):
    """Writes the export and an output.json manifest."""
    out = str(tmp_path / "final")
    path = write_export(_recorded(), out, project="song")

    assert path == os.path.join(out, "song.mp3.json")
    with open(path) as f:
        data = json.load(f)
    assert data["blocks"][0]["lines"][0]["text"] == ""

    with open(os.path.join(out, "output.json")) as f:
        manifest = json.load(f)
    assert manifest["project"] == "song"
    assert manifest["document"] == "song.mp3.json"
    assert manifest["stats"]["words"]["total"] == 3
    assert "generated_at" in manifest
