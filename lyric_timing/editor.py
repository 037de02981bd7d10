"""Editor facade: applies host events (hold key, arrows, seeks) to a document."""

import logging
from dataclasses import replace

from lyric_timing import controller
from lyric_timing.controller import EditorSession, Event
from lyric_timing.exporter import export_document, export_filename, parse_document
from lyric_timing.models import Document, Mode
from lyric_timing.propagation import round_ms
from lyric_timing.recorder import record
from lyric_timing.segmenter import segment_lyrics
from lyric_timing.token_index import TokenIndex, TokenRef
from lyric_timing.transport import AudioTransport, ClockTransport
from lyric_timing import voices as voice_roster

logger = logging.getLogger(__name__)


class EditorError(RuntimeError):
    """Raised for editor operations that need a loaded document."""


class Editor:
    """Single-operator timing editor.

    Every event is applied synchronously against the current document, the
    transport playhead and an immutable EditorSession that is replaced, never
    mutated.
    """

    def __init__(
        self,
        document: Document | None = None,
        transport: AudioTransport | None = None,
        session: EditorSession | None = None,
    ) -> None:
        self.transport = transport if transport is not None else ClockTransport()
        self.document = document
        self.session = session or EditorSession()
        if document is not None:
            self.session = controller.refresh_unlocked(self.session, document)

    # --- Loading ---

    def load_document(self, document: Document) -> None:
        """Replace the document and start a fresh session on its first token."""
        session = EditorSession(current_voice=document.voices[0].id if document.voices else 1)
        tokens = TokenIndex(document, session.mode)
        session = replace(session, active_index=tokens.first_non_space())
        self.document = document
        self.session = controller.refresh_unlocked(session, document)

    def load_text(self, lyrics: str, audio_file: str | None = None) -> None:
        self.load_document(segment_lyrics(lyrics, audio_file))

    def load_json(self, text: str) -> None:
        """Load previously exported JSON for re-editing.

        Raises DocumentError and keeps the current document when the text is
        not a valid timing document.
        """
        self.load_document(parse_document(text))

    def _require_document(self) -> Document:
        if self.document is None:
            raise EditorError("No lyrics loaded")
        return self.document

    # --- Views ---

    def tokens(self, mode: Mode | None = None) -> TokenIndex:
        return TokenIndex(self._require_document(), mode or self.session.mode)

    @property
    def active_token(self) -> TokenRef | None:
        if self.document is None:
            return None
        return self.tokens().get(self.session.active_index)

    def context(self) -> list[TokenRef]:
        return self.tokens().context(self.session.active_index)

    # --- Recording ---

    def _now_ms(self) -> int:
        return round_ms(self.transport.current_time_ms)

    def hold_down(self) -> bool:
        """Hold key pressed. Returns True when a start stamp was recorded.

        In chars mode the key also resumes playback. Nothing is recorded
        while the transport is paused or has reached the end of the track.
        """
        if self.session.holding:
            return False
        document = self._require_document()
        self.session = replace(self.session, holding=True)

        if self.session.mode is Mode.CHARS and self.transport.is_paused:
            self.transport.play()
        if self.session.recording or self.transport.is_paused or self.transport.is_ended:
            logger.debug("Hold ignored: transport paused, ended or already recording")
            return False

        self.session = replace(self.session, recording=True)
        recorded = record(self.session, document, "start", self._now_ms())
        self.session = controller.refresh_unlocked(self.session, document)
        return recorded

    def hold_up(self) -> Event:
        """Hold key released: commit the end stamp and advance.

        Returns MODE_COMPLETE or ALL_COMPLETE when the last token of the mode
        was just recorded.
        """
        if not self.session.holding:
            return Event.NONE
        document = self._require_document()
        self.session = replace(self.session, holding=False)

        if self.session.mode is Mode.CHARS and not self.transport.is_paused:
            self.transport.pause()
        if not self.session.recording:
            return Event.NONE

        record(self.session, document, "end", self._now_ms())
        self.session = controller.refresh_unlocked(replace(self.session, recording=False), document)
        self.session, event = controller.go_to_next(self.session, document)
        return event

    # --- Navigation ---

    def _follow_token(self) -> None:
        """With sync lock on, move the playhead to the active token's start."""
        if not self.session.sync_locked:
            return
        ref = self.active_token
        if ref is not None and ref.node.is_timed:
            self.transport.seek(ref.start)

    def _apply(self, result: tuple[EditorSession, Event]) -> Event:
        session, event = result
        self.session = controller.refresh_unlocked(session, self._require_document())
        if event is Event.MOVED:
            self._follow_token()
        return event

    def navigate(self, direction: int) -> Event:
        return self._apply(controller.navigate(self.session, self._require_document(), direction))

    def navigate_parent(self, direction: int) -> Event:
        return self._apply(controller.navigate_parent(self.session, self._require_document(), direction))

    def go_to_previous(self) -> Event:
        return self._apply(controller.go_to_previous(self.session, self._require_document()))

    def select_mode(self, mode: Mode | str) -> Event:
        return self._apply(controller.select_mode(self.session, self._require_document(), Mode(mode)))

    def accept_next_mode(self) -> Event:
        return self._apply(controller.accept_next_mode(self.session, self._require_document()))

    def seek(self, time_ms: float) -> bool:
        """Move the playhead. Dropped while the hold key is down.

        With sync lock on, the token playing at that time becomes active.
        """
        if self.session.holding:
            logger.debug("Seek to %sms dropped while holding", time_ms)
            return False
        self.transport.seek(time_ms)
        if self.session.sync_locked and self.document is not None:
            index = self.tokens().find_at_time(self.transport.current_time_ms)
            if index is not None and index != self.session.active_index:
                self.session = controller.refresh_unlocked(
                    replace(self.session, active_index=index), self.document,
                )
        return True

    def set_sync_lock(self, locked: bool) -> None:
        self.session = replace(self.session, sync_locked=locked)

    # --- Voices ---

    def set_current_voice(self, voice_id: int) -> None:
        document = self._require_document()
        if voice_roster.find_voice(document.voices, voice_id) is None:
            raise ValueError(f"No voice with id {voice_id}")
        self.session = replace(self.session, current_voice=voice_id)

    def add_voice(self) -> int:
        document = self._require_document()
        document.voices = voice_roster.add_voice(document.voices)
        return document.voices[-1].id

    def remove_voice(self, voice_id: int) -> None:
        document = self._require_document()
        document.voices, current = voice_roster.remove_voice(
            document.voices, voice_id, self.session.current_voice,
        )
        self.session = replace(self.session, current_voice=current)

    def update_voice(self, voice_id: int, field_name: str, value: str) -> None:
        document = self._require_document()
        document.voices = voice_roster.update_voice(document.voices, voice_id, field_name, value)

    # --- Export ---

    def export(self) -> dict:
        """Cleaned export dict of the current document."""
        return export_document(self._require_document())

    def export_filename(self) -> str:
        return export_filename(self._require_document().audio_file)
