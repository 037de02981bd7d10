"""Audio transport: the playhead the editor records against."""

import logging
import time
from typing import Callable, Protocol

from pydub import AudioSegment

from lyric_timing.constants import PLAYBACK_SPEEDS

logger = logging.getLogger(__name__)


class AudioTransport(Protocol):
    duration_ms: int | None

    @property
    def current_time_ms(self) -> float: ...

    @property
    def is_paused(self) -> bool: ...

    @property
    def is_ended(self) -> bool: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def seek(self, time_ms: float) -> None: ...


def audio_duration_ms(path: str) -> int:
    """Length of an audio file in milliseconds (any format ffmpeg reads)."""
    return len(AudioSegment.from_file(path))


class ClockTransport:
    """Playhead driven by a monotonic clock, scaled by the playback rate.

    Stops at ``duration_ms`` when one is known. Pass a fixed ``clock`` to get
    a playhead that only moves on seek (scripted replays, tests).
    """

    def __init__(
        self,
        duration_ms: int | None = None,
        clock: Callable[[], float] = time.monotonic,
        rate: float = 1.0,
    ) -> None:
        self.duration_ms = duration_ms
        self._clock = clock
        self._rate = self._check_rate(rate)
        self._position_ms = 0.0
        self._started_at: float | None = None

    @classmethod
    def from_file(cls, path: str, **kwargs) -> "ClockTransport":
        duration = audio_duration_ms(path)
        logger.debug("Loaded %s (%dms)", path, duration)
        return cls(duration_ms=duration, **kwargs)

    @staticmethod
    def _check_rate(rate: float) -> float:
        if rate not in PLAYBACK_SPEEDS:
            raise ValueError(f"Unsupported playback speed {rate}, expected one of {PLAYBACK_SPEEDS}")
        return rate

    def _clamp(self, time_ms: float) -> float:
        time_ms = max(0.0, time_ms)
        if self.duration_ms is not None:
            time_ms = min(time_ms, float(self.duration_ms))
        return time_ms

    @property
    def rate(self) -> float:
        return self._rate

    @rate.setter
    def rate(self, value: float) -> None:
        position = self.current_time_ms
        self._rate = self._check_rate(value)
        self._position_ms = position
        if self._started_at is not None:
            self._started_at = self._clock()

    @property
    def current_time_ms(self) -> float:
        if self._started_at is None:
            return self._position_ms
        elapsed = (self._clock() - self._started_at) * 1000 * self._rate
        return self._clamp(self._position_ms + elapsed)

    @property
    def is_paused(self) -> bool:
        return self._started_at is None

    @property
    def is_ended(self) -> bool:
        return self.duration_ms is not None and self.current_time_ms >= self.duration_ms

    def play(self) -> None:
        if self._started_at is None:
            self._started_at = self._clock()

    def pause(self) -> None:
        if self._started_at is not None:
            self._position_ms = self.current_time_ms
            self._started_at = None

    def seek(self, time_ms: float) -> None:
        self._position_ms = self._clamp(time_ms)
        if self._started_at is not None:
            self._started_at = self._clock()
