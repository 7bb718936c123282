from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable

from .config import ClickSettings, SessionConfig
from .errors import InvalidArgumentError
from .segments import Segment, cycle_duration, render
from .sinks import AudioSink
from .timeline import Timeline, build_session

_LOGGER = logging.getLogger("polyclick.scheduler")

SinkFactory = Callable[[], AudioSink]


class PlaybackState(str, Enum):
    IDLE = "idle"
    RENDERING = "rendering"
    LOOPING = "looping"
    STOPPED = "stopped"


class PlaybackScheduler:
    """Loops one cached bar of segments into a sink until cancelled.

    The sink is opened with ``open_sink`` only once the bar has been prepared,
    so a bad rhythm never touches the audio device. Each bar is queued in full,
    then the scheduler blocks in ``sink.drain()`` until it has played, checks
    the cancellation signal and queues the next one. The sink belongs to the
    scheduler and is closed when it stops.
    """

    def __init__(
        self,
        open_sink: SinkFactory,
        *,
        settings: ClickSettings | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        self._open_sink = open_sink
        self._settings = settings or ClickSettings()
        self._cancel = cancel or threading.Event()
        self._state = PlaybackState.IDLE
        self._timeline: Timeline | None = None
        self._segments: tuple[Segment, ...] = ()

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def timeline(self) -> Timeline | None:
        return self._timeline

    @property
    def segments(self) -> tuple[Segment, ...]:
        return self._segments

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def configure(self, session: SessionConfig) -> Timeline:
        if self._state is not PlaybackState.IDLE:
            raise InvalidArgumentError(f"cannot configure a scheduler that is {self._state.value}")
        self._state = PlaybackState.RENDERING
        try:
            timeline = build_session(session)
            segments = render(timeline, self._settings)
        except Exception:
            _LOGGER.warning("Failed to prepare %s", _describe(session), exc_info=True)
            self._state = PlaybackState.STOPPED
            raise
        self._timeline = timeline
        self._segments = segments
        _LOGGER.info(
            "Prepared %s: %d clicks per %.3fs bar",
            _describe(session),
            len(timeline.events),
            cycle_duration(segments),
        )
        return timeline

    def run(self, max_bars: int | None = None) -> int:
        """Play bars until cancelled (or ``max_bars`` have played); return the count."""

        if self._state is not PlaybackState.RENDERING:
            raise InvalidArgumentError(f"cannot start playback while {self._state.value}")
        if max_bars is not None and max_bars < 0:
            raise InvalidArgumentError(f"bar count must not be negative, got {max_bars}")
        try:
            sink = self._open_sink()
        except Exception:
            self._state = PlaybackState.STOPPED
            raise
        self._state = PlaybackState.LOOPING
        bars = 0
        failed = True
        try:
            while not self._cancel.is_set():
                if max_bars is not None and bars >= max_bars:
                    break
                for segment in self._segments:
                    sink.append(segment)
                sink.drain()
                bars += 1
            failed = False
        finally:
            _LOGGER.info("Playback stopped after %d bars", bars)
            self._state = PlaybackState.STOPPED
            _release(sink, failed=failed)
        return bars

    def stop(self) -> None:
        self._cancel.set()


def _describe(session: SessionConfig) -> str:
    meters = " + ".join(str(signature) for signature in session.signatures)
    return f"{meters} at {session.tempo} bpm"


def _release(sink: AudioSink, *, failed: bool) -> None:
    try:
        sink.close()
    except Exception:
        if not failed:
            raise
        # Keep the playback error that is already propagating.
        _LOGGER.warning("Failed to close the sink after a playback error", exc_info=True)
