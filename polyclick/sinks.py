from __future__ import annotations

import logging
import threading
from collections import deque
from pathlib import Path
from typing import Any, Callable, Protocol

import numpy as np
import soundfile as sf  # type: ignore[import]

from .audio import FloatArray, FrameClock, ensure_audio_contract, synthesize
from .config import ClickSettings
from .errors import AudioDeviceError
from .segments import Segment, Silence

_LOGGER = logging.getLogger("polyclick.sinks")


class AudioSink(Protocol):
    def append(self, segment: Segment) -> None: ...

    def drain(self) -> None: ...

    def close(self) -> None: ...


def _load_sounddevice() -> Any | None:
    try:
        import sounddevice as sd_module  # type: ignore[import]
    except (ImportError, OSError) as exc:
        # OSError: the module imports but PortAudio itself is missing.
        _LOGGER.info("sounddevice not available: %s", exc, exc_info=True)
        return None
    return sd_module


class SoundDeviceSink:
    """Plays segments through a sounddevice output stream.

    Appended segments are synthesized into buffers and queued; the stream
    callback consumes the queue in FIFO order on PortAudio's thread. Whenever
    the device has to play filler silence because the queue ran dry, the
    missing frames are remembered and cut from the next queued silence so the
    click grid does not slip behind over time.
    """

    def __init__(
        self,
        settings: ClickSettings | None = None,
        *,
        backend: Any | None = None,
        drain_timeout: float = 0.5,
    ) -> None:
        self._settings = settings or ClickSettings()
        sd = backend if backend is not None else _load_sounddevice()
        if sd is None:
            raise AudioDeviceError(
                "Playback requires sounddevice with a working PortAudio. "
                "Install it, or render to a file with --output."
            )
        self._clock = FrameClock(self._settings.sample_rate)
        self._queue: deque[FloatArray] = deque()
        self._position = 0
        self._debt = 0
        self._started = False
        self._cond = threading.Condition()
        self._drain_timeout = drain_timeout
        try:
            self._stream = sd.OutputStream(
                samplerate=self._settings.sample_rate,
                channels=1,
                dtype="float32",
                device=self._settings.device,
                callback=self._callback,
            )
            self._stream.start()
        except Exception as exc:
            raise AudioDeviceError(f"could not open audio output: {exc}") from exc
        _LOGGER.info(
            "Opened audio output (device=%s, %d Hz)",
            self._settings.device if self._settings.device is not None else "default",
            self._settings.sample_rate,
        )

    @property
    def pending_frames(self) -> int:
        with self._cond:
            return sum(len(buffer) for buffer in self._queue) - self._position

    def append(self, segment: Segment) -> None:
        frames = self._clock.frames(segment.duration)
        if isinstance(segment, Silence):
            with self._cond:
                absorbed = min(self._debt, frames)
                self._debt -= absorbed
            frames -= absorbed
        if frames <= 0:
            return
        # Synthesize outside the lock; the stream callback needs it.
        buffer = ensure_audio_contract(synthesize(segment, frames, self._settings))
        with self._cond:
            self._queue.append(buffer)
            self._started = True

    def drain(self) -> None:
        with self._cond:
            while self._queue:
                if not self._stream_active():
                    raise AudioDeviceError("audio output stopped before the queue drained")
                self._cond.wait(timeout=self._drain_timeout)

    def _stream_active(self) -> bool:
        try:
            return bool(self._stream.active)
        except Exception as exc:
            raise AudioDeviceError(f"audio output failed: {exc}") from exc

    def close(self) -> None:
        try:
            self._stream.stop()
            self._stream.close()
        except Exception as exc:
            raise AudioDeviceError(f"could not close audio output: {exc}") from exc
        _LOGGER.info("Closed audio output")

    def _callback(self, outdata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:
        _ = time_info
        if status:
            _LOGGER.debug("Output stream status: %s", status)
        out = outdata[:, 0]
        filled = 0
        with self._cond:
            while filled < frames and self._queue:
                head = self._queue[0]
                take = min(frames - filled, len(head) - self._position)
                out[filled : filled + take] = head[self._position : self._position + take]
                filled += take
                self._position += take
                if self._position >= len(head):
                    self._queue.popleft()
                    self._position = 0
            if filled < frames:
                out[filled:] = 0.0
                if self._started:
                    self._debt += frames - filled
            if not self._queue:
                self._cond.notify_all()


class WavFileSink:
    """Writes segments to a mono float WAV file instead of a device."""

    def __init__(self, path: str | Path, settings: ClickSettings | None = None) -> None:
        self._settings = settings or ClickSettings()
        self.path = Path(path)
        self._clock = FrameClock(self._settings.sample_rate)
        self.frames_written = 0
        try:
            self._file = sf.SoundFile(
                self.path,
                mode="w",
                samplerate=self._settings.sample_rate,
                channels=1,
                subtype="FLOAT",
            )
        except (RuntimeError, OSError) as exc:
            raise AudioDeviceError(f"could not open {self.path} for writing: {exc}") from exc

    def append(self, segment: Segment) -> None:
        frames = self._clock.frames(segment.duration)
        if frames <= 0:
            return
        buffer = ensure_audio_contract(synthesize(segment, frames, self._settings))
        try:
            self._file.write(buffer)
        except (RuntimeError, OSError) as exc:
            raise AudioDeviceError(f"could not write to {self.path}: {exc}") from exc
        self.frames_written += frames

    def drain(self) -> None:
        try:
            self._file.flush()
        except (RuntimeError, OSError) as exc:
            raise AudioDeviceError(f"could not flush {self.path}: {exc}") from exc

    def close(self) -> None:
        try:
            self._file.close()
        except (RuntimeError, OSError) as exc:
            raise AudioDeviceError(f"could not finish {self.path}: {exc}") from exc
        _LOGGER.info("Wrote %d frames to %s", self.frames_written, self.path)


class RecordingSink:
    """Keeps appended segments in memory; drains complete immediately."""

    def __init__(self, on_drain: Callable[[RecordingSink], None] | None = None) -> None:
        self.segments: list[Segment] = []
        self.drains = 0
        self.closed = False
        self._on_drain = on_drain

    def append(self, segment: Segment) -> None:
        self.segments.append(segment)

    def drain(self) -> None:
        self.drains += 1
        if self._on_drain is not None:
            self._on_drain(self)

    def close(self) -> None:
        self.closed = True
