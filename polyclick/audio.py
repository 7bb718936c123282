from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
from typing import Any

import numpy as np
from numpy.typing import NDArray

from .config import DEFAULT_SAMPLE_RATE, ClickSettings
from .errors import InvalidArgumentError
from .segments import Segment, Silence, Tone

FloatArray = NDArray[np.float32]
AudioNumbers = NDArray[np.floating[Any]] | Sequence[float] | FloatArray

SAMPLE_RATE = DEFAULT_SAMPLE_RATE


def ensure_audio_contract(audio: AudioNumbers) -> FloatArray:
    """Normalize dtype/range/shape to the audio contract."""

    mono: FloatArray = np.asarray(audio, dtype=np.float32).reshape(-1)
    if mono.size == 0:
        return mono
    peak = float(np.max(np.abs(mono)))
    if peak > 1.0:
        mono = mono / peak
    return mono


def _readonly(samples: FloatArray) -> FloatArray:
    samples.setflags(write=False)
    return samples


@lru_cache(maxsize=256)
def generate_sine(
    freq: float,
    frames: int,
    sample_rate: int = SAMPLE_RATE,
    amp: float = 0.2,
    fade: float = 0.0,
) -> FloatArray:
    """Sine tone of exactly ``frames`` samples with linear fade in/out."""

    t = np.arange(frames, dtype=np.float64) / sample_rate
    wave = amp * np.sin(2 * np.pi * freq * t)
    ramp = min(int(fade * sample_rate), frames // 2)
    if ramp > 0:
        envelope = np.linspace(0.0, 1.0, ramp, endpoint=False)
        wave[:ramp] *= envelope
        wave[frames - ramp :] *= envelope[::-1]
    return _readonly(wave.astype(np.float32))


@lru_cache(maxsize=16)
def generate_silence(frames: int) -> FloatArray:
    return _readonly(np.zeros(frames, dtype=np.float32))


class FrameClock:
    """Converts durations to whole frames without accumulating rounding error.

    Each conversion rounds and carries what was rounded off into the next one,
    so the frame count of any run of segments stays within one frame of its
    exact length no matter how many bars have been played.
    """

    def __init__(self, sample_rate: int = SAMPLE_RATE) -> None:
        if sample_rate <= 0:
            raise InvalidArgumentError(f"sample rate must be positive, got {sample_rate}")
        self.sample_rate = sample_rate
        self._carry = 0.0

    def frames(self, duration: float) -> int:
        exact = duration * self.sample_rate + self._carry
        whole = max(0, round(exact))
        self._carry = exact - whole
        return whole


def synthesize(segment: Segment, frames: int, settings: ClickSettings) -> FloatArray:
    match segment:
        case Tone(frequency=frequency, amplitude=amplitude):
            return generate_sine(
                frequency,
                frames,
                sample_rate=settings.sample_rate,
                amp=amplitude,
                fade=settings.fade,
            )
        case Silence():
            return generate_silence(frames)
        case _:
            raise InvalidArgumentError(f"unsupported segment: {segment!r}")

