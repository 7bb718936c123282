from __future__ import annotations


class PolyclickError(Exception):
    """Base error for the polyclick metronome."""


class InvalidArgumentError(PolyclickError, ValueError):
    """Raised for malformed input: missing arguments, zero beats or units."""


class ArithmeticOverflowError(PolyclickError, OverflowError):
    """Raised when a grid computation leaves the representable range."""


class AudioDeviceError(PolyclickError):
    """Raised when the audio output cannot be opened or stops while playing."""


class DegenerateTimelineError(PolyclickError):
    """Raised when a bar has fewer than two distinct onsets."""
