from __future__ import annotations

from .config import (
    MAX_GRID_VALUE,
    ClickSettings,
    SessionConfig,
    Signature,
    parse_session,
    parse_signature,
)
from .errors import (
    ArithmeticOverflowError,
    AudioDeviceError,
    DegenerateTimelineError,
    InvalidArgumentError,
    PolyclickError,
)
from .grid import Grid, RescaledSignature, resolve
from .logging_utils import configure_logging as _configure_logging
from .scheduler import PlaybackScheduler, PlaybackState
from .segments import Segment, Silence, Tone, render
from .sinks import AudioSink, RecordingSink, SoundDeviceSink, WavFileSink
from .timeline import Event, Timeline, build, build_session

__all__ = [
    "MAX_GRID_VALUE",
    "ArithmeticOverflowError",
    "AudioDeviceError",
    "AudioSink",
    "ClickSettings",
    "DegenerateTimelineError",
    "Event",
    "Grid",
    "InvalidArgumentError",
    "PlaybackScheduler",
    "PlaybackState",
    "PolyclickError",
    "RecordingSink",
    "RescaledSignature",
    "Segment",
    "SessionConfig",
    "Signature",
    "Silence",
    "SoundDeviceSink",
    "Timeline",
    "Tone",
    "WavFileSink",
    "build",
    "build_session",
    "parse_session",
    "parse_signature",
    "render",
    "resolve",
]

__version__ = "0.1.0"

_configure_logging()
del _configure_logging
