from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TypeAlias

from .config import ClickSettings
from .errors import DegenerateTimelineError
from .timeline import Event, Timeline

_LOGGER = logging.getLogger("polyclick.segments")

TONE_SHARE = 0.75
SILENCE_SHARE = 0.25


@dataclass(frozen=True, slots=True)
class Tone:
    frequency: float
    duration: float
    amplitude: float
    accent: bool = False


@dataclass(frozen=True, slots=True)
class Silence:
    duration: float


Segment: TypeAlias = Tone | Silence


def _pitch(event: Event, settings: ClickSettings) -> float:
    return settings.accent_frequency if event.is_downbeat else settings.beat_frequency


def render(timeline: Timeline, settings: ClickSettings | None = None) -> tuple[Segment, ...]:
    """Turn one bar of onsets into alternating tone/silence segments.

    The last event wraps around to the first event of the next bar, so the
    segments tile the bar exactly and can be replayed back to back.
    """

    settings = settings or ClickSettings()
    events = timeline.events
    if len(events) < 2:
        raise DegenerateTimelineError(
            f"a bar needs at least two distinct onsets to click, got {len(events)}"
        )

    segments: list[Segment] = []
    for index, event in enumerate(events):
        if index + 1 < len(events):
            next_tick = events[index + 1].tick
        else:
            next_tick = events[0].tick + timeline.resolution
        gap = timeline.seconds(next_tick - event.tick)
        segments.append(
            Tone(
                frequency=_pitch(event, settings),
                duration=gap * TONE_SHARE,
                amplitude=settings.amplitude,
                accent=event.is_downbeat,
            )
        )
        segments.append(Silence(duration=gap * SILENCE_SHARE))

    _LOGGER.debug("Rendered %d segments for a %.6fs bar", len(segments), timeline.bar_duration)
    return tuple(segments)


def cycle_duration(segments: Iterable[Segment]) -> float:
    return math.fsum(segment.duration for segment in segments)
