from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .config import SessionConfig
from .errors import InvalidArgumentError
from .grid import RescaledSignature, common_unit, resolve

_LOGGER = logging.getLogger("polyclick.timeline")


@dataclass(frozen=True, slots=True)
class Event:
    """One merged onset inside the bar."""

    tick: int
    offset: float
    sources: frozenset[int]
    is_downbeat: bool = False


@dataclass(frozen=True, slots=True)
class Timeline:
    """All onsets of one bar, ascending and deduplicated.

    ``resolution`` is the number of integer ticks the bar is split into; every
    onset of every signature falls exactly on a tick, so coincidence between
    signatures is decided on integers rather than on float seconds.
    """

    events: tuple[Event, ...]
    bar_duration: float
    resolution: int
    subdivision_duration: float
    tempo: int
    common_unit: int

    def seconds(self, ticks: int) -> float:
        return ticks * self.bar_duration / self.resolution


def subdivision_duration(tempo: int, unit: int) -> float:
    """Seconds per 1/unit note at ``tempo`` quarter notes per minute."""

    if tempo <= 0 or unit <= 0:
        raise InvalidArgumentError(f"tempo and unit must be positive, got {tempo} and {unit}")
    return (60.0 / tempo) * (4.0 / unit)


def build(tempo: int, unit: int, rescaled: Sequence[RescaledSignature]) -> Timeline:
    """Merge the onsets of every rescaled signature into one bar."""

    if not rescaled:
        raise InvalidArgumentError("at least one rescaled signature is required")
    for item in rescaled:
        if item.scaled_beats <= 0:
            raise InvalidArgumentError(f"signature {item.source} has no beats")
        if item.common_unit != unit:
            raise InvalidArgumentError(
                f"signature {item.source} is on a 1/{item.common_unit} grid, expected 1/{unit}"
            )

    step = subdivision_duration(tempo, unit)
    longest = max(item.scaled_beats for item in rescaled)
    bar_duration = longest * step
    resolution = common_unit(item.scaled_beats for item in rescaled)

    onsets: dict[int, set[int]] = {}
    for item in rescaled:
        spacing = resolution // item.scaled_beats
        for beat in range(item.scaled_beats):
            onsets.setdefault(beat * spacing, set()).add(item.source)

    events = tuple(
        Event(
            tick=tick,
            offset=tick * bar_duration / resolution,
            sources=frozenset(onsets[tick]),
            is_downbeat=tick == 0,
        )
        for tick in sorted(onsets)
    )
    _LOGGER.debug(
        "Built timeline: %d events over %.6fs (%d ticks per bar)",
        len(events),
        bar_duration,
        resolution,
    )
    return Timeline(
        events=events,
        bar_duration=bar_duration,
        resolution=resolution,
        subdivision_duration=step,
        tempo=tempo,
        common_unit=unit,
    )


def build_session(session: SessionConfig) -> Timeline:
    unit, rescaled = resolve(session.signatures)
    return build(session.tempo, unit, rescaled)
