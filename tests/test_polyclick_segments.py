from __future__ import annotations

import math

import pytest

from polyclick.config import ClickSettings, parse_session
from polyclick.errors import DegenerateTimelineError
from polyclick.segments import Silence, Tone, cycle_duration, render
from polyclick.timeline import build_session


def test_plain_four_four_pattern() -> None:
    settings = ClickSettings()
    segments = render(build_session(parse_session(60, [(4, 4)])), settings)

    assert len(segments) == 8
    tones = segments[0::2]
    silences = segments[1::2]
    assert all(isinstance(segment, Tone) for segment in tones)
    assert all(isinstance(segment, Silence) for segment in silences)
    assert [tone.duration for tone in tones] == [0.75] * 4
    assert [silence.duration for silence in silences] == [0.25] * 4
    assert [tone.frequency for tone in tones] == [
        settings.accent_frequency,
        settings.beat_frequency,
        settings.beat_frequency,
        settings.beat_frequency,
    ]
    assert [tone.accent for tone in tones] == [True, False, False, False]


def test_segments_split_each_gap_three_to_one() -> None:
    timeline = build_session(parse_session(60, [(3, 4), (4, 4)]))
    segments = render(timeline)

    ticks = [event.tick for event in timeline.events] + [timeline.resolution]
    for index, (start, end) in enumerate(zip(ticks, ticks[1:])):
        gap = (end - start) * timeline.bar_duration / timeline.resolution
        tone, silence = segments[2 * index], segments[2 * index + 1]
        assert tone.duration == pytest.approx(0.75 * gap)
        assert silence.duration == pytest.approx(0.25 * gap)
        assert tone.duration + silence.duration == gap


def test_bar_of_segments_adds_up_to_bar_duration() -> None:
    timeline = build_session(parse_session(89, [(5, 8), (3, 4), (7, 16)]))
    segments = render(timeline)

    assert cycle_duration(segments) == pytest.approx(timeline.bar_duration, abs=1e-12)
    looped = math.fsum(cycle_duration(segments) for _ in range(1_000))
    assert looped == pytest.approx(1_000 * timeline.bar_duration, rel=1e-12)


def test_only_the_downbeat_is_accented() -> None:
    settings = ClickSettings(accent_frequency=1_000.0, beat_frequency=500.0, amplitude=0.5)
    segments = render(build_session(parse_session(72, [(3, 4), (4, 4)])), settings)

    tones = [segment for segment in segments if isinstance(segment, Tone)]
    assert [tone.frequency for tone in tones] == [1_000.0] + [500.0] * 5
    assert all(tone.amplitude == 0.5 for tone in tones)


def test_single_onset_bar_is_degenerate() -> None:
    with pytest.raises(DegenerateTimelineError):
        render(build_session(parse_session(60, [(1, 4)])))


def test_render_is_repeatable() -> None:
    timeline = build_session(parse_session(100, [(2, 3), (3, 4)]))

    assert render(timeline) == render(timeline)
