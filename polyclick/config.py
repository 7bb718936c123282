from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidArgumentError

_LOGGER = logging.getLogger("polyclick.config")

# Largest value any grid quantity (common unit, scaled beats, tick count) may take.
MAX_GRID_VALUE = 2**32 - 1

DEVICE_ENV = "POLYCLICK_DEVICE"
SAMPLE_RATE_ENV = "POLYCLICK_SAMPLE_RATE"

DEFAULT_SAMPLE_RATE = 44_100
DEFAULT_ACCENT_FREQUENCY = 660.0
DEFAULT_BEAT_FREQUENCY = 440.0
DEFAULT_AMPLITUDE = 0.2


class Signature(BaseModel):
    """A single meter, e.g. 3/4 is ``Signature(beats_per_bar=3, beat_unit=4)``."""

    beats_per_bar: int = Field(gt=0, le=MAX_GRID_VALUE)
    beat_unit: int = Field(gt=0, le=MAX_GRID_VALUE)

    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    def __str__(self) -> str:
        return f"{self.beats_per_bar}/{self.beat_unit}"


class SessionConfig(BaseModel):
    """Tempo plus the overlaid signatures of one metronome session."""

    tempo: int = Field(gt=0, le=MAX_GRID_VALUE)
    signatures: tuple[Signature, ...] = Field(min_length=1)

    model_config = ConfigDict(frozen=True, extra="forbid")


class ClickSettings(BaseModel):
    """How clicks sound and where they go."""

    accent_frequency: float = Field(default=DEFAULT_ACCENT_FREQUENCY, gt=0)
    beat_frequency: float = Field(default=DEFAULT_BEAT_FREQUENCY, gt=0)
    amplitude: float = Field(default=DEFAULT_AMPLITUDE, gt=0, le=1.0)
    sample_rate: int = Field(default=DEFAULT_SAMPLE_RATE, gt=0)
    fade: float = Field(default=0.002, ge=0)
    device: int | str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("device", mode="before")
    @classmethod
    def _coerce_device(cls, value: object) -> object:
        # sounddevice accepts either a numeric index or a name substring.
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                return None
            if stripped.isdigit():
                return int(stripped)
            return stripped
        return value

    @classmethod
    def from_env(cls, **overrides: Any) -> ClickSettings:
        payload: dict[str, Any] = {}
        device = os.environ.get(DEVICE_ENV)
        if device:
            payload["device"] = device
        sample_rate = os.environ.get(SAMPLE_RATE_ENV)
        if sample_rate:
            payload["sample_rate"] = sample_rate
        payload.update({key: value for key, value in overrides.items() if value is not None})
        return parse_settings(payload)


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "value"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def parse_signature(beats_per_bar: int, beat_unit: int) -> Signature:
    """Build a Signature, raising InvalidArgumentError on zero or negative values."""

    try:
        return Signature(beats_per_bar=beats_per_bar, beat_unit=beat_unit)
    except ValidationError as exc:
        _LOGGER.debug("Rejected signature %r/%r: %s", beats_per_bar, beat_unit, exc)
        raise InvalidArgumentError(
            f"invalid time signature {beats_per_bar}/{beat_unit}: {_describe(exc)}"
        ) from exc


def parse_session(tempo: int, signatures: Iterable[Signature | tuple[int, int]]) -> SessionConfig:
    """Build a SessionConfig from a tempo and signatures or (beats, unit) pairs."""

    resolved: list[Signature] = []
    for item in signatures:
        if isinstance(item, Signature):
            resolved.append(item)
        else:
            beats_per_bar, beat_unit = item
            resolved.append(parse_signature(beats_per_bar, beat_unit))
    if not resolved:
        raise InvalidArgumentError("at least one time signature is required")
    try:
        return SessionConfig(tempo=tempo, signatures=tuple(resolved))
    except ValidationError as exc:
        _LOGGER.debug("Rejected session tempo=%r: %s", tempo, exc)
        raise InvalidArgumentError(f"invalid session: {_describe(exc)}") from exc


def parse_settings(payload: Mapping[str, Any]) -> ClickSettings:
    """Parse click settings, raising InvalidArgumentError on failure."""

    try:
        return ClickSettings.model_validate(payload)
    except ValidationError as exc:
        _LOGGER.debug("Rejected click settings %r: %s", dict(payload), exc)
        raise InvalidArgumentError(f"invalid click settings: {_describe(exc)}") from exc
