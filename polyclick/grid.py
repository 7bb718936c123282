from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import reduce
from typing import NamedTuple

from .config import MAX_GRID_VALUE, Signature
from .errors import ArithmeticOverflowError, InvalidArgumentError

_LOGGER = logging.getLogger("polyclick.grid")


@dataclass(frozen=True, slots=True)
class RescaledSignature:
    """A signature expressed on the common subdivision grid."""

    scaled_beats: int
    common_unit: int
    source: int = 0


class Grid(NamedTuple):
    common_unit: int
    rescaled: tuple[RescaledSignature, ...]


def _checked(value: int, what: str) -> int:
    if value > MAX_GRID_VALUE:
        raise ArithmeticOverflowError(f"{what} {value} exceeds the grid limit of {MAX_GRID_VALUE}")
    return value


def checked_lcm(a: int, b: int) -> int:
    """Least common multiple of two positive integers, bounded by MAX_GRID_VALUE."""

    if a <= 0 or b <= 0:
        raise InvalidArgumentError(f"lcm requires positive integers, got {a} and {b}")
    return _checked(a // math.gcd(a, b) * b, "least common multiple")


def common_unit(units: Iterable[int]) -> int:
    """Smallest positive multiple of every unit."""

    values = list(units)
    if not values:
        raise InvalidArgumentError("cannot find a common unit of no values")
    return reduce(checked_lcm, values)


def resolve(signatures: Sequence[Signature]) -> Grid:
    """Put every signature on the smallest subdivision all beat units divide."""

    if not signatures:
        raise InvalidArgumentError("at least one time signature is required")
    for signature in signatures:
        if signature.beats_per_bar <= 0 or signature.beat_unit <= 0:
            raise InvalidArgumentError(f"invalid time signature {signature}")

    unit = common_unit(signature.beat_unit for signature in signatures)
    rescaled = tuple(
        RescaledSignature(
            scaled_beats=_checked(
                signature.beats_per_bar * (unit // signature.beat_unit),
                f"scaled beat count of {signature}",
            ),
            common_unit=unit,
            source=index,
        )
        for index, signature in enumerate(signatures)
    )
    _LOGGER.debug(
        "Resolved %s onto 1/%d grid: %s",
        ", ".join(str(signature) for signature in signatures),
        unit,
        [item.scaled_beats for item in rescaled],
    )
    return Grid(common_unit=unit, rescaled=rescaled)
