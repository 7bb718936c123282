from __future__ import annotations

import itertools

import pytest

from polyclick.config import MAX_GRID_VALUE, Signature
from polyclick.errors import ArithmeticOverflowError, InvalidArgumentError
from polyclick.grid import Grid, RescaledSignature, checked_lcm, common_unit, resolve


def _sig(beats: int, unit: int) -> Signature:
    return Signature(beats_per_bar=beats, beat_unit=unit)


@pytest.mark.parametrize(
    ("signatures", "expected_unit", "expected_beats"),
    [
        ([(4, 8), (3, 4)], 8, (4, 6)),
        ([(4, 4), (3, 4)], 4, (4, 3)),
        ([(2, 3), (3, 4)], 12, (8, 9)),
        ([(7, 16), (3, 4), (5, 8)], 16, (7, 12, 10)),
    ],
)
def test_resolve_known_sets(
    signatures: list[tuple[int, int]], expected_unit: int, expected_beats: tuple[int, ...]
) -> None:
    unit, rescaled = resolve([_sig(*pair) for pair in signatures])

    assert unit == expected_unit
    assert tuple(item.scaled_beats for item in rescaled) == expected_beats
    assert all(item.common_unit == expected_unit for item in rescaled)
    assert [item.source for item in rescaled] == list(range(len(signatures)))


def test_single_signature_resolves_to_itself() -> None:
    grid = resolve([_sig(5, 8)])

    assert grid == Grid(common_unit=8, rescaled=(RescaledSignature(5, 8, 0),))


def test_common_unit_is_smallest_shared_multiple() -> None:
    units = [1, 2, 3, 4, 5, 6, 8, 12]
    for a, b, c in itertools.combinations(units, 3):
        unit = common_unit([a, b, c])
        assert all(unit % value == 0 for value in (a, b, c))
        assert not any(
            all(candidate % value == 0 for value in (a, b, c)) for candidate in range(1, unit)
        )


def test_resolve_is_repeatable() -> None:
    signatures = [_sig(3, 4), _sig(5, 8), _sig(2, 3)]

    assert resolve(signatures) == resolve(signatures)


def test_lcm_overflow_is_reported() -> None:
    # Consecutive integers are coprime, so their lcm is their product (> 2**32).
    with pytest.raises(ArithmeticOverflowError):
        resolve([_sig(1, 70_000), _sig(1, 70_001)])


def test_scaled_beats_overflow_is_reported() -> None:
    with pytest.raises(ArithmeticOverflowError):
        resolve([_sig(2**31, 1), _sig(1, 4)])


def test_checked_lcm_at_the_limit() -> None:
    assert checked_lcm(MAX_GRID_VALUE, 1) == MAX_GRID_VALUE
    with pytest.raises(ArithmeticOverflowError):
        checked_lcm(MAX_GRID_VALUE, 2)


def test_resolve_rejects_empty_input() -> None:
    with pytest.raises(InvalidArgumentError):
        resolve([])


def test_resolve_rejects_unvalidated_zero_beats() -> None:
    broken = Signature.model_construct(beats_per_bar=0, beat_unit=4)
    with pytest.raises(InvalidArgumentError):
        resolve([broken])
