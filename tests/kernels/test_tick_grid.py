from __future__ import annotations

import pytest

from launchmm.kernels.tick_grid import MAX_TICK, MIN_TICK, TICK_SPACING, align_tick


def test_grid_extremes_are_on_grid() -> None:
    assert MIN_TICK % TICK_SPACING == 0
    assert MAX_TICK % TICK_SPACING == 0


@pytest.mark.parametrize("tick", [0, 60, -60, 120, -887220, 887220])
def test_aligned_tick_unchanged_in_both_directions(tick: int) -> None:
    assert align_tick(tick, True) == tick
    assert align_tick(tick, False) == tick


@pytest.mark.parametrize(
    "tick,round_down,expected",
    [
        (61, True, 60),
        (61, False, 120),
        (119, True, 60),
        (-1, True, -60),
        (-1, False, 0),
        (-61, True, -120),
        (-61, False, -60),
    ],
)
def test_unaligned_tick_rounds_directionally(tick: int, round_down: bool, expected: int) -> None:
    assert align_tick(tick, round_down) == expected


def test_clamps_before_rounding() -> None:
    assert align_tick(10**7, False) == MAX_TICK
    assert align_tick(10**7, True) == MAX_TICK
    assert align_tick(-(10**7), True) == MIN_TICK
    assert align_tick(-(10**7), False) == MIN_TICK


def test_custom_spacing() -> None:
    assert align_tick(15, True, spacing=10) == 10
    assert align_tick(15, False, spacing=10) == 20
    with pytest.raises(ValueError):
        align_tick(15, True, spacing=0)
