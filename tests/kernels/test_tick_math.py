from __future__ import annotations

import pytest

from launchmm.kernels.tick_math import (
    MAX_SQRT_PRICE,
    MAX_TICK,
    MIN_SQRT_PRICE,
    MIN_TICK,
    Q96,
    sqrt_price_at_tick,
    tick_at_sqrt_price,
)


def test_tick_zero_is_unit_price() -> None:
    assert sqrt_price_at_tick(0) == Q96
    assert tick_at_sqrt_price(Q96) == 0


def test_range_extremes_match_constants() -> None:
    assert sqrt_price_at_tick(MIN_TICK) == MIN_SQRT_PRICE
    assert sqrt_price_at_tick(MAX_TICK) == MAX_SQRT_PRICE
    assert tick_at_sqrt_price(MIN_SQRT_PRICE) == MIN_TICK
    assert tick_at_sqrt_price(MAX_SQRT_PRICE - 1) == MAX_TICK - 1


@pytest.mark.parametrize("tick", [-887220, -200_000, -60, -1, 1, 60, 6932, 200_000, 887220])
def test_tick_at_sqrt_price_inverts_sqrt_price_at_tick(tick: int) -> None:
    sqrt_price = sqrt_price_at_tick(tick)
    assert tick_at_sqrt_price(sqrt_price) == tick
    assert tick_at_sqrt_price(sqrt_price - 1) == tick - 1


def test_sqrt_price_is_strictly_increasing() -> None:
    prices = [sqrt_price_at_tick(t) for t in range(-300, 301, 7)]
    assert prices == sorted(prices)
    assert len(set(prices)) == len(prices)


def test_out_of_range_inputs_rejected() -> None:
    with pytest.raises(ValueError):
        sqrt_price_at_tick(MAX_TICK + 1)
    with pytest.raises(ValueError):
        tick_at_sqrt_price(MIN_SQRT_PRICE - 1)
    with pytest.raises(ValueError):
        tick_at_sqrt_price(MAX_SQRT_PRICE)


def test_bool_tick_rejected() -> None:
    with pytest.raises(TypeError):
        sqrt_price_at_tick(True)  # type: ignore[arg-type]
