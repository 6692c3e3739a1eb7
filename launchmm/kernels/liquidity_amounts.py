"""
Token amount <-> liquidity conversions at the two boundaries of a range.

Used for single-sided positions: a range entirely above the current price
holds only token0, a range entirely below holds only token1.
"""

from __future__ import annotations

from dataclasses import dataclass

from .full_math import mul_div
from .tick_math import MAX_UINT128, Q96


@dataclass(frozen=True)
class PositionAmounts:
    amount0: int
    amount1: int


def _sorted(sqrt_a: int, sqrt_b: int) -> tuple[int, int]:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    if sqrt_a == sqrt_b:
        raise ValueError("range boundaries must differ")
    return sqrt_a, sqrt_b


def _to_uint128(value: int) -> int:
    if value > MAX_UINT128:
        raise OverflowError("liquidity exceeds uint128")
    return value


def liquidity_for_amount0(sqrt_a: int, sqrt_b: int, amount0: int) -> int:
    sqrt_a, sqrt_b = _sorted(sqrt_a, sqrt_b)
    intermediate = mul_div(sqrt_a, sqrt_b, Q96)
    return _to_uint128(mul_div(amount0, intermediate, sqrt_b - sqrt_a))


def liquidity_for_amount1(sqrt_a: int, sqrt_b: int, amount1: int) -> int:
    sqrt_a, sqrt_b = _sorted(sqrt_a, sqrt_b)
    return _to_uint128(mul_div(amount1, Q96, sqrt_b - sqrt_a))


def liquidity_for_amounts(sqrt_price: int, sqrt_a: int, sqrt_b: int, amount0: int, amount1: int) -> int:
    """Maximum liquidity that `amount0`/`amount1` can fund at the current price."""
    sqrt_a, sqrt_b = _sorted(sqrt_a, sqrt_b)
    if sqrt_price <= sqrt_a:
        return liquidity_for_amount0(sqrt_a, sqrt_b, amount0)
    if sqrt_price < sqrt_b:
        return min(
            liquidity_for_amount0(sqrt_price, sqrt_b, amount0),
            liquidity_for_amount1(sqrt_a, sqrt_price, amount1),
        )
    return liquidity_for_amount1(sqrt_a, sqrt_b, amount1)


def amount0_for_liquidity(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    sqrt_a, sqrt_b = _sorted(sqrt_a, sqrt_b)
    return mul_div(liquidity << 96, sqrt_b - sqrt_a, sqrt_b) // sqrt_a


def amount1_for_liquidity(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    sqrt_a, sqrt_b = _sorted(sqrt_a, sqrt_b)
    return mul_div(liquidity, sqrt_b - sqrt_a, Q96)


def amounts_for_liquidity(sqrt_price: int, sqrt_a: int, sqrt_b: int, liquidity: int) -> PositionAmounts:
    """Token amounts a position of `liquidity` represents at `sqrt_price` (rounded down)."""
    sqrt_a, sqrt_b = _sorted(sqrt_a, sqrt_b)
    if sqrt_price <= sqrt_a:
        return PositionAmounts(amount0_for_liquidity(sqrt_a, sqrt_b, liquidity), 0)
    if sqrt_price < sqrt_b:
        return PositionAmounts(
            amount0_for_liquidity(sqrt_price, sqrt_b, liquidity),
            amount1_for_liquidity(sqrt_a, sqrt_price, liquidity),
        )
    return PositionAmounts(0, amount1_for_liquidity(sqrt_a, sqrt_b, liquidity))
