"""
Token amounts implied by a liquidity range, and price movement from amounts.

Conventions (Q64.96 sqrt prices):
- token0 amounts scale with L * (sb - sa) / (sa * sb),
- token1 amounts scale with L * (sb - sa).

Amounts owed *to* the pool round up, amounts paid *by* the pool round down.
"""

from __future__ import annotations

from .full_math import div_rounding_up, mul_div, mul_div_rounding_up
from .tick_math import MAX_UINT160, MAX_UINT256, Q96


def amount0_delta(sqrt_a: int, sqrt_b: int, liquidity: int, round_up: bool) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    if sqrt_a <= 0:
        raise ValueError("sqrt price must be positive")
    if liquidity < 0:
        raise ValueError("liquidity must be non-negative")

    numerator1 = liquidity << 96
    numerator2 = sqrt_b - sqrt_a
    if round_up:
        return div_rounding_up(mul_div_rounding_up(numerator1, numerator2, sqrt_b), sqrt_a)
    return mul_div(numerator1, numerator2, sqrt_b) // sqrt_a


def amount1_delta(sqrt_a: int, sqrt_b: int, liquidity: int, round_up: bool) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    if liquidity < 0:
        raise ValueError("liquidity must be non-negative")
    if round_up:
        return mul_div_rounding_up(liquidity, sqrt_b - sqrt_a, Q96)
    return mul_div(liquidity, sqrt_b - sqrt_a, Q96)


def signed_amount0_delta(sqrt_a: int, sqrt_b: int, liquidity_delta: int) -> int:
    """Positive when the pool is owed token0 (liquidity added)."""
    if liquidity_delta < 0:
        return -amount0_delta(sqrt_a, sqrt_b, -liquidity_delta, False)
    return amount0_delta(sqrt_a, sqrt_b, liquidity_delta, True)


def signed_amount1_delta(sqrt_a: int, sqrt_b: int, liquidity_delta: int) -> int:
    """Positive when the pool is owed token1 (liquidity added)."""
    if liquidity_delta < 0:
        return -amount1_delta(sqrt_a, sqrt_b, -liquidity_delta, False)
    return amount1_delta(sqrt_a, sqrt_b, liquidity_delta, True)


def _next_sqrt_price_from_amount0_rounding_up(sqrt_price: int, liquidity: int, amount: int, add: bool) -> int:
    if amount == 0:
        return sqrt_price
    numerator1 = liquidity << 96

    if add:
        product = amount * sqrt_price
        denominator = numerator1 + product
        if product <= MAX_UINT256 and denominator <= MAX_UINT256:
            return mul_div_rounding_up(numerator1, sqrt_price, denominator)
        # the product would not fit in 256 bits; fall back to the less precise form
        return div_rounding_up(numerator1, numerator1 // sqrt_price + amount)

    product = amount * sqrt_price
    if product > MAX_UINT256 or numerator1 <= product:
        raise ValueError("insufficient token0 liquidity for requested output")
    result = mul_div_rounding_up(numerator1, sqrt_price, numerator1 - product)
    if result > MAX_UINT160:
        raise ValueError("sqrt price overflow")
    return result


def _next_sqrt_price_from_amount1_rounding_down(sqrt_price: int, liquidity: int, amount: int, add: bool) -> int:
    if add:
        quotient = mul_div(amount, Q96, liquidity)
        result = sqrt_price + quotient
        if result > MAX_UINT160:
            raise ValueError("sqrt price overflow")
        return result

    quotient = mul_div_rounding_up(amount, Q96, liquidity)
    if sqrt_price <= quotient:
        raise ValueError("insufficient token1 liquidity for requested output")
    return sqrt_price - quotient


def next_sqrt_price_from_input(sqrt_price: int, liquidity: int, amount_in: int, zero_for_one: bool) -> int:
    if sqrt_price <= 0 or liquidity <= 0:
        raise ValueError("sqrt price and liquidity must be positive")
    if zero_for_one:
        return _next_sqrt_price_from_amount0_rounding_up(sqrt_price, liquidity, amount_in, True)
    return _next_sqrt_price_from_amount1_rounding_down(sqrt_price, liquidity, amount_in, True)


def next_sqrt_price_from_output(sqrt_price: int, liquidity: int, amount_out: int, zero_for_one: bool) -> int:
    if sqrt_price <= 0 or liquidity <= 0:
        raise ValueError("sqrt price and liquidity must be positive")
    if zero_for_one:
        return _next_sqrt_price_from_amount1_rounding_down(sqrt_price, liquidity, amount_out, False)
    return _next_sqrt_price_from_amount0_rounding_up(sqrt_price, liquidity, amount_out, False)
