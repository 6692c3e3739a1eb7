"""
Single swap step within one constant-liquidity range.

`amount_remaining < 0` is exact input, `amount_remaining >= 0` is exact output
(the AMM's signed convention). Fees are in pips (hundredths of a bip,
1_000_000 == 100%).
"""

from __future__ import annotations

from dataclasses import dataclass

from .full_math import mul_div, mul_div_rounding_up
from .sqrt_price_math import (
    amount0_delta,
    amount1_delta,
    next_sqrt_price_from_input,
    next_sqrt_price_from_output,
)


MAX_FEE_PIPS = 1_000_000


@dataclass(frozen=True)
class SwapStep:
    sqrt_price_next: int
    amount_in: int
    amount_out: int
    fee_amount: int


def compute_swap_step(
    sqrt_price_current: int,
    sqrt_price_target: int,
    liquidity: int,
    amount_remaining: int,
    fee_pips: int,
) -> SwapStep:
    """
    Price one step of a swap from `sqrt_price_current` toward `sqrt_price_target`.

    Direction is implied by the target: a lower target sells token0 for token1.
    """
    if not (0 <= fee_pips <= MAX_FEE_PIPS):
        raise ValueError(f"fee_pips must be in [0, {MAX_FEE_PIPS}]: {fee_pips}")
    if liquidity < 0:
        raise ValueError("liquidity must be non-negative")

    zero_for_one = sqrt_price_current >= sqrt_price_target
    exact_in = amount_remaining < 0

    if exact_in:
        amount_remaining_less_fee = mul_div(-amount_remaining, MAX_FEE_PIPS - fee_pips, MAX_FEE_PIPS)
        if zero_for_one:
            amount_in = amount0_delta(sqrt_price_target, sqrt_price_current, liquidity, True)
        else:
            amount_in = amount1_delta(sqrt_price_current, sqrt_price_target, liquidity, True)

        if amount_remaining_less_fee >= amount_in:
            sqrt_price_next = sqrt_price_target
            if fee_pips == MAX_FEE_PIPS:
                fee_amount = amount_in
            else:
                fee_amount = mul_div_rounding_up(amount_in, fee_pips, MAX_FEE_PIPS - fee_pips)
        else:
            amount_in = amount_remaining_less_fee
            sqrt_price_next = next_sqrt_price_from_input(
                sqrt_price_current, liquidity, amount_remaining_less_fee, zero_for_one
            )
            fee_amount = -amount_remaining - amount_in

        if zero_for_one:
            amount_out = amount1_delta(sqrt_price_next, sqrt_price_current, liquidity, False)
        else:
            amount_out = amount0_delta(sqrt_price_current, sqrt_price_next, liquidity, False)
        return SwapStep(sqrt_price_next, amount_in, amount_out, fee_amount)

    if zero_for_one:
        amount_out = amount1_delta(sqrt_price_target, sqrt_price_current, liquidity, False)
    else:
        amount_out = amount0_delta(sqrt_price_current, sqrt_price_target, liquidity, False)

    if amount_remaining >= amount_out:
        sqrt_price_next = sqrt_price_target
    else:
        amount_out = amount_remaining
        sqrt_price_next = next_sqrt_price_from_output(sqrt_price_current, liquidity, amount_remaining, zero_for_one)

    if zero_for_one:
        amount_in = amount0_delta(sqrt_price_next, sqrt_price_current, liquidity, True)
    else:
        amount_in = amount1_delta(sqrt_price_current, sqrt_price_next, liquidity, True)

    if fee_pips == MAX_FEE_PIPS:
        fee_amount = amount_in
    else:
        fee_amount = mul_div_rounding_up(amount_in, fee_pips, MAX_FEE_PIPS - fee_pips)
    return SwapStep(sqrt_price_next, amount_in, amount_out, fee_amount)
