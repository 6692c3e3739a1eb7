"""
Pluggable swap fee policies.

A calculator may replace the pool's configured swap fee per trade and is told
about every completed trade so stateful policies (volatility, sale rate) can
update themselves.
"""

from __future__ import annotations

from typing import Protocol

from ..state.pools import BalanceDelta, PoolKey, SwapParams


class FeeCalculator(Protocol):
    def determine_swap_fee(self, pool_key: PoolKey, params: SwapParams, base_fee_bps: int) -> int:
        ...

    def track_swap(
        self,
        sender: str,
        pool_key: PoolKey,
        params: SwapParams,
        delta: BalanceDelta,
        hook_data: bytes,
    ) -> None:
        ...


class StaticFeeCalculator:
    """Always charges the configured base fee."""

    def determine_swap_fee(self, pool_key: PoolKey, params: SwapParams, base_fee_bps: int) -> int:
        return base_fee_bps

    def track_swap(
        self,
        sender: str,
        pool_key: PoolKey,
        params: SwapParams,
        delta: BalanceDelta,
        hook_data: bytes,
    ) -> None:
        return None
