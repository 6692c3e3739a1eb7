"""
External collaborators the engines consume.

The AMM pool engine (price storage, liquidity curve, token custody) lives
outside this package; engines talk to it only through `PoolManager`.
"""

from __future__ import annotations

import time
from typing import Protocol, Tuple

from ..state.balances import Account, Currency
from ..state.pools import PoolId, PoolKey


class PoolManager(Protocol):
    def initialize(self, key: PoolKey, sqrt_price_x96: int) -> int:
        """Create the pool at `sqrt_price_x96`; returns the starting tick."""
        ...

    def current_price(self, pool_id: PoolId) -> Tuple[int, int]:
        """Return (sqrt_price_x96, tick)."""
        ...

    def liquidity(self, pool_id: PoolId) -> int:
        ...

    def position_liquidity(self, pool_id: PoolId, owner: Account, tick_lower: int, tick_upper: int) -> int:
        ...

    def modify_position(
        self,
        pool_id: PoolId,
        owner: Account,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int,
    ) -> Tuple[int, int]:
        """
        Add (positive) or remove (negative) liquidity for `owner` and settle it
        synchronously against the owner's balances.

        Returns (amount0_delta, amount1_delta) from the owner's perspective:
        negative = paid into the pool, positive = received.
        """
        ...

    def take(self, currency: Currency, recipient: Account, amount: int) -> None:
        """Move `amount` out of pool custody to `recipient`."""
        ...

    def settle(self, currency: Currency, payer: Account, amount: int) -> None:
        """Move `amount` from `payer` into pool custody."""
        ...

    def transfer(self, currency: Currency, sender: Account, recipient: Account, amount: int) -> None:
        """Plain token transfer; raises `TransferError` if the recipient cannot receive."""
        ...

    def balance_of(self, account: Account, currency: Currency) -> int:
        ...

    def unwrap(self, currency: Currency, account: Account, amount: int) -> Currency:
        """Convert `account`'s wrapped native into its base token; returns the base currency."""
        ...


class Clock(Protocol):
    def now(self) -> int:
        ...


class SystemClock:
    def now(self) -> int:
        return int(time.time())


class FixedClock:
    """Manually advanced clock for simulations and tests."""

    def __init__(self, now: int = 0) -> None:
        self._now = now

    def now(self) -> int:
        return self._now

    def set(self, now: int) -> None:
        if now < self._now:
            raise ValueError("clock must not run backwards")
        self._now = now

    def advance(self, seconds: int) -> int:
        self.set(self._now + seconds)
        return self._now
