"""
Internal netting pool.

Swap fees collected in the launched token are held off-curve. Before a trade
that buys the launched token with native reaches the AMM, it is matched
against that inventory at the current spot price, saving the trader the
slippage and converting fee inventory to native without touching the curve.
The inventory is never used to facilitate sales of the launched token.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from ..kernels.swap_math import compute_swap_step
from ..state.pools import PoolId
from ..state.records import NettingInventory
from ..state.store import RecordStore
from .errors import InvariantViolation
from .events import Event, EventBus


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NettingResult:
    native_used: int
    other_used: int


NO_NETTING = NettingResult(0, 0)


def net_against_inventory(
    inventory: NettingInventory,
    amount_specified: int,
    spot_sqrt_price: int,
    available_liquidity: int,
    target_sqrt_price: int,
) -> NettingResult:
    """
    Price a native-in trade against `inventory.other_amount` at spot.

    Exact output (`amount_specified >= 0`) is capped at the inventory before
    pricing; exact input is priced in full and then scaled down so the other
    side never exceeds the inventory. Pricing uses one zero-fee swap step from
    spot toward `target_sqrt_price`, exactly as the AMM would price it.
    """
    available = inventory.other_amount
    if available == 0 or amount_specified == 0:
        return NO_NETTING

    if amount_specified > 0:
        requested = min(amount_specified, available)
        step = compute_swap_step(spot_sqrt_price, target_sqrt_price, available_liquidity, requested, 0)
        native_used, other_used = step.amount_in, step.amount_out
    else:
        step = compute_swap_step(spot_sqrt_price, target_sqrt_price, available_liquidity, amount_specified, 0)
        native_used, other_used = step.amount_in, step.amount_out
        if other_used > available:
            native_used = (available * native_used) // other_used
            other_used = available

    if native_used == 0 or other_used == 0:
        return NO_NETTING
    return NettingResult(native_used, other_used)


class InternalNettingPool:
    def __init__(self, events: EventBus) -> None:
        self._events = events
        self._inventory: RecordStore[PoolId, NettingInventory] = RecordStore(NettingInventory)

    def inventory(self, pool_id: PoolId) -> NettingInventory:
        return self._inventory.get(pool_id)

    def deposit(self, pool_id: PoolId, native_amount: int, other_amount: int) -> NettingInventory:
        if native_amount < 0 or other_amount < 0:
            raise InvariantViolation(f"deposits must be non-negative: ({native_amount}, {other_amount})")
        if native_amount == 0 and other_amount == 0:
            return self._inventory.get(pool_id)
        current = self._inventory.get(pool_id)
        updated = replace(
            current,
            native_amount=current.native_amount + native_amount,
            other_amount=current.other_amount + other_amount,
        )
        self._inventory.put(pool_id, updated)
        self._events.emit(Event.FEES_DEPOSITED, pool_id=pool_id, native_amount=native_amount, other_amount=other_amount)
        return updated

    def withdraw_native(self, pool_id: PoolId) -> int:
        """Release the whole native balance for distribution."""
        current = self._inventory.get(pool_id)
        if current.native_amount == 0:
            return 0
        self._inventory.put(pool_id, replace(current, native_amount=0))
        return current.native_amount

    def attempt_netting(
        self,
        pool_id: PoolId,
        swap_is_native_in: bool,
        amount_specified: int,
        spot_sqrt_price: int,
        available_liquidity: int,
        *,
        native_is_zero: bool,
        sqrt_price_limit: int,
    ) -> NettingResult:
        """
        Net a trade against the pool's fee inventory, updating it on success.

        Returns (native_used, other_used); zero/zero when the inventory is
        empty, the trade sells the launched token, or the price limit points
        the wrong way.
        """
        if not swap_is_native_in:
            return NO_NETTING

        # native in moves the price down when native is currency0
        if native_is_zero and sqrt_price_limit >= spot_sqrt_price:
            return NO_NETTING
        if not native_is_zero and sqrt_price_limit <= spot_sqrt_price:
            return NO_NETTING

        current = self._inventory.get(pool_id)
        result = net_against_inventory(current, amount_specified, spot_sqrt_price, available_liquidity, sqrt_price_limit)
        if result is NO_NETTING:
            return result

        self._inventory.put(
            pool_id,
            replace(
                current,
                native_amount=current.native_amount + result.native_used,
                other_amount=current.other_amount - result.other_used,
            ),
        )
        self._events.emit(
            Event.NETTING_EXECUTED,
            pool_id=pool_id,
            native_used=result.native_used,
            other_used=result.other_used,
        )
        logger.debug("netted %s: native=%d other=%d", pool_id, result.native_used, result.other_used)
        return result
