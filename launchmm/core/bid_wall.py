"""
Bid wall: a single-sided native liquidity position one tick spacing outside
the current price.

Native fee proceeds accumulate as pending until they cross the pool's
threshold. Crossing it pulls the existing wall (if any), folds its native
back into the new deposit, sends any launched token it absorbed to the pool
treasury and redeposits everything just outside the live price.

A currency0-only range must sit above the price and a currency1-only range
below it, so the wall goes above the tick when native is currency0 and below
it otherwise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Tuple

from ..kernels.liquidity_amounts import amounts_for_liquidity, liquidity_for_amount0, liquidity_for_amount1
from ..kernels.tick_grid import MAX_TICK, MIN_TICK, TICK_SPACING, align_tick
from ..kernels.tick_math import sqrt_price_at_tick
from ..state.pools import PoolId, PoolInfo
from ..state.records import BidWallRecord
from ..state.store import RecordStore
from .errors import PolicyRejection
from .events import Event, EventBus
from .interfaces import PoolManager
from .thresholds import FixedThreshold, ThresholdPolicy


logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 10**17


@dataclass(frozen=True)
class BidWallPosition:
    amount0: int
    amount1: int
    pending_native: int


def wall_range(tick: int, native_is_zero: bool, spacing: int = TICK_SPACING) -> Tuple[int, int]:
    """One-spacing range strictly outside `tick` on the native side."""
    lo = -((-MIN_TICK) // spacing) * spacing
    hi = (MAX_TICK // spacing) * spacing
    if native_is_zero:
        lower = min(align_tick(tick + 1, False, spacing=spacing), hi - spacing)
        return lower, lower + spacing
    upper = max(align_tick(tick - 1, True, spacing=spacing), lo + spacing)
    return upper - spacing, upper


class BidWallEngine:
    def __init__(
        self,
        pool_manager: PoolManager,
        events: EventBus,
        *,
        hook_address: str,
        threshold_policy: ThresholdPolicy | None = None,
        tick_spacing: int = TICK_SPACING,
    ) -> None:
        self._pm = pool_manager
        self._events = events
        self._hook = hook_address
        self._threshold = threshold_policy or FixedThreshold(DEFAULT_THRESHOLD)
        self._spacing = tick_spacing
        self._records: RecordStore[PoolId, BidWallRecord] = RecordStore(BidWallRecord)

    def record(self, pool_id: PoolId) -> BidWallRecord:
        return self._records.get(pool_id)

    def is_enabled(self, pool_id: PoolId) -> bool:
        return not self._records.get(pool_id).disabled

    def threshold(self, pool_id: PoolId) -> int:
        return self._threshold.threshold(self._records.get(pool_id).cumulative_swap_fees)

    def deposit(self, info: PoolInfo, native_amount: int, current_tick: int) -> BidWallRecord:
        """
        Accept `native_amount` (already held by the hook) for the pool's wall.

        `current_tick` is the pool's tick before the trade that generated the
        fees; the live tick replaces it when the trade has moved the price
        across the range the stale tick would pick.
        """
        pool_id = info.pool_id
        record = self._records.get(pool_id)
        if native_amount == 0:
            return record
        if record.disabled:
            raise PolicyRejection(f"bid wall is disabled for {pool_id}")

        record = replace(
            record,
            cumulative_swap_fees=record.cumulative_swap_fees + native_amount,
            pending_native_fees=record.pending_native_fees + native_amount,
        )
        self._events.emit(Event.BID_WALL_DEPOSIT, pool_id=pool_id, amount=native_amount, pending=record.pending_native_fees)

        if record.pending_native_fees < self._threshold.threshold(record.cumulative_swap_fees):
            self._records.put(pool_id, record)
            return record

        funds = record.pending_native_fees
        if record.initialized:
            native_out, other_out = self._remove(info, record)
            funds += native_out
            if other_out:
                self._pm.transfer(info.other_currency, self._hook, info.treasury, other_out)

        _, live_tick = self._pm.current_price(pool_id)
        if info.native_is_zero:
            tick = max(current_tick, live_tick)
        else:
            tick = min(current_tick, live_tick)
        tick_lower, tick_upper = wall_range(tick, info.native_is_zero, self._spacing)

        sqrt_lower = sqrt_price_at_tick(tick_lower)
        sqrt_upper = sqrt_price_at_tick(tick_upper)
        if info.native_is_zero:
            liquidity = liquidity_for_amount0(sqrt_lower, sqrt_upper, funds)
        else:
            liquidity = liquidity_for_amount1(sqrt_lower, sqrt_upper, funds)

        if liquidity == 0:
            # too little to fund any liquidity; park it until the next deposit
            record = replace(record, initialized=False, pending_native_fees=funds)
            self._records.put(pool_id, record)
            return record

        self._pm.modify_position(pool_id, self._hook, tick_lower, tick_upper, liquidity)
        record = replace(
            record,
            initialized=True,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            pending_native_fees=0,
        )
        self._records.put(pool_id, record)
        self._events.emit(
            Event.BID_WALL_REPOSITIONED,
            pool_id=pool_id,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            native_amount=funds,
            liquidity=liquidity,
        )
        logger.info("bid wall repositioned for %s: [%d, %d) native=%d", pool_id, tick_lower, tick_upper, funds)
        return record

    def _remove(self, info: PoolInfo, record: BidWallRecord) -> Tuple[int, int]:
        """Pull the whole wall; returns (native, other) received by the hook."""
        liquidity = self._pm.position_liquidity(info.pool_id, self._hook, record.tick_lower, record.tick_upper)
        if liquidity == 0:
            return 0, 0
        amount0, amount1 = self._pm.modify_position(
            info.pool_id, self._hook, record.tick_lower, record.tick_upper, -liquidity
        )
        if info.native_is_zero:
            return amount0, amount1
        return amount1, amount0

    def close(self, info: PoolInfo) -> BidWallRecord:
        """Pull the wall and send everything it held, pending included, to the treasury."""
        pool_id = info.pool_id
        record = self._records.get(pool_id)
        native_out, other_out = 0, 0
        if record.initialized:
            native_out, other_out = self._remove(info, record)

        native_total = native_out + record.pending_native_fees
        if native_total:
            self._pm.transfer(info.native_currency, self._hook, info.treasury, native_total)
        if other_out:
            self._pm.transfer(info.other_currency, self._hook, info.treasury, other_out)

        closed = replace(
            record,
            initialized=False,
            tick_lower=0,
            tick_upper=0,
            pending_native_fees=0,
            cumulative_swap_fees=0,
        )
        self._records.put(pool_id, closed)
        self._events.emit(Event.BID_WALL_CLOSED, pool_id=pool_id, native_amount=native_total, other_amount=other_out)
        logger.info("bid wall closed for %s: native=%d other=%d", pool_id, native_total, other_out)
        return closed

    def set_disabled(self, info: PoolInfo, disabled: bool) -> BidWallRecord:
        pool_id = info.pool_id
        record = self._records.get(pool_id)
        if record.disabled == disabled:
            return record
        if disabled:
            record = self.close(info)
        record = replace(record, disabled=disabled)
        self._records.put(pool_id, record)
        self._events.emit(Event.BID_WALL_DISABLED_STATE_UPDATED, pool_id=pool_id, disabled=disabled)
        logger.info("bid wall %s for %s", "disabled" if disabled else "enabled", pool_id)
        return record

    def position(self, info: PoolInfo) -> BidWallPosition:
        record = self._records.get(info.pool_id)
        if not record.initialized:
            return BidWallPosition(0, 0, record.pending_native_fees)
        liquidity = self._pm.position_liquidity(info.pool_id, self._hook, record.tick_lower, record.tick_upper)
        sqrt_price, _ = self._pm.current_price(info.pool_id)
        amounts = amounts_for_liquidity(
            sqrt_price, sqrt_price_at_tick(record.tick_lower), sqrt_price_at_tick(record.tick_upper), liquidity
        )
        return BidWallPosition(amounts.amount0, amounts.amount1, record.pending_native_fees)
