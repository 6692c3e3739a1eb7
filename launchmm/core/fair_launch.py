"""
Fair launch: a time-boxed, single-tick inventory sold at a fixed price.

While a pool is in its window, native-in trades are filled directly from the
launch inventory at the price of `initial_tick`, before any AMM liquidity is
touched. When the window ends the leftover inventory and the accumulated
revenue become two permanent single-sided positions either side of
`initial_tick`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from ..kernels.full_math import mul_div
from ..kernels.liquidity_amounts import liquidity_for_amount0, liquidity_for_amount1
from ..kernels.tick_grid import MAX_TICK, MIN_TICK, TICK_SPACING, align_tick
from ..kernels.tick_math import MAX_UINT128, Q128, Q192, sqrt_price_at_tick
from ..state.pools import PoolId, PoolInfo
from ..state.records import FairLaunchRecord
from ..state.store import RecordStore
from .errors import InvariantViolation
from .events import Event, EventBus
from .interfaces import Clock, PoolManager


logger = logging.getLogger(__name__)

FAIR_LAUNCH_WINDOW = 30 * 60

# Precision used when shrinking a fill that exceeds the remaining supply.
_FILL_PRECISION = 10**18


@dataclass(frozen=True)
class FairLaunchFill:
    native_amount: int
    other_amount: int


@dataclass(frozen=True)
class LaunchPosition:
    tick_lower: int
    tick_upper: int
    liquidity: int


def quote_at_tick(tick: int, base_amount: int, base_is_currency0: bool) -> int:
    """
    Convert `base_amount` into the other currency at the price of `tick`.

    The squared price overflows 256 bits once the sqrt price leaves the lower
    half of its range, so the wide branch squares at 128-bit precision
    instead. The token order decides whether the ratio is applied or
    inverted.
    """
    sqrt_price = sqrt_price_at_tick(tick)
    if sqrt_price <= MAX_UINT128:
        ratio_x192 = sqrt_price * sqrt_price
        if base_is_currency0:
            return mul_div(ratio_x192, base_amount, Q192)
        return mul_div(Q192, base_amount, ratio_x192)

    ratio_x128 = mul_div(sqrt_price, sqrt_price, 1 << 64)
    if base_is_currency0:
        return mul_div(ratio_x128, base_amount, Q128)
    return mul_div(Q128, base_amount, ratio_x128)


def price_fill(record: FairLaunchRecord, amount_specified: int, native_is_zero: bool) -> FairLaunchFill:
    """
    Price a native-in fill against `record` without mutating it.

    `amount_specified < 0` is exact native in; `> 0` is exact other out.
    Fills larger than the remaining supply are capped at the supply and the
    native side is shrunk by the same fraction.
    """
    if amount_specified == 0:
        return FairLaunchFill(0, 0)

    if amount_specified < 0:
        native_amount = -amount_specified
        other_amount = quote_at_tick(record.initial_tick, native_amount, native_is_zero)
    else:
        other_amount = amount_specified
        native_amount = quote_at_tick(record.initial_tick, other_amount, not native_is_zero)

    if other_amount > record.supply:
        fraction = (record.supply * _FILL_PRECISION) // other_amount
        native_amount = (native_amount * fraction) // _FILL_PRECISION
        other_amount = record.supply

    return FairLaunchFill(native_amount, other_amount)


def apply_fill(record: FairLaunchRecord, fill: FairLaunchFill) -> FairLaunchRecord:
    if fill.other_amount > record.supply:
        raise InvariantViolation("fill exceeds remaining fair launch supply")
    return replace(
        record,
        revenue=record.revenue + fill.native_amount,
        supply=record.supply - fill.other_amount,
    )


def launch_ranges(initial_tick: int, native_is_zero: bool, spacing: int = TICK_SPACING) -> tuple[tuple[int, int], tuple[int, int]]:
    """
    ((native_lower, native_upper), (other_lower, other_upper)) just outside `initial_tick`.

    The native range is one spacing wide; the other range runs to the end of
    the grid. A currency0-only range must sit above the price and a
    currency1-only range below it.
    """
    lo = -((-MIN_TICK) // spacing) * spacing
    hi = (MAX_TICK // spacing) * spacing
    if native_is_zero:
        native_lower = align_tick(initial_tick + 1, False, spacing=spacing)
        other_upper = align_tick(initial_tick - 1, True, spacing=spacing)
        return (native_lower, native_lower + spacing), (lo, other_upper)

    native_upper = align_tick(initial_tick - 1, True, spacing=spacing)
    other_lower = align_tick(initial_tick + 1, False, spacing=spacing)
    return (native_upper - spacing, native_upper), (other_lower, hi)


class FairLaunchEngine:
    def __init__(
        self,
        pool_manager: PoolManager,
        clock: Clock,
        events: EventBus,
        *,
        hook_address: str,
        window: int = FAIR_LAUNCH_WINDOW,
        tick_spacing: int = TICK_SPACING,
    ) -> None:
        self._pm = pool_manager
        self._clock = clock
        self._events = events
        self._hook = hook_address
        self._window = window
        self._spacing = tick_spacing
        self._records: RecordStore[PoolId, FairLaunchRecord] = RecordStore(FairLaunchRecord)

    def record(self, pool_id: PoolId) -> FairLaunchRecord:
        return self._records.get(pool_id)

    def open(
        self,
        pool_id: PoolId,
        initial_tick: int,
        start_time: int,
        inventory_amount: int,
        *,
        window: int | None = None,
    ) -> FairLaunchRecord:
        """Create the launch record. Calling twice overwrites the first record."""
        duration = self._window if window is None else window
        if duration < 0:
            raise InvariantViolation(f"fair launch window must be non-negative: {duration}")
        record = FairLaunchRecord(
            starts_at=start_time,
            ends_at=start_time + duration,
            initial_tick=initial_tick,
            revenue=0,
            supply=inventory_amount,
            closed=False,
        )
        self._records.put(pool_id, record)
        self._events.emit(
            Event.FAIR_LAUNCH_CREATED,
            pool_id=pool_id,
            initial_tick=initial_tick,
            supply=inventory_amount,
            starts_at=record.starts_at,
            ends_at=record.ends_at,
        )
        logger.info("fair launch opened for %s: supply=%d tick=%d ends_at=%d", pool_id, inventory_amount, initial_tick, record.ends_at)
        return record

    def is_open(self, pool_id: PoolId) -> bool:
        # The window predicate alone decides; `close` rewrites `ends_at`.
        return self._records.get(pool_id).in_window(self._clock.now())

    def quote(self, pool_id: PoolId, amount_specified: int, native_is_zero: bool) -> FairLaunchFill:
        """Preview a fill without consuming inventory."""
        return price_fill(self._records.get(pool_id), amount_specified, native_is_zero)

    def fill(self, pool_id: PoolId, amount_specified: int, native_is_zero: bool) -> FairLaunchFill:
        """Quote a fill and consume it: revenue grows by the native side, supply shrinks by the other."""
        record = self._records.get(pool_id)
        fill = price_fill(record, amount_specified, native_is_zero)
        if fill.native_amount == 0 and fill.other_amount == 0:
            return fill
        self._records.put(pool_id, apply_fill(record, fill))
        self._events.emit(
            Event.FAIR_LAUNCH_FILLED,
            pool_id=pool_id,
            native_amount=fill.native_amount,
            other_amount=fill.other_amount,
        )
        logger.debug("fair launch fill %s: native=%d other=%d", pool_id, fill.native_amount, fill.other_amount)
        return fill

    def close(self, info: PoolInfo, fees_to_preserve: int) -> FairLaunchRecord:
        """
        Convert the launch into two permanent positions and end the window now.

        The native position is funded by `revenue`; the other-side position by
        the hook's remaining balance of the launched token minus the fee
        inventory in `fees_to_preserve`. Positions that would carry zero
        liquidity are skipped.
        """
        pool_id = info.pool_id
        record = self._records.get(pool_id)
        (native_lower, native_upper), (other_lower, other_upper) = launch_ranges(
            record.initial_tick, info.native_is_zero, self._spacing
        )

        other_balance = self._pm.balance_of(self._hook, info.other_currency) - fees_to_preserve
        if other_balance < 0:
            other_balance = 0

        if info.native_is_zero:
            native_liquidity = liquidity_for_amount0(
                sqrt_price_at_tick(native_lower), sqrt_price_at_tick(native_upper), record.revenue
            )
            other_liquidity = liquidity_for_amount1(
                sqrt_price_at_tick(other_lower), sqrt_price_at_tick(other_upper), other_balance
            )
        else:
            native_liquidity = liquidity_for_amount1(
                sqrt_price_at_tick(native_lower), sqrt_price_at_tick(native_upper), record.revenue
            )
            other_liquidity = liquidity_for_amount0(
                sqrt_price_at_tick(other_lower), sqrt_price_at_tick(other_upper), other_balance
            )

        positions = []
        for lower, upper, liquidity in (
            (native_lower, native_upper, native_liquidity),
            (other_lower, other_upper, other_liquidity),
        ):
            if liquidity == 0:
                continue
            self._pm.modify_position(pool_id, self._hook, lower, upper, liquidity)
            positions.append(LaunchPosition(lower, upper, liquidity))

        closed = replace(record, ends_at=self._clock.now(), closed=True, revenue=0, supply=0)
        self._records.put(pool_id, closed)
        self._events.emit(
            Event.FAIR_LAUNCH_CLOSED,
            pool_id=pool_id,
            revenue=record.revenue,
            supply=record.supply,
            positions=tuple(positions),
        )
        logger.info(
            "fair launch closed for %s: revenue=%d other=%d positions=%d",
            pool_id, record.revenue, other_balance, len(positions),
        )
        return closed
