"""
In-memory reference pool manager.

Stands in for the AMM pool engine the hook is attached to: it stores price
slots and positions, holds token custody, settles position changes
synchronously and orchestrates a swap through the hook's before/after call
points. Liquidity is piecewise constant between position boundaries and the
swap walks those boundaries one step at a time.

Custody may go negative while a swap is in flight (the trader settles last)
but must be non-negative again when the swap returns. Custody is kept per
pool so an in-flight swap on one pool never shows up in another's check.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Protocol, Set, Tuple

from ..core.errors import InvariantViolation, TransferError
from ..kernels.sqrt_price_math import signed_amount0_delta, signed_amount1_delta
from ..kernels.swap_math import MAX_FEE_PIPS, compute_swap_step
from ..kernels.tick_math import MAX_SQRT_PRICE, MAX_TICK, MIN_SQRT_PRICE, MIN_TICK, sqrt_price_at_tick, tick_at_sqrt_price
from ..state.balances import Account, BalanceTable, Currency
from ..state.journal import record_undo, staged
from ..state.pools import (
    ZERO_BEFORE_SWAP_DELTA,
    BalanceDelta,
    BeforeSwapDelta,
    PoolId,
    PoolKey,
    SwapParams,
    normalize_address,
)
from ..state.store import RecordStore


logger = logging.getLogger(__name__)


class SwapHook(Protocol):
    address: str

    def before_trade(self, caller: str, sender: str, key: PoolKey, params: SwapParams, hook_data: bytes = b"") -> BeforeSwapDelta:
        ...

    def after_trade(
        self, caller: str, sender: str, key: PoolKey, params: SwapParams, delta: BalanceDelta, hook_data: bytes = b""
    ) -> int:
        ...


@dataclass(frozen=True)
class Slot:
    sqrt_price_x96: int = 0
    tick: int = 0

    @property
    def initialized(self) -> bool:
        return self.sqrt_price_x96 != 0


PositionKey = Tuple[PoolId, Account, int, int]


class MemoryPoolManager:
    def __init__(self, address: str) -> None:
        self.address = normalize_address(address)
        self.balances = BalanceTable()
        self.blocked: Set[Account] = set()
        self.unwrap_targets: Dict[Currency, Currency] = {}
        self._custody: Dict[Tuple[PoolId, Currency], int] = {}
        self._custody_lock = threading.Lock()
        self._in_flight = threading.local()
        self._keys: Dict[PoolId, PoolKey] = {}
        self._slots: RecordStore[PoolId, Slot] = RecordStore(Slot)
        self._positions: RecordStore[PositionKey, int] = RecordStore(int)
        self._hooks: Dict[Account, SwapHook] = {}
        self._pool_locks: Dict[PoolId, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    # -- setup ----------------------------------------------------------------

    def attach_hook(self, hook: SwapHook) -> None:
        self._hooks[hook.address] = hook

    def mint(self, account: Account, currency: Currency, amount: int) -> None:
        """Credit `amount` out of thin air (test and simulation funding)."""
        self.balances.add(account.lower(), currency.lower(), amount)

    def initialize(self, key: PoolKey, sqrt_price_x96: int) -> int:
        pool_id = key.pool_id
        if self._slots.get(pool_id).initialized:
            raise InvariantViolation(f"pool {pool_id} already initialized")
        if not (MIN_SQRT_PRICE <= sqrt_price_x96 < MAX_SQRT_PRICE):
            raise InvariantViolation(f"sqrt price out of range: {sqrt_price_x96}")
        tick = tick_at_sqrt_price(sqrt_price_x96)
        self._keys[pool_id] = key
        self._slots.put(pool_id, Slot(sqrt_price_x96, tick))
        record_undo(lambda: self._keys.pop(pool_id, None))
        logger.info("pool %s initialized at tick %d", pool_id, tick)
        return tick

    def set_price(self, pool_id: PoolId, sqrt_price_x96: int) -> None:
        """Move the price directly, without trading (simulates outside flow)."""
        self._require_slot(pool_id)
        self._slots.put(pool_id, Slot(sqrt_price_x96, tick_at_sqrt_price(sqrt_price_x96)))

    def set_tick(self, pool_id: PoolId, tick: int) -> None:
        self.set_price(pool_id, sqrt_price_at_tick(tick))

    # -- reads ----------------------------------------------------------------

    def _require_slot(self, pool_id: PoolId) -> Slot:
        slot = self._slots.get(pool_id)
        if not slot.initialized:
            raise InvariantViolation(f"pool {pool_id} not initialized")
        return slot

    def current_price(self, pool_id: PoolId) -> Tuple[int, int]:
        slot = self._require_slot(pool_id)
        return slot.sqrt_price_x96, slot.tick

    def _pool_positions(self, pool_id: PoolId) -> Iterable[Tuple[int, int, int]]:
        for (pid, _, lower, upper), liquidity in self._positions.items():
            if pid == pool_id and liquidity:
                yield lower, upper, liquidity

    def liquidity(self, pool_id: PoolId) -> int:
        tick = self._require_slot(pool_id).tick
        return sum(liq for lower, upper, liq in self._pool_positions(pool_id) if lower <= tick < upper)

    def position_liquidity(self, pool_id: PoolId, owner: Account, tick_lower: int, tick_upper: int) -> int:
        return self._positions.get((pool_id, owner.lower(), tick_lower, tick_upper))

    def balance_of(self, account: Account, currency: Currency) -> int:
        return self.balances.get(account.lower(), currency.lower())

    def custody(self, currency: Currency, pool_id: Optional[PoolId] = None) -> int:
        """Tokens held for `pool_id`, or for every pool when `pool_id` is None."""
        currency = currency.lower()
        with self._custody_lock:
            if pool_id is not None:
                return self._custody.get((pool_id, currency), 0)
            return sum(amount for (_, c), amount in self._custody.items() if c == currency)

    # -- token movement -------------------------------------------------------

    @contextmanager
    def _unlocked(self, pool_id: PoolId) -> Iterator[None]:
        """Route take/settle on this thread to `pool_id`'s custody."""
        previous = getattr(self._in_flight, "pool_id", None)
        self._in_flight.pool_id = pool_id
        try:
            yield
        finally:
            self._in_flight.pool_id = previous

    def _apply_custody(self, slot: Tuple[PoolId, Currency], delta: int) -> None:
        with self._custody_lock:
            self._custody[slot] = self._custody.get(slot, 0) + delta

    def _move_custody(self, currency: Currency, delta: int) -> None:
        if delta == 0:
            return
        pool_id = getattr(self._in_flight, "pool_id", None)
        if pool_id is None:
            raise InvariantViolation("take/settle called outside a swap or position change")
        slot = (pool_id, currency)
        self._apply_custody(slot, delta)
        record_undo(lambda: self._apply_custody(slot, -delta))

    def take(self, currency: Currency, recipient: Account, amount: int) -> None:
        if amount < 0:
            raise InvariantViolation(f"take amount must be non-negative: {amount}")
        currency = currency.lower()
        self._move_custody(currency, -amount)
        self.balances.add(recipient.lower(), currency, amount)

    def settle(self, currency: Currency, payer: Account, amount: int) -> None:
        if amount < 0:
            raise InvariantViolation(f"settle amount must be non-negative: {amount}")
        currency = currency.lower()
        self.balances.subtract(payer.lower(), currency, amount)
        self._move_custody(currency, amount)

    def transfer(self, currency: Currency, sender: Account, recipient: Account, amount: int) -> None:
        recipient = recipient.lower()
        if recipient in self.blocked:
            raise TransferError(f"{recipient} cannot receive {currency}")
        if amount == 0:
            return
        currency = currency.lower()
        self.balances.subtract(sender.lower(), currency, amount)
        self.balances.add(recipient, currency, amount)

    def unwrap(self, currency: Currency, account: Account, amount: int) -> Currency:
        currency = currency.lower()
        target = self.unwrap_targets.get(currency)
        if target is None:
            raise InvariantViolation(f"no base token configured for {currency}")
        self.balances.subtract(account.lower(), currency, amount)
        self.balances.add(account.lower(), target, amount)
        return target

    # -- positions ------------------------------------------------------------

    def modify_position(
        self,
        pool_id: PoolId,
        owner: Account,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int,
    ) -> Tuple[int, int]:
        slot = self._require_slot(pool_id)
        key = self._keys[pool_id]
        if liquidity_delta == 0:
            raise InvariantViolation("liquidity delta must be non-zero")
        if not (MIN_TICK <= tick_lower < tick_upper <= MAX_TICK):
            raise InvariantViolation(f"invalid tick range [{tick_lower}, {tick_upper})")
        if tick_lower % key.tick_spacing or tick_upper % key.tick_spacing:
            raise InvariantViolation(f"ticks not aligned to spacing {key.tick_spacing}")

        owner = owner.lower()
        position = (pool_id, owner, tick_lower, tick_upper)
        liquidity = self._positions.get(position) + liquidity_delta
        if liquidity < 0:
            raise InvariantViolation("cannot remove more liquidity than the position holds")

        sqrt_lower = sqrt_price_at_tick(tick_lower)
        sqrt_upper = sqrt_price_at_tick(tick_upper)
        owed0 = owed1 = 0
        if slot.tick < tick_lower:
            owed0 = signed_amount0_delta(sqrt_lower, sqrt_upper, liquidity_delta)
        elif slot.tick < tick_upper:
            owed0 = signed_amount0_delta(slot.sqrt_price_x96, sqrt_upper, liquidity_delta)
            owed1 = signed_amount1_delta(sqrt_lower, slot.sqrt_price_x96, liquidity_delta)
        else:
            owed1 = signed_amount1_delta(sqrt_lower, sqrt_upper, liquidity_delta)

        self._positions.put(position, liquidity)
        with self._unlocked(pool_id):
            for currency, owed in ((key.currency0, owed0), (key.currency1, owed1)):
                if owed > 0:
                    self.settle(currency, owner, owed)
                elif owed < 0:
                    self.take(currency, owner, -owed)
        logger.debug("position %s [%d, %d) %+d -> (%d, %d)", owner, tick_lower, tick_upper, liquidity_delta, -owed0, -owed1)
        return -owed0, -owed1

    # -- swaps ----------------------------------------------------------------

    def _pool_lock(self, pool_id: PoolId) -> threading.RLock:
        with self._registry_lock:
            lock = self._pool_locks.get(pool_id)
            if lock is None:
                lock = self._pool_locks[pool_id] = threading.RLock()
            return lock

    def _step_target(self, pool_id: PoolId, sqrt_price: int, limit: int, zero_for_one: bool) -> Tuple[int, int]:
        """Next boundary (or the limit) in the swap direction, and the liquidity up to it."""
        boundaries = set()
        for lower, upper, _ in self._pool_positions(pool_id):
            boundaries.add(sqrt_price_at_tick(lower))
            boundaries.add(sqrt_price_at_tick(upper))
        if zero_for_one:
            target = max([b for b in boundaries if limit < b < sqrt_price] + [limit])
            lo, hi = target, sqrt_price
        else:
            target = min([b for b in boundaries if sqrt_price < b < limit] + [limit])
            lo, hi = sqrt_price, target
        liquidity = sum(
            liq for lower, upper, liq in self._pool_positions(pool_id)
            if sqrt_price_at_tick(lower) <= lo and hi <= sqrt_price_at_tick(upper)
        )
        return target, liquidity

    def _swap(self, key: PoolKey, zero_for_one: bool, amount_specified: int, limit: int) -> BalanceDelta:
        pool_id = key.pool_id
        slot = self._require_slot(pool_id)
        if amount_specified == 0:
            return BalanceDelta()
        if zero_for_one and not (MIN_SQRT_PRICE < limit < slot.sqrt_price_x96):
            raise InvariantViolation(f"price limit {limit} already exceeded")
        if not zero_for_one and not (slot.sqrt_price_x96 < limit < MAX_SQRT_PRICE):
            raise InvariantViolation(f"price limit {limit} already exceeded")

        fee_pips = min(key.fee, MAX_FEE_PIPS)
        remaining = amount_specified
        calculated = 0
        sqrt_price = slot.sqrt_price_x96
        tick = slot.tick
        while remaining != 0 and sqrt_price != limit:
            target, liquidity = self._step_target(pool_id, sqrt_price, limit, zero_for_one)
            step = compute_swap_step(sqrt_price, target, liquidity, remaining, fee_pips)
            if remaining < 0:
                remaining += step.amount_in + step.fee_amount
                calculated += step.amount_out
            else:
                remaining -= step.amount_out
                calculated -= step.amount_in + step.fee_amount
            sqrt_price = step.sqrt_price_next
            tick = tick_at_sqrt_price(sqrt_price)
            if zero_for_one and target != limit and sqrt_price == target:
                # crossed a boundary moving down: the range below is now active
                tick -= 1

        self._slots.put(pool_id, Slot(sqrt_price, tick))
        consumed = amount_specified - remaining
        if zero_for_one == (amount_specified < 0):
            return BalanceDelta(consumed, calculated)
        return BalanceDelta(calculated, consumed)

    def swap(
        self,
        key: PoolKey,
        params: SwapParams,
        sender: Account,
        hook_data: bytes = b"",
    ) -> BalanceDelta:
        """
        Execute a trade for `sender`, calling the pool's hook around the AMM swap.

        Returns the trader's net delta (negative = paid). The whole trade,
        hook state included, is discarded if any step raises.
        """
        pool_id = key.pool_id
        sender = sender.lower()
        hook: Optional[SwapHook] = self._hooks.get(key.hooks)
        with self._pool_lock(pool_id), staged(), self._unlocked(pool_id):
            before = ZERO_BEFORE_SWAP_DELTA
            if hook is not None:
                before = hook.before_trade(self.address, sender, key, params, hook_data)

            amount_to_swap = params.amount_specified + before.specified
            if amount_to_swap != 0 and (amount_to_swap < 0) != params.exact_input:
                raise InvariantViolation("hook delta exceeds swap amount")

            amm_delta = self._swap(key, params.zero_for_one, amount_to_swap, params.sqrt_price_limit_x96)

            fee = 0
            if hook is not None:
                fee = hook.after_trade(self.address, sender, key, params, amm_delta, hook_data)

            hook_specified = before.specified
            hook_unspecified = before.unspecified + fee
            if params.specified_is_zero:
                hook0, hook1 = hook_specified, hook_unspecified
            else:
                hook0, hook1 = hook_unspecified, hook_specified
            trader = BalanceDelta(amm_delta.amount0 - hook0, amm_delta.amount1 - hook1)

            for currency, amount in ((key.currency0, trader.amount0), (key.currency1, trader.amount1)):
                if amount < 0:
                    self.settle(currency, sender, -amount)
                elif amount > 0:
                    self.take(currency, sender, amount)

            for currency in (key.currency0, key.currency1):
                held = self.custody(currency, pool_id)
                if held < 0:
                    raise InvariantViolation(f"unsettled custody for {currency}: {held}")
            return trader
