"""
LaunchHook: the per-trade pipeline and the administrative entry points.

The pool manager calls `before_trade` and `after_trade` around every swap on
a registered pool. `before_trade` closes an elapsed fair launch, fills
native-in trades from the launch inventory while the window is open, and
otherwise nets the trade against fee inventory. `after_trade` takes the swap
fee from the AMM's output, pays the referrer, banks the rest as inventory
and distributes native inventory once enough has accumulated.

Each entry point runs under the pool's lock inside a staged journal: if it
raises, every record, balance and escrow credit it touched is restored.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from ..core.bid_wall import BidWallEngine
from ..core.errors import (
    AuthorizationError,
    CannotSellDuringFairLaunch,
    InvariantViolation,
    UnknownPool,
    ZeroRecipient,
)
from ..core.events import Event, EventBus
from ..core.fair_launch import FairLaunchEngine
from ..core.fee_calculators import FeeCalculator
from ..core.fees import FeeWaterfall, decode_referrer
from ..core.interfaces import Clock, PoolManager, SystemClock
from ..core.netting import NO_NETTING, InternalNettingPool
from ..kernels.tick_math import sqrt_price_at_tick
from ..state.journal import staged
from ..state.pools import (
    ZERO_BEFORE_SWAP_DELTA,
    BalanceDelta,
    BeforeSwapDelta,
    PoolId,
    PoolInfo,
    PoolKey,
    SwapParams,
    is_null_address,
)
from ..state.records import FeeDistributionPolicy
from ..state.store import RecordStore
from .config import AdminConfig, HookConfig


logger = logging.getLogger(__name__)


class LaunchHook:
    def __init__(
        self,
        pool_manager: PoolManager,
        admin: AdminConfig,
        config: Optional[HookConfig] = None,
        *,
        clock: Optional[Clock] = None,
        events: Optional[EventBus] = None,
        fee_calculator: Optional[FeeCalculator] = None,
    ) -> None:
        self.config = config or HookConfig()
        self.admin = admin
        self.address = admin.hook_address
        self.events = events or EventBus()
        self.clock = clock or SystemClock()
        self._pm = pool_manager

        self.fair_launch = FairLaunchEngine(
            pool_manager,
            self.clock,
            self.events,
            hook_address=self.address,
            window=self.config.fair_launch_duration,
            tick_spacing=self.config.tick_spacing,
        )
        self.netting = InternalNettingPool(self.events)
        self.fees = FeeWaterfall(
            pool_manager,
            self.events,
            hook_address=self.address,
            native_currency=admin.native_currency,
            default_policy=self.config.default_policy,
            max_protocol_fee_bps=self.config.max_protocol_fee_bps,
            max_fee_exemption_bps=self.config.max_fee_exemption_bps,
            use_referral_escrow=admin.use_referral_escrow,
            fee_calculator=fee_calculator,
        )
        self.bid_wall = BidWallEngine(
            pool_manager,
            self.events,
            hook_address=self.address,
            threshold_policy=self.config.threshold_policy(),
            tick_spacing=self.config.tick_spacing,
        )

        self._pools: RecordStore[PoolId, Optional[PoolInfo]] = RecordStore(lambda: None)
        self._pre_swap_ticks: RecordStore[PoolId, int] = RecordStore(int)
        self._pool_locks: Dict[PoolId, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    # -- access control -------------------------------------------------------

    def _require_owner(self, caller: str) -> None:
        if caller.lower() != self.admin.owner:
            raise AuthorizationError(f"{caller} is not the owner")

    def _require_orchestrator(self, caller: str) -> None:
        if caller.lower() != self.admin.orchestrator:
            raise AuthorizationError(f"{caller} is not the pool manager")

    def _require_creator(self, caller: str, info: PoolInfo) -> None:
        if is_null_address(info.creator) or caller.lower() != info.creator:
            raise AuthorizationError(f"{caller} is not the creator of {info.pool_id}")

    @contextmanager
    def _locked(self, pool_id: PoolId) -> Iterator[None]:
        with self._registry_lock:
            lock = self._pool_locks.get(pool_id)
            if lock is None:
                lock = self._pool_locks[pool_id] = threading.RLock()
        with lock, staged():
            yield

    def _fees_to_preserve(self, info: PoolInfo) -> int:
        """Launched-token balance the hook holds for others: fee inventory and unclaimed referrals."""
        return self.netting.inventory(info.pool_id).other_amount + self.fees.referral_liability(info.other_currency)

    def pool_info(self, pool_id: PoolId) -> PoolInfo:
        info = self._pools.get(pool_id)
        if info is None:
            raise UnknownPool(f"pool {pool_id} is not registered")
        return info

    # -- registration ---------------------------------------------------------

    def register_pool(
        self,
        caller: str,
        key: PoolKey,
        creator: str,
        treasury: str,
        initial_tick: int,
        supply: int,
        *,
        start_time: Optional[int] = None,
        fair_launch_duration: Optional[int] = None,
        creator_fee_bps: int = 0,
    ) -> PoolInfo:
        """
        Initialise `key` at `initial_tick` and open its fair launch.

        The hook must already hold `supply` of the launched token. A zero
        duration skips the sale and seeds the permanent positions at once.
        """
        self._require_owner(caller)
        if key.hooks != self.address:
            raise InvariantViolation(f"pool {key.pool_id} is not attached to this hook")
        if key.tick_spacing != self.config.tick_spacing:
            raise InvariantViolation(f"tick spacing must be {self.config.tick_spacing}")
        if self._pools.get(key.pool_id) is not None:
            raise InvariantViolation(f"pool {key.pool_id} already registered")
        if is_null_address(treasury):
            raise ZeroRecipient("treasury must not be the null address")
        try:
            info = PoolInfo(key=key, native_currency=self.admin.native_currency, creator=creator, treasury=treasury)
        except ValueError as exc:
            raise InvariantViolation(str(exc)) from exc

        available = self._pm.balance_of(self.address, info.other_currency)
        if supply < 0 or available < supply:
            raise InvariantViolation(f"hook holds {available} of {info.other_currency}, launch needs {supply}")

        duration = self.config.fair_launch_duration if fair_launch_duration is None else fair_launch_duration
        if not isinstance(duration, int) or isinstance(duration, bool) or duration < 0:
            raise InvariantViolation(f"fair launch duration must be a non-negative int: {duration!r}")
        try:
            sqrt_price = sqrt_price_at_tick(initial_tick)
        except (TypeError, ValueError) as exc:
            raise InvariantViolation(str(exc)) from exc

        pool_id = info.pool_id
        with self._locked(pool_id):
            self._pm.initialize(key, sqrt_price)
            self._pools.put(pool_id, info)
            if creator_fee_bps:
                self.fees.set_creator_fee_allocation(pool_id, creator_fee_bps)

            now = self.clock.now() if start_time is None else start_time
            self.fair_launch.open(pool_id, initial_tick, now, supply, window=duration)
            if duration == 0:
                self.fair_launch.close(info, self._fees_to_preserve(info))

        logger.info("registered pool %s (creator=%s, tick=%d, supply=%d)", pool_id, info.creator, initial_tick, supply)
        return info

    # -- trade pipeline -------------------------------------------------------

    def before_trade(
        self,
        caller: str,
        sender: str,
        key: PoolKey,
        params: SwapParams,
        hook_data: bytes = b"",
    ) -> BeforeSwapDelta:
        self._require_orchestrator(caller)
        info = self.pool_info(key.pool_id)
        pool_id = info.pool_id

        with self._locked(pool_id):
            sqrt_price, tick = self._pm.current_price(pool_id)
            self._pre_swap_ticks.put(pool_id, tick)

            record = self.fair_launch.record(pool_id)
            if record.exists and not record.closed and self.clock.now() >= record.ends_at:
                self.fair_launch.close(info, self._fees_to_preserve(info))

            native_in = params.zero_for_one == info.native_is_zero
            if self.fair_launch.is_open(pool_id):
                if not native_in:
                    raise CannotSellDuringFairLaunch(f"pool {pool_id} only accepts buys until its fair launch ends")
                fill = self.fair_launch.fill(pool_id, params.amount_specified, info.native_is_zero)
                if fill.native_amount == 0 and fill.other_amount == 0:
                    return ZERO_BEFORE_SWAP_DELTA
                return self._settle_internal_fill(info, sender, params, fill.native_amount, fill.other_amount, hook_data)

            result = self.netting.attempt_netting(
                pool_id,
                native_in,
                params.amount_specified,
                sqrt_price,
                self._pm.liquidity(pool_id),
                native_is_zero=info.native_is_zero,
                sqrt_price_limit=params.sqrt_price_limit_x96,
            )
            if result is NO_NETTING:
                return ZERO_BEFORE_SWAP_DELTA
            return self._settle_internal_fill(info, sender, params, result.native_used, result.other_used, hook_data)

    def _settle_internal_fill(
        self,
        info: PoolInfo,
        sender: str,
        params: SwapParams,
        native_used: int,
        other_used: int,
        hook_data: bytes,
    ) -> BeforeSwapDelta:
        """
        Move a hook-side fill through the pool manager and charge its fee.

        Exact input: the hook takes the native in and pays out the launched
        token less the fee. Exact output: the hook pays out the requested
        launched token and takes the native cost plus the fee.
        """
        key = info.key
        if params.exact_input:
            fee = self.fees.compute_swap_fee(key, sender, params, other_used)
            self._pm.take(info.native_currency, self.address, native_used)
            self._pm.settle(info.other_currency, self.address, other_used - fee)
            self._route_fee(info, info.other_currency, fee, hook_data)
            return BeforeSwapDelta(specified=native_used, unspecified=-(other_used - fee))

        fee = self.fees.compute_swap_fee(key, sender, params, native_used)
        self._pm.take(info.native_currency, self.address, native_used + fee)
        self._pm.settle(info.other_currency, self.address, other_used)
        self._route_fee(info, info.native_currency, fee, hook_data)
        return BeforeSwapDelta(specified=-other_used, unspecified=native_used + fee)

    def after_trade(
        self,
        caller: str,
        sender: str,
        key: PoolKey,
        params: SwapParams,
        delta: BalanceDelta,
        hook_data: bytes = b"",
    ) -> int:
        """Charge the swap fee on the AMM's unspecified side; returns the fee taken."""
        self._require_orchestrator(caller)
        info = self.pool_info(key.pool_id)

        with self._locked(info.pool_id):
            if params.specified_is_zero:
                unspecified, currency = delta.amount1, key.currency1
            else:
                unspecified, currency = delta.amount0, key.currency0

            fee = self.fees.compute_swap_fee(key, sender, params, abs(unspecified))
            if fee:
                self._pm.take(currency, self.address, fee)
                self._route_fee(info, currency, fee, hook_data)

            self._distribute(info)

            if self.fees.fee_calculator is not None:
                self.fees.fee_calculator.track_swap(sender, key, params, delta, hook_data)
            return fee

    def _route_fee(self, info: PoolInfo, currency: str, fee: int, hook_data: bytes) -> None:
        if fee == 0:
            return
        self.events.emit(Event.SWAP_FEE_CAPTURED, pool_id=info.pool_id, currency=currency, amount=fee)
        paid = self.fees.pay_referrer(info.pool_id, currency, fee, decode_referrer(hook_data))
        remainder = fee - paid
        if currency == info.native_currency:
            self.netting.deposit(info.pool_id, remainder, 0)
        else:
            self.netting.deposit(info.pool_id, 0, remainder)

    def _distribute(self, info: PoolInfo) -> None:
        """
        Split native inventory once it reaches the distribution threshold.

        A pool without a creator sends the creator share to the bid wall; a
        disabled bid wall sends its share to the creator, or to the treasury
        when there is no creator either.
        """
        pool_id = info.pool_id
        if self.netting.inventory(pool_id).native_amount < self.config.min_distribute_threshold:
            return

        amount = self.netting.withdraw_native(pool_id)
        split = self.fees.split(pool_id, amount)
        self.fees.allocate(pool_id, self.admin.protocol_recipient, split.protocol)

        creator_share = split.creator
        bid_wall_share = split.bid_wall
        treasury_share = 0
        no_creator = is_null_address(info.creator)
        if no_creator:
            bid_wall_share += creator_share
            creator_share = 0
        if not self.bid_wall.is_enabled(pool_id):
            if no_creator:
                treasury_share = bid_wall_share
            else:
                creator_share += bid_wall_share
            bid_wall_share = 0

        self.fees.allocate(pool_id, info.creator, creator_share)
        self.fees.allocate(pool_id, info.treasury, treasury_share)
        self.bid_wall.deposit(info, bid_wall_share, self._pre_swap_ticks.get(pool_id))
        logger.debug(
            "distributed %d for %s: protocol=%d creator=%d bid_wall=%d treasury=%d",
            amount, pool_id, split.protocol, creator_share, bid_wall_share, treasury_share,
        )

    # -- administration -------------------------------------------------------

    def set_fee_distribution(self, caller: str, policy: FeeDistributionPolicy) -> None:
        self._require_owner(caller)
        self.fees.set_fee_distribution(policy)

    def set_pool_fee_distribution(self, caller: str, pool_id: PoolId, policy: FeeDistributionPolicy) -> None:
        self._require_owner(caller)
        self.pool_info(pool_id)
        self.fees.set_pool_fee_distribution(pool_id, policy)

    def set_creator_fee_allocation(self, caller: str, pool_id: PoolId, creator_bps: int) -> None:
        info = self.pool_info(pool_id)
        self._require_creator(caller, info)
        self.fees.set_creator_fee_allocation(pool_id, creator_bps)

    def set_fee_exemption(self, caller: str, account: str, flat_fee_bps: int) -> None:
        self._require_owner(caller)
        self.fees.set_fee_exemption(account, flat_fee_bps)

    def remove_fee_exemption(self, caller: str, account: str) -> None:
        self._require_owner(caller)
        self.fees.remove_fee_exemption(account)

    def set_fee_calculator(self, caller: str, calculator: Optional[FeeCalculator]) -> None:
        self._require_owner(caller)
        self.fees.fee_calculator = calculator

    def set_bid_wall_disabled(self, caller: str, pool_id: PoolId, disabled: bool) -> None:
        info = self.pool_info(pool_id)
        self._require_creator(caller, info)
        with self._locked(pool_id):
            self.bid_wall.set_disabled(info, disabled)

    def close_fair_launch(self, caller: str, pool_id: PoolId) -> None:
        """End a running fair launch early; the window predicate stops at once."""
        info = self.pool_info(pool_id)
        self._require_creator(caller, info)
        with self._locked(pool_id):
            record = self.fair_launch.record(pool_id)
            if not record.exists or record.closed:
                raise InvariantViolation(f"pool {pool_id} has no running fair launch")
            self.fair_launch.close(info, self._fees_to_preserve(info))

    def withdraw_fees(self, caller: str, unwrap_to_base: bool = False) -> int:
        if unwrap_to_base and self.admin.base_currency is None:
            raise InvariantViolation("no base currency configured to unwrap into")
        with staged():
            return self.fees.withdraw(caller, unwrap_to_base)

    def claim_referral(self, caller: str, currency: str) -> int:
        with staged():
            return self.fees.claim_referral(caller, currency)
