from __future__ import annotations

import pytest

from launchmm.core.bid_wall import BidWallEngine, BidWallPosition, wall_range
from launchmm.core.errors import PolicyRejection
from launchmm.core.events import Event, EventBus
from launchmm.core.thresholds import CumulativeThreshold, FixedThreshold
from launchmm.integration.pool_manager import MemoryPoolManager
from launchmm.kernels.tick_math import sqrt_price_at_tick
from launchmm.state.pools import PoolInfo, PoolKey


HOOK = "0x" + "b2" * 20
MANAGER = "0x" + "c3" * 20
LOW = "0x" + "01" * 20
HIGH = "0x" + "02" * 20
CREATOR = "0x" + "e5" * 20
TREASURY = "0x" + "f6" * 20

THRESHOLD = 10**15
DEPOSIT = 6 * 10**14


def _setup(*, native_is_zero: bool = True, threshold=None, funds: int = 10**18):
    pm = MemoryPoolManager(MANAGER)
    key = PoolKey(currency0=LOW, currency1=HIGH, fee=0, tick_spacing=60, hooks=HOOK)
    native = LOW if native_is_zero else HIGH
    info = PoolInfo(key=key, native_currency=native, creator=CREATOR, treasury=TREASURY)
    pm.initialize(key, sqrt_price_at_tick(0))
    pm.mint(HOOK, native, funds)
    events = EventBus()
    engine = BidWallEngine(pm, events, hook_address=HOOK, threshold_policy=threshold or FixedThreshold(THRESHOLD))
    return pm, events, engine, info


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

def test_fixed_threshold() -> None:
    assert FixedThreshold(5).threshold(10**30) == 5
    with pytest.raises(ValueError):
        FixedThreshold(-1)


def test_cumulative_threshold_grows_within_floor_and_cap() -> None:
    policy = CumulativeThreshold(floor=100, bps=1_000, cap=500)
    assert policy.threshold(0) == 100
    assert policy.threshold(2_000) == 200
    assert policy.threshold(10**6) == 500
    assert CumulativeThreshold(floor=100, bps=1_000).threshold(10**6) == 100_000


def test_cumulative_threshold_validation() -> None:
    with pytest.raises(ValueError):
        CumulativeThreshold(floor=100, bps=10_001)
    with pytest.raises(ValueError):
        CumulativeThreshold(floor=100, bps=10, cap=50)


# ---------------------------------------------------------------------------
# Ranges
# ---------------------------------------------------------------------------

def test_wall_range_is_one_spacing_outside_tick() -> None:
    assert wall_range(0, True) == (60, 120)
    assert wall_range(0, False) == (-120, -60)
    assert wall_range(59, True) == (60, 120)
    assert wall_range(60, True) == (120, 180)
    assert wall_range(-61, False) == (-180, -120)


def test_wall_range_stays_on_grid_at_extremes() -> None:
    assert wall_range(887_200, True) == (887_160, 887_220)
    assert wall_range(-887_200, False) == (-887_220, -887_160)


# ---------------------------------------------------------------------------
# Deposits
# ---------------------------------------------------------------------------

def test_scenario_c_threshold_crossing() -> None:
    pm, events, engine, info = _setup()
    first = engine.deposit(info, DEPOSIT, 0)
    assert first.pending_native_fees == DEPOSIT
    assert not first.initialized
    assert events.history(Event.BID_WALL_REPOSITIONED) == []

    second = engine.deposit(info, DEPOSIT, 0)
    assert second.initialized
    assert second.pending_native_fees == 0
    assert second.cumulative_swap_fees == 2 * DEPOSIT
    assert (second.tick_lower, second.tick_upper) == (60, 120)
    assert second.tick_upper - second.tick_lower == 60
    assert pm.position_liquidity(info.pool_id, HOOK, 60, 120) > 0
    assert len(events.history(Event.BID_WALL_REPOSITIONED)) == 1
    assert len(events.history(Event.BID_WALL_DEPOSIT)) == 2


def test_deposits_under_threshold_never_initialize() -> None:
    pm, _, engine, info = _setup()
    for _ in range(5):
        engine.deposit(info, 10**14, 0)
    record = engine.record(info.pool_id)
    assert not record.initialized
    assert record.pending_native_fees == 5 * 10**14


def test_zero_deposit_is_noop() -> None:
    _, events, engine, info = _setup()
    engine.deposit(info, 0, 0)
    assert events.history() == []


def test_native_currency1_wall_sits_below_price() -> None:
    pm, _, engine, info = _setup(native_is_zero=False)
    record = engine.deposit(info, THRESHOLD, 0)
    assert (record.tick_lower, record.tick_upper) == (-120, -60)
    assert pm.position_liquidity(info.pool_id, HOOK, -120, -60) > 0


def test_live_tick_replaces_stale_tick() -> None:
    pm, _, engine, info = _setup()
    pm.set_tick(info.pool_id, 200)
    record = engine.deposit(info, THRESHOLD, 0)
    assert (record.tick_lower, record.tick_upper) == (240, 300)

    pm, _, engine, info = _setup(native_is_zero=False)
    pm.set_tick(info.pool_id, -200)
    record = engine.deposit(info, THRESHOLD, 0)
    assert (record.tick_lower, record.tick_upper) == (-300, -240)


def test_stale_tick_kept_when_live_price_did_not_cross() -> None:
    pm, _, engine, info = _setup()
    pm.set_tick(info.pool_id, -500)
    record = engine.deposit(info, THRESHOLD, 0)
    assert (record.tick_lower, record.tick_upper) == (60, 120)


def test_reposition_migrates_old_wall() -> None:
    pm, events, engine, info = _setup()
    engine.deposit(info, THRESHOLD, 0)
    pm.set_tick(info.pool_id, 130)
    record = engine.deposit(info, THRESHOLD, 130)
    assert (record.tick_lower, record.tick_upper) == (180, 240)
    assert pm.position_liquidity(info.pool_id, HOOK, 60, 120) == 0
    assert pm.position_liquidity(info.pool_id, HOOK, 180, 240) > 0
    assert len(events.history(Event.BID_WALL_REPOSITIONED)) == 2


def test_reposition_sends_absorbed_token_to_treasury() -> None:
    pm, _, engine, info = _setup()
    engine.deposit(info, THRESHOLD, 0)
    # price inside the wall: part of it has been bought with the launched token
    pm.set_tick(info.pool_id, 90)
    engine.deposit(info, THRESHOLD, 90)
    assert pm.balance_of(TREASURY, HIGH) > 0


def test_cumulative_threshold_raises_bar() -> None:
    policy = CumulativeThreshold(floor=THRESHOLD, bps=5_000)
    _, _, engine, info = _setup(threshold=policy)
    record = engine.deposit(info, 3 * THRESHOLD, 0)
    # cumulative 3e15 -> threshold 1.5e15, crossed
    assert record.initialized
    record = engine.deposit(info, THRESHOLD, 0)
    # cumulative 4e15 -> threshold 2e15, parked
    assert record.pending_native_fees == THRESHOLD
    assert engine.threshold(info.pool_id) == 2 * THRESHOLD


# ---------------------------------------------------------------------------
# Close / disable / position
# ---------------------------------------------------------------------------

def test_close_returns_everything_to_treasury() -> None:
    pm, events, engine, info = _setup()
    engine.deposit(info, THRESHOLD, 0)
    engine.deposit(info, 10**14, 0)
    record = engine.close(info)
    assert not record.initialized
    assert record.pending_native_fees == 0
    assert record.cumulative_swap_fees == 0
    assert pm.position_liquidity(info.pool_id, HOOK, 60, 120) == 0
    # everything but rounding dust from the deposit reaches the treasury
    assert THRESHOLD + 10**14 - 2 <= pm.balance_of(TREASURY, LOW) <= THRESHOLD + 10**14
    assert len(events.history(Event.BID_WALL_CLOSED)) == 1


def test_disable_closes_and_blocks_deposits() -> None:
    pm, events, engine, info = _setup()
    engine.deposit(info, THRESHOLD, 0)
    engine.set_disabled(info, True)
    assert not engine.is_enabled(info.pool_id)
    assert not engine.record(info.pool_id).initialized
    assert pm.balance_of(TREASURY, LOW) > 0

    engine.set_disabled(info, True)
    assert len(events.history(Event.BID_WALL_DISABLED_STATE_UPDATED)) == 1
    with pytest.raises(PolicyRejection):
        engine.deposit(info, THRESHOLD, 0)

    engine.set_disabled(info, False)
    assert engine.is_enabled(info.pool_id)
    assert len(events.history(Event.BID_WALL_CLOSED)) == 1
    assert engine.deposit(info, THRESHOLD, 0).initialized


def test_position_projection() -> None:
    _, _, engine, info = _setup()
    engine.deposit(info, DEPOSIT, 0)
    assert engine.position(info) == BidWallPosition(0, 0, DEPOSIT)
    engine.deposit(info, DEPOSIT, 0)
    position = engine.position(info)
    assert position.pending_native == 0
    assert position.amount1 == 0
    assert 2 * DEPOSIT - 2 <= position.amount0 <= 2 * DEPOSIT
