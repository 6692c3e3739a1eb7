from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import pytest

from launchmm.core.interfaces import FixedClock
from launchmm.integration import AdminConfig, HookConfig, LaunchHook, MemoryPoolManager
from launchmm.state.pools import BalanceDelta, PoolInfo, PoolKey, SwapParams


OWNER = "0x" + "a1" * 20
HOOK = "0x" + "b2" * 20
MANAGER = "0x" + "c3" * 20
PROTOCOL = "0x" + "d4" * 20
CREATOR = "0x" + "e5" * 20
TREASURY = "0x" + "f6" * 20
NATIVE = "0x" + "01" * 20
TOKEN = "0x" + "02" * 20

START = 1_700_000_000
SUPPLY = 10**21


@dataclass
class Launch:
    pm: MemoryPoolManager
    hook: LaunchHook
    clock: FixedClock
    admin: AdminConfig
    key: PoolKey
    info: PoolInfo

    def swap(self, trader: str, native_in: bool, amount_specified: int, hook_data: bytes = b"") -> BalanceDelta:
        zero_for_one = native_in == self.info.native_is_zero
        params = SwapParams(zero_for_one=zero_for_one, amount_specified=amount_specified)
        return self.pm.swap(self.key, params, trader, hook_data)

    def end_fair_launch(self) -> None:
        record = self.hook.fair_launch.record(self.info.pool_id)
        self.clock.set(record.ends_at)


def build_launch(
    config: Optional[HookConfig] = None,
    *,
    use_referral_escrow: bool = False,
    creator: str = CREATOR,
    initial_tick: int = 0,
    duration: Optional[int] = None,
    creator_fee_bps: int = 0,
) -> Launch:
    clock = FixedClock(START)
    pm = MemoryPoolManager(MANAGER)
    admin = AdminConfig(
        owner=OWNER,
        hook_address=HOOK,
        protocol_recipient=PROTOCOL,
        native_currency=NATIVE,
        orchestrator=MANAGER,
        use_referral_escrow=use_referral_escrow,
    )
    hook = LaunchHook(pm, admin, config or HookConfig(), clock=clock)
    pm.attach_hook(hook)
    pm.mint(HOOK, TOKEN, SUPPLY)
    key = PoolKey(currency0=NATIVE, currency1=TOKEN, fee=0, tick_spacing=60, hooks=HOOK)
    info = hook.register_pool(
        OWNER,
        key,
        creator,
        TREASURY,
        initial_tick,
        SUPPLY,
        fair_launch_duration=duration,
        creator_fee_bps=creator_fee_bps,
    )
    return Launch(pm=pm, hook=hook, clock=clock, admin=admin, key=key, info=info)


@pytest.fixture
def make_launch() -> Callable[..., Launch]:
    return build_launch


@pytest.fixture
def launch() -> Launch:
    return build_launch()
