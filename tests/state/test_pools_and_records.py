from __future__ import annotations

import pytest

from launchmm.kernels.tick_math import MAX_SQRT_PRICE, MIN_SQRT_PRICE
from launchmm.state.pools import PoolInfo, PoolKey, SwapParams
from launchmm.state.records import BidWallRecord, FairLaunchRecord, FeeDistributionPolicy, NettingInventory


A = "0x" + "01" * 20
B = "0x" + "02" * 20
H = "0x" + "0a" * 20
Z = "0x" + "00" * 20


def _key(fee: int = 0) -> PoolKey:
    return PoolKey(currency0=A, currency1=B, fee=fee, tick_spacing=60, hooks=H)


def test_pool_id_is_deterministic_and_distinct() -> None:
    assert _key().pool_id == _key().pool_id
    assert _key().pool_id != _key(fee=3000).pool_id
    assert _key().pool_id.startswith("0x") and len(_key().pool_id) == 66


def test_pool_key_requires_sorted_pair() -> None:
    with pytest.raises(ValueError):
        PoolKey(currency0=B, currency1=A, fee=0, tick_spacing=60, hooks=H)
    with pytest.raises(ValueError):
        PoolKey(currency0=A, currency1=A, fee=0, tick_spacing=60, hooks=H)


def test_pool_key_normalizes_case() -> None:
    upper = "0x" + "AB" * 20
    key = PoolKey(currency0=A, currency1=upper, fee=0, tick_spacing=60, hooks=H)
    assert key.currency1 == upper.lower()


def test_pool_info_native_side() -> None:
    info = PoolInfo(key=_key(), native_currency=B, creator=Z, treasury=H)
    assert not info.native_is_zero
    assert info.other_currency == A
    with pytest.raises(ValueError):
        PoolInfo(key=_key(), native_currency=H, creator=Z, treasury=H)


def test_swap_params_default_limits_and_sides() -> None:
    buy0 = SwapParams(zero_for_one=True, amount_specified=-5)
    assert buy0.sqrt_price_limit_x96 == MIN_SQRT_PRICE + 1
    assert buy0.exact_input and buy0.specified_is_zero

    out0 = SwapParams(zero_for_one=False, amount_specified=5)
    assert out0.sqrt_price_limit_x96 == MAX_SQRT_PRICE - 1
    assert not out0.exact_input
    assert out0.specified_is_zero


def test_records_default_to_zero() -> None:
    assert not FairLaunchRecord().exists
    assert NettingInventory() == NettingInventory(0, 0)
    assert not BidWallRecord().initialized
    assert not FeeDistributionPolicy().active


def test_window_predicate_is_half_open() -> None:
    r = FairLaunchRecord(starts_at=100, ends_at=200, supply=1)
    assert not r.in_window(99)
    assert r.in_window(100)
    assert r.in_window(199)
    assert not r.in_window(200)


def test_record_validation() -> None:
    with pytest.raises(ValueError):
        NettingInventory(native_amount=-1)
    with pytest.raises(TypeError):
        FairLaunchRecord(supply=True)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        FeeDistributionPolicy(protocol_bps=10_001)
    with pytest.raises(ValueError):
        BidWallRecord(initialized=True, tick_lower=60, tick_upper=60)
