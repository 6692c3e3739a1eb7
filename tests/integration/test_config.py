from __future__ import annotations

import pytest

from launchmm.core.errors import InvariantViolation
from launchmm.core.thresholds import CumulativeThreshold, FixedThreshold
from launchmm.integration.config import AdminConfig, HookConfig, config_from_mapping, load_config


ADMIN = {
    "owner": "0x" + "a1" * 20,
    "hook_address": "0x" + "b2" * 20,
    "protocol_recipient": "0x" + "d4" * 20,
    "native_currency": "0x" + "01" * 20,
    "orchestrator": "0x" + "c3" * 20,
}

YAML_DOC = """
hook:
  fair_launch_duration: 900
  bid_wall_threshold: 1000000000000000
  protocol_bps: 500
admin:
  owner: "0xa1a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1"
  hook_address: "0xb2b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2"
  protocol_recipient: "0xd4d4d4d4d4d4d4d4d4d4d4d4d4d4d4d4d4d4d4d4"
  native_currency: "0x0101010101010101010101010101010101010101"
  orchestrator: "0xc3c3c3c3c3c3c3c3c3c3c3c3c3c3c3c3c3c3c3c3"
  use_referral_escrow: true
"""


def test_defaults() -> None:
    cfg = HookConfig()
    assert cfg.fair_launch_duration == 1800
    assert cfg.tick_spacing == 60
    assert cfg.bid_wall_threshold == 10**17
    assert cfg.min_distribute_threshold == 10**15
    policy = cfg.default_policy
    assert (policy.swap_fee_bps, policy.referrer_bps, policy.protocol_bps, policy.active) == (100, 500, 0, True)
    assert isinstance(cfg.threshold_policy(), FixedThreshold)


def test_cumulative_threshold_selected_by_bps() -> None:
    policy = HookConfig(bid_wall_threshold_bps=100, bid_wall_threshold_cap=10**18).threshold_policy()
    assert isinstance(policy, CumulativeThreshold)
    assert policy.floor == 10**17


def test_hook_config_validation() -> None:
    with pytest.raises(InvariantViolation):
        HookConfig(protocol_bps=2_000)
    with pytest.raises(InvariantViolation):
        HookConfig(swap_fee_bps=True)  # type: ignore[arg-type]
    with pytest.raises(InvariantViolation):
        HookConfig(tick_spacing=0)
    with pytest.raises(InvariantViolation):
        HookConfig(fair_launch_duration=-1)


def test_admin_config_normalizes_addresses() -> None:
    admin = AdminConfig(**{**ADMIN, "owner": "0x" + "A1" * 20})
    assert admin.owner == "0x" + "a1" * 20
    assert admin.base_currency is None
    with pytest.raises(ValueError):
        AdminConfig(**{**ADMIN, "owner": "alice"})


def test_load_config_from_yaml(tmp_path) -> None:
    path = tmp_path / "launch.yaml"
    path.write_text(YAML_DOC, encoding="utf-8")
    hook, admin = load_config(path)
    assert hook.fair_launch_duration == 900
    assert hook.bid_wall_threshold == 10**15
    assert hook.protocol_bps == 500
    assert hook.swap_fee_bps == 100
    assert admin.use_referral_escrow is True
    assert admin.native_currency == "0x" + "01" * 20


def test_unknown_keys_rejected() -> None:
    with pytest.raises(InvariantViolation):
        config_from_mapping({"hook": {"swap_fee": 1}, "admin": ADMIN})
    with pytest.raises(InvariantViolation):
        config_from_mapping({"admin": ADMIN, "extra": {}})
    with pytest.raises(InvariantViolation):
        config_from_mapping({"admin": {**ADMIN, "colour": "red"}})


def test_admin_section_required() -> None:
    with pytest.raises(InvariantViolation):
        config_from_mapping({"hook": {}})


def test_invalid_admin_address_reported_as_invariant() -> None:
    with pytest.raises(InvariantViolation):
        config_from_mapping({"admin": {**ADMIN, "owner": 123}})
