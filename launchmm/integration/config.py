"""
Hook and admin configuration.

Both configs are frozen dataclasses validated on construction. `load_config`
reads a YAML document with top-level `hook:` and `admin:` mappings; every key
must name a dataclass field.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

import yaml

from ..core.errors import InvariantViolation
from ..core.thresholds import CumulativeThreshold, FixedThreshold, ThresholdPolicy
from ..kernels.tick_grid import TICK_SPACING
from ..state.pools import normalize_address
from ..state.records import BPS_DENOM, FeeDistributionPolicy


def _require_int(name: str, value: Any, *, minimum: int = 0) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvariantViolation(f"{name} must be an int, got {value!r}")
    if value < minimum:
        raise InvariantViolation(f"{name} must be >= {minimum}: {value}")


def _require_mapping(obj: Any, *, name: str) -> Mapping[str, Any]:
    if not isinstance(obj, Mapping):
        raise InvariantViolation(f"{name} must be a mapping")
    return obj


@dataclass(frozen=True)
class HookConfig:
    fair_launch_duration: int = 30 * 60
    tick_spacing: int = TICK_SPACING

    # Pending native fees needed before the bid wall repositions. With
    # `bid_wall_threshold_bps` set the threshold also grows with lifetime fees.
    bid_wall_threshold: int = 10**17
    bid_wall_threshold_bps: int = 0
    bid_wall_threshold_cap: int = 0

    # Native fee inventory below this is held back from distribution.
    min_distribute_threshold: int = 10**15

    max_protocol_fee_bps: int = 1_000
    max_fee_exemption_bps: int = BPS_DENOM

    swap_fee_bps: int = 100
    referrer_bps: int = 500
    protocol_bps: int = 0

    def __post_init__(self) -> None:
        for f in fields(self):
            _require_int(f.name, getattr(self, f.name))
        if self.tick_spacing <= 0:
            raise InvariantViolation("tick_spacing must be positive")
        for name in ("bid_wall_threshold_bps", "max_protocol_fee_bps", "max_fee_exemption_bps",
                     "swap_fee_bps", "referrer_bps", "protocol_bps"):
            if getattr(self, name) > BPS_DENOM:
                raise InvariantViolation(f"{name} must be <= {BPS_DENOM}")
        if self.protocol_bps > self.max_protocol_fee_bps:
            raise InvariantViolation("protocol_bps exceeds max_protocol_fee_bps")

    @property
    def default_policy(self) -> FeeDistributionPolicy:
        return FeeDistributionPolicy(
            swap_fee_bps=self.swap_fee_bps,
            referrer_bps=self.referrer_bps,
            protocol_bps=self.protocol_bps,
            active=True,
        )

    def threshold_policy(self) -> ThresholdPolicy:
        if self.bid_wall_threshold_bps == 0:
            return FixedThreshold(self.bid_wall_threshold)
        return CumulativeThreshold(
            floor=self.bid_wall_threshold,
            bps=self.bid_wall_threshold_bps,
            cap=self.bid_wall_threshold_cap,
        )


@dataclass(frozen=True)
class AdminConfig:
    """
    Ownership and routing fixed at construction.

    `orchestrator` is the only caller allowed into the trade entry points
    (normally the pool manager itself).
    """

    owner: str
    hook_address: str
    protocol_recipient: str
    native_currency: str
    orchestrator: str
    base_currency: Optional[str] = None
    use_referral_escrow: bool = False

    def __post_init__(self) -> None:
        for name in ("owner", "hook_address", "protocol_recipient", "native_currency", "orchestrator"):
            object.__setattr__(self, name, normalize_address(getattr(self, name), name=name))
        if self.base_currency is not None:
            object.__setattr__(self, "base_currency", normalize_address(self.base_currency, name="base_currency"))
        if not isinstance(self.use_referral_escrow, bool):
            raise InvariantViolation("use_referral_escrow must be a bool")


def _build(cls, obj: Any, *, name: str):
    data = dict(_require_mapping(obj, name=name))
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise InvariantViolation(f"unknown {name} keys: {', '.join(unknown)}")
    try:
        return cls(**data)
    except (TypeError, ValueError) as exc:
        raise InvariantViolation(f"invalid {name} config: {exc}") from exc


def config_from_mapping(root: Mapping[str, Any]) -> Tuple[HookConfig, AdminConfig]:
    root = _require_mapping(root, name="config")
    unknown = sorted(set(root) - {"hook", "admin"})
    if unknown:
        raise InvariantViolation(f"unknown config sections: {', '.join(unknown)}")
    hook = _build(HookConfig, root.get("hook") or {}, name="hook")
    if "admin" not in root:
        raise InvariantViolation("config.admin is required")
    admin = _build(AdminConfig, root["admin"], name="admin")
    return hook, admin


def load_config(path: Path | str) -> Tuple[HookConfig, AdminConfig]:
    raw = Path(path).read_text(encoding="utf-8")
    return config_from_mapping(yaml.safe_load(raw))
