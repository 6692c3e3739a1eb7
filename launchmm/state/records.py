"""
Per-pool records.

All records are frozen dataclasses; engines derive a new record with
`dataclasses.replace` and write it back through a `RecordStore`. Every
record's defaults are its zero value, which is what an unknown pool reads as.

Units/conventions:
- amounts are integer token base units,
- `*_bps` rates are basis points (1/10_000),
- timestamps are integer seconds.
"""

from __future__ import annotations

from dataclasses import dataclass


BPS_DENOM = 10_000


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _require_non_negative(*pairs: tuple[str, int]) -> None:
    for name, value in pairs:
        _require_int(name, value)
        if value < 0:
            raise ValueError(f"{name} must be non-negative: {value}")


@dataclass(frozen=True)
class FairLaunchRecord:
    """
    Fixed-price launch inventory for one pool.

    The pool is in its window iff `starts_at <= now < ends_at`; closing early
    rewrites `ends_at` so the predicate terminates on its own.
    """

    starts_at: int = 0
    ends_at: int = 0
    initial_tick: int = 0
    revenue: int = 0
    supply: int = 0
    closed: bool = False

    def __post_init__(self) -> None:
        _require_int("initial_tick", self.initial_tick)
        _require_non_negative(
            ("starts_at", self.starts_at),
            ("ends_at", self.ends_at),
            ("revenue", self.revenue),
            ("supply", self.supply),
        )

    def in_window(self, now: int) -> bool:
        return self.starts_at <= now < self.ends_at

    @property
    def exists(self) -> bool:
        return self.ends_at != 0 or self.closed


@dataclass(frozen=True)
class NettingInventory:
    """Fee tokens held off-curve, awaiting distribution or sale into trade flow."""

    native_amount: int = 0
    other_amount: int = 0

    def __post_init__(self) -> None:
        _require_non_negative(("native_amount", self.native_amount), ("other_amount", self.other_amount))


@dataclass(frozen=True)
class FeeDistributionPolicy:
    swap_fee_bps: int = 0
    referrer_bps: int = 0
    protocol_bps: int = 0
    active: bool = False

    def __post_init__(self) -> None:
        for name, v in (
            ("swap_fee_bps", self.swap_fee_bps),
            ("referrer_bps", self.referrer_bps),
            ("protocol_bps", self.protocol_bps),
        ):
            _require_int(name, v)
            if not (0 <= v <= BPS_DENOM):
                raise ValueError(f"{name} must be in [0, {BPS_DENOM}]: {v}")
        if not isinstance(self.active, bool):
            raise TypeError("active must be a bool")


@dataclass(frozen=True)
class FeeExemption:
    flat_fee_bps: int = 0
    enabled: bool = False

    def __post_init__(self) -> None:
        _require_non_negative(("flat_fee_bps", self.flat_fee_bps))


@dataclass(frozen=True)
class BidWallRecord:
    """
    Single-sided native liquidity parked one tick spacing outside the price.

    `tick_lower`/`tick_upper` are only meaningful while `initialized`.
    """

    disabled: bool = False
    initialized: bool = False
    tick_lower: int = 0
    tick_upper: int = 0
    pending_native_fees: int = 0
    cumulative_swap_fees: int = 0

    def __post_init__(self) -> None:
        _require_int("tick_lower", self.tick_lower)
        _require_int("tick_upper", self.tick_upper)
        _require_non_negative(
            ("pending_native_fees", self.pending_native_fees),
            ("cumulative_swap_fees", self.cumulative_swap_fees),
        )
        if self.initialized and self.tick_lower >= self.tick_upper:
            raise ValueError(f"tick range must be ordered: {self.tick_lower} < {self.tick_upper}")
