"""Bid wall reposition thresholds."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ..state.records import BPS_DENOM


class ThresholdPolicy(Protocol):
    def threshold(self, cumulative_swap_fees: int) -> int:
        ...


@dataclass(frozen=True)
class FixedThreshold:
    amount: int

    def __post_init__(self) -> None:
        if not isinstance(self.amount, int) or isinstance(self.amount, bool) or self.amount < 0:
            raise ValueError(f"threshold must be a non-negative int: {self.amount!r}")

    def threshold(self, cumulative_swap_fees: int) -> int:
        return self.amount


@dataclass(frozen=True)
class CumulativeThreshold:
    """
    Threshold that grows with lifetime fee volume.

    threshold = max(floor, min(cap, cumulative * bps / 10_000)); it never
    drops below `floor`. A `cap` of 0 means uncapped.
    """

    floor: int
    bps: int
    cap: int = 0

    def __post_init__(self) -> None:
        for name, v in (("floor", self.floor), ("bps", self.bps), ("cap", self.cap)):
            if not isinstance(v, int) or isinstance(v, bool) or v < 0:
                raise ValueError(f"{name} must be a non-negative int: {v!r}")
        if self.bps > BPS_DENOM:
            raise ValueError(f"bps must be <= {BPS_DENOM}: {self.bps}")
        if self.cap and self.cap < self.floor:
            raise ValueError("cap must not be below floor")

    def threshold(self, cumulative_swap_fees: int) -> int:
        scaled = (cumulative_swap_fees * self.bps) // BPS_DENOM
        if self.cap:
            scaled = min(self.cap, scaled)
        return max(self.floor, scaled)
