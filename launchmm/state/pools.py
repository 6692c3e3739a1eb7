"""
Pool identity and per-trade value types.

A pool is identified by its key (sorted currency pair, fee tier, tick spacing
and hook address); `PoolKey.pool_id` is the collision-resistant digest every
per-pool record is keyed by.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Optional

from ..kernels.tick_math import MAX_SQRT_PRICE, MIN_SQRT_PRICE
from .balances import NULL_ADDRESS, Account, Currency


PoolId = str  # 32-byte hex digest (0x...)

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_address(value: object, *, name: str = "address") -> str:
    """Validate a 20-byte hex address and return it lower-cased."""
    if not isinstance(value, str) or not _ADDRESS_RE.fullmatch(value):
        raise ValueError(f"{name} must be a 0x-prefixed 20-byte hex string: {value!r}")
    return value.lower()


def is_null_address(value: Optional[str]) -> bool:
    return value is None or value.lower() == NULL_ADDRESS


def compute_pool_id(currency0: Currency, currency1: Currency, fee: int, tick_spacing: int, hooks: Account) -> PoolId:
    """
    Deterministically compute a pool id:

        pool_id = H("LaunchPool" || currency0 || currency1 || fee || tick_spacing || hooks)
    """
    data = (
        b"LaunchPool"
        + currency0.encode("utf-8")
        + currency1.encode("utf-8")
        + str(int(fee)).encode("utf-8")
        + str(int(tick_spacing)).encode("utf-8")
        + hooks.encode("utf-8")
    )
    return "0x" + hashlib.sha256(data).hexdigest()


@dataclass(frozen=True)
class PoolKey:
    currency0: Currency
    currency1: Currency
    fee: int
    tick_spacing: int
    hooks: Account

    def __post_init__(self) -> None:
        object.__setattr__(self, "currency0", normalize_address(self.currency0, name="currency0"))
        object.__setattr__(self, "currency1", normalize_address(self.currency1, name="currency1"))
        object.__setattr__(self, "hooks", normalize_address(self.hooks, name="hooks"))
        if self.currency0 >= self.currency1:
            raise ValueError(f"currencies must be in canonical order: {self.currency0} < {self.currency1}")
        if self.tick_spacing <= 0:
            raise ValueError(f"tick_spacing must be positive: {self.tick_spacing}")
        if self.fee < 0:
            raise ValueError(f"fee must be non-negative: {self.fee}")

    @property
    def pool_id(self) -> PoolId:
        return compute_pool_id(self.currency0, self.currency1, self.fee, self.tick_spacing, self.hooks)


@dataclass(frozen=True)
class PoolInfo:
    """
    What the hook knows about a launched pool.

    Attributes:
        key: Pool key
        native_currency: The pool's native (quote) token
        creator: Creator-equivalent role; receives the creator fee share
        treasury: Destination for tokens recovered from the bid wall
    """
    key: PoolKey
    native_currency: Currency
    creator: Account
    treasury: Account

    def __post_init__(self) -> None:
        object.__setattr__(self, "native_currency", normalize_address(self.native_currency, name="native_currency"))
        object.__setattr__(self, "creator", normalize_address(self.creator, name="creator"))
        object.__setattr__(self, "treasury", normalize_address(self.treasury, name="treasury"))
        if self.native_currency not in (self.key.currency0, self.key.currency1):
            raise ValueError("native currency must be one side of the pool")

    @property
    def pool_id(self) -> PoolId:
        return self.key.pool_id

    @property
    def native_is_zero(self) -> bool:
        return self.native_currency == self.key.currency0

    @property
    def other_currency(self) -> Currency:
        return self.key.currency1 if self.native_is_zero else self.key.currency0


@dataclass(frozen=True)
class SwapParams:
    """
    Trade parameters, in the AMM's signed convention:
    `amount_specified < 0` is exact input, `>= 0` exact output.
    """
    zero_for_one: bool
    amount_specified: int
    sqrt_price_limit_x96: int = 0

    def __post_init__(self) -> None:
        if self.sqrt_price_limit_x96 == 0:
            limit = MIN_SQRT_PRICE + 1 if self.zero_for_one else MAX_SQRT_PRICE - 1
            object.__setattr__(self, "sqrt_price_limit_x96", limit)

    @property
    def exact_input(self) -> bool:
        return self.amount_specified < 0

    @property
    def specified_is_zero(self) -> bool:
        """True when the specified amount is denominated in currency0."""
        return self.exact_input == self.zero_for_one


@dataclass(frozen=True)
class BalanceDelta:
    """Token movement from the trader's perspective (negative = trader pays)."""
    amount0: int = 0
    amount1: int = 0


@dataclass(frozen=True)
class BeforeSwapDelta:
    """Hook delta on the specified/unspecified sides (positive = hook receives)."""
    specified: int = 0
    unspecified: int = 0


ZERO_BEFORE_SWAP_DELTA = BeforeSwapDelta()
