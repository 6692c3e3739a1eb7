"""
Swap fee computation and the fee distribution waterfall.

Waterfall order is fixed: the protocol cut is taken first, the creator cut is
taken from what is left, and the bid wall receives the remainder, including
all integer rounding dust. Shares owed to the protocol and creators are held
in escrow until their owners withdraw them.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional

from ..state.balances import NULL_ADDRESS, BalanceTable
from ..state.pools import PoolId, PoolKey, SwapParams, is_null_address, normalize_address
from ..state.records import BPS_DENOM, FeeDistributionPolicy, FeeExemption
from ..state.store import RecordStore
from .errors import (
    CreatorFeeAlreadySet,
    FeeExemptionInvalid,
    InvariantViolation,
    ProtocolFeeTooHigh,
    TransferError,
    ZeroRecipient,
)
from .events import Event, EventBus
from .fee_calculators import FeeCalculator
from .interfaces import PoolManager


logger = logging.getLogger(__name__)

MAX_PROTOCOL_FEE_BPS = 1_000


@dataclass(frozen=True)
class FeeSplit:
    bid_wall: int
    creator: int
    protocol: int

    def __post_init__(self) -> None:
        for name, v in (("bid_wall", self.bid_wall), ("creator", self.creator), ("protocol", self.protocol)):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")


def split_waterfall(amount: int, protocol_bps: int, creator_bps: int) -> FeeSplit:
    """
    Split `amount` protocol-first, then creator, then bid wall.

    Each cut is floored; whatever is left after both lands in the bid wall
    share so the three shares always sum to `amount`.
    """
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
        raise ValueError(f"amount must be a non-negative int, got {amount}")

    remainder = amount
    protocol = 0
    creator = 0
    if protocol_bps != 0:
        protocol = (remainder * protocol_bps) // BPS_DENOM
        remainder -= protocol
    if creator_bps != 0:
        creator = (remainder * creator_bps) // BPS_DENOM
        remainder -= creator
    return FeeSplit(bid_wall=remainder, creator=creator, protocol=protocol)


def decode_referrer(hook_data: Optional[bytes]) -> Optional[str]:
    """
    Extract a referrer address from a trade's side-channel payload.

    Accepts a raw 20-byte address or an ABI-encoded 32-byte word; anything
    else carries no referrer.
    """
    if not hook_data:
        return None
    if len(hook_data) == 20:
        raw = hook_data
    elif len(hook_data) >= 32:
        raw = hook_data[12:32]
    else:
        return None
    address = "0x" + raw.hex()
    if is_null_address(address):
        return None
    return address


class FeeWaterfall:
    def __init__(
        self,
        ledger: PoolManager,
        events: EventBus,
        *,
        hook_address: str,
        native_currency: str,
        default_policy: FeeDistributionPolicy,
        max_protocol_fee_bps: int = MAX_PROTOCOL_FEE_BPS,
        max_fee_exemption_bps: int = BPS_DENOM,
        use_referral_escrow: bool = False,
        fee_calculator: Optional[FeeCalculator] = None,
    ) -> None:
        self._ledger = ledger
        self._events = events
        self._hook = hook_address
        self._native = native_currency
        self._max_protocol_fee_bps = max_protocol_fee_bps
        self._max_fee_exemption_bps = max_fee_exemption_bps
        self._use_referral_escrow = use_referral_escrow
        self.fee_calculator = fee_calculator

        self._validate(default_policy)
        self._default_policy = default_policy
        self._pool_policies: RecordStore[PoolId, FeeDistributionPolicy] = RecordStore(FeeDistributionPolicy)
        self._creator_fee_bps: RecordStore[PoolId, int] = RecordStore(int)
        self._exemptions: Dict[str, FeeExemption] = {}
        self._escrow = BalanceTable()
        self._referral_escrow = BalanceTable()
        self._admin_lock = threading.Lock()

    # -- policy ---------------------------------------------------------------

    def _validate(self, policy: FeeDistributionPolicy) -> None:
        if policy.protocol_bps > self._max_protocol_fee_bps:
            raise ProtocolFeeTooHigh(
                f"protocol_bps {policy.protocol_bps} exceeds ceiling {self._max_protocol_fee_bps}"
            )

    def set_fee_distribution(self, policy: FeeDistributionPolicy) -> None:
        self._validate(policy)
        self._default_policy = policy
        self._events.emit(Event.FEE_DISTRIBUTION_UPDATED, policy=policy)
        logger.info("global fee distribution set: %s", policy)

    def set_pool_fee_distribution(self, pool_id: PoolId, policy: FeeDistributionPolicy) -> None:
        self._validate(policy)
        self._pool_policies.put(pool_id, policy)
        self._events.emit(Event.POOL_FEE_DISTRIBUTION_UPDATED, pool_id=pool_id, policy=policy)
        logger.info("pool fee distribution set for %s: %s", pool_id, policy)

    def effective_policy(self, pool_id: PoolId) -> FeeDistributionPolicy:
        override = self._pool_policies.get(pool_id)
        return override if override.active else self._default_policy

    def set_creator_fee_allocation(self, pool_id: PoolId, creator_bps: int) -> None:
        if not isinstance(creator_bps, int) or isinstance(creator_bps, bool):
            raise InvariantViolation("creator_bps must be an int")
        if not (0 <= creator_bps <= BPS_DENOM):
            raise InvariantViolation(f"creator_bps must be in [0, {BPS_DENOM}]: {creator_bps}")
        with self._admin_lock:
            if pool_id in self._creator_fee_bps:
                raise CreatorFeeAlreadySet(f"creator fee allocation already set for {pool_id}")
            self._creator_fee_bps.put(pool_id, creator_bps)
        self._events.emit(Event.CREATOR_FEE_ALLOCATION_SET, pool_id=pool_id, creator_bps=creator_bps)

    def creator_fee_bps(self, pool_id: PoolId) -> int:
        return self._creator_fee_bps.get(pool_id)

    # -- exemptions -----------------------------------------------------------

    def set_fee_exemption(self, account: str, flat_fee_bps: int) -> None:
        account = normalize_address(account, name="account")
        if not isinstance(flat_fee_bps, int) or isinstance(flat_fee_bps, bool) or flat_fee_bps < 0:
            raise FeeExemptionInvalid(f"flat fee must be a non-negative int: {flat_fee_bps!r}")
        if flat_fee_bps > self._max_fee_exemption_bps:
            raise FeeExemptionInvalid(f"flat fee {flat_fee_bps} exceeds {self._max_fee_exemption_bps}")
        with self._admin_lock:
            self._exemptions[account] = FeeExemption(flat_fee_bps=flat_fee_bps, enabled=True)
        self._events.emit(Event.FEE_EXEMPTION_UPDATED, account=account, flat_fee_bps=flat_fee_bps, enabled=True)

    def remove_fee_exemption(self, account: str) -> None:
        account = normalize_address(account, name="account")
        with self._admin_lock:
            removed = self._exemptions.pop(account, None)
        if removed is not None:
            self._events.emit(Event.FEE_EXEMPTION_UPDATED, account=account, flat_fee_bps=0, enabled=False)

    def exemption(self, account: str) -> FeeExemption:
        return self._exemptions.get(account.lower(), FeeExemption())

    # -- swap fee -------------------------------------------------------------

    def swap_fee_bps(self, pool_key: PoolKey, sender: str, params: SwapParams) -> int:
        """
        Effective fee rate for a trade.

        Starts from the pool's configured rate, lets an attached calculator
        replace it, then applies the sender's flat exemption only if it is
        lower. Exemptions never raise the fee.
        """
        fee_bps = self.effective_policy(pool_key.pool_id).swap_fee_bps
        if self.fee_calculator is not None:
            fee_bps = self.fee_calculator.determine_swap_fee(pool_key, params, fee_bps)
            fee_bps = max(0, min(fee_bps, BPS_DENOM))

        exemption = self.exemption(sender)
        if exemption.enabled and exemption.flat_fee_bps < fee_bps:
            fee_bps = exemption.flat_fee_bps
        return fee_bps

    def compute_swap_fee(self, pool_key: PoolKey, sender: str, params: SwapParams, swap_amount: int) -> int:
        if swap_amount == 0:
            return 0
        fee_bps = self.swap_fee_bps(pool_key, sender, params)
        if fee_bps == 0:
            return 0
        return (swap_amount * fee_bps) // BPS_DENOM

    # -- referrer -------------------------------------------------------------

    def pay_referrer(self, pool_id: PoolId, currency: str, total_fee: int, referrer: Optional[str]) -> int:
        """
        Pay the referrer's cut of `total_fee` out of the hook's balance.

        Returns the amount paid. A direct transfer that cannot reach the
        referrer is skipped (logged, returns 0) so the trade still completes
        and the share stays in the fee flow.
        """
        if referrer is None or is_null_address(referrer):
            return 0
        referrer_bps = self.effective_policy(pool_id).referrer_bps
        if referrer_bps == 0:
            return 0
        share = (total_fee * referrer_bps) // BPS_DENOM
        if share == 0:
            return 0

        if self._use_referral_escrow:
            self._referral_escrow.add(referrer, currency, share)
        else:
            try:
                self._ledger.transfer(currency, self._hook, referrer, share)
            except TransferError:
                logger.warning("referrer payment to %s failed; keeping %d in fee flow", referrer, share)
                return 0

        self._events.emit(
            Event.REFERRER_PAID,
            pool_id=pool_id,
            referrer=referrer,
            currency=currency,
            amount=share,
            escrowed=self._use_referral_escrow,
        )
        return share

    def referral_balance(self, referrer: str, currency: str) -> int:
        return self._referral_escrow.get(referrer.lower(), currency)

    def referral_liability(self, currency: str) -> int:
        return self._referral_escrow.total(currency.lower())

    def claim_referral(self, referrer: str, currency: str) -> int:
        referrer = referrer.lower()
        amount = self._referral_escrow.pop(referrer, currency)
        if amount == 0:
            return 0
        self._ledger.transfer(currency, self._hook, referrer, amount)
        return amount

    # -- distribution ---------------------------------------------------------

    def split(self, pool_id: PoolId, amount: int) -> FeeSplit:
        policy = self.effective_policy(pool_id)
        return split_waterfall(amount, policy.protocol_bps, self.creator_fee_bps(pool_id))

    def allocate(self, pool_id: PoolId, recipient: str, amount: int) -> None:
        if amount == 0:
            return
        if is_null_address(recipient):
            raise ZeroRecipient(f"cannot allocate {amount} for {pool_id} to the null address")
        recipient = recipient.lower()
        self._escrow.add(recipient, self._native, amount)
        self._events.emit(Event.FEES_ALLOCATED, pool_id=pool_id, recipient=recipient, amount=amount)

    def balance(self, recipient: str) -> int:
        return self._escrow.get(recipient.lower(), self._native)

    def withdraw(self, recipient: str, unwrap_to_base: bool = False) -> int:
        """
        Pay out the recipient's whole escrowed balance.

        The balance is zeroed before the transfer so a re-entrant withdrawal
        sees nothing. An empty balance is a silent no-op.
        """
        recipient = recipient.lower()
        amount = self._escrow.pop(recipient, self._native)
        if amount == 0:
            return 0
        self._ledger.transfer(self._native, self._hook, recipient, amount)
        currency = self._native
        if unwrap_to_base:
            currency = self._ledger.unwrap(self._native, recipient, amount)
        self._events.emit(Event.FEES_WITHDRAWN, recipient=recipient, amount=amount, currency=currency)
        logger.info("withdrew %d to %s (%s)", amount, recipient, currency)
        return amount


__all__ = [
    "MAX_PROTOCOL_FEE_BPS",
    "NULL_ADDRESS",
    "FeeSplit",
    "FeeWaterfall",
    "decode_referrer",
    "split_waterfall",
]
