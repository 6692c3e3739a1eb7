"""
State layer: immutable per-pool records, keyed stores and balance tables.

Every mutable container here records an undo step in the active trade
journal (see `journal.py`), so a failed trade can be discarded wholesale.
"""

from .balances import NULL_ADDRESS, BalanceTable
from .journal import Journal, active_journal, staged
from .pools import BalanceDelta, BeforeSwapDelta, PoolInfo, PoolKey, SwapParams
from .records import (
    BidWallRecord,
    FairLaunchRecord,
    FeeDistributionPolicy,
    FeeExemption,
    NettingInventory,
)
from .store import RecordStore

__all__ = [
    "NULL_ADDRESS",
    "BalanceTable",
    "Journal",
    "active_journal",
    "staged",
    "BalanceDelta",
    "BeforeSwapDelta",
    "PoolInfo",
    "PoolKey",
    "SwapParams",
    "BidWallRecord",
    "FairLaunchRecord",
    "FeeDistributionPolicy",
    "FeeExemption",
    "NettingInventory",
    "RecordStore",
]
