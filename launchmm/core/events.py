"""
Event signals and notification targets.

`EventBus.emit` records every event (so tests and hosts can inspect the
history) and forwards it to subscribed targets. A rolled-back trade drops
its events from the history again. A target that raises is logged and
skipped; it never fails the trade that emitted the event.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Any, Callable, Dict, List, Mapping

from ..state.journal import record_undo


logger = logging.getLogger(__name__)


@unique
class Event(Enum):
    FAIR_LAUNCH_CREATED = "FairLaunchCreated"
    FAIR_LAUNCH_FILLED = "FairLaunchFilled"
    FAIR_LAUNCH_CLOSED = "FairLaunchClosed"
    NETTING_EXECUTED = "NettingExecuted"
    FEES_DEPOSITED = "FeesDeposited"
    SWAP_FEE_CAPTURED = "SwapFeeCaptured"
    REFERRER_PAID = "ReferrerPaid"
    FEES_ALLOCATED = "FeesAllocated"
    FEES_WITHDRAWN = "FeesWithdrawn"
    BID_WALL_DEPOSIT = "BidWallDeposit"
    BID_WALL_REPOSITIONED = "BidWallRepositioned"
    BID_WALL_CLOSED = "BidWallClosed"
    BID_WALL_DISABLED_STATE_UPDATED = "BidWallDisabledStateUpdated"
    FEE_DISTRIBUTION_UPDATED = "FeeDistributionUpdated"
    POOL_FEE_DISTRIBUTION_UPDATED = "PoolFeeDistributionUpdated"
    CREATOR_FEE_ALLOCATION_SET = "CreatorFeeAllocationSet"
    FEE_EXEMPTION_UPDATED = "FeeExemptionUpdated"


@dataclass(frozen=True)
class Emitted:
    event: Event
    fields: Mapping[str, Any] = field(default_factory=dict)


Subscriber = Callable[[Emitted], None]


class EventBus:
    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []
        self._history: List[Emitted] = []
        self._lock = threading.Lock()

    def subscribe(self, target: Subscriber) -> None:
        with self._lock:
            if target not in self._subscribers:
                self._subscribers.append(target)

    def unsubscribe(self, target: Subscriber) -> None:
        with self._lock:
            if target in self._subscribers:
                self._subscribers.remove(target)

    def emit(self, event: Event, **fields: Any) -> Emitted:
        emitted = Emitted(event=event, fields=dict(fields))
        with self._lock:
            self._history.append(emitted)
            targets = list(self._subscribers)
        record_undo(lambda: self._forget(emitted))
        for target in targets:
            try:
                target(emitted)
            except Exception:
                logger.warning("notification target %r failed on %s", target, event.value, exc_info=True)
        return emitted

    def _forget(self, emitted: Emitted) -> None:
        with self._lock:
            for i in range(len(self._history) - 1, -1, -1):
                if self._history[i] is emitted:
                    del self._history[i]
                    break

    def history(self, event: Event | None = None) -> List[Emitted]:
        with self._lock:
            if event is None:
                return list(self._history)
            return [e for e in self._history if e.event is event]

    def counts(self) -> Dict[Event, int]:
        out: Dict[Event, int] = {}
        for e in self.history():
            out[e.event] = out.get(e.event, 0) + 1
        return out
