from __future__ import annotations

import pytest

from launchmm.core.events import Emitted, Event, EventBus
from launchmm.state.journal import staged


def test_history_and_subscribers() -> None:
    bus = EventBus()
    seen = []
    bus.subscribe(seen.append)
    bus.emit(Event.FEES_DEPOSITED, pool_id="p", native_amount=1, other_amount=0)
    assert [e.event for e in seen] == [Event.FEES_DEPOSITED]
    assert bus.history(Event.FEES_DEPOSITED)[0].fields["native_amount"] == 1
    assert bus.counts() == {Event.FEES_DEPOSITED: 1}


def test_failing_subscriber_is_skipped() -> None:
    bus = EventBus()
    seen = []

    def broken(_: Emitted) -> None:
        raise RuntimeError("target down")

    bus.subscribe(broken)
    bus.subscribe(seen.append)
    bus.emit(Event.BID_WALL_DEPOSIT, amount=1)
    assert len(seen) == 1
    assert len(bus.history()) == 1


def test_unsubscribe_unknown_target_is_noop() -> None:
    bus = EventBus()
    bus.unsubscribe(print)
    seen = []
    bus.subscribe(seen.append)
    bus.unsubscribe(seen.append)
    bus.emit(Event.BID_WALL_DEPOSIT, amount=1)
    assert seen == []


def test_rolled_back_events_leave_history() -> None:
    bus = EventBus()
    bus.emit(Event.FEES_ALLOCATED, amount=1)
    with pytest.raises(RuntimeError):
        with staged():
            bus.emit(Event.FEES_ALLOCATED, amount=1)
            bus.emit(Event.FEES_WITHDRAWN, amount=1)
            raise RuntimeError
    assert [e.event for e in bus.history()] == [Event.FEES_ALLOCATED]
