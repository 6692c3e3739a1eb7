"""
Trade journal: all-or-nothing commit for one trade.

Stores register an undo callback for every mutation made while a journal is
active on the current thread. If the trade fails, the callbacks run in
reverse order and every store is back where it started. Nested `staged()`
blocks join the outer journal so a trade split across several entry points
still commits or rolls back as one unit.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional


_local = threading.local()


class Journal:
    def __init__(self) -> None:
        self._undo: List[Callable[[], None]] = []

    def record(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()

    def __len__(self) -> int:
        return len(self._undo)


def active_journal() -> Optional[Journal]:
    return getattr(_local, "journal", None)


def record_undo(undo: Callable[[], None]) -> None:
    """Register `undo` with the active journal; a no-op outside a trade."""
    journal = active_journal()
    if journal is not None:
        journal.record(undo)


@contextmanager
def staged() -> Iterator[Journal]:
    outer = active_journal()
    if outer is not None:
        yield outer
        return

    journal = Journal()
    _local.journal = journal
    try:
        yield journal
    except BaseException:
        # undo callbacks must not themselves be journaled
        _local.journal = None
        journal.rollback()
        raise
    finally:
        _local.journal = None
