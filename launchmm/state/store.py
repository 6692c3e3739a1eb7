"""
Per-pool record store with default-zero reads.

Unknown keys read as the record type's zero value; there is no separate
"exists" check. Writes are journaled.
"""

from __future__ import annotations

from typing import Callable, Dict, Generic, Iterator, Tuple, TypeVar

from .journal import record_undo


K = TypeVar("K")
R = TypeVar("R")

_MISSING = object()


class RecordStore(Generic[K, R]):
    def __init__(self, zero: Callable[[], R]) -> None:
        self._zero = zero
        self._records: Dict[K, R] = {}

    def get(self, key: K) -> R:
        record = self._records.get(key)
        return self._zero() if record is None else record

    def put(self, key: K, record: R) -> None:
        previous = self._records.get(key, _MISSING)
        self._records[key] = record
        record_undo(lambda: self._restore(key, previous))

    def _restore(self, key: K, previous: object) -> None:
        if previous is _MISSING:
            self._records.pop(key, None)
        else:
            self._records[key] = previous  # type: ignore[assignment]

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def items(self) -> Iterator[Tuple[K, R]]:
        return iter(list(self._records.items()))

    def __len__(self) -> int:
        return len(self._records)
