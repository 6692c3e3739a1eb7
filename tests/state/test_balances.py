from __future__ import annotations

import pytest

from launchmm.state.balances import BalanceTable


def test_missing_balance_reads_zero() -> None:
    assert BalanceTable().get("alice", "tok") == 0


def test_add_subtract_and_sparse_zero() -> None:
    t = BalanceTable()
    t.add("alice", "tok", 10)
    t.subtract("alice", "tok", 10)
    assert t.get("alice", "tok") == 0
    assert t.get_balances_for_account("alice") == {}


def test_negative_balance_rejected() -> None:
    t = BalanceTable()
    t.add("alice", "tok", 5)
    with pytest.raises(ValueError):
        t.subtract("alice", "tok", 6)
    assert t.get("alice", "tok") == 5


def test_subtract_rejects_negative_delta() -> None:
    with pytest.raises(ValueError):
        BalanceTable().subtract("alice", "tok", -1)


def test_pop_zeroes_and_returns() -> None:
    t = BalanceTable()
    t.add("alice", "tok", 7)
    assert t.pop("alice", "tok") == 7
    assert t.get("alice", "tok") == 0
    assert t.pop("alice", "tok") == 0


def test_total_per_currency() -> None:
    t = BalanceTable()
    t.add("alice", "a", 3)
    t.add("bob", "a", 4)
    t.add("bob", "b", 100)
    assert t.total("a") == 7
    assert t.get_balances_for_account("bob") == {"a": 4, "b": 100}
