"""
Multi-currency balance tracking.

Implements BalanceTable[Account, Currency] -> Amount. Used both for token
custody in the reference pool manager and for escrowed fee balances.
"""

import threading
from typing import Dict, Tuple

from .journal import record_undo


# Type aliases
Account = str  # 20-byte hex address (0x...)
Currency = str  # 20-byte hex token address (0x...)
Amount = int  # Non-negative integer (arbitrary precision)

NULL_ADDRESS = "0x" + "00" * 20


class BalanceTable:
    """
    Balance table mapping (account, currency) -> amount.

    Zero balances are dropped to keep the table sparse. Updates are applied as
    relative deltas under a lock, and each one registers its inverse with the
    active trade journal, so concurrent trades on other pools that touch the
    same account are never clobbered by a rollback.
    """

    def __init__(self):
        self._balances: Dict[Tuple[Account, Currency], Amount] = {}
        self._lock = threading.RLock()

    def get(self, account: Account, currency: Currency) -> Amount:
        """Get balance for (account, currency). Returns 0 if not found."""
        return self._balances.get((account, currency), 0)

    def add(self, account: Account, currency: Currency, delta: Amount) -> None:
        """
        Add delta to balance.

        Args:
            account: Holder address
            currency: Token address
            delta: Amount to add (can be negative for subtraction)

        Raises:
            ValueError: If resulting balance would be negative
        """
        if delta == 0:
            return
        self._apply(account, currency, delta)
        record_undo(lambda: self._apply(account, currency, -delta))

    def subtract(self, account: Account, currency: Currency, delta: Amount) -> None:
        """
        Subtract delta from balance. Equivalent to add(account, currency, -delta).

        Raises:
            ValueError: If delta is negative or insufficient balance
        """
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(account, currency, -delta)

    def pop(self, account: Account, currency: Currency) -> Amount:
        """Zero the balance and return what it held."""
        with self._lock:
            amount = self.get(account, currency)
            self.add(account, currency, -amount)
            return amount

    def _apply(self, account: Account, currency: Currency, delta: Amount) -> None:
        key = (account, currency)
        with self._lock:
            current = self._balances.get(key, 0)
            new_balance = current + delta
            if new_balance < 0:
                raise ValueError(
                    f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
                )
            if new_balance == 0:
                self._balances.pop(key, None)
            else:
                self._balances[key] = new_balance

    def get_balances_for_account(self, account: Account) -> Dict[Currency, Amount]:
        """
        Get all balances held by a specific account.

        Returns:
            Dictionary mapping currency -> amount
        """
        with self._lock:
            return {c: amount for (a, c), amount in self._balances.items() if a == account}

    def total(self, currency: Currency) -> Amount:
        with self._lock:
            return sum(amount for (_, c), amount in self._balances.items() if c == currency)

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
