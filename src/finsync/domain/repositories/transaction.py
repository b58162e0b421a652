"""Ledger transaction repository protocol."""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Optional, Protocol

from ...models.account import Account
from ...models.transaction import LedgerTransaction


class TransactionRepository(Protocol):
    """Repository for managing ledger transactions."""

    def get_by_id(self, transaction_id: int) -> Optional[LedgerTransaction]:
        """Retrieve a transaction by ID."""
        ...

    def list_for_day(self, day: date) -> list[LedgerTransaction]:
        """All transactions dated on ``day``."""
        ...

    def list_by_ids(self, ids: Iterable[int]) -> list[LedgerTransaction]:
        ...

    def list_by_debt(self, debt_id: int) -> list[LedgerTransaction]:
        ...

    def create(self, transaction: LedgerTransaction) -> LedgerTransaction:
        ...

    def update(self, transaction_id: int, **patch: Any) -> LedgerTransaction:
        ...

    def delete(self, transaction_id: int) -> Optional[LedgerTransaction]:
        ...


class AccountRepository(Protocol):
    def get_by_id(self, account_id: int) -> Optional[Account]:
        ...

    def first(self) -> Optional[Account]:
        ...

    def create(self, account: Account) -> Account:
        ...

    def adjust_balance(self, account_id: int, delta: float) -> Account:
        """Add ``delta`` to the account balance."""
        ...
