"""Ledger persistence: create, soft-update and delete transactions.

Every mutation runs in one write scope (transaction row plus account balances)
and its event is published only after that scope commits, so listeners never
see a half-written ledger.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from ..domain.repositories import Store
from ..errors import MissingEntityError
from ..events import (
    BudgetSpendingChanged,
    EventBus,
    TransactionCreated,
    TransactionDeleted,
    TransactionUpdated,
)
from ..models.transaction import SOFT_FIELDS, TRANSACTION_TYPES, LedgerTransaction

logger = logging.getLogger("finsync.services.ledger")


def balance_deltas(transaction: LedgerTransaction) -> list[tuple[int, float]]:
    """Return (account_id, delta) pairs that creating ``transaction`` applies."""

    amount = abs(transaction.amount)
    if transaction.type == "expense":
        return [(transaction.account_id, -amount)]
    if transaction.type == "income":
        return [(transaction.account_id, amount)]
    deltas = [(transaction.account_id, -amount)]
    if transaction.to_account_id is not None:
        deltas.append((transaction.to_account_id, amount))
    return deltas


class LedgerService:
    """Owns ledger writes and the ``finance.tx.*`` events."""

    def __init__(self, store: Store, bus: EventBus, *, default_currency: str = "USD"):
        self.store = store
        self.bus = bus
        self.default_currency = default_currency

    def create_transaction(
        self,
        *,
        account_id: int,
        type: str,
        amount: float,
        occurred_on: date,
        currency: Optional[str] = None,
        category: str = "",
        description: str = "",
        to_account_id: Optional[int] = None,
        debt_id: Optional[int] = None,
        budget_id: Optional[int] = None,
        habit_id: Optional[int] = None,
        note: str = "",
    ) -> LedgerTransaction:
        """Persist a transaction, adjust balances and announce it."""

        draft = LedgerTransaction(
            account_id=account_id,
            to_account_id=to_account_id,
            type=type,
            amount=amount,
            currency=(currency or self.default_currency).upper(),
            category=category,
            description=description,
            occurred_on=occurred_on,
            debt_id=debt_id,
            budget_id=budget_id,
            habit_id=habit_id,
            note=note,
        )
        with self.store.write_scope() as scope:
            transaction = self.record_in_scope(scope, draft)
        self.publish_created(transaction)
        return transaction

    def record_in_scope(self, scope: Store, draft: LedgerTransaction) -> LedgerTransaction:
        """Write ``draft`` and its balance changes inside the caller's scope.

        The caller publishes with ``publish_created`` once its scope commits.

        Raises:
            ValueError: invalid type/amount or a transfer without a target
            MissingEntityError: an account does not exist
        """
        if draft.type not in TRANSACTION_TYPES:
            raise ValueError(f"Unknown transaction type: {draft.type!r}")
        if not draft.amount:
            raise ValueError("Transaction amount must be non-zero")
        if draft.type == "transfer" and draft.to_account_id is None:
            raise ValueError("Transfers need a destination account")
        draft.amount = abs(draft.amount)

        for account_id in filter(None, (draft.account_id, draft.to_account_id)):
            if scope.accounts.get_by_id(account_id) is None:
                raise MissingEntityError("Account", account_id)

        transaction = scope.transactions.create(draft)
        for account_id, delta in balance_deltas(transaction):
            scope.accounts.adjust_balance(account_id, delta)
        return transaction

    def publish_created(self, transaction: LedgerTransaction) -> None:
        self.bus.publish(TransactionCreated(transaction=transaction))
        if transaction.budget_id is not None:
            self.bus.publish(BudgetSpendingChanged(budget_id=transaction.budget_id))

    def update_transaction(self, transaction_id: int, **patch) -> LedgerTransaction:
        """Change soft fields (status, note) of an existing transaction."""

        locked = set(patch) - SOFT_FIELDS
        if locked:
            raise ValueError(f"Transactions are immutable except {sorted(SOFT_FIELDS)}; got {sorted(locked)}")
        with self.store.write_scope() as scope:
            transaction = scope.transactions.update(transaction_id, **patch)
        self.bus.publish(TransactionUpdated(transaction=transaction))
        return transaction

    def delete_transaction(self, transaction_id: int) -> Optional[LedgerTransaction]:
        """Delete a transaction, reverse its balance changes and announce it.

        Returns the deleted row, or None when it was already gone.
        """
        with self.store.write_scope() as scope:
            transaction = scope.transactions.delete(transaction_id)
            if transaction is None:
                logger.warning(f"Transaction {transaction_id} not found; nothing to delete")
                return None
            for account_id, delta in balance_deltas(transaction):
                if scope.accounts.get_by_id(account_id) is None:
                    logger.warning(
                        f"Account {account_id} missing while reversing transaction {transaction_id}"
                    )
                    continue
                scope.accounts.adjust_balance(account_id, -delta)

        self.bus.publish(TransactionDeleted(transaction=transaction))
        if transaction.budget_id is not None:
            self.bus.publish(BudgetSpendingChanged(budget_id=transaction.budget_id))
        return transaction

    def get_transaction(self, transaction_id: int) -> Optional[LedgerTransaction]:
        return self.store.transactions.get_by_id(transaction_id)

    def list_for_day(self, day: date) -> list[LedgerTransaction]:
        return self.store.transactions.list_for_day(day)
