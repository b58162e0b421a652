"""Keep debt balances in step with the ledger.

Debt-tagged transactions reduce ``remaining_amount`` when created and restore
it when deleted. Each transaction id is remembered on the debt so a repeated
event is ignored and a deletion only reverses what was actually applied.
Debt payments recorded without a ledger entry get one created here; the
balance then moves through the ordinary ``TransactionCreated`` path, so a
payment counts exactly once.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from ..domain.repositories import Store
from ..events import (
    DebtPaymentAdded,
    DebtPaymentLinked,
    DebtStatusChanged,
    DebtSynced,
    DebtSyncReversed,
    EventBus,
    TransactionCreated,
    TransactionDeleted,
)
from ..models.transaction import LedgerTransaction
from .ledger import LedgerService

logger = logging.getLogger("finsync.services.debt_sync")


def _to_cents(amount: float) -> float:
    """Round to cents, half-up, so repeated fractional payments settle at exactly 0."""

    return round(amount + 1e-9, 2)


class DebtReconciliationListener:
    def __init__(self, store: Store, bus: EventBus, ledger: Optional[LedgerService] = None):
        self.store = store
        self.bus = bus
        self.ledger = ledger

    def register(self) -> None:
        self.bus.subscribe(TransactionCreated, self.on_transaction_created)
        self.bus.subscribe(TransactionDeleted, self.on_transaction_deleted)
        if self.ledger is not None:
            self.bus.subscribe(DebtPaymentAdded, self.on_payment_added)

    def on_transaction_created(self, event: TransactionCreated) -> None:
        transaction = event.transaction
        if transaction.debt_id is None:
            return

        with self.store.write_scope() as scope:
            debt = scope.debts.get_by_id(transaction.debt_id)
            if debt is None:
                logger.warning(
                    f"Debt {transaction.debt_id} not found for transaction {transaction.id}; dropping"
                )
                return
            if transaction.id in debt.synced_transaction_ids:
                logger.info(f"Transaction {transaction.id} already applied to debt {debt.id}")
                return

            previous_remaining = debt.remaining_amount
            previous_status = debt.status
            new_remaining = max(0.0, _to_cents(previous_remaining - abs(transaction.amount)))
            new_status = "paid" if new_remaining == 0 else previous_status
            scope.debts.update(
                debt.id,
                remaining_amount=new_remaining,
                status=new_status,
                synced_transaction_ids=[*debt.synced_transaction_ids, transaction.id],
            )

        logger.info(
            f"Debt {transaction.debt_id} reduced by transaction {transaction.id}",
            extra={"previous_remaining": previous_remaining, "new_remaining": new_remaining},
        )
        self.bus.publish(
            DebtSynced(
                debt_id=transaction.debt_id,
                transaction_id=transaction.id,
                previous_remaining=previous_remaining,
                new_remaining=new_remaining,
            )
        )
        if new_status != previous_status:
            self.bus.publish(
                DebtStatusChanged(
                    debt_id=transaction.debt_id,
                    previous_status=previous_status,
                    new_status=new_status,
                )
            )

    def on_transaction_deleted(self, event: TransactionDeleted) -> None:
        transaction = event.transaction
        if transaction.debt_id is None:
            return

        with self.store.write_scope() as scope:
            debt = scope.debts.get_by_id(transaction.debt_id)
            if debt is None:
                logger.warning(
                    f"Debt {transaction.debt_id} not found while reversing transaction {transaction.id}"
                )
                return
            if transaction.id not in debt.synced_transaction_ids:
                logger.info(
                    f"Transaction {transaction.id} was never applied to debt {debt.id}; nothing to reverse"
                )
                return

            previous_remaining = debt.remaining_amount
            previous_status = debt.status
            new_remaining = min(debt.principal_amount, _to_cents(previous_remaining + abs(transaction.amount)))
            new_status = "active" if previous_status == "paid" and new_remaining > 0 else previous_status
            scope.debts.update(
                debt.id,
                remaining_amount=new_remaining,
                status=new_status,
                synced_transaction_ids=[
                    tx_id for tx_id in debt.synced_transaction_ids if tx_id != transaction.id
                ],
            )

        logger.info(
            f"Debt {transaction.debt_id} restored after deleting transaction {transaction.id}",
            extra={"previous_remaining": previous_remaining, "new_remaining": new_remaining},
        )
        self.bus.publish(
            DebtSyncReversed(
                debt_id=transaction.debt_id,
                transaction_id=transaction.id,
                previous_remaining=previous_remaining,
                new_remaining=new_remaining,
            )
        )
        if new_status != previous_status:
            self.bus.publish(
                DebtStatusChanged(
                    debt_id=transaction.debt_id,
                    previous_status=previous_status,
                    new_status=new_status,
                )
            )

    def on_payment_added(self, event: DebtPaymentAdded) -> None:
        """Create and link the ledger entry for a payment that has none yet."""

        if self.ledger is None:
            raise RuntimeError("Linking debt payments requires a ledger service")
        with self.store.write_scope() as scope:
            payment = scope.debts.get_payment(event.payment.id)
            if payment is None:
                logger.warning(f"Debt payment {event.payment.id} not found; dropping")
                return
            if payment.transaction_id is not None:
                logger.debug(
                    f"Payment {payment.id} already linked to transaction {payment.transaction_id}"
                )
                return
            debt = scope.debts.get_by_id(event.debt_id)
            if debt is None:
                logger.warning(f"Debt {event.debt_id} not found for payment {payment.id}; dropping")
                return

            account_id = debt.account_id
            if account_id is None:
                fallback = scope.accounts.first()
                if fallback is None:
                    logger.warning(f"No account available to record payment {payment.id}")
                    return
                account_id = fallback.id

            transaction = self.ledger.record_in_scope(
                scope,
                LedgerTransaction(
                    account_id=account_id,
                    type="expense" if debt.direction == "i_owe" else "income",
                    amount=payment.amount,
                    currency=payment.currency,
                    category="debt",
                    description=f"Debt payment: {debt.counterparty_name}",
                    occurred_on=payment.paid_at,
                    debt_id=debt.id,
                    note=payment.note or "",
                ),
            )
            scope.debts.update_payment(payment.id, transaction_id=transaction.id)
            payment_id = payment.id

        linked_at = datetime.now(timezone.utc)
        logger.info(f"Linked payment {payment_id} to transaction {transaction.id}")
        self.ledger.publish_created(transaction)
        self.bus.publish(
            DebtPaymentLinked(
                debt_id=event.debt_id,
                payment_id=payment_id,
                transaction_id=transaction.id,
                linked_at=linked_at,
            )
        )
