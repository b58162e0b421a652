"""Debt bookkeeping: creating obligations and recording payments against them."""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from ..domain.repositories import Store
from ..errors import MissingEntityError
from ..events import DebtPaymentAdded, EventBus, PaymentInfo
from ..models.debt import DEBT_DIRECTIONS, Debt, DebtPayment

logger = logging.getLogger("finsync.services.debts")


class DebtService:
    def __init__(self, store: Store, bus: EventBus, *, default_currency: str = "USD"):
        self.store = store
        self.bus = bus
        self.default_currency = default_currency

    def create_debt(
        self,
        *,
        direction: str,
        counterparty_name: str,
        principal_amount: float,
        remaining_amount: Optional[float] = None,
        currency: Optional[str] = None,
        account_id: Optional[int] = None,
        due_date: Optional[date] = None,
    ) -> Debt:
        """Create a debt; ``remaining_amount`` defaults to the full principal."""

        if direction not in DEBT_DIRECTIONS:
            raise ValueError(f"Unknown debt direction: {direction!r}")
        if principal_amount <= 0:
            raise ValueError("Principal must be positive")
        remaining = principal_amount if remaining_amount is None else remaining_amount
        if not 0 <= remaining <= principal_amount:
            raise ValueError("Remaining amount must lie between 0 and the principal")
        if account_id is not None and self.store.accounts.get_by_id(account_id) is None:
            raise MissingEntityError("Account", account_id)

        debt = self.store.debts.create(
            Debt(
                direction=direction,
                counterparty_name=counterparty_name,
                principal_amount=principal_amount,
                remaining_amount=remaining,
                currency=(currency or self.default_currency).upper(),
                account_id=account_id,
                due_date=due_date,
                status="paid" if remaining == 0 else "active",
            )
        )
        logger.info(f"Created debt {debt.id} ({direction}) for {principal_amount}")
        return debt

    def add_payment(
        self,
        debt_id: int,
        *,
        amount: float,
        paid_at: date,
        currency: Optional[str] = None,
        note: Optional[str] = None,
        transaction_id: Optional[int] = None,
    ) -> DebtPayment:
        """Record a payment and announce it.

        The remaining balance is not touched here; it moves when the linked
        ledger transaction is created.
        """
        if amount <= 0:
            raise ValueError("Payment amount must be positive")
        debt = self.store.debts.get_by_id(debt_id)
        if debt is None:
            raise MissingEntityError("Debt", debt_id)

        payment = self.store.debts.create_payment(
            DebtPayment(
                debt_id=debt_id,
                amount=amount,
                currency=(currency or debt.currency).upper(),
                paid_at=paid_at,
                note=note,
                transaction_id=transaction_id,
            )
        )
        self.bus.publish(
            DebtPaymentAdded(
                debt_id=debt_id,
                payment=PaymentInfo(
                    id=payment.id,
                    amount=payment.amount,
                    currency=payment.currency,
                    paid_at=payment.paid_at,
                    note=payment.note,
                ),
            )
        )
        return payment

    def get_debt(self, debt_id: int) -> Optional[Debt]:
        return self.store.debts.get_by_id(debt_id)

    def list_payments(self, debt_id: int) -> list[DebtPayment]:
        return self.store.debts.list_payments(debt_id)
