"""SQLModel implementation of Debt repository."""

from __future__ import annotations

from typing import Any, Optional

from sqlmodel import select

from ...errors import MissingEntityError
from ...models.debt import Debt, DebtPayment
from .base import SQLModelRepository


class SQLModelDebtRepository(SQLModelRepository[Debt]):
    model = Debt

    # Payment operations
    def get_payment(self, payment_id: int) -> Optional[DebtPayment]:
        with self.session_factory() as session:
            return session.get(DebtPayment, payment_id)

    def list_payments(self, debt_id: int) -> list[DebtPayment]:
        with self.session_factory() as session:
            statement = (
                select(DebtPayment)
                .where(DebtPayment.debt_id == debt_id)
                .order_by(DebtPayment.paid_at)  # type: ignore[arg-type]
            )
            return list(session.exec(statement).all())

    def create_payment(self, payment: DebtPayment) -> DebtPayment:
        with self.session_factory() as session:
            session.add(payment)
            session.flush()
            session.refresh(payment)
            return payment

    def update_payment(self, payment_id: int, **patch: Any) -> DebtPayment:
        with self.session_factory() as session:
            payment = session.get(DebtPayment, payment_id)
            if payment is None:
                raise MissingEntityError("DebtPayment", payment_id)
            for key, value in patch.items():
                setattr(payment, key, value)
            session.add(payment)
            session.flush()
            return payment
