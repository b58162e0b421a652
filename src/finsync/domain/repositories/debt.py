"""Debt repository protocol."""

from __future__ import annotations

from typing import Any, Optional, Protocol

from ...models.debt import Debt, DebtPayment


class DebtRepository(Protocol):
    """Repository for debts and their payments."""

    def get_by_id(self, debt_id: int) -> Optional[Debt]:
        """Retrieve a debt by ID."""
        ...

    def list_all(self) -> list[Debt]:
        ...

    def create(self, debt: Debt) -> Debt:
        ...

    def update(self, debt_id: int, **patch: Any) -> Debt:
        ...

    def delete(self, debt_id: int) -> Optional[Debt]:
        ...

    def get_payment(self, payment_id: int) -> Optional[DebtPayment]:
        ...

    def list_payments(self, debt_id: int) -> list[DebtPayment]:
        ...

    def create_payment(self, payment: DebtPayment) -> DebtPayment:
        ...

    def update_payment(self, payment_id: int, **patch: Any) -> DebtPayment:
        ...
