"""SQLModel implementation of LedgerTransaction repository."""

from __future__ import annotations

from datetime import date
from typing import Iterable

from ...models.transaction import LedgerTransaction
from .base import SQLModelRepository


class SQLModelTransactionRepository(SQLModelRepository[LedgerTransaction]):
    model = LedgerTransaction

    def list_for_day(self, day: date) -> list[LedgerTransaction]:
        """All transactions dated on ``day``."""
        return self.list_where(
            LedgerTransaction.occurred_on == day,
            order_by=LedgerTransaction.id,
        )

    def list_by_ids(self, ids: Iterable[int]) -> list[LedgerTransaction]:
        wanted = list(ids)
        if not wanted:
            return []
        return self.list_where(
            LedgerTransaction.id.in_(wanted),  # type: ignore[union-attr]
            order_by=LedgerTransaction.occurred_on.desc(),  # type: ignore[attr-defined]
        )

    def list_by_debt(self, debt_id: int) -> list[LedgerTransaction]:
        return self.list_where(LedgerTransaction.debt_id == debt_id, order_by=LedgerTransaction.id)

    def list_by_recurring(self, recurring_id: int) -> list[LedgerTransaction]:
        return self.list_where(
            LedgerTransaction.recurring_id == recurring_id,
            order_by=LedgerTransaction.occurred_on,
        )
