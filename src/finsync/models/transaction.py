"""SQLModel definitions for ledger transactions."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

TRANSACTION_TYPES = ("income", "expense", "transfer")
SOFT_FIELDS = frozenset({"status", "note"})


class LedgerTransaction(SQLModel, table=True):
    """A single ledger entry, hand-entered or created by a recurring schedule.

    ``amount`` is stored as a positive magnitude; ``type`` carries the
    direction. Only the soft fields (``status``, ``note``) change after
    creation.
    """

    __tablename__: ClassVar[str] = "ledger_transaction"

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: int = Field(foreign_key="account.id", nullable=False, index=True)
    to_account_id: Optional[int] = Field(default=None, foreign_key="account.id")
    type: str = Field(nullable=False, max_length=16, index=True)
    amount: float = Field(nullable=False)
    currency: str = Field(default="USD", max_length=3, description="ISO-4217 currency code")
    category: str = Field(default="", max_length=64, index=True)
    description: str = Field(default="", max_length=255)
    occurred_on: date = Field(nullable=False, index=True)

    # Tag references into other domains; plain ids so the referenced row may
    # disappear independently.
    debt_id: Optional[int] = Field(default=None, index=True)
    budget_id: Optional[int] = Field(default=None, index=True)
    habit_id: Optional[int] = Field(default=None, index=True)
    recurring_id: Optional[int] = Field(default=None, index=True)

    status: str = Field(default="posted", max_length=16)
    note: str = Field(default="", max_length=255)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def is_expense(self) -> bool:
        return self.type == "expense"
