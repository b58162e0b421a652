"""Debt obligations and the payments recorded against them."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import ClassVar, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

DEBT_DIRECTIONS = ("i_owe", "they_owe_me")
DEBT_STATUSES = ("active", "paid", "overdue", "canceled")


class Debt(SQLModel, table=True):
    """Money owed by or to the user.

    ``synced_transaction_ids`` lists the ledger transactions whose amounts
    have already been applied to ``remaining_amount``.
    """

    __tablename__: ClassVar[str] = "debt"

    id: Optional[int] = Field(default=None, primary_key=True)
    direction: str = Field(nullable=False, max_length=16)
    counterparty_name: str = Field(default="", max_length=80, index=True)
    account_id: Optional[int] = Field(default=None, foreign_key="account.id")
    principal_amount: float = Field(nullable=False)
    remaining_amount: float = Field(nullable=False)
    currency: str = Field(default="USD", max_length=3)
    status: str = Field(default="active", max_length=16, index=True)
    due_date: Optional[date] = Field(default=None)
    synced_transaction_ids: list[int] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), nullable=False
    )


class DebtPayment(SQLModel, table=True):
    """A payment against a debt, linked to the ledger transaction it produced."""

    __tablename__: ClassVar[str] = "debt_payment"

    id: Optional[int] = Field(default=None, primary_key=True)
    debt_id: int = Field(foreign_key="debt.id", nullable=False, index=True)
    amount: float = Field(nullable=False)
    currency: str = Field(default="USD", max_length=3)
    paid_at: date = Field(nullable=False)
    note: Optional[str] = Field(default=None, max_length=255)
    transaction_id: Optional[int] = Field(default=None, index=True)
