"""Budgeting tables."""

from __future__ import annotations

from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel


class Budget(SQLModel, table=True):
    """A spending envelope that ledger transactions can be tagged with."""

    __tablename__: ClassVar[str] = "budget"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False, max_length=80, index=True)
    currency: str = Field(default="USD", max_length=3)
    limit_amount: float = Field(default=0.0, nullable=False)
