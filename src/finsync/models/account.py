"""Accounts whose balances the ledger keeps current."""

from __future__ import annotations

from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel


class Account(SQLModel, table=True):
    __tablename__: ClassVar[str] = "account"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False, max_length=128)
    currency: str = Field(default="USD", max_length=3)
    balance: float = Field(default=0.0, nullable=False)
