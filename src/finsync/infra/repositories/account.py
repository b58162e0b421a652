"""SQLModel implementation of Account repository."""

from __future__ import annotations

from typing import Optional

from sqlmodel import select

from ...errors import MissingEntityError
from ...models.account import Account
from .base import SQLModelRepository


class SQLModelAccountRepository(SQLModelRepository[Account]):
    model = Account

    def first(self) -> Optional[Account]:
        """Return the oldest account, used as a fallback for debt payments."""
        with self.session_factory() as session:
            return session.exec(select(Account).order_by(Account.id)).first()  # type: ignore[arg-type]

    def adjust_balance(self, account_id: int, delta: float) -> Account:
        with self.session_factory() as session:
            account = session.get(Account, account_id)
            if account is None:
                raise MissingEntityError("Account", account_id)
            account.balance = round(account.balance + delta, 2)
            session.add(account)
            session.flush()
            return account
