"""Store facade bundling the repositories with a transactional write scope."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlmodel import Session

from .repositories import (
    SQLModelAccountRepository,
    SQLModelBudgetRepository,
    SQLModelDebtRepository,
    SQLModelGoalRepository,
    SQLModelHabitRepository,
    SQLModelScheduleRepository,
    SQLModelSettingsRepository,
    SQLModelTaskRepository,
    SQLModelTransactionRepository,
)
from .repositories.base import SessionFactory


def _scoped_factory(session: Session) -> SessionFactory:
    """Session factory that keeps handing back one open session."""

    @contextmanager
    def factory() -> Iterator[Session]:
        yield session

    return factory


class SQLModelStore:
    """All repositories over one session factory.

    Calls made directly on a store run in their own short transaction.
    ``write_scope()`` yields a store bound to a single session so that every
    mutation inside the block commits atomically or not at all. Opening a
    scope on an already scoped store joins the outer transaction.
    """

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory
        self.accounts = SQLModelAccountRepository(session_factory)
        self.transactions = SQLModelTransactionRepository(session_factory)
        self.schedules = SQLModelScheduleRepository(session_factory)
        self.debts = SQLModelDebtRepository(session_factory)
        self.habits = SQLModelHabitRepository(session_factory)
        self.tasks = SQLModelTaskRepository(session_factory)
        self.goals = SQLModelGoalRepository(session_factory)
        self.budgets = SQLModelBudgetRepository(session_factory)
        self.settings = SQLModelSettingsRepository(session_factory)

    @contextmanager
    def write_scope(self) -> Iterator["SQLModelStore"]:
        with self.session_factory() as session:
            yield SQLModelStore(_scoped_factory(session))
