"""Pytest configuration and shared fixtures for FinSync tests.

This module provides database fixtures, test data factories, and helper utilities
for testing domain logic, repositories, and services without touching the real app database.
"""

from __future__ import annotations

import tempfile
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Optional

import pytest
from sqlmodel import create_engine

from finsync.config import BaseConfig
from finsync.context import create_app_context
from finsync.events import EventBus
from finsync.infra.database import create_session_factory, init_database
from finsync.infra.store import SQLModelStore
from finsync.models import Account, Budget, Debt, Goal, Habit, Task
from finsync.services.ledger import LedgerService

# Monday
TODAY = date(2025, 3, 10)


class FakeClock:
    """Callable returning a settable "today"."""

    def __init__(self, today: date = TODAY):
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int = 1) -> date:
        self.today += timedelta(days=days)
        return self.today


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated temporary-file SQLite database for each test.

    Yields:
        Engine: SQLModel engine connected to test database
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    init_database(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory committing on success, as the application uses it."""
    return create_session_factory(db_engine)


@pytest.fixture
def store(session_factory) -> SQLModelStore:
    return SQLModelStore(session_factory)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger(store, bus) -> LedgerService:
    return LedgerService(store, bus)


@pytest.fixture
def recorded(bus):
    """Subscribe to the given event types and collect what gets published.

    Usage: ``events = recorded(DebtSynced, DebtStatusChanged)``
    """

    def _record(*event_types: type) -> list[Any]:
        seen: list[Any] = []
        for event_type in event_types:
            bus.subscribe(event_type, seen.append)
        return seen

    return _record


# =============================================================================
# Application context
# =============================================================================


@pytest.fixture
def config(tmp_path, monkeypatch) -> BaseConfig:
    monkeypatch.setenv("FINSYNC_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("FINSYNC_DATABASE_URL", raising=False)
    monkeypatch.delenv("FINSYNC_PROCESS_HOUR", raising=False)
    monkeypatch.delenv("FINSYNC_PROCESS_MINUTE", raising=False)
    return BaseConfig()


@pytest.fixture
def app_ctx(config, clock):
    """Fully wired context with every listener registered."""
    ctx = create_app_context(config, clock=clock)
    yield ctx
    ctx.dispose()


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def account_factory(store):
    """Factory for creating test accounts."""

    def _create_account(name: str = "Checking", currency: str = "USD", balance: float = 0.0) -> Account:
        return store.accounts.create(Account(name=name, currency=currency, balance=balance))

    return _create_account


@pytest.fixture
def debt_factory(store):
    def _create_debt(
        principal: float = 100.0,
        *,
        remaining: Optional[float] = None,
        direction: str = "i_owe",
        account_id: Optional[int] = None,
        status: str = "active",
    ) -> Debt:
        return store.debts.create(
            Debt(
                direction=direction,
                counterparty_name="Alex",
                principal_amount=principal,
                remaining_amount=principal if remaining is None else remaining,
                account_id=account_id,
                status=status,
            )
        )

    return _create_debt


@pytest.fixture
def habit_factory(store):
    def _create_habit(
        name: str = "No coffee",
        finance_rule: Optional[dict[str, Any]] = None,
        is_active: bool = True,
    ) -> Habit:
        return store.habits.create(Habit(name=name, finance_rule=finance_rule, is_active=is_active))

    return _create_habit


@pytest.fixture
def goal_factory(store):
    def _create_goal(title: str = "Be debt free", linked_debt_id: Optional[int] = None) -> Goal:
        return store.goals.create(Goal(title=title, linked_debt_id=linked_debt_id))

    return _create_goal


@pytest.fixture
def task_factory(store):
    def _create_task(
        finance_link: str = "none",
        *,
        title: str = "Task",
        status: str = "planned",
        goal_id: Optional[int] = None,
    ) -> Task:
        return store.tasks.create(
            Task(title=title, finance_link=finance_link, status=status, goal_id=goal_id)
        )

    return _create_task


@pytest.fixture
def budget_factory(store):
    def _create_budget(name: str = "Groceries", limit_amount: float = 400.0) -> Budget:
        return store.budgets.create(Budget(name=name, limit_amount=limit_amount))

    return _create_budget
