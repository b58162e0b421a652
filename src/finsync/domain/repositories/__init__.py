"""Repository protocol definitions for domain layer.

``Store`` is the persistence collaborator every service is constructed with:
the repositories plus a transactional ``write_scope``.
"""

from __future__ import annotations

from typing import Any, ContextManager, Optional, Protocol

from ...models.budget import Budget
from ...models.settings import AppSetting
from .debt import DebtRepository
from .habit import HabitRepository
from .schedule import ScheduleRepository
from .task import GoalRepository, TaskRepository
from .transaction import AccountRepository, TransactionRepository


class BudgetRepository(Protocol):
    def get_by_id(self, budget_id: int) -> Optional[Budget]:
        ...

    def create(self, budget: Budget) -> Budget:
        ...


class SettingsRepository(Protocol):
    def get(self, key: str) -> Optional[AppSetting]:
        ...

    def set(self, key: str, value: str, description: str | None = None) -> AppSetting:
        ...


class Store(Protocol):
    accounts: AccountRepository
    transactions: TransactionRepository
    schedules: ScheduleRepository
    debts: DebtRepository
    habits: HabitRepository
    tasks: TaskRepository
    goals: GoalRepository
    budgets: BudgetRepository
    settings: SettingsRepository

    def write_scope(self) -> ContextManager[Any]:
        """Yield a Store whose mutations commit atomically or not at all."""
        ...


__all__ = [
    "AccountRepository",
    "BudgetRepository",
    "DebtRepository",
    "GoalRepository",
    "HabitRepository",
    "ScheduleRepository",
    "SettingsRepository",
    "Store",
    "TaskRepository",
    "TransactionRepository",
]
