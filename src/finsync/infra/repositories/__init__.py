"""Concrete repository implementations using SQLModel."""

from .account import SQLModelAccountRepository
from .budget import SQLModelBudgetRepository
from .debt import SQLModelDebtRepository
from .habit import SQLModelHabitRepository
from .schedule import SQLModelScheduleRepository
from .settings import SQLModelSettingsRepository
from .task import SQLModelGoalRepository, SQLModelTaskRepository
from .transaction import SQLModelTransactionRepository

__all__ = [
    "SQLModelAccountRepository",
    "SQLModelBudgetRepository",
    "SQLModelDebtRepository",
    "SQLModelGoalRepository",
    "SQLModelHabitRepository",
    "SQLModelScheduleRepository",
    "SQLModelSettingsRepository",
    "SQLModelTaskRepository",
    "SQLModelTransactionRepository",
]
