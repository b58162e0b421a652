"""SQLModel table exports."""

from .account import Account
from .budget import Budget
from .debt import Debt, DebtPayment
from .habit import Habit, HabitEntry
from .recurring import RecurringSchedule
from .settings import AppSetting
from .task import Goal, Task
from .transaction import LedgerTransaction

__all__ = [
    "Account",
    "AppSetting",
    "Budget",
    "Debt",
    "DebtPayment",
    "Goal",
    "Habit",
    "HabitEntry",
    "LedgerTransaction",
    "RecurringSchedule",
    "Task",
]
