"""Service layer: ledger writes, recurring schedules and cross-domain listeners."""

from .debt_sync import DebtReconciliationListener
from .debts import DebtService
from .habit_rules import HabitRuleEvaluator
from .habits import HabitService, compute_streaks
from .ledger import LedgerService
from .recurring import ProcessingResult, ProcessorState, RecurringService, ScheduleProcessor
from .tasks import TaskAutoCompletionListener, TaskService

__all__ = [
    "DebtReconciliationListener",
    "DebtService",
    "HabitRuleEvaluator",
    "HabitService",
    "LedgerService",
    "ProcessingResult",
    "ProcessorState",
    "RecurringService",
    "ScheduleProcessor",
    "TaskAutoCompletionListener",
    "TaskService",
    "compute_streaks",
]
