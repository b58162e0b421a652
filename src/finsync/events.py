"""In-process synchronous event bus connecting the ledger to other domains.

Events are a closed set of frozen dataclasses. Handlers subscribe by event
class and receive the concrete payload type. Delivery happens on the
publisher's thread, in subscription order, one topic at a time; nothing is
persisted or replayed, so listeners must be able to rebuild their state from
current domain data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Callable, ClassVar, Optional, TypeVar, Union

from .models.transaction import LedgerTransaction

logger = logging.getLogger("finsync.events")


class Topic(str, Enum):
    TX_CREATED = "finance.tx.created"
    TX_UPDATED = "finance.tx.updated"
    TX_DELETED = "finance.tx.deleted"
    DEBT_PAYMENT_ADDED = "finance.debt.payment_added"
    DEBT_PAYMENT_LINKED = "finance.debt.payment_linked"
    DEBT_SYNCED = "finance.debt.synced"
    DEBT_SYNC_REVERSED = "finance.debt.sync_reversed"
    DEBT_STATUS_CHANGED = "finance.debt.status_changed"
    BUDGET_SPENDING_CHANGED = "finance.budget.spending_changed"
    HABIT_DAY_EVALUATED = "planner.habit.day_evaluated"
    TASK_AUTO_COMPLETED = "planner.task.auto_completed"


@dataclass(frozen=True)
class TransactionCreated:
    topic: ClassVar[Topic] = Topic.TX_CREATED

    transaction: LedgerTransaction


@dataclass(frozen=True)
class TransactionUpdated:
    topic: ClassVar[Topic] = Topic.TX_UPDATED

    transaction: LedgerTransaction


@dataclass(frozen=True)
class TransactionDeleted:
    """Carries the deleted row as it was, so listeners can reverse it."""

    topic: ClassVar[Topic] = Topic.TX_DELETED

    transaction: LedgerTransaction


@dataclass(frozen=True)
class PaymentInfo:
    id: int
    amount: float
    currency: str
    paid_at: date
    note: Optional[str] = None


@dataclass(frozen=True)
class DebtPaymentAdded:
    topic: ClassVar[Topic] = Topic.DEBT_PAYMENT_ADDED

    debt_id: int
    payment: PaymentInfo


@dataclass(frozen=True)
class DebtPaymentLinked:
    topic: ClassVar[Topic] = Topic.DEBT_PAYMENT_LINKED

    debt_id: int
    payment_id: int
    transaction_id: int
    linked_at: datetime


@dataclass(frozen=True)
class DebtSynced:
    topic: ClassVar[Topic] = Topic.DEBT_SYNCED

    debt_id: int
    transaction_id: int
    previous_remaining: float
    new_remaining: float


@dataclass(frozen=True)
class DebtSyncReversed:
    topic: ClassVar[Topic] = Topic.DEBT_SYNC_REVERSED

    debt_id: int
    transaction_id: int
    previous_remaining: float
    new_remaining: float


@dataclass(frozen=True)
class DebtStatusChanged:
    topic: ClassVar[Topic] = Topic.DEBT_STATUS_CHANGED

    debt_id: int
    previous_status: str
    new_status: str


@dataclass(frozen=True)
class BudgetSpendingChanged:
    topic: ClassVar[Topic] = Topic.BUDGET_SPENDING_CHANGED

    budget_id: int


@dataclass(frozen=True)
class HabitDayEvaluated:
    topic: ClassVar[Topic] = Topic.HABIT_DAY_EVALUATED

    habit_id: int
    date: date
    result: str
    rule_type: str


@dataclass(frozen=True)
class TaskAutoCompleted:
    topic: ClassVar[Topic] = Topic.TASK_AUTO_COMPLETED

    task_id: int
    finance_link: str
    completed_at: datetime
    transaction_id: Optional[int] = None
    debt_id: Optional[int] = None
    payment_id: Optional[int] = None
    budget_id: Optional[int] = None


Event = Union[
    TransactionCreated,
    TransactionUpdated,
    TransactionDeleted,
    DebtPaymentAdded,
    DebtPaymentLinked,
    DebtSynced,
    DebtSyncReversed,
    DebtStatusChanged,
    BudgetSpendingChanged,
    HabitDayEvaluated,
    TaskAutoCompleted,
]

EVENT_TYPES: tuple[type, ...] = Event.__args__  # type: ignore[attr-defined]

E = TypeVar("E")
Handler = Callable[[E], None]


class EventBus:
    """Synchronous single-threaded publish/subscribe transport."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable[[object], None]]] = {}

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> Callable[[], None]:
        """Register ``handler`` for ``event_type`` and return an unsubscribe callable."""

        if event_type not in EVENT_TYPES:
            raise TypeError(f"{event_type!r} is not a known event type")
        handlers = self._handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)  # type: ignore[arg-type]

        def unsubscribe() -> None:
            current = self._handlers.get(event_type)
            if current and handler in current:
                current.remove(handler)  # type: ignore[arg-type]
                if not current:
                    del self._handlers[event_type]

        return unsubscribe

    def publish(self, event: Event) -> None:
        """Deliver ``event`` to every subscriber of its type, in order.

        A failing handler is logged and skipped; the rest still run.
        """
        handlers = list(self._handlers.get(type(event), ()))
        if not handlers:
            return
        for handler in handlers:
            try:
                handler(event)
            except Exception as exc:
                logger.error(
                    f"Handler {getattr(handler, '__qualname__', handler)!s} failed for "
                    f"{event.topic.value}: {exc}",
                    exc_info=True,
                    extra={"topic": event.topic.value},
                )

    def subscriber_count(self, event_type: type) -> int:
        return len(self._handlers.get(event_type, ()))

    def clear(self) -> None:
        self._handlers.clear()


__all__ = [
    "BudgetSpendingChanged",
    "DebtPaymentAdded",
    "DebtPaymentLinked",
    "DebtStatusChanged",
    "DebtSyncReversed",
    "DebtSynced",
    "Event",
    "EventBus",
    "HabitDayEvaluated",
    "PaymentInfo",
    "TaskAutoCompleted",
    "Topic",
    "TransactionCreated",
    "TransactionDeleted",
    "TransactionUpdated",
]
