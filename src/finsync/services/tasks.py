"""Planner tasks that finance activity completes automatically.

A task opts in through ``finance_link``. Only open tasks are considered and a
completed task is never reopened, so replaying an event completes nothing new.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from ..domain.repositories import Store
from ..events import (
    BudgetSpendingChanged,
    DebtPaymentAdded,
    DebtStatusChanged,
    EventBus,
    TaskAutoCompleted,
    TransactionCreated,
)
from ..models.task import FINANCE_LINKS, Goal, Task
from ..models.transaction import LedgerTransaction

logger = logging.getLogger("finsync.services.tasks")


class _MissingGoal(Exception):
    pass


def matches_transaction(task: Task, transaction: LedgerTransaction, goal: Optional[Goal] = None) -> bool:
    """Whether creating ``transaction`` satisfies the task's finance link."""

    link = task.finance_link
    if link == "record_expenses":
        return transaction.type == "expense"
    if link == "pay_debt":
        return transaction.debt_id is not None and debt_matches_goal(goal, transaction.debt_id)
    if link == "review_budget":
        return transaction.budget_id is not None and transaction.type in ("income", "expense")
    if link == "transfer_money":
        return transaction.type == "transfer"
    return False


def debt_matches_goal(goal: Optional[Goal], debt_id: int) -> bool:
    """A task without a goal matches any debt; one with a goal needs that goal's debt."""
    if goal is None:
        return True
    return goal.linked_debt_id == debt_id


class TaskService:
    def __init__(self, store: Store):
        self.store = store

    def create_goal(self, *, title: str, linked_debt_id: Optional[int] = None) -> Goal:
        return self.store.goals.create(Goal(title=title, linked_debt_id=linked_debt_id))

    def create_task(
        self,
        *,
        title: str,
        finance_link: str = "none",
        goal_id: Optional[int] = None,
    ) -> Task:
        if finance_link not in FINANCE_LINKS:
            raise ValueError(f"Unknown finance link: {finance_link!r}")
        return self.store.tasks.create(Task(title=title, finance_link=finance_link, goal_id=goal_id))

    def get_task(self, task_id: int) -> Optional[Task]:
        return self.store.tasks.get_by_id(task_id)


class TaskAutoCompletionListener:
    def __init__(self, store: Store, bus: EventBus):
        self.store = store
        self.bus = bus

    def register(self) -> None:
        self.bus.subscribe(TransactionCreated, self.on_transaction_created)
        self.bus.subscribe(DebtPaymentAdded, self.on_payment_added)
        self.bus.subscribe(BudgetSpendingChanged, self.on_budget_spending_changed)
        self.bus.subscribe(DebtStatusChanged, self.on_debt_status_changed)

    def on_transaction_created(self, event: TransactionCreated) -> None:
        transaction = event.transaction

        def predicate(scope: Store, task: Task) -> bool:
            goal = self._goal_for(scope, task) if task.finance_link == "pay_debt" else None
            return matches_transaction(task, transaction, goal)

        self._complete_matching(
            predicate,
            links=None,
            payload={
                "transaction_id": transaction.id,
                "debt_id": transaction.debt_id,
                "budget_id": transaction.budget_id,
            },
        )

    def on_payment_added(self, event: DebtPaymentAdded) -> None:
        self._complete_pay_debt(event.debt_id, payment_id=event.payment.id)

    def on_debt_status_changed(self, event: DebtStatusChanged) -> None:
        if event.new_status != "paid" or event.previous_status == "paid":
            return
        self._complete_pay_debt(event.debt_id)

    def on_budget_spending_changed(self, event: BudgetSpendingChanged) -> None:
        if self.store.budgets.get_by_id(event.budget_id) is None:
            logger.warning(f"Budget {event.budget_id} not found; dropping spending change")
            return
        self._complete_matching(
            lambda scope, task: True,
            links=["review_budget"],
            payload={"budget_id": event.budget_id},
        )

    def _complete_pay_debt(self, debt_id: int, *, payment_id: Optional[int] = None) -> None:
        self._complete_matching(
            lambda scope, task: debt_matches_goal(self._goal_for(scope, task), debt_id),
            links=["pay_debt"],
            payload={"debt_id": debt_id, "payment_id": payment_id},
        )

    def _goal_for(self, scope: Store, task: Task) -> Optional[Goal]:
        if task.goal_id is None:
            return None
        goal = scope.goals.get_by_id(task.goal_id)
        if goal is None:
            raise _MissingGoal(task.goal_id)
        return goal

    def _complete_matching(self, predicate, *, links: Optional[list[str]], payload: dict[str, Any]) -> list[int]:
        """Complete every open task accepted by ``predicate`` in one write scope."""

        completed: list[tuple[Task, datetime]] = []
        with self.store.write_scope() as scope:
            for task in scope.tasks.list_open_finance_linked(links):
                try:
                    accepted = predicate(scope, task)
                except _MissingGoal as exc:
                    logger.warning(f"Goal {exc.args[0]} of task {task.id} not found; leaving it open")
                    continue
                if not accepted:
                    continue
                now = datetime.now(timezone.utc)
                scope.tasks.update(task.id, status="completed", completed_at=now)
                completed.append((task, now))

        for task, completed_at in completed:
            logger.info(f"Auto-completed task {task.id} ({task.finance_link})")
            self.bus.publish(
                TaskAutoCompleted(
                    task_id=task.id,
                    finance_link=task.finance_link,
                    completed_at=completed_at,
                    **payload,
                )
            )
        return [task.id for task, _ in completed]
