"""Automatic habit outcomes driven by ledger activity.

Any created, updated or deleted transaction triggers a full re-evaluation of
its calendar day for every active finance-linked habit. The result replaces
the single entry stored for (habit, day), so the last evaluation wins and
out-of-order events converge on the same answer.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Union

from ..domain.finance_rules import evaluate_rule
from ..domain.repositories import Store
from ..events import (
    EventBus,
    HabitDayEvaluated,
    TransactionCreated,
    TransactionDeleted,
    TransactionUpdated,
)

logger = logging.getLogger("finsync.services.habit_rules")

LedgerEvent = Union[TransactionCreated, TransactionUpdated, TransactionDeleted]


class HabitRuleEvaluator:
    def __init__(self, store: Store, bus: EventBus):
        self.store = store
        self.bus = bus

    def register(self) -> None:
        self.bus.subscribe(TransactionCreated, self.on_ledger_event)
        self.bus.subscribe(TransactionUpdated, self.on_ledger_event)
        self.bus.subscribe(TransactionDeleted, self.on_ledger_event)

    def on_ledger_event(self, event: LedgerEvent) -> None:
        self.evaluate_day(event.transaction.occurred_on)

    def evaluate_day(self, day: date) -> list[HabitDayEvaluated]:
        """Re-evaluate every finance-linked habit for ``day`` and store the outcomes.

        Voided transactions do not count toward any rule. A habit whose stored
        rule cannot be decoded is logged and left untouched.
        """
        results: list[HabitDayEvaluated] = []
        with self.store.write_scope() as scope:
            transactions = [
                tx for tx in scope.transactions.list_for_day(day) if tx.status != "void"
            ]
            for habit in scope.habits.list_finance_linked():
                try:
                    rule = habit.rule()
                except ValueError as exc:
                    logger.error(f"Habit {habit.id} has an unreadable finance rule: {exc}")
                    continue
                if rule is None:
                    continue
                evaluation = evaluate_rule(rule, transactions)
                scope.habits.upsert_entry(
                    habit.id,
                    day,
                    outcome=evaluation.outcome,
                    value=evaluation.value,
                    evaluated_by="auto",
                )
                results.append(
                    HabitDayEvaluated(
                        habit_id=habit.id,
                        date=day,
                        result=evaluation.outcome,
                        rule_type=rule.rule_type,
                    )
                )

        if results:
            logger.info(
                f"Evaluated {len(results)} finance habits for {day.isoformat()}",
                extra={"day": day.isoformat()},
            )
        for result in results:
            self.bus.publish(result)
        return results

    def evaluate_range(self, start: date, end: date) -> list[HabitDayEvaluated]:
        """Evaluate each day from ``start`` through ``end`` inclusive."""

        if end < start:
            raise ValueError("End date cannot precede start date")
        results: list[HabitDayEvaluated] = []
        day = start
        while day <= end:
            results.extend(self.evaluate_day(day))
            day += timedelta(days=1)
        return results
