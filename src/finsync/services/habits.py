"""Habit service helpers for manual outcomes and streaks."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Iterable, Optional

from ..domain.finance_rules import rule_from_dict
from ..domain.repositories import Store
from ..errors import MissingEntityError
from ..models.habit import HABIT_OUTCOMES, Habit, HabitEntry

logger = logging.getLogger("finsync.services.habits")


def compute_streaks(entries: Iterable[HabitEntry], *, today: date | None = None) -> tuple[int, int]:
    """Return (current_streak, longest_streak) counted over ``done`` days."""

    today = today or date.today()
    done_days = {e.occurred_on for e in entries if e.outcome == "done"}

    # Current streak: walk backwards from today until a gap.
    current = 0
    cursor = today
    while cursor in done_days:
        current += 1
        cursor -= timedelta(days=1)

    # Longest streak: sweep through sorted days, counting consecutive runs.
    longest = 0
    run = 0
    last_day: date | None = None
    for d in sorted(done_days):
        if last_day is None or d == last_day + timedelta(days=1):
            run += 1
        else:
            longest = max(longest, run)
            run = 1
        last_day = d
    longest = max(longest, run)

    return current, longest


class HabitService:
    def __init__(self, store: Store):
        self.store = store

    def create_habit(
        self,
        *,
        name: str,
        description: str = "",
        finance_rule: Optional[dict[str, Any]] = None,
    ) -> Habit:
        if finance_rule is not None:
            rule_from_dict(finance_rule)
        return self.store.habits.create(
            Habit(name=name, description=description, finance_rule=finance_rule)
        )

    def log_outcome(
        self,
        habit_id: int,
        day: date,
        outcome: str,
        *,
        value: Optional[float] = None,
    ) -> HabitEntry:
        """Record a manual outcome for ``day``, replacing whatever was there.

        A later automatic evaluation of a finance-linked habit overwrites it.
        """
        if outcome not in HABIT_OUTCOMES:
            raise ValueError(f"Unknown habit outcome: {outcome!r}")
        if self.store.habits.get_by_id(habit_id) is None:
            raise MissingEntityError("Habit", habit_id)
        return self.store.habits.upsert_entry(
            habit_id, day, outcome=outcome, value=value, evaluated_by="manual"
        )

    def history(self, habit_id: int, start: date, end: date) -> list[HabitEntry]:
        return self.store.habits.get_entries_for_habit(habit_id, start, end)

    def streaks(self, habit_id: int, *, today: date | None = None) -> tuple[int, int]:
        return compute_streaks(self.store.habits.list_done_entries(habit_id), today=today)


__all__ = ["HabitService", "compute_streaks"]
