"""SQLModel implementation of Habit repository."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from sqlmodel import select

from ...models.habit import Habit, HabitEntry
from .base import SQLModelRepository


class SQLModelHabitRepository(SQLModelRepository[Habit]):
    model = Habit

    def list_active(self) -> list[Habit]:
        return self.list_where(Habit.is_active == True, order_by=Habit.name)  # noqa: E712

    def list_finance_linked(self) -> list[Habit]:
        """Active habits that carry a finance rule."""
        return [habit for habit in self.list_active() if habit.finance_rule]

    # Habit entry operations
    def get_entry(self, habit_id: int, occurred_on: date) -> Optional[HabitEntry]:
        with self.session_factory() as session:
            return session.get(HabitEntry, (habit_id, occurred_on))

    def get_entries_for_habit(
        self, habit_id: int, start_date: date, end_date: date
    ) -> list[HabitEntry]:
        """Get entries for a habit within a date range."""
        with self.session_factory() as session:
            statement = (
                select(HabitEntry)
                .where(HabitEntry.habit_id == habit_id)
                .where(HabitEntry.occurred_on >= start_date)
                .where(HabitEntry.occurred_on <= end_date)
                .order_by(HabitEntry.occurred_on)  # type: ignore[arg-type]
            )
            return list(session.exec(statement).all())

    def list_done_entries(self, habit_id: int) -> list[HabitEntry]:
        with self.session_factory() as session:
            statement = (
                select(HabitEntry)
                .where(HabitEntry.habit_id == habit_id)
                .where(HabitEntry.outcome == "done")
            )
            return list(session.exec(statement).all())

    def upsert_entry(
        self,
        habit_id: int,
        occurred_on: date,
        *,
        outcome: str,
        value: Optional[float] = None,
        evaluated_by: str = "auto",
    ) -> HabitEntry:
        """Write the single outcome for (habit, day), replacing any earlier one."""
        with self.session_factory() as session:
            entry = session.get(HabitEntry, (habit_id, occurred_on))
            if entry is None:
                entry = HabitEntry(habit_id=habit_id, occurred_on=occurred_on, outcome=outcome)
            entry.outcome = outcome
            entry.value = value
            entry.evaluated_by = evaluated_by
            entry.evaluated_at = datetime.now(timezone.utc)
            session.add(entry)
            session.flush()
            return entry

    def delete_entry(self, habit_id: int, occurred_on: date) -> None:
        with self.session_factory() as session:
            entry = session.get(HabitEntry, (habit_id, occurred_on))
            if entry is not None:
                session.delete(entry)
                session.flush()
