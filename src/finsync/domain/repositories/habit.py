"""Habit repository protocol."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional, Protocol

from ...models.habit import Habit, HabitEntry


class HabitRepository(Protocol):
    """Repository for managing habit entities."""

    def get_by_id(self, habit_id: int) -> Optional[Habit]:
        """Retrieve a habit by ID."""
        ...

    def list_active(self) -> list[Habit]:
        """List only active habits."""
        ...

    def list_finance_linked(self) -> list[Habit]:
        """Active habits carrying a finance rule."""
        ...

    def create(self, habit: Habit) -> Habit:
        ...

    def update(self, habit_id: int, **patch: Any) -> Habit:
        ...

    # Habit entry operations
    def get_entry(self, habit_id: int, occurred_on: date) -> Optional[HabitEntry]:
        """Get a specific habit entry."""
        ...

    def get_entries_for_habit(
        self, habit_id: int, start_date: date, end_date: date
    ) -> list[HabitEntry]:
        """Get entries for a habit within a date range."""
        ...

    def list_done_entries(self, habit_id: int) -> list[HabitEntry]:
        ...

    def upsert_entry(
        self,
        habit_id: int,
        occurred_on: date,
        *,
        outcome: str,
        value: Optional[float] = None,
        evaluated_by: str = "auto",
    ) -> HabitEntry:
        """Insert or replace the single entry for (habit, day)."""
        ...
