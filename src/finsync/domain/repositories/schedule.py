"""Recurring schedule repository protocol."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional, Protocol

from ...models.recurring import RecurringSchedule


class ScheduleRepository(Protocol):
    """Repository for managing recurring schedules."""

    def get_by_id(self, schedule_id: int) -> Optional[RecurringSchedule]:
        """Retrieve a schedule by ID."""
        ...

    def list_all(self) -> list[RecurringSchedule]:
        ...

    def list_active(self) -> list[RecurringSchedule]:
        """Active, unpaused schedules ordered by next occurrence."""
        ...

    def list_due(self, today: date) -> list[RecurringSchedule]:
        """Active, unpaused schedules with ``next_occurrence <= today``."""
        ...

    def list_upcoming(self, until: date) -> list[RecurringSchedule]:
        ...

    def list_paused(self) -> list[RecurringSchedule]:
        ...

    def create(self, schedule: RecurringSchedule) -> RecurringSchedule:
        ...

    def update(self, schedule_id: int, **patch: Any) -> RecurringSchedule:
        ...

    def advance(self, schedule_id: int, expected: date, **patch: Any) -> bool:
        """Apply ``patch`` only while ``next_occurrence`` still equals ``expected``."""
        ...

    def delete(self, schedule_id: int) -> Optional[RecurringSchedule]:
        ...
