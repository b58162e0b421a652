"""SQLModel implementation of RecurringSchedule repository."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import update

from ...models.recurring import RecurringSchedule
from .base import SQLModelRepository


class SQLModelScheduleRepository(SQLModelRepository[RecurringSchedule]):
    model = RecurringSchedule

    def list_active(self) -> list[RecurringSchedule]:
        """Active, unpaused schedules ordered by next occurrence."""
        return self.list_where(
            RecurringSchedule.is_active == True,  # noqa: E712
            RecurringSchedule.is_paused == False,  # noqa: E712
            order_by=RecurringSchedule.next_occurrence,
        )

    def list_due(self, today: date) -> list[RecurringSchedule]:
        """Active, unpaused schedules whose next occurrence is today or earlier."""
        return self.list_where(
            RecurringSchedule.is_active == True,  # noqa: E712
            RecurringSchedule.is_paused == False,  # noqa: E712
            RecurringSchedule.next_occurrence <= today,
            order_by=RecurringSchedule.next_occurrence,
        )

    def list_upcoming(self, until: date) -> list[RecurringSchedule]:
        return self.list_where(
            RecurringSchedule.is_active == True,  # noqa: E712
            RecurringSchedule.is_paused == False,  # noqa: E712
            RecurringSchedule.next_occurrence <= until,
            order_by=RecurringSchedule.next_occurrence,
        )

    def list_paused(self) -> list[RecurringSchedule]:
        return self.list_where(RecurringSchedule.is_paused == True)  # noqa: E712

    def advance(self, schedule_id: int, expected: date, **patch: Any) -> bool:
        """Compare-and-set on ``next_occurrence``.

        Returns False, changing nothing, when another writer already moved the
        schedule past ``expected``.
        """
        statement = (
            update(RecurringSchedule)
            .where(
                RecurringSchedule.id == schedule_id,
                RecurringSchedule.next_occurrence == expected,
            )
            .values(**patch, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="evaluate")
        )
        with self.session_factory() as session:
            return session.execute(statement).rowcount == 1
