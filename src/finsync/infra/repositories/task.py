"""SQLModel implementations of Task and Goal repositories."""

from __future__ import annotations

from typing import Iterable, Optional

from ...models.task import TERMINAL_TASK_STATUSES, Goal, Task
from .base import SQLModelRepository


class SQLModelTaskRepository(SQLModelRepository[Task]):
    model = Task

    def list_open_finance_linked(self, links: Optional[Iterable[str]] = None) -> list[Task]:
        """Tasks that auto-completion may still touch.

        Terminal statuses and ``finance_link == "none"`` are filtered here so
        callers never see them.
        """
        criteria = [
            Task.status.not_in(sorted(TERMINAL_TASK_STATUSES)),  # type: ignore[union-attr]
            Task.finance_link != "none",
        ]
        if links is not None:
            criteria.append(Task.finance_link.in_(list(links)))  # type: ignore[union-attr]
        return self.list_where(*criteria, order_by=Task.id)


class SQLModelGoalRepository(SQLModelRepository[Goal]):
    model = Goal
