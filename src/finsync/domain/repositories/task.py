"""Task and goal repository protocols."""

from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol

from ...models.task import Goal, Task


class TaskRepository(Protocol):
    def get_by_id(self, task_id: int) -> Optional[Task]:
        ...

    def list_open_finance_linked(self, links: Optional[Iterable[str]] = None) -> list[Task]:
        """Non-terminal tasks with a finance link, optionally limited to ``links``."""
        ...

    def create(self, task: Task) -> Task:
        ...

    def update(self, task_id: int, **patch: Any) -> Task:
        ...


class GoalRepository(Protocol):
    def get_by_id(self, goal_id: int) -> Optional[Goal]:
        ...

    def create(self, goal: Goal) -> Goal:
        ...
