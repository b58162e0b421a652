"""Planner tasks and goals that finance events can complete."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

TASK_STATUSES = ("planned", "in_progress", "completed", "canceled", "archived", "deleted")
TERMINAL_TASK_STATUSES = frozenset({"completed", "canceled", "archived", "deleted"})
FINANCE_LINKS = ("none", "record_expenses", "pay_debt", "review_budget", "transfer_money")


class Goal(SQLModel, table=True):
    __tablename__: ClassVar[str] = "goal"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(nullable=False, max_length=120)
    linked_debt_id: Optional[int] = Field(default=None, index=True)


class Task(SQLModel, table=True):
    """A checklist item; ``finance_link`` names the event that completes it."""

    __tablename__: ClassVar[str] = "task"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(nullable=False, max_length=120)
    status: str = Field(default="planned", max_length=16, index=True)
    finance_link: str = Field(default="none", max_length=32, index=True)
    goal_id: Optional[int] = Field(default=None, foreign_key="goal.id")
    completed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), nullable=False
    )
