"""Habits tracking data structures."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, ClassVar, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from ..domain.finance_rules import FinanceRule, rule_from_dict

HABIT_OUTCOMES = ("done", "miss")


class Habit(SQLModel, table=True):
    """A user-defined habit, optionally driven by a finance rule."""

    __tablename__: ClassVar[str] = "habit"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False, max_length=80, index=True)
    description: str = Field(default="", max_length=255)
    is_active: bool = Field(default=True, nullable=False)
    finance_rule: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    def rule(self) -> Optional[FinanceRule]:
        if not self.finance_rule:
            return None
        return rule_from_dict(self.finance_rule)


class HabitEntry(SQLModel, table=True):
    """The single recorded outcome of a habit on a calendar day."""

    __tablename__: ClassVar[str] = "habit_entry"

    habit_id: int = Field(foreign_key="habit.id", primary_key=True)
    occurred_on: date = Field(primary_key=True, index=True)
    outcome: str = Field(nullable=False, max_length=8)
    value: Optional[float] = Field(default=None)
    evaluated_by: str = Field(default="auto", max_length=16)
    evaluated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), nullable=False
    )
