"""Recurring schedule table: a template for periodic ledger entries."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import ClassVar, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from ..domain.recurrence import RecurrenceConstraints, parse_skip_dates


class RecurringSchedule(SQLModel, table=True):
    """Template describing when and how a recurring transaction is created.

    JSON list columns are replaced wholesale on change; SQLAlchemy does not
    track in-place list mutation.
    """

    __tablename__: ClassVar[str] = "recurring_schedule"

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: int = Field(foreign_key="account.id", nullable=False, index=True)
    to_account_id: Optional[int] = Field(default=None, foreign_key="account.id")
    type: str = Field(nullable=False, max_length=16)
    amount: float = Field(nullable=False)
    currency: str = Field(default="USD", max_length=3)
    category: str = Field(default="", max_length=64)
    description: str = Field(default="", max_length=255)

    pattern: str = Field(nullable=False, max_length=16)
    interval: int = Field(default=1, nullable=False)
    days_of_week: list[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    day_of_month: Optional[int] = Field(default=None)

    start_date: date = Field(nullable=False)
    end_date: Optional[date] = Field(default=None)
    next_occurrence: date = Field(nullable=False, index=True)
    last_processed: Optional[date] = Field(default=None)
    skip_dates: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    is_active: bool = Field(default=True, nullable=False, index=True)
    is_paused: bool = Field(default=False, nullable=False)
    created_transaction_ids: list[int] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), nullable=False
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), nullable=False
    )

    def constraints(self) -> RecurrenceConstraints:
        """Build the calculator constraints from the stored columns."""

        return RecurrenceConstraints(
            days_of_week=frozenset(self.days_of_week or ()),
            day_of_month=self.day_of_month,
            skip_dates=parse_skip_dates(self.skip_dates or ()),
        )

    def is_due(self, today: date) -> bool:
        return self.is_active and not self.is_paused and self.next_occurrence <= today
