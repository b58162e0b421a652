"""Pure recurrence arithmetic for recurring schedules.

Contract:
    Every function here is pure. Nothing reads the clock; callers pass the
    reference date and, for backfill, ``today`` explicitly. The processor and
    the schedule service share these functions, so a schedule never needs to be
    instantiated to know its next date.

Weekday numbers follow ``date.weekday()``: 0 is Monday, 6 is Sunday.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Optional

from ..errors import RecurrenceConfigurationError

MAX_ITERATIONS = 512


class Pattern(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


MONTH_BASED = {Pattern.MONTHLY: 1, Pattern.QUARTERLY: 3, Pattern.YEARLY: 12}


@dataclass(frozen=True)
class RecurrenceConstraints:
    """Optional weekday/day-of-month constraints plus dates to skip."""

    days_of_week: frozenset[int] = frozenset()
    day_of_month: Optional[int] = None
    skip_dates: frozenset[date] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "days_of_week", frozenset(self.days_of_week))
        object.__setattr__(self, "skip_dates", frozenset(self.skip_dates))
        bad_days = [d for d in self.days_of_week if not 0 <= d <= 6]
        if bad_days:
            raise RecurrenceConfigurationError(f"Invalid weekday numbers: {sorted(bad_days)}")
        if self.day_of_month is not None and not 1 <= self.day_of_month <= 31:
            raise RecurrenceConfigurationError(f"Invalid day of month: {self.day_of_month}")


def coerce_pattern(pattern: Pattern | str) -> Pattern:
    """Return the Pattern for a raw value or raise a configuration error."""

    try:
        return Pattern(pattern)
    except ValueError as exc:
        raise RecurrenceConfigurationError(f"Unsupported recurrence pattern: {pattern!r}") from exc


def add_months(value: date, months: int, day: Optional[int] = None) -> date:
    """Shift ``value`` by whole months, clamping to the target month's last day."""

    index = value.year * 12 + (value.month - 1) + months
    year, month_index = divmod(index, 12)
    month = month_index + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day or value.day, last_day))


def _check_interval(interval: int) -> None:
    if not isinstance(interval, int) or interval < 1:
        raise RecurrenceConfigurationError(f"Interval must be a positive integer, got {interval!r}")


def _step(pattern: Pattern, interval: int, reference: date, constraints: RecurrenceConstraints) -> date:
    """Advance one raw step from ``reference``, ignoring skip dates."""

    try:
        if pattern is Pattern.DAILY:
            return reference + timedelta(days=interval)

        if pattern in (Pattern.WEEKLY, Pattern.BIWEEKLY):
            weeks = 2 if pattern is Pattern.BIWEEKLY else interval
            if not constraints.days_of_week:
                return reference + timedelta(weeks=weeks)
            weekday = reference.weekday()
            later = sorted(d for d in constraints.days_of_week if d > weekday)
            if later:
                return reference + timedelta(days=later[0] - weekday)
            week_start = reference - timedelta(days=weekday)
            return week_start + timedelta(weeks=weeks, days=min(constraints.days_of_week))

        months = MONTH_BASED[pattern] * interval
        return add_months(reference, months, constraints.day_of_month)
    except (OverflowError, ValueError) as exc:
        raise RecurrenceConfigurationError(
            f"{pattern.value} recurrence from {reference.isoformat()} leaves the calendar range"
        ) from exc


def next_occurrence(
    pattern: Pattern | str,
    interval: int,
    reference: date,
    constraints: Optional[RecurrenceConstraints] = None,
) -> date:
    """Return the next valid occurrence strictly after ``reference``.

    Candidates that fall on a skip date are advanced again from themselves.

    Raises:
        RecurrenceConfigurationError: unknown pattern, bad interval, or no
            non-skipped date within ``MAX_ITERATIONS`` steps.
    """
    pattern = coerce_pattern(pattern)
    _check_interval(interval)
    constraints = constraints or RecurrenceConstraints()

    candidate = reference
    for _ in range(MAX_ITERATIONS):
        candidate = _step(pattern, interval, candidate, constraints)
        if candidate not in constraints.skip_dates:
            return candidate
    raise RecurrenceConfigurationError(
        f"No {pattern.value} occurrence after {reference.isoformat()} "
        f"outside skip dates within {MAX_ITERATIONS} iterations"
    )


def _fixed_period_days(pattern: Pattern, interval: int) -> Optional[int]:
    if pattern is Pattern.DAILY:
        return interval
    if pattern is Pattern.WEEKLY:
        return 7 * interval
    if pattern is Pattern.BIWEEKLY:
        return 14
    return None


def first_occurrence(
    start: date,
    pattern: Pattern | str,
    interval: int,
    constraints: Optional[RecurrenceConstraints] = None,
    *,
    today: date,
) -> date:
    """Walk forward from ``start`` to the first occurrence on or after ``today``.

    Used when a schedule is created with a start date in the past. Every
    pattern jumps whole periods first (days, weeks or months) so that a
    schedule started decades ago keeps its phase without thousands of steps.
    """
    pattern = coerce_pattern(pattern)
    _check_interval(interval)
    constraints = constraints or RecurrenceConstraints()

    cursor = start
    if start < today:
        period = _fixed_period_days(pattern, interval)
        if period is not None:
            whole_periods = (today - start).days // period
            if whole_periods > 1:
                cursor = start + timedelta(days=period * (whole_periods - 1))
        else:
            step_months = MONTH_BASED[pattern] * interval
            elapsed = (today.year - start.year) * 12 + today.month - start.month
            whole_periods = elapsed // step_months
            if whole_periods > 1:
                cursor = add_months(
                    start, step_months * (whole_periods - 1), constraints.day_of_month or start.day
                )

    for _ in range(MAX_ITERATIONS):
        if cursor >= today and cursor not in constraints.skip_dates:
            return cursor
        cursor = _step(pattern, interval, cursor, constraints)
    raise RecurrenceConfigurationError(
        f"No {pattern.value} occurrence on or after {today.isoformat()} "
        f"from start {start.isoformat()} within {MAX_ITERATIONS} iterations"
    )


def occurrences_between(
    first: date,
    end: date,
    pattern: Pattern | str,
    interval: int,
    constraints: Optional[RecurrenceConstraints] = None,
    *,
    limit: int = MAX_ITERATIONS,
) -> list[date]:
    """List occurrences from ``first`` (itself an occurrence) through ``end``."""

    constraints = constraints or RecurrenceConstraints()
    result: list[date] = []
    cursor = first
    while cursor <= end and len(result) < limit:
        if cursor not in constraints.skip_dates:
            result.append(cursor)
        cursor = next_occurrence(pattern, interval, cursor, constraints)
    return result


def parse_skip_dates(values: Iterable[str | date]) -> frozenset[date]:
    """Normalize stored ISO strings (or dates) into a frozenset of dates."""

    return frozenset(v if isinstance(v, date) else date.fromisoformat(v) for v in values)


__all__ = [
    "MAX_ITERATIONS",
    "Pattern",
    "RecurrenceConstraints",
    "add_months",
    "coerce_pattern",
    "first_occurrence",
    "next_occurrence",
    "occurrences_between",
    "parse_skip_dates",
]
