"""Recurring schedules and the daily processor that turns them into ledger entries."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Iterable, Optional

from ..domain.recurrence import (
    MONTH_BASED,
    RecurrenceConstraints,
    coerce_pattern,
    first_occurrence,
    next_occurrence,
    occurrences_between,
)
from ..domain.repositories import Store
from ..errors import MissingEntityError, RecurrenceConfigurationError
from ..models.recurring import RecurringSchedule
from ..models.transaction import TRANSACTION_TYPES, LedgerTransaction
from .ledger import LedgerService

logger = logging.getLogger("finsync.services.recurring")

LAST_PROCESSED_KEY = "recurring.last_processed_date"
RECURRENCE_FIELDS = frozenset({"pattern", "interval", "days_of_week", "day_of_month"})
EDITABLE_FIELDS = RECURRENCE_FIELDS | {
    "amount",
    "category",
    "description",
    "end_date",
    "is_active",
    "is_paused",
}

# Approximate firings per month, used only for the statistics summary.
_MONTHLY_FACTOR: dict[str, Callable[[int], float]] = {
    "daily": lambda interval: 30 / interval,
    "weekly": lambda interval: 4 / interval,
    "biweekly": lambda interval: 2,
    "monthly": lambda interval: 1 / interval,
    "quarterly": lambda interval: 1 / (3 * interval),
    "yearly": lambda interval: 1 / (12 * interval),
}


@dataclass
class ProcessorState:
    """Single-flight and once-per-day guard shared by whoever drives the processor.

    APScheduler runs jobs on worker threads, so the in-flight flag is a lock
    taken without blocking rather than a plain bool.
    """

    last_processed_date: Optional[date] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def is_processing(self) -> bool:
        return self.lock.locked()


@dataclass(frozen=True)
class ProcessingResult:
    processed: int = 0
    failed: int = 0
    skipped: int = 0

    def as_dict(self) -> dict[str, int]:
        return {"processed": self.processed, "failed": self.failed, "skipped": self.skipped}


class ScheduleProcessor:
    """Creates one ledger transaction per due schedule, at most one run per day."""

    def __init__(
        self,
        store: Store,
        ledger: LedgerService,
        *,
        state: Optional[ProcessorState] = None,
        clock: Callable[[], date] = date.today,
        persist_state: bool = True,
    ):
        self.store = store
        self.ledger = ledger
        self.state = state if state is not None else ProcessorState()
        self.clock = clock
        self.persist_state = persist_state
        if persist_state and self.state.last_processed_date is None:
            self.state.last_processed_date = self._load_last_processed()

    def process_scheduled_transactions(self) -> ProcessingResult:
        """Fire every due schedule once.

        Returns zero counts without side effects when a run is already in
        flight or today has already been processed.
        """
        if not self.state.lock.acquire(blocking=False):
            logger.info("Recurring processing already in progress")
            return ProcessingResult()

        processed = failed = skipped = 0
        try:
            today = self.clock()
            if self.state.last_processed_date == today:
                logger.info(f"Recurring schedules already processed for {today.isoformat()}")
                return ProcessingResult()

            for schedule in self.store.schedules.list_due(today):
                try:
                    transaction = self._process_schedule(schedule.id, today)
                except RecurrenceConfigurationError as exc:
                    failed += 1
                    logger.error(
                        f"Schedule {schedule.id} has an invalid recurrence and was left unadvanced: {exc}",
                        extra={"schedule_id": schedule.id},
                    )
                except Exception as exc:
                    failed += 1
                    logger.error(
                        f"Failed to process recurring schedule {schedule.id}: {exc}",
                        exc_info=True,
                        extra={"schedule_id": schedule.id},
                    )
                else:
                    if transaction is None:
                        skipped += 1
                    else:
                        processed += 1

            self.state.last_processed_date = today
            if self.persist_state:
                self.store.settings.set(
                    LAST_PROCESSED_KEY, today.isoformat(), "Last day recurring schedules ran"
                )
        finally:
            self.state.lock.release()

        result = ProcessingResult(processed=processed, failed=failed, skipped=skipped)
        logger.info("Recurring schedules processed", extra=result.as_dict())
        return result

    def _process_schedule(self, schedule_id: int, today: date) -> Optional[LedgerTransaction]:
        """Fire one schedule inside a single write scope.

        Returns the created transaction, or None when the schedule was skipped.
        """
        transaction: Optional[LedgerTransaction] = None
        with self.store.write_scope() as scope:
            schedule = scope.schedules.get_by_id(schedule_id)
            if schedule is None or not schedule.is_due(today):
                return None

            if schedule.end_date and schedule.next_occurrence > schedule.end_date:
                scope.schedules.update(schedule.id, is_active=False)
                logger.info(f"Schedule {schedule.id} passed its end date; deactivated")
                return None

            occurrence = schedule.next_occurrence
            try:
                upcoming = next_occurrence(
                    schedule.pattern, schedule.interval, occurrence, schedule.constraints()
                )
            except RecurrenceConfigurationError as exc:
                exc.schedule_id = schedule.id
                raise

            advance: dict[str, Any] = {"next_occurrence": upcoming, "last_processed": today}
            if schedule.end_date and upcoming > schedule.end_date:
                advance["is_active"] = False
            if not scope.schedules.advance(schedule.id, occurrence, **advance):
                logger.info(f"Schedule {schedule.id} occurrence {occurrence.isoformat()} was already recorded")
                return None

            transaction = self.ledger.record_in_scope(
                scope,
                LedgerTransaction(
                    account_id=schedule.account_id,
                    to_account_id=schedule.to_account_id,
                    type=schedule.type,
                    amount=schedule.amount,
                    currency=schedule.currency,
                    category=schedule.category,
                    description=schedule.description or f"Recurring payment: {schedule.category}",
                    occurred_on=occurrence,
                    recurring_id=schedule.id,
                ),
            )
            scope.schedules.update(
                schedule.id,
                created_transaction_ids=[*schedule.created_transaction_ids, transaction.id],
            )

        self.ledger.publish_created(transaction)
        logger.info(
            f"Processed recurring schedule {schedule_id}",
            extra={"schedule_id": schedule_id, "transaction_id": transaction.id},
        )
        return transaction

    def _load_last_processed(self) -> Optional[date]:
        setting = self.store.settings.get(LAST_PROCESSED_KEY)
        if setting is None:
            return None
        try:
            return date.fromisoformat(setting.value)
        except ValueError:
            logger.warning(f"Ignoring malformed {LAST_PROCESSED_KEY} setting: {setting.value!r}")
            return None


class RecurringService:
    """User-facing schedule management."""

    def __init__(self, store: Store, ledger: LedgerService, *, clock: Callable[[], date] = date.today):
        self.store = store
        self.ledger = ledger
        self.clock = clock

    def create_schedule(
        self,
        *,
        account_id: int,
        type: str,
        amount: float,
        pattern: str,
        start_date: date,
        interval: int = 1,
        currency: Optional[str] = None,
        category: str = "",
        description: str = "",
        days_of_week: Optional[Iterable[int]] = None,
        day_of_month: Optional[int] = None,
        end_date: Optional[date] = None,
        to_account_id: Optional[int] = None,
    ) -> RecurringSchedule:
        """Create a schedule whose first occurrence is on or after today.

        Month-based patterns remember the start day so that a clamped month
        (Jan 31 -> Feb 28) returns to the 31st afterwards.
        """
        if type not in TRANSACTION_TYPES:
            raise ValueError(f"Unknown transaction type: {type!r}")
        if amount <= 0:
            raise ValueError("Recurring amount must be positive")
        if interval < 1:
            raise ValueError("Interval must be at least 1")
        if end_date is not None and end_date < start_date:
            raise ValueError("End date cannot precede start date")
        if type == "transfer" and to_account_id is None:
            raise ValueError("Recurring transfers need a destination account")
        if self.store.accounts.get_by_id(account_id) is None:
            raise MissingEntityError("Account", account_id)

        resolved = coerce_pattern(pattern)
        if resolved in MONTH_BASED and day_of_month is None:
            day_of_month = start_date.day
        weekdays = sorted(set(days_of_week or ()))
        constraints = RecurrenceConstraints(days_of_week=frozenset(weekdays), day_of_month=day_of_month)
        upcoming = first_occurrence(start_date, resolved, interval, constraints, today=self.clock())

        schedule = RecurringSchedule(
            account_id=account_id,
            to_account_id=to_account_id,
            type=type,
            amount=amount,
            currency=(currency or self.ledger.default_currency).upper(),
            category=category,
            description=description,
            pattern=resolved.value,
            interval=interval,
            days_of_week=weekdays,
            day_of_month=day_of_month,
            start_date=start_date,
            end_date=end_date,
            next_occurrence=upcoming,
        )
        created = self.store.schedules.create(schedule)
        logger.info(
            f"Created {resolved.value} schedule {created.id}",
            extra={"schedule_id": created.id, "next_occurrence": upcoming.isoformat()},
        )
        return created

    def update_schedule(self, schedule_id: int, **changes: Any) -> RecurringSchedule:
        """Edit a schedule; recurrence changes recompute ``next_occurrence``."""

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit schedule fields {sorted(unknown)}")
        if "interval" in changes and changes["interval"] < 1:
            raise ValueError("Interval must be at least 1")
        if "pattern" in changes:
            changes["pattern"] = coerce_pattern(changes["pattern"]).value
        if "days_of_week" in changes:
            changes["days_of_week"] = sorted(set(changes["days_of_week"] or ()))

        with self.store.write_scope() as scope:
            schedule = scope.schedules.get_by_id(schedule_id)
            if schedule is None:
                raise MissingEntityError("RecurringSchedule", schedule_id)
            if RECURRENCE_FIELDS & set(changes):
                merged = {
                    "pattern": schedule.pattern,
                    "interval": schedule.interval,
                    "days_of_week": schedule.days_of_week,
                    "day_of_month": schedule.day_of_month,
                    **{k: v for k, v in changes.items() if k in RECURRENCE_FIELDS},
                }
                constraints = RecurrenceConstraints(
                    days_of_week=frozenset(merged["days_of_week"] or ()),
                    day_of_month=merged["day_of_month"],
                    skip_dates=schedule.constraints().skip_dates,
                )
                earliest = self.clock()
                if schedule.last_processed and schedule.last_processed >= earliest:
                    earliest = schedule.last_processed + timedelta(days=1)
                changes["next_occurrence"] = first_occurrence(
                    schedule.start_date,
                    merged["pattern"],
                    merged["interval"],
                    constraints,
                    today=earliest,
                )
            return scope.schedules.update(schedule_id, **changes)

    def pause(self, schedule_id: int) -> RecurringSchedule:
        return self.store.schedules.update(schedule_id, is_paused=True)

    def resume(self, schedule_id: int) -> RecurringSchedule:
        return self.store.schedules.update(schedule_id, is_paused=False)

    def skip_next(self, schedule_id: int) -> RecurringSchedule:
        """Skip the pending occurrence and advance to the one after it."""

        with self.store.write_scope() as scope:
            schedule = scope.schedules.get_by_id(schedule_id)
            if schedule is None:
                raise MissingEntityError("RecurringSchedule", schedule_id)
            skipped = schedule.next_occurrence
            skip_dates = sorted({*schedule.skip_dates, skipped.isoformat()})
            constraints = RecurrenceConstraints(
                days_of_week=frozenset(schedule.days_of_week or ()),
                day_of_month=schedule.day_of_month,
                skip_dates=frozenset(date.fromisoformat(d) for d in skip_dates),
            )
            upcoming = next_occurrence(schedule.pattern, schedule.interval, skipped, constraints)
            logger.info(f"Schedule {schedule_id} skips {skipped.isoformat()}")
            return scope.schedules.update(
                schedule_id, skip_dates=skip_dates, next_occurrence=upcoming
            )

    def delete_schedule(self, schedule_id: int, *, delete_created_transactions: bool = False) -> bool:
        """Delete a schedule, optionally deleting (and reversing) what it created."""

        schedule = self.store.schedules.get_by_id(schedule_id)
        if schedule is None:
            return False
        if delete_created_transactions:
            for transaction_id in schedule.created_transaction_ids:
                self.ledger.delete_transaction(transaction_id)
        self.store.schedules.delete(schedule_id)
        logger.info(
            f"Deleted schedule {schedule_id}",
            extra={"cascade": delete_created_transactions},
        )
        return True

    def get_active(self) -> list[RecurringSchedule]:
        return self.store.schedules.list_active()

    def get_upcoming(self, days: int = 7) -> list[tuple[RecurringSchedule, date]]:
        """(schedule, occurrence) pairs due within the next ``days`` days."""

        until = self.clock() + timedelta(days=days)
        upcoming: list[tuple[RecurringSchedule, date]] = []
        for schedule in self.store.schedules.list_upcoming(until):
            window_end = min(until, schedule.end_date) if schedule.end_date else until
            for occurrence in occurrences_between(
                schedule.next_occurrence,
                window_end,
                schedule.pattern,
                schedule.interval,
                schedule.constraints(),
            ):
                upcoming.append((schedule, occurrence))
        upcoming.sort(key=lambda pair: (pair[1], pair[0].id or 0))
        return upcoming

    def get_history(self, schedule_id: int) -> list[LedgerTransaction]:
        schedule = self.store.schedules.get_by_id(schedule_id)
        if schedule is None:
            return []
        return self.store.transactions.list_by_ids(schedule.created_transaction_ids)

    def get_statistics(self) -> dict[str, Any]:
        all_schedules = self.store.schedules.list_all()
        active = [s for s in all_schedules if s.is_active and not s.is_paused]
        paused = [s for s in all_schedules if s.is_paused]

        monthly_income = 0.0
        monthly_expense = 0.0
        for schedule in active:
            factor = _MONTHLY_FACTOR[schedule.pattern](schedule.interval)
            if schedule.type == "income":
                monthly_income += schedule.amount * factor
            elif schedule.type == "expense":
                monthly_expense += schedule.amount * factor

        week_ahead = self.clock() + timedelta(days=7)
        return {
            "total": len(all_schedules),
            "active": len(active),
            "paused": len(paused),
            "monthly_amount": {
                "income": round(monthly_income),
                "expense": round(monthly_expense),
            },
            "upcoming_this_week": sum(1 for s in active if s.next_occurrence <= week_ahead),
        }
