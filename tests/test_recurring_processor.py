"""Tests for the daily recurring schedule processor."""

from __future__ import annotations

import logging
import threading
from datetime import date, timedelta

import pytest

from finsync.events import TransactionCreated
from finsync.models import Account, RecurringSchedule
from finsync.services.recurring import (
    LAST_PROCESSED_KEY,
    ProcessingResult,
    ProcessorState,
    RecurringService,
    ScheduleProcessor,
)

from tests.conftest import TODAY


@pytest.fixture
def recurring(store, ledger, clock):
    return RecurringService(store, ledger, clock=clock)


@pytest.fixture
def processor(store, ledger, clock):
    return ScheduleProcessor(store, ledger, clock=clock)


def _raw_schedule(store, account_id, **overrides):
    fields = dict(
        account_id=account_id,
        type="expense",
        amount=10.0,
        category="rent",
        pattern="daily",
        interval=1,
        start_date=TODAY - timedelta(days=30),
        next_occurrence=TODAY,
    )
    fields.update(overrides)
    return store.schedules.create(RecurringSchedule(**fields))


def test_due_schedule_creates_one_transaction_and_advances(processor, recurring, store, account_factory):
    account = account_factory(balance=1000.0)
    schedule = recurring.create_schedule(
        account_id=account.id, type="expense", amount=800, pattern="monthly", start_date=TODAY, category="rent"
    )

    result = processor.process_scheduled_transactions()

    assert result == ProcessingResult(processed=1, failed=0, skipped=0)
    stored = store.schedules.get_by_id(schedule.id)
    assert stored.next_occurrence == date(2025, 4, 10)
    assert stored.last_processed == TODAY
    [tx] = store.transactions.list_by_recurring(schedule.id)
    assert stored.created_transaction_ids == [tx.id]
    assert tx.occurred_on == TODAY
    assert tx.amount == 800
    assert store.accounts.get_by_id(account.id).balance == pytest.approx(200.0)


def test_second_run_same_day_does_nothing(processor, store, account_factory):
    account = account_factory()
    schedule = _raw_schedule(store, account.id)

    processor.process_scheduled_transactions()
    second = processor.process_scheduled_transactions()

    assert second.as_dict() == {"processed": 0, "failed": 0, "skipped": 0}
    assert len(store.transactions.list_by_recurring(schedule.id)) == 1


def test_next_day_processes_again(processor, store, clock, account_factory):
    account = account_factory()
    schedule = _raw_schedule(store, account.id)

    processor.process_scheduled_transactions()
    clock.advance()
    result = processor.process_scheduled_transactions()

    assert result.processed == 1
    dates = [tx.occurred_on for tx in store.transactions.list_by_recurring(schedule.id)]
    assert dates == [TODAY, TODAY + timedelta(days=1)]


def test_reentrant_call_returns_zero(store, ledger, clock, account_factory):
    account = account_factory()
    _raw_schedule(store, account.id)
    state = ProcessorState()
    processor = ScheduleProcessor(store, ledger, state=state, clock=clock)

    with state.lock:
        assert state.is_processing
        assert processor.process_scheduled_transactions() == ProcessingResult()
    assert store.transactions.list_for_day(TODAY) == []
    assert not state.is_processing


def test_overlapping_runs_from_two_threads_record_once(app_ctx):
    """The startup job and the cron job may overlap on APScheduler worker threads."""
    account = app_ctx.store.accounts.create(Account(name="Checking"))
    schedule = _raw_schedule(app_ctx.store, account.id)
    entered, release = threading.Event(), threading.Event()

    def blocking_clock():
        entered.set()
        release.wait(timeout=5)
        return TODAY

    processor = ScheduleProcessor(app_ctx.store, app_ctx.ledger, clock=blocking_clock)
    results: list[ProcessingResult] = []
    worker = threading.Thread(target=lambda: results.append(processor.process_scheduled_transactions()))
    worker.start()
    try:
        assert entered.wait(timeout=5)
        overlapping = processor.process_scheduled_transactions()
    finally:
        release.set()
        worker.join(timeout=5)

    assert overlapping == ProcessingResult()
    assert [r.processed for r in results] == [1]
    assert len(app_ctx.store.transactions.list_by_recurring(schedule.id)) == 1


def test_separate_processors_never_record_an_occurrence_twice(store, ledger, clock, account_factory):
    account = account_factory()
    schedule = _raw_schedule(store, account.id)
    first = ScheduleProcessor(store, ledger, clock=clock, persist_state=False)
    second = ScheduleProcessor(store, ledger, clock=clock, persist_state=False)

    assert first.process_scheduled_transactions().processed == 1
    assert second.process_scheduled_transactions() == ProcessingResult()
    assert len(store.transactions.list_by_recurring(schedule.id)) == 1


def test_stale_occurrence_is_not_advanced(store, account_factory):
    account = account_factory()
    schedule = _raw_schedule(store, account.id)

    assert not store.schedules.advance(schedule.id, TODAY - timedelta(days=1), next_occurrence=TODAY)
    assert store.schedules.advance(schedule.id, TODAY, next_occurrence=TODAY + timedelta(days=1))
    assert not store.schedules.advance(schedule.id, TODAY, next_occurrence=TODAY + timedelta(days=1))
    assert store.schedules.get_by_id(schedule.id).next_occurrence == TODAY + timedelta(days=1)


def test_last_processed_date_survives_restart(processor, store, ledger, clock, account_factory):
    account = account_factory()
    _raw_schedule(store, account.id)
    processor.process_scheduled_transactions()

    assert store.settings.get(LAST_PROCESSED_KEY).value == TODAY.isoformat()
    restarted = ScheduleProcessor(store, ledger, clock=clock)
    assert restarted.state.last_processed_date == TODAY
    assert restarted.process_scheduled_transactions().processed == 0


def test_paused_and_inactive_schedules_are_ignored(processor, store, account_factory):
    account = account_factory()
    _raw_schedule(store, account.id, is_paused=True)
    _raw_schedule(store, account.id, is_active=False)

    assert processor.process_scheduled_transactions() == ProcessingResult()


def test_schedule_deactivates_when_next_passes_end_date(processor, store, account_factory):
    account = account_factory()
    schedule = _raw_schedule(store, account.id, end_date=TODAY)

    result = processor.process_scheduled_transactions()

    assert result.processed == 1
    stored = store.schedules.get_by_id(schedule.id)
    assert stored.is_active is False
    assert stored.next_occurrence == TODAY + timedelta(days=1)


def test_schedule_already_past_end_date_is_skipped(processor, store, account_factory):
    account = account_factory()
    schedule = _raw_schedule(store, account.id, next_occurrence=TODAY - timedelta(days=2), end_date=TODAY - timedelta(days=5))

    result = processor.process_scheduled_transactions()

    assert result == ProcessingResult(processed=0, failed=0, skipped=1)
    assert store.schedules.get_by_id(schedule.id).is_active is False
    assert store.transactions.list_by_recurring(schedule.id) == []


def test_failures_are_isolated_per_schedule(processor, store, account_factory, caplog):
    account = account_factory()
    good = _raw_schedule(store, account.id)
    missing_account = _raw_schedule(store, 999)
    bad_pattern = _raw_schedule(store, account.id, pattern="hourly")

    with caplog.at_level(logging.ERROR, logger="finsync.services.recurring"):
        result = processor.process_scheduled_transactions()

    assert result == ProcessingResult(processed=1, failed=2, skipped=0)
    assert len(store.transactions.list_by_recurring(good.id)) == 1
    for broken in (missing_account, bad_pattern):
        stored = store.schedules.get_by_id(broken.id)
        assert stored.next_occurrence == TODAY
        assert stored.created_transaction_ids == []
        assert store.transactions.list_by_recurring(broken.id) == []
    assert f"Schedule {bad_pattern.id} has an invalid recurrence" in caplog.text


def test_overdue_schedule_catches_up_one_occurrence_per_run(processor, store, clock, account_factory):
    account = account_factory()
    schedule = _raw_schedule(store, account.id, next_occurrence=TODAY - timedelta(days=3))

    processor.process_scheduled_transactions()

    [tx] = store.transactions.list_by_recurring(schedule.id)
    assert tx.occurred_on == TODAY - timedelta(days=3)
    assert store.schedules.get_by_id(schedule.id).next_occurrence == TODAY - timedelta(days=2)


def test_transactions_never_land_on_skip_dates(processor, recurring, store, clock, account_factory):
    account = account_factory()
    schedule = recurring.create_schedule(
        account_id=account.id, type="expense", amount=5, pattern="daily", start_date=TODAY
    )
    recurring.skip_next(schedule.id)

    for _ in range(4):
        processor.process_scheduled_transactions()
        clock.advance()

    dates = {tx.occurred_on for tx in store.transactions.list_by_recurring(schedule.id)}
    assert TODAY not in dates
    assert dates == {TODAY + timedelta(days=n) for n in range(1, 4)}


def test_created_event_published_once_per_transaction(processor, store, bus, account_factory):
    account = account_factory()
    _raw_schedule(store, account.id)
    _raw_schedule(store, account.id, amount=20.0)
    seen: list[int] = []
    bus.subscribe(
        TransactionCreated,
        lambda e: seen.append(len(store.schedules.get_by_id(e.transaction.recurring_id).created_transaction_ids)),
    )

    processor.process_scheduled_transactions()

    # The schedule row is already advanced when its event arrives.
    assert seen == [1, 1]
