"""Tests for automatic habit outcomes driven by ledger events."""

from __future__ import annotations

import logging
from datetime import date, timedelta

import pytest

from finsync.events import HabitDayEvaluated
from finsync.services.habit_rules import HabitRuleEvaluator
from finsync.services.habits import HabitService

DAY = date(2025, 3, 10)
NO_COFFEE = {"type": "no_spend_in_categories", "category_ids": ["coffee"]}


@pytest.fixture
def evaluator(store, bus):
    evaluator = HabitRuleEvaluator(store, bus)
    evaluator.register()
    return evaluator


@pytest.fixture
def account(account_factory):
    return account_factory()


def _coffee(ledger, account, day=DAY):
    return ledger.create_transaction(
        account_id=account.id, type="expense", amount=4, occurred_on=day, category="coffee"
    )


def test_transaction_triggers_evaluation_of_its_day(evaluator, ledger, store, account, habit_factory, recorded):
    habit = habit_factory(finance_rule=NO_COFFEE)
    events = recorded(HabitDayEvaluated)

    _coffee(ledger, account)

    entry = store.habits.get_entry(habit.id, DAY)
    assert entry.outcome == "miss"
    assert entry.evaluated_by == "auto"
    assert events == [
        HabitDayEvaluated(habit_id=habit.id, date=DAY, result="miss", rule_type="no_spend_in_categories")
    ]


def test_deleting_the_transaction_flips_outcome_back(evaluator, ledger, store, account, habit_factory):
    habit = habit_factory(finance_rule=NO_COFFEE)
    tx = _coffee(ledger, account)

    ledger.delete_transaction(tx.id)

    assert store.habits.get_entry(habit.id, DAY).outcome == "done"


def test_voiding_the_transaction_re_evaluates(evaluator, ledger, store, account, habit_factory):
    habit = habit_factory(finance_rule=NO_COFFEE)
    tx = _coffee(ledger, account)

    ledger.update_transaction(tx.id, status="void")

    assert store.habits.get_entry(habit.id, DAY).outcome == "done"


def test_one_entry_per_habit_per_day(evaluator, ledger, store, account, habit_factory):
    habit = habit_factory(finance_rule={"type": "daily_spend_under", "amount": 10, "currency": "USD"})

    for _ in range(3):
        _coffee(ledger, account)

    entries = store.habits.get_entries_for_habit(habit.id, DAY, DAY)
    assert len(entries) == 1
    assert entries[0].outcome == "miss"
    assert entries[0].value == 12


def test_other_days_are_untouched(evaluator, ledger, store, account, habit_factory):
    habit = habit_factory(finance_rule=NO_COFFEE)

    _coffee(ledger, account)

    assert store.habits.get_entry(habit.id, DAY - timedelta(days=1)) is None


def test_habits_without_rules_or_inactive_are_skipped(evaluator, ledger, store, account, habit_factory):
    plain = habit_factory(name="Read")
    inactive = habit_factory(name="Old", finance_rule=NO_COFFEE, is_active=False)

    _coffee(ledger, account)

    assert store.habits.get_entry(plain.id, DAY) is None
    assert store.habits.get_entry(inactive.id, DAY) is None


def test_unreadable_rule_is_logged_and_others_still_evaluated(
    evaluator, ledger, store, account, habit_factory, caplog
):
    broken = habit_factory(name="Broken", finance_rule={"type": "mystery"})
    good = habit_factory(name="Good", finance_rule=NO_COFFEE)

    with caplog.at_level(logging.ERROR, logger="finsync.services.habit_rules"):
        _coffee(ledger, account)

    assert store.habits.get_entry(broken.id, DAY) is None
    assert store.habits.get_entry(good.id, DAY).outcome == "miss"
    assert f"Habit {broken.id} has an unreadable finance rule" in caplog.text


def test_automatic_evaluation_replaces_manual_entry(evaluator, ledger, store, account, habit_factory):
    habit = habit_factory(finance_rule=NO_COFFEE)
    HabitService(store).log_outcome(habit.id, DAY, "done")

    _coffee(ledger, account)

    entry = store.habits.get_entry(habit.id, DAY)
    assert entry.outcome == "miss"
    assert entry.evaluated_by == "auto"


def test_evaluate_range_closes_out_empty_days(evaluator, store, habit_factory):
    habit = habit_factory(finance_rule=NO_COFFEE)

    results = evaluator.evaluate_range(DAY, DAY + timedelta(days=2))

    assert [r.date for r in results] == [DAY, DAY + timedelta(days=1), DAY + timedelta(days=2)]
    entries = store.habits.get_entries_for_habit(habit.id, DAY, DAY + timedelta(days=2))
    assert [e.outcome for e in entries] == ["done", "done", "done"]


def test_evaluate_range_rejects_reversed_bounds(evaluator):
    with pytest.raises(ValueError):
        evaluator.evaluate_range(DAY, DAY - timedelta(days=1))
