"""Tests for completing planner tasks from finance events."""

from __future__ import annotations

import logging
from datetime import date

import pytest

from finsync.events import BudgetSpendingChanged, DebtStatusChanged, TaskAutoCompleted
from finsync.services.debt_sync import DebtReconciliationListener
from finsync.services.debts import DebtService
from finsync.services.tasks import TaskAutoCompletionListener, TaskService

DAY = date(2025, 3, 10)


@pytest.fixture
def listener(store, bus):
    listener = TaskAutoCompletionListener(store, bus)
    listener.register()
    return listener


@pytest.fixture
def account(account_factory):
    return account_factory(balance=1000.0)


def _status(store, task):
    return store.tasks.get_by_id(task.id).status


def _tx(ledger, account, **kwargs):
    fields = dict(account_id=account.id, type="expense", amount=10, occurred_on=DAY)
    fields.update(kwargs)
    return ledger.create_transaction(**fields)


class TestTransactionMatching:
    def test_record_expenses_completes_on_expense(self, listener, ledger, store, account, task_factory, recorded):
        task = task_factory("record_expenses")
        events = recorded(TaskAutoCompleted)

        tx = _tx(ledger, account)

        stored = store.tasks.get_by_id(task.id)
        assert stored.status == "completed"
        assert stored.completed_at is not None
        [event] = events
        assert (event.task_id, event.finance_link, event.transaction_id) == (task.id, "record_expenses", tx.id)

    def test_record_expenses_ignores_income(self, listener, ledger, store, account, task_factory):
        task = task_factory("record_expenses")
        _tx(ledger, account, type="income")
        assert _status(store, task) == "planned"

    def test_transfer_money(self, listener, ledger, store, account, account_factory, task_factory):
        task = task_factory("transfer_money")
        savings = account_factory(name="Savings")
        _tx(ledger, account)
        assert _status(store, task) == "planned"
        _tx(ledger, account, type="transfer", to_account_id=savings.id)
        assert _status(store, task) == "completed"

    def test_review_budget_needs_budget_tag(self, listener, ledger, store, account, task_factory):
        task = task_factory("review_budget")
        _tx(ledger, account)
        assert _status(store, task) == "planned"
        _tx(ledger, account, type="income", budget_id=3)
        assert _status(store, task) == "completed"

    def test_pay_debt_requires_debt_tag(self, listener, ledger, store, account, task_factory):
        task = task_factory("pay_debt")
        _tx(ledger, account)
        assert _status(store, task) == "planned"
        _tx(ledger, account, debt_id=12)
        assert _status(store, task) == "completed"

    def test_pay_debt_goal_cross_check(self, listener, ledger, store, account, task_factory, goal_factory):
        goal = goal_factory(linked_debt_id=5)
        task = task_factory("pay_debt", goal_id=goal.id)

        _tx(ledger, account, debt_id=6)
        assert _status(store, task) == "planned"

        _tx(ledger, account, debt_id=5)
        assert _status(store, task) == "completed"

    def test_missing_goal_leaves_task_open(self, listener, ledger, store, account, task_factory, goal_factory, caplog):
        goal = goal_factory(linked_debt_id=5)
        task = task_factory("pay_debt", goal_id=goal.id)
        store.goals.delete(goal.id)

        with caplog.at_level(logging.WARNING, logger="finsync.services.tasks"):
            _tx(ledger, account, debt_id=5)

        assert _status(store, task) == "planned"
        assert f"Goal {goal.id} of task {task.id} not found" in caplog.text


class TestEligibility:
    @pytest.mark.parametrize("status", ["completed", "canceled", "archived", "deleted"])
    def test_terminal_tasks_are_never_touched(self, listener, ledger, store, account, task_factory, status, recorded):
        task = task_factory("record_expenses", status=status)
        events = recorded(TaskAutoCompleted)

        _tx(ledger, account)

        assert _status(store, task) == status
        assert events == []

    def test_unlinked_tasks_are_ignored(self, listener, ledger, store, account, task_factory):
        task = task_factory("none")
        _tx(ledger, account)
        assert _status(store, task) == "planned"

    def test_in_progress_task_completes(self, listener, ledger, store, account, task_factory):
        task = task_factory("record_expenses", status="in_progress")
        _tx(ledger, account)
        assert _status(store, task) == "completed"

    def test_completion_is_never_undone(self, listener, ledger, store, account, task_factory, recorded):
        task = task_factory("record_expenses")
        tx = _tx(ledger, account)
        completed_at = store.tasks.get_by_id(task.id).completed_at
        events = recorded(TaskAutoCompleted)

        ledger.delete_transaction(tx.id)
        _tx(ledger, account)

        stored = store.tasks.get_by_id(task.id)
        assert stored.status == "completed"
        assert stored.completed_at == completed_at
        assert events == []


class TestDebtAndBudgetEvents:
    def test_payment_added_completes_pay_debt_task(
        self, listener, store, bus, task_factory, goal_factory, debt_factory, recorded
    ):
        debt = debt_factory(100.0)
        other = goal_factory(title="Car loan", linked_debt_id=debt.id + 1)
        matching = task_factory("pay_debt", goal_id=goal_factory(linked_debt_id=debt.id).id)
        unrelated = task_factory("pay_debt", goal_id=other.id)
        events = recorded(TaskAutoCompleted)

        payment = DebtService(store, bus).add_payment(debt.id, amount=10, paid_at=DAY)

        assert _status(store, matching) == "completed"
        assert _status(store, unrelated) == "planned"
        [event] = events
        assert (event.debt_id, event.payment_id) == (debt.id, payment.id)

    def test_status_changed_to_paid_completes_pay_debt_task(self, listener, store, bus, task_factory):
        task = task_factory("pay_debt")

        bus.publish(DebtStatusChanged(debt_id=1, previous_status="paid", new_status="active"))
        assert _status(store, task) == "planned"

        bus.publish(DebtStatusChanged(debt_id=1, previous_status="active", new_status="paid"))
        assert _status(store, task) == "completed"

    def test_budget_spending_change_completes_review_tasks(
        self, listener, store, bus, task_factory, budget_factory, recorded
    ):
        budget = budget_factory()
        review = task_factory("review_budget")
        expenses = task_factory("record_expenses")
        events = recorded(TaskAutoCompleted)

        bus.publish(BudgetSpendingChanged(budget_id=budget.id))

        assert _status(store, review) == "completed"
        assert _status(store, expenses) == "planned"
        assert events[0].budget_id == budget.id

    def test_unknown_budget_is_dropped(self, listener, store, bus, task_factory, caplog):
        review = task_factory("review_budget")

        with caplog.at_level(logging.WARNING, logger="finsync.services.tasks"):
            bus.publish(BudgetSpendingChanged(budget_id=404))

        assert _status(store, review) == "planned"
        assert "Budget 404 not found" in caplog.text

    def test_debt_fully_paid_end_to_end(self, listener, store, bus, ledger, account, debt_factory, task_factory):
        DebtReconciliationListener(store, bus, ledger).register()
        debt = debt_factory(100.0, account_id=account.id)
        task = task_factory("pay_debt")
        debts = DebtService(store, bus)

        debts.add_payment(debt.id, amount=30, paid_at=DAY)
        assert _status(store, task) == "completed"
        assert store.debts.get_by_id(debt.id).remaining_amount == pytest.approx(70.0)


class TestTaskService:
    def test_create_task_validates_link(self, store):
        service = TaskService(store)
        task = service.create_task(title="Pay rent", finance_link="pay_debt")
        assert task.status == "planned"
        assert service.get_task(task.id).finance_link == "pay_debt"
        with pytest.raises(ValueError):
            service.create_task(title="Oops", finance_link="pay_everything")


def test_goal_without_linked_debt_never_matches_a_debt(
    listener, store, bus, ledger, account, task_factory, goal_factory, debt_factory
):
    debt = debt_factory(100.0)
    task = task_factory("pay_debt", goal_id=goal_factory(linked_debt_id=None).id)

    _tx(ledger, account, debt_id=debt.id)
    DebtService(store, bus).add_payment(debt.id, amount=10, paid_at=DAY)
    bus.publish(DebtStatusChanged(debt_id=debt.id, previous_status="active", new_status="paid"))

    assert _status(store, task) == "planned"
