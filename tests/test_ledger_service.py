"""Tests for ledger writes, balance adjustments and the events they publish."""

from __future__ import annotations

from datetime import date

import pytest

from finsync.errors import MissingEntityError
from finsync.events import BudgetSpendingChanged, TransactionCreated, TransactionDeleted, TransactionUpdated

DAY = date(2025, 3, 10)


def test_expense_and_income_adjust_balance(ledger, store, account_factory):
    account = account_factory(balance=100.0)

    ledger.create_transaction(account_id=account.id, type="expense", amount=30, occurred_on=DAY)
    ledger.create_transaction(account_id=account.id, type="income", amount=12.5, occurred_on=DAY)

    assert store.accounts.get_by_id(account.id).balance == pytest.approx(82.5)


def test_transfer_moves_money_between_accounts(ledger, store, account_factory):
    source = account_factory(name="Checking", balance=100.0)
    target = account_factory(name="Savings")

    ledger.create_transaction(
        account_id=source.id, to_account_id=target.id, type="transfer", amount=40, occurred_on=DAY
    )

    assert store.accounts.get_by_id(source.id).balance == pytest.approx(60.0)
    assert store.accounts.get_by_id(target.id).balance == pytest.approx(40.0)


def test_amount_is_stored_as_magnitude(ledger, account_factory):
    account = account_factory()
    tx = ledger.create_transaction(account_id=account.id, type="expense", amount=-25, occurred_on=DAY)
    assert tx.amount == 25
    assert tx.currency == "USD"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"type": "refund", "amount": 10},
        {"type": "expense", "amount": 0},
        {"type": "transfer", "amount": 10},
    ],
)
def test_invalid_transactions_raise_value_error(ledger, store, account_factory, kwargs):
    account = account_factory()
    with pytest.raises(ValueError):
        ledger.create_transaction(account_id=account.id, occurred_on=DAY, **kwargs)
    assert store.transactions.list_for_day(DAY) == []


def test_missing_account_rolls_back(ledger, store):
    with pytest.raises(MissingEntityError):
        ledger.create_transaction(account_id=999, type="expense", amount=5, occurred_on=DAY)
    assert store.transactions.list_for_day(DAY) == []


def test_created_event_is_published_after_commit(ledger, store, bus, account_factory):
    account = account_factory()
    visible: list[bool] = []
    bus.subscribe(
        TransactionCreated,
        lambda e: visible.append(store.transactions.get_by_id(e.transaction.id) is not None),
    )

    ledger.create_transaction(account_id=account.id, type="expense", amount=5, occurred_on=DAY)

    assert visible == [True]


def test_budget_tagged_transaction_announces_spending_change(ledger, account_factory, budget_factory, recorded):
    account = account_factory()
    budget = budget_factory()
    events = recorded(BudgetSpendingChanged)

    tx = ledger.create_transaction(
        account_id=account.id, type="expense", amount=5, occurred_on=DAY, budget_id=budget.id
    )
    ledger.delete_transaction(tx.id)

    assert [e.budget_id for e in events] == [budget.id, budget.id]


def test_update_changes_soft_fields_only(ledger, account_factory, recorded):
    account = account_factory()
    tx = ledger.create_transaction(account_id=account.id, type="expense", amount=5, occurred_on=DAY)
    events = recorded(TransactionUpdated)

    updated = ledger.update_transaction(tx.id, status="void", note="duplicate")

    assert updated.status == "void"
    assert updated.note == "duplicate"
    assert [e.transaction.id for e in events] == [tx.id]
    with pytest.raises(ValueError):
        ledger.update_transaction(tx.id, amount=10)


def test_delete_reverses_balances_and_publishes(ledger, store, account_factory, recorded):
    source = account_factory(balance=50.0)
    target = account_factory(name="Savings")
    tx = ledger.create_transaction(
        account_id=source.id, to_account_id=target.id, type="transfer", amount=20, occurred_on=DAY
    )
    events = recorded(TransactionDeleted)

    deleted = ledger.delete_transaction(tx.id)

    assert deleted.id == tx.id
    assert store.transactions.get_by_id(tx.id) is None
    assert store.accounts.get_by_id(source.id).balance == pytest.approx(50.0)
    assert store.accounts.get_by_id(target.id).balance == pytest.approx(0.0)
    assert events[0].transaction.amount == 20


def test_delete_missing_transaction_returns_none(ledger, recorded):
    events = recorded(TransactionDeleted)
    assert ledger.delete_transaction(12345) is None
    assert events == []


def test_list_for_day(ledger, account_factory):
    account = account_factory()
    ledger.create_transaction(account_id=account.id, type="expense", amount=5, occurred_on=DAY)
    ledger.create_transaction(account_id=account.id, type="expense", amount=6, occurred_on=date(2025, 3, 11))

    assert [tx.amount for tx in ledger.list_for_day(DAY)] == [5]
