"""Finance rules that drive automatic habit outcomes.

A habit's rule is one variant of the ``FinanceRule`` union. Rules are stored
as JSON dicts with a ``type`` discriminator and evaluated purely against the
transactions of one calendar day.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Iterable, Optional, Protocol, Union


class DayTransaction(Protocol):
    """The transaction fields a rule needs; LedgerTransaction satisfies it."""

    type: str
    amount: float
    currency: str
    category: str
    account_id: int


@dataclass(frozen=True)
class NoSpendInCategories:
    rule_type: ClassVar[str] = "no_spend_in_categories"

    category_ids: frozenset[str]


@dataclass(frozen=True)
class SpendInCategories:
    rule_type: ClassVar[str] = "spend_in_categories"

    category_ids: frozenset[str]
    min_amount: Optional[float] = None


@dataclass(frozen=True)
class HasAnyTransactions:
    rule_type: ClassVar[str] = "has_any_transactions"

    account_ids: Optional[frozenset[int]] = None


@dataclass(frozen=True)
class DailySpendUnder:
    rule_type: ClassVar[str] = "daily_spend_under"

    amount: float
    currency: str


FinanceRule = Union[NoSpendInCategories, SpendInCategories, HasAnyTransactions, DailySpendUnder]


@dataclass(frozen=True)
class RuleEvaluation:
    outcome: str  # done | miss
    value: Optional[float] = None


def rule_from_dict(data: dict[str, Any]) -> FinanceRule:
    """Decode a stored rule dict.

    Raises:
        ValueError: unknown ``type`` or missing required keys
    """
    rule_type = data.get("type")
    try:
        if rule_type == NoSpendInCategories.rule_type:
            return NoSpendInCategories(category_ids=frozenset(data["category_ids"]))
        if rule_type == SpendInCategories.rule_type:
            min_amount = data.get("min_amount")
            return SpendInCategories(
                category_ids=frozenset(data["category_ids"]),
                min_amount=float(min_amount) if min_amount is not None else None,
            )
        if rule_type == HasAnyTransactions.rule_type:
            account_ids = data.get("account_ids")
            return HasAnyTransactions(
                account_ids=frozenset(int(a) for a in account_ids) if account_ids else None
            )
        if rule_type == DailySpendUnder.rule_type:
            return DailySpendUnder(amount=float(data["amount"]), currency=str(data["currency"]).upper())
    except KeyError as exc:
        raise ValueError(f"Finance rule {rule_type!r} is missing {exc.args[0]!r}") from exc
    raise ValueError(f"Unknown finance rule type: {rule_type!r}")


def rule_to_dict(rule: FinanceRule) -> dict[str, Any]:
    """Encode a rule into the JSON-friendly dict stored on the habit."""

    if isinstance(rule, NoSpendInCategories):
        return {"type": rule.rule_type, "category_ids": sorted(rule.category_ids)}
    if isinstance(rule, SpendInCategories):
        return {
            "type": rule.rule_type,
            "category_ids": sorted(rule.category_ids),
            "min_amount": rule.min_amount,
        }
    if isinstance(rule, HasAnyTransactions):
        return {
            "type": rule.rule_type,
            "account_ids": sorted(rule.account_ids) if rule.account_ids else None,
        }
    if isinstance(rule, DailySpendUnder):
        return {"type": rule.rule_type, "amount": rule.amount, "currency": rule.currency}
    raise TypeError(f"Not a finance rule: {rule!r}")


def _outcome(passed: bool, value: Optional[float] = None) -> RuleEvaluation:
    return RuleEvaluation(outcome="done" if passed else "miss", value=value)


def evaluate_rule(rule: FinanceRule, transactions: Iterable[DayTransaction]) -> RuleEvaluation:
    """Evaluate ``rule`` against one calendar day's transactions."""

    day = list(transactions)

    if isinstance(rule, NoSpendInCategories):
        spent = any(tx.type == "expense" and tx.category in rule.category_ids for tx in day)
        return _outcome(not spent)

    if isinstance(rule, SpendInCategories):
        matching = [tx for tx in day if tx.category in rule.category_ids]
        total = sum(abs(tx.amount) for tx in matching)
        if not matching:
            return _outcome(False, total)
        if rule.min_amount:
            return _outcome(total >= rule.min_amount, total)
        return _outcome(True, total)

    if isinstance(rule, HasAnyTransactions):
        if not rule.account_ids:
            return _outcome(bool(day))
        return _outcome(any(tx.account_id in rule.account_ids for tx in day))

    if isinstance(rule, DailySpendUnder):
        # Other currencies are excluded rather than converted.
        total = sum(
            abs(tx.amount)
            for tx in day
            if tx.type == "expense" and tx.currency.upper() == rule.currency
        )
        return _outcome(total < rule.amount, total)

    raise TypeError(f"Not a finance rule: {rule!r}")


__all__ = [
    "DailySpendUnder",
    "FinanceRule",
    "HasAnyTransactions",
    "NoSpendInCategories",
    "RuleEvaluation",
    "SpendInCategories",
    "evaluate_rule",
    "rule_from_dict",
    "rule_to_dict",
]
