"""Aggregations over an in-memory set of transactions and budgets.

Every function here is pure: inputs are only read, never mutated, and the
result depends on the arguments alone. Where a "current" month or year is
needed it comes from the ``today`` argument. Callers pass the date in the
configured timezone; when omitted it falls back to the current UTC date.

Transactions and budgets are read by attribute, so ORM rows and the
``TransactionOut``/``BudgetOut`` entities are both accepted.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Protocol, Sequence

from models import DEFAULT_CATEGORY
from periods import (
    DEFAULT_TIMEZONE,
    month_key,
    month_key_for,
    parse_iso_datetime,
    today_in,
)

WARNING_THRESHOLD = 80.0
OVER_THRESHOLD = 100.0


class TransactionLike(Protocol):
    amount: float
    date: str
    category: Optional[str]


class BudgetLike(Protocol):
    category: str
    month: str
    budget: float


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    amount: float
    percentage: float


@dataclass(frozen=True)
class MonthlyTotal:
    month: str  # YYYY-MM
    label: str
    amount: float


@dataclass(frozen=True)
class BudgetComparison:
    category: str
    budgeted: float
    actual: float
    percentage_used: float
    over_budget: bool


@dataclass(frozen=True)
class Insight:
    category: str
    budgeted: float
    actual: float
    percentage_used: float
    status: str  # "over" | "warning" | "good" | "no-budget"
    message: str


@dataclass(frozen=True)
class MonthSummary:
    month: str
    total_budgeted: float
    total_actual: float
    total_remaining: float


@dataclass(frozen=True)
class DashboardSummary:
    total_expenses: float
    this_month: float
    transaction_count: int
    active_categories: int


def category_of(txn: TransactionLike) -> str:
    raw = getattr(txn, "category", None)
    if raw is None:
        return DEFAULT_CATEGORY.value
    # str-based enums compare equal to their value but format differently
    value = getattr(raw, "value", raw)
    return str(value).strip() or DEFAULT_CATEGORY.value


def _percentage(part: float, whole: float) -> float:
    return (part / whole * 100) if whole > 0 else 0.0


# --- category totals -------------------------------------------------------


def category_totals(
    transactions: Iterable[TransactionLike],
) -> list[CategoryTotal]:
    totals: dict[str, float] = {}
    for txn in transactions:
        name = category_of(txn)
        totals[name] = totals.get(name, 0.0) + float(txn.amount)
    grand_total = sum(totals.values())
    rows = [
        CategoryTotal(
            category=name,
            amount=amount,
            percentage=_percentage(amount, grand_total),
        )
        for name, amount in totals.items()
    ]
    rows.sort(key=lambda row: row.amount, reverse=True)
    return rows


def top_categories(
    transactions: Iterable[TransactionLike], limit: int = 3
) -> list[CategoryTotal]:
    return category_totals(transactions)[: max(limit, 0)]


# --- monthly totals --------------------------------------------------------


def monthly_totals(
    transactions: Iterable[TransactionLike], *, today: Optional[date] = None
) -> list[MonthlyTotal]:
    """Twelve buckets, January to December of ``today``'s year.

    Transactions dated in any other year are left out.
    """
    today = today or today_in(DEFAULT_TIMEZONE)
    buckets = [0.0] * 12
    for txn in transactions:
        when = parse_iso_datetime(txn.date)
        if when is None or when.year != today.year:
            continue
        buckets[when.month - 1] += float(txn.amount)
    return [
        MonthlyTotal(
            month=f"{today.year:04d}-{index + 1:02d}",
            label=calendar.month_abbr[index + 1],
            amount=amount,
        )
        for index, amount in enumerate(buckets)
    ]


# --- budget vs actual ------------------------------------------------------


def transactions_in_month(
    transactions: Iterable[TransactionLike], month: str
) -> list[TransactionLike]:
    return [txn for txn in transactions if month_key(txn.date) == month]


def spending_by_category(
    transactions: Iterable[TransactionLike], month: str
) -> dict[str, float]:
    spent: dict[str, float] = {}
    for txn in transactions_in_month(transactions, month):
        name = category_of(txn)
        spent[name] = spent.get(name, 0.0) + float(txn.amount)
    return spent


def _budgets_by_category(
    budgets: Iterable[BudgetLike], month: str
) -> dict[str, float]:
    by_category: dict[str, float] = {}
    for budget in budgets:
        if budget.month != month:
            continue
        name = str(getattr(budget.category, "value", budget.category))
        # first match wins, as with a find on the stored list
        by_category.setdefault(name, float(budget.budget))
    return by_category


def _month_categories(
    transactions: Sequence[TransactionLike],
    budgets: Sequence[BudgetLike],
    month: str,
) -> list[tuple[str, float, float]]:
    """Union of budgeted and spent categories as (category, budgeted, actual).

    Budgeted categories come first, then categories that only have spending,
    each group in order of first appearance.
    """
    budgeted = _budgets_by_category(budgets, month)
    actual = spending_by_category(transactions, month)
    names = list(budgeted)
    names.extend(name for name in actual if name not in budgeted)
    return [
        (name, budgeted.get(name, 0.0), actual.get(name, 0.0)) for name in names
    ]


def budget_comparison(
    transactions: Sequence[TransactionLike],
    budgets: Sequence[BudgetLike],
    month: str,
) -> list[BudgetComparison]:
    rows = [
        BudgetComparison(
            category=name,
            budgeted=budgeted,
            actual=actual,
            percentage_used=_percentage(actual, budgeted),
            over_budget=budgeted > 0 and actual > budgeted,
        )
        for name, budgeted, actual in _month_categories(transactions, budgets, month)
    ]
    rows.sort(key=lambda row: row.budgeted + row.actual, reverse=True)
    return rows


# --- insights --------------------------------------------------------------


def classify(category: str, budgeted: float, actual: float) -> Insight:
    percentage_used = _percentage(actual, budgeted)
    if budgeted == 0:
        status = "no-budget"
        message = (
            f"No budget set for {category}. "
            "Consider setting a budget to track spending."
        )
    elif percentage_used > OVER_THRESHOLD:
        status = "over"
        message = (
            f"You've exceeded your {category} budget by "
            f"${actual - budgeted:.2f} this month."
        )
    elif percentage_used > WARNING_THRESHOLD:
        status = "warning"
        message = f"You've used {percentage_used:.0f}% of your {category} budget."
    else:
        status = "good"
        message = f"Your {category} budget is on track ({percentage_used:.0f}% used)."
    return Insight(
        category=category,
        budgeted=budgeted,
        actual=actual,
        percentage_used=percentage_used,
        status=status,
        message=message,
    )


def spending_insights(
    transactions: Sequence[TransactionLike],
    budgets: Sequence[BudgetLike],
    month: str,
) -> list[Insight]:
    insights = [
        classify(name, budgeted, actual)
        for name, budgeted, actual in _month_categories(transactions, budgets, month)
        if actual > 0 or budgeted > 0
    ]
    # over-budget first; sorted() is stable so ties keep union order
    return sorted(
        insights,
        key=lambda item: (item.status != "over", -item.percentage_used),
    )


def month_summary(
    transactions: Sequence[TransactionLike],
    budgets: Sequence[BudgetLike],
    month: str,
) -> MonthSummary:
    total_budgeted = sum(float(b.budget) for b in budgets if b.month == month)
    total_actual = sum(
        float(txn.amount) for txn in transactions_in_month(transactions, month)
    )
    return MonthSummary(
        month=month,
        total_budgeted=total_budgeted,
        total_actual=total_actual,
        total_remaining=total_budgeted - total_actual,
    )


# --- dashboard -------------------------------------------------------------


def dashboard_summary(
    transactions: Sequence[TransactionLike], *, today: Optional[date] = None
) -> DashboardSummary:
    today = today or today_in(DEFAULT_TIMEZONE)
    current = month_key_for(today)
    return DashboardSummary(
        total_expenses=sum(float(txn.amount) for txn in transactions),
        this_month=sum(
            float(txn.amount) for txn in transactions_in_month(transactions, current)
        ),
        transaction_count=len(transactions),
        active_categories=len({category_of(txn) for txn in transactions}),
    )


def recent_transactions(
    transactions: Iterable[TransactionLike], limit: int = 5
) -> list[TransactionLike]:
    def created(txn) -> datetime:
        value = getattr(txn, "created_at", None)
        if isinstance(value, str):
            value = parse_iso_datetime(value)
        if isinstance(value, datetime) and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value or datetime.min

    return sorted(transactions, key=created, reverse=True)[: max(limit, 0)]
