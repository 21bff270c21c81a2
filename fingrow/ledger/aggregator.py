"""
Ledger Aggregator

DESIGN DECISION: Every view of the ledger is computed by a pure function
over the current collections. Nothing here touches storage, and amounts
stay exact Decimals until they are formatted for display.

Date windows have midnight bounds and both ends are inclusive. An item
stamped 2024-03-31 14:00 is therefore outside "this month" on 2024-03-15,
while one at 2024-03-31 00:00 is inside.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, TypeVar, Union

from fingrow.models.ledger import (
    CategoryTotal,
    DailyTotal,
    DateRange,
    ExpenseSummary,
    LedgerEntry,
    LedgerTotals,
    MonthlyBucket,
    NetWorthSummary,
    Transaction,
    TransactionType,
)


ZERO = Decimal("0")

Item = TypeVar("Item")


# =============================================================================
# DATE WINDOWS
# =============================================================================

def start_of_month(moment: datetime) -> datetime:
    return datetime(moment.year, moment.month, 1)


def _shift_months(moment: datetime, months: int) -> datetime:
    """First day of the month `months` away from `moment`'s month."""
    index = moment.year * 12 + (moment.month - 1) + months
    return datetime(index // 12, index % 12 + 1, 1)


def end_of_month(moment: datetime) -> datetime:
    """Midnight at the start of the last day of `moment`'s month."""
    return _shift_months(moment, 1) - timedelta(days=1)


def window_bounds(
    date_range: Union[DateRange, str],
    as_of: datetime,
) -> Optional[tuple[datetime, datetime]]:
    """
    Inclusive (start, end) bounds of a named window, or None for all-time.

    Raises:
        ValueError: If `date_range` is not a known window name
    """
    date_range = DateRange(date_range)

    if date_range == DateRange.THIS_MONTH:
        return start_of_month(as_of), end_of_month(as_of)

    if date_range == DateRange.LAST_MONTH:
        previous = _shift_months(as_of, -1)
        return previous, end_of_month(previous)

    if date_range == DateRange.LAST_3_MONTHS:
        return _shift_months(as_of, -2), end_of_month(as_of)

    return None


def window_filter(
    items: Iterable[Item],
    date_range: Union[DateRange, str],
    as_of: datetime,
) -> list[Item]:
    """Items whose `date` falls inside the window, in their original order."""
    bounds = window_bounds(date_range, as_of)
    if bounds is None:
        return list(items)

    start, end = bounds
    return [item for item in items if start <= item.date <= end]


# =============================================================================
# TOTALS
# =============================================================================

def _sum(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


def expenses_only(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if t.type == TransactionType.EXPENSE]


def income_only(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if t.type == TransactionType.INCOME]


def totals(transactions: Sequence[Transaction]) -> LedgerTotals:
    """Lifetime income, expenses and balance."""
    income = _sum(t.amount for t in income_only(transactions))
    expenses = _sum(t.amount for t in expenses_only(transactions))
    return LedgerTotals(income=income, expenses=expenses, balance=income - expenses)


def average_daily_spend(transactions: Sequence[Transaction], as_of: datetime) -> Decimal:
    """
    Month-to-date expenses divided by the day of the month.

    Only expenses dated within [start of as_of's month, as_of] count.
    """
    start = start_of_month(as_of)
    spent = _sum(
        t.amount for t in expenses_only(transactions)
        if start <= t.date <= as_of
    )
    return spent / as_of.day


def expense_summary(transactions: Sequence[Transaction]) -> ExpenseSummary:
    """Total, count and average of the expense transactions."""
    expenses = expenses_only(transactions)
    total = _sum(t.amount for t in expenses)
    count = len(expenses)
    return ExpenseSummary(
        total=total,
        count=count,
        average=total / count if count else ZERO,
    )


# =============================================================================
# GROUP-BYS
# =============================================================================

def monthly_series(transactions: Sequence[Transaction]) -> list[MonthlyBucket]:
    """
    Income and expenses per calendar month.

    Buckets come out in reverse order of first appearance, which is
    chronological for a collection sorted newest first.
    """
    buckets: dict[str, dict] = {}

    for t in transactions:
        key = t.date.strftime("%Y-%m")
        bucket = buckets.get(key)
        if bucket is None:
            bucket = {
                "key": key,
                "label": t.date.strftime("%b %Y"),
                "income": ZERO,
                "expenses": ZERO,
            }
            buckets[key] = bucket

        if t.type == TransactionType.INCOME:
            bucket["income"] += t.amount
        else:
            bucket["expenses"] += t.amount

    return [MonthlyBucket(**bucket) for bucket in reversed(list(buckets.values()))]


def category_breakdown(
    items: Iterable[Union[Transaction, LedgerEntry]],
) -> list[CategoryTotal]:
    """
    Amount per category, largest first.

    Income transactions are skipped; assets and liabilities have no type and
    are always counted. Ties keep first-encountered order.
    """
    groups: dict[str, Decimal] = {}

    for item in items:
        if getattr(item, "type", None) == TransactionType.INCOME:
            continue
        groups[item.category] = groups.get(item.category, ZERO) + item.amount

    breakdown = [CategoryTotal(name=name, value=value) for name, value in groups.items()]
    # sorted() is stable with reverse=True
    return sorted(breakdown, key=lambda c: c.value, reverse=True)


def daily_series(items: Iterable[Union[Transaction, LedgerEntry]]) -> list[DailyTotal]:
    """Amount per calendar day, oldest first."""
    groups: dict[str, Decimal] = {}

    for item in items:
        key = item.date.strftime("%Y-%m-%d")
        groups[key] = groups.get(key, ZERO) + item.amount

    return [DailyTotal(date=day, amount=groups[day]) for day in sorted(groups)]


def spent_by_category(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Lifetime expense total per category name."""
    spent: dict[str, Decimal] = {}
    for t in expenses_only(transactions):
        spent[t.category] = spent.get(t.category, ZERO) + t.amount
    return spent


# =============================================================================
# NET WORTH
# =============================================================================

def net_worth(
    assets: Sequence[LedgerEntry],
    liabilities: Sequence[LedgerEntry],
) -> NetWorthSummary:
    total_assets = _sum(item.amount for item in assets)
    total_liabilities = _sum(item.amount for item in liabilities)
    return NetWorthSummary(
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        net_worth=total_assets - total_liabilities,
        asset_breakdown=category_breakdown(assets),
        liability_breakdown=category_breakdown(liabilities),
    )


# =============================================================================
# LISTS
# =============================================================================

def search_by_text(
    items: Iterable[Item],
    query: str,
    fields: Sequence[str],
) -> list[Item]:
    """
    Case-insensitive substring search over the named text fields.

    A blank query matches everything.
    """
    if not query or not query.strip():
        return list(items)

    needle = query.lower()
    return [
        item for item in items
        if any(needle in (getattr(item, field, "") or "").lower() for field in fields)
    ]


def recent(items: Sequence[Item], limit: int) -> list[Item]:
    """The first `limit` items of an already newest-first collection."""
    if limit <= 0:
        return []
    return list(items[:limit])
