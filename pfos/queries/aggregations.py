"""
Aggregation Engine

Pure functions over records already in memory. No I/O, no clock, no
storage: the same input always gives the same output.

Records may be `Transaction` models or plain transaction-like dicts, so
a missing or odd field is handled here the same way the model would
normalize it on write.
"""

from collections.abc import Iterable
from typing import Any

from pfos.models.reports import WEEK_BUCKETS, CategoryTotal, Summary, WeeklySeries
from pfos.models.transaction import (
    DEFAULT_CATEGORY,
    coerce_amount,
    is_income_type,
    record_field,
)


def _amount(record: Any) -> float:
    return coerce_amount(record_field(record, "amount"))


def _is_income(record: Any) -> bool:
    return is_income_type(record_field(record, "type"))


def _week_bucket(day: int) -> int:
    if day <= 7:
        return 0
    if day <= 14:
        return 1
    if day <= 21:
        return 2
    return 3


def summarize(records: Iterable[Any]) -> Summary:
    """
    Income and expense totals.

    Anything that is not income (including unknown or missing types)
    counts as expense.
    """
    income = 0.0
    expense = 0.0
    for record in records:
        if _is_income(record):
            income += _amount(record)
        else:
            expense += _amount(record)
    return Summary(income=income, expense=expense, net=income - expense)


def category_totals(records: Iterable[Any], limit: int = 6) -> list[CategoryTotal]:
    """
    Top expense categories by total amount, largest first.

    Ties keep first-seen order.
    """
    totals: dict[str, float] = {}
    for record in records:
        if _is_income(record):
            continue
        category = record_field(record, "category") or DEFAULT_CATEGORY
        totals[category] = totals.get(category, 0.0) + _amount(record)

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [
        CategoryTotal(category=category, amount=amount)
        for category, amount in ranked[:max(limit, 0)]
    ]


def weekly_series(records: Iterable[Any], year_month: str) -> WeeklySeries:
    """
    Expense and income totals per week of `year_month`.

    Weeks are fixed day ranges, not calendar weeks: 1-7, 8-14, 15-21 and
    22 onwards, whatever the month's length. Records from other months,
    or whose day cannot be read, are skipped.
    """
    expense = [0.0] * WEEK_BUCKETS
    income = [0.0] * WEEK_BUCKETS

    for record in records:
        record_date = record_field(record, "date")
        if not isinstance(record_date, str) or not record_date.startswith(year_month):
            continue
        try:
            day = int(record_date[8:10])
        except ValueError:
            continue

        bucket = _week_bucket(day)
        if _is_income(record):
            income[bucket] += _amount(record)
        else:
            expense[bucket] += _amount(record)

    return WeeklySeries(expense=expense, income=income)
