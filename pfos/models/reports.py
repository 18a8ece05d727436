"""
Aggregation Output Models

Shapes handed to the renderer. Plain floats throughout; amounts are
magnitudes, not fixed-point currency.
"""

from typing import Optional

from pydantic import BaseModel, Field


WEEK_BUCKETS = 4


def _empty_buckets() -> list[float]:
    return [0.0] * WEEK_BUCKETS


class Summary(BaseModel):
    """Income / expense totals for a record set."""

    income: float = 0.0
    expense: float = 0.0
    net: float = 0.0


class CategoryTotal(BaseModel):
    """Expense total for one category."""

    category: str
    amount: float


class WeeklySeries(BaseModel):
    """
    Per-week totals for one month.

    Bucket 0 = days 1-7, 1 = 8-14, 2 = 15-21, 3 = 22 to month end.
    """

    expense: list[float] = Field(
        default_factory=_empty_buckets,
        min_length=WEEK_BUCKETS,
        max_length=WEEK_BUCKETS,
    )
    income: list[float] = Field(
        default_factory=_empty_buckets,
        min_length=WEEK_BUCKETS,
        max_length=WEEK_BUCKETS,
    )


class MonthOverview(BaseModel):
    """
    Everything a month dashboard shows, computed in one pass.

    Percent changes are None when the previous month has nothing to
    compare against.
    """

    profile: str
    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    previous_month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    record_count: int = Field(ge=0)
    summary: Summary
    previous_summary: Summary
    net_change_pct: Optional[float] = None
    expense_change_pct: Optional[float] = None
    top_categories: list[CategoryTotal] = Field(default_factory=list)
    weekly: WeeklySeries = Field(default_factory=WeeklySeries)
