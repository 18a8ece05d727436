"""Query and aggregation package."""

from pfos.queries.aggregations import category_totals, summarize, weekly_series
from pfos.queries.executor import QueryExecutor, month_range
from pfos.queries.periods import (
    clamp,
    month_bounds,
    pct_change,
    prev_month,
    this_month,
    today_iso,
)

__all__ = [
    "QueryExecutor",
    "category_totals",
    "clamp",
    "month_bounds",
    "month_range",
    "pct_change",
    "prev_month",
    "summarize",
    "this_month",
    "today_iso",
    "weekly_series",
]
