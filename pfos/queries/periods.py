"""
Month and Period Helpers

Small calendar helpers for callers that pick which month to query and
compare against. The index query itself never uses calendar arithmetic;
see `QueryExecutor.list_by_month`.
"""

import calendar
import math
from datetime import date
from typing import Optional


def _parse_year_month(year_month: str) -> tuple[int, int]:
    try:
        year_str, month_str = year_month.split("-")
        year, month = int(year_str), int(month_str)
    except (AttributeError, ValueError):
        raise ValueError(f"Expected YYYY-MM, got {year_month!r}") from None
    if not 1 <= month <= 12:
        raise ValueError(f"Month out of range in {year_month!r}")
    return year, month


def today_iso() -> str:
    """Today's local date as YYYY-MM-DD."""
    return date.today().isoformat()


def this_month() -> str:
    """Current local month as YYYY-MM."""
    return date.today().strftime("%Y-%m")


def prev_month(year_month: str) -> str:
    """The month before `year_month`, rolling over the year boundary."""
    year, month = _parse_year_month(year_month)
    if month == 1:
        return f"{year - 1:04d}-12"
    return f"{year:04d}-{month - 1:02d}"


def month_bounds(year_month: str) -> tuple[str, str]:
    """True first and last calendar day of the month, as ISO dates."""
    year, month = _parse_year_month(year_month)
    last_day = calendar.monthrange(year, month)[1]
    return (
        date(year, month, 1).isoformat(),
        date(year, month, last_day).isoformat(),
    )


def pct_change(current: float, previous: float) -> Optional[float]:
    """
    Percent change from `previous` to `current`.

    None when there is no meaningful baseline (zero or non-finite).
    """
    if not math.isfinite(previous) or previous == 0:
        return None
    return (current - previous) / abs(previous) * 100


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
