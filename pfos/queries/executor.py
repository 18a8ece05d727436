"""
Query Execution Engine

DESIGN DECISION: Month queries are range scans on the `pdate` index,
whose keys are `{profile}|{YYYY-MM-DD}`. Because ISO dates sort
lexicographically, one inclusive range from day `01` to day `31` selects
exactly one profile's month, for every month length, without any
calendar arithmetic. The `31` upper bound is deliberate.

Reads never raise for missing data: no match and a failed read both come
back as an empty list, so a view shows "no data" instead of crashing.
An unavailable store still raises, since nothing works until it opens.
"""

from typing import Optional

from pfos.audit import AuditLogger
from pfos.models.transaction import Transaction, sort_key
from pfos.services.storage import (
    TRANSACTIONS,
    RecordStoreInterface,
    StorageReadError,
)


def month_range(profile: str, year_month: str) -> tuple[str, str]:
    """Inclusive `pdate` bounds covering `year_month` for `profile`."""
    return (
        sort_key(profile, f"{year_month}-01"),
        sort_key(profile, f"{year_month}-31"),
    )


class QueryExecutor:
    """
    Executes month-bounded reads against the record store.

    GUARANTEES:
    - Only records of the requested profile and month
    - Newest date first
    - Empty list rather than an error when nothing can be read
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit = audit_logger or AuditLogger()

    async def list_by_month(self, profile: str, year_month: str) -> list[Transaction]:
        """
        All transactions of `profile` dated in `year_month` (YYYY-MM).

        Sorted by date, newest first. Records sharing a date keep their
        index order (by id).

        Raises:
            StorageUnavailableError: If the store cannot be opened
        """
        lower, upper = month_range(profile, year_month)
        try:
            records = await self._store.get_range(TRANSACTIONS, "pdate", lower, upper)
        except StorageReadError as e:
            self._audit.log_read_degraded("list_by_month", str(e), profile=profile)
            return []

        transactions = [Transaction.model_validate(record) for record in records]
        transactions.sort(key=lambda tx: tx.date, reverse=True)
        return transactions
