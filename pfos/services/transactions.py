"""
Transaction Repository

CRUD over the transactions collection. Every write goes through
`Transaction.from_partial`, so defaults and the derived `pdate` index key
are applied in exactly one place.

GUARANTEES:
- upsert replaces, never merges: the same input always yields the same record
- delete of a missing id is a successful no-op
- count degrades to 0 on read failure; it only drives the seed decision
"""

from collections.abc import Mapping
from typing import Any, Optional

from pfos.audit import AuditLogger
from pfos.models.events import SCOPE_TRANSACTIONS
from pfos.models.transaction import DEFAULT_PROFILE, Transaction
from pfos.services.storage import (
    TRANSACTIONS,
    RecordStoreInterface,
    StorageReadError,
    StorageWriteError,
)
from pfos.services.sync import ChangeBus


# Demonstration data for an empty profile: one month of typical activity
SEED_TRANSACTIONS: tuple[dict, ...] = (
    {"date": "2026-01-02", "desc": "Salary", "category": "Income", "account": "Bank", "type": "Income", "amount": 120000},
    {"date": "2026-01-03", "desc": "Rent", "category": "Rent", "account": "Bank", "type": "Expense", "amount": 28000},
    {"date": "2026-01-04", "desc": "Groceries", "category": "Groceries", "account": "Bank", "type": "Expense", "amount": 2200},
    {"date": "2026-01-05", "desc": "Metro/Bus", "category": "Transport", "account": "Bank", "type": "Expense", "amount": 180},
    {"date": "2026-01-06", "desc": "Electricity", "category": "Utilities", "account": "Bank", "type": "Expense", "amount": 1450},
    {"date": "2026-01-08", "desc": "Dining out", "category": "Dining", "account": "Credit Card", "type": "Expense", "amount": 850},
    {"date": "2026-01-12", "desc": "Gym", "category": "Health", "account": "Bank", "type": "Expense", "amount": 1600},
    {"date": "2026-01-18", "desc": "Shopping", "category": "Shopping", "account": "Credit Card", "type": "Expense", "amount": 2400},
    {"date": "2026-01-25", "desc": "SIP", "category": "Investments", "account": "Bank", "type": "Expense", "amount": 5000},
)


class TransactionRepository:
    """Profile-scoped transaction writes and lookups."""

    def __init__(
        self,
        store: RecordStoreInterface,
        bus: ChangeBus,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._bus = bus
        self._audit = audit_logger or AuditLogger()

    async def upsert(
        self,
        profile: str,
        partial: "Mapping[str, Any] | Transaction",
    ) -> Transaction:
        """
        Create or fully replace a transaction.

        Without an id a new one is generated; with an id the stored record
        is overwritten (fields missing from `partial` fall back to their
        defaults, not to the old values).

        Raises:
            pydantic.ValidationError: If `partial` has no usable date
            StorageUnavailableError: If the store cannot be opened
            StorageWriteError: If the write fails
        """
        record = Transaction.from_partial(profile, partial)

        try:
            await self._store.put(TRANSACTIONS, record.to_record())
        except StorageWriteError as e:
            self._audit.log_write_failed("transaction", record.id, str(e))
            raise

        self._audit.log_transaction_saved(record.id, record.profile, record.date, record.amount)
        self._bus.publish(SCOPE_TRANSACTIONS)
        return record

    async def delete(self, tx_id: str) -> None:
        """
        Delete a transaction by id. Missing ids are ignored.

        Raises:
            StorageUnavailableError: If the store cannot be opened
            StorageWriteError: If the delete fails
        """
        try:
            await self._store.delete(TRANSACTIONS, tx_id)
        except StorageWriteError as e:
            self._audit.log_write_failed("transaction", tx_id, str(e))
            raise

        self._audit.log_transaction_deleted(tx_id)
        self._bus.publish(SCOPE_TRANSACTIONS)

    async def get(self, tx_id: str) -> Optional[Transaction]:
        """Fetch one transaction; None when missing or unreadable."""
        try:
            record = await self._store.get(TRANSACTIONS, tx_id)
        except StorageReadError as e:
            self._audit.log_read_degraded("get_transaction", str(e))
            return None
        if record is None:
            return None
        return Transaction.model_validate(record)

    async def count(self, profile: str = DEFAULT_PROFILE) -> int:
        """Number of transactions in `profile`; 0 if the count cannot be read."""
        try:
            return await self._store.count(TRANSACTIONS, "profile", profile)
        except StorageReadError as e:
            self._audit.log_read_degraded("count_transactions", str(e), profile=profile)
            return 0

    async def seed_if_empty(self, profile: str = DEFAULT_PROFILE) -> bool:
        """
        Insert the demonstration set if `profile` has no transactions.

        Not atomic: other instances may observe a partially seeded month.

        Returns:
            True if the seed ran, False if the profile already had data
        """
        if await self.count(profile) > 0:
            return False

        for sample in SEED_TRANSACTIONS:
            await self.upsert(profile, sample)

        self._audit.log_seed_completed(profile, len(SEED_TRANSACTIONS))
        self._bus.publish(SCOPE_TRANSACTIONS)
        return True
