"""Services package."""

from pfos.services.profile_settings import SettingsManager, settings_key
from pfos.services.storage import (
    RecordStoreInterface,
    SQLiteRecordStore,
    StorageError,
    StorageReadError,
    StorageUnavailableError,
    StorageWriteError,
)
from pfos.services.sync import BroadcastChannel, ChangeBus, ChangeMarker
from pfos.services.transactions import SEED_TRANSACTIONS, TransactionRepository

__all__ = [
    # Settings
    "SettingsManager",
    "settings_key",
    # Storage
    "RecordStoreInterface",
    "SQLiteRecordStore",
    "StorageError",
    "StorageReadError",
    "StorageUnavailableError",
    "StorageWriteError",
    # Change propagation
    "BroadcastChannel",
    "ChangeBus",
    "ChangeMarker",
    # Transactions
    "SEED_TRANSACTIONS",
    "TransactionRepository",
]
