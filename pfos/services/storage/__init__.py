"""
Storage Services Package

Provides the abstract record store interface and the SQLite implementation.
"""

from pfos.services.storage.interface import (
    META,
    SCHEMA,
    SCHEMA_VERSION,
    TRANSACTIONS,
    CollectionSpec,
    IndexSpec,
    RecordStoreInterface,
    StorageError,
    StorageReadError,
    StorageUnavailableError,
    StorageWriteError,
)
from pfos.services.storage.sqlite_store import SQLiteRecordStore

__all__ = [
    # Schema
    "META",
    "SCHEMA",
    "SCHEMA_VERSION",
    "TRANSACTIONS",
    "CollectionSpec",
    "IndexSpec",
    # Interface
    "RecordStoreInterface",
    # Exceptions
    "StorageError",
    "StorageReadError",
    "StorageUnavailableError",
    "StorageWriteError",
    # SQLite implementation
    "SQLiteRecordStore",
]
