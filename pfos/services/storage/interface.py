"""
Abstract Record Store Interface

DESIGN DECISION: Storage is described as named collections of JSON
records, each keyed by one field, with optional non-unique secondary
indexes on other fields. This allows us to:
1. Keep the repository, settings and query layers storage-agnostic
2. Declare the schema once, as data, and let the backend materialize it
3. Swap the SQLite backend without touching business logic

The interface is intentionally small - range lookup on an index, point
lookup on the key, and counting. Nothing that needs a query planner.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class IndexSpec(BaseModel):
    """A non-unique secondary index on one record field."""
    model_config = ConfigDict(frozen=True)

    name: str
    key_path: str
    unique: bool = False


class CollectionSpec(BaseModel):
    """A named collection keyed by one record field."""
    model_config = ConfigDict(frozen=True)

    name: str
    key_path: str
    indexes: tuple[IndexSpec, ...] = ()

    def index(self, name: str) -> IndexSpec:
        for spec in self.indexes:
            if spec.name == name:
                return spec
        raise KeyError(f"Collection {self.name!r} has no index {name!r}")


TRANSACTIONS = "transactions"
META = "meta"

SCHEMA_VERSION = 1

SCHEMA: tuple[CollectionSpec, ...] = (
    CollectionSpec(
        name=TRANSACTIONS,
        key_path="id",
        indexes=(
            IndexSpec(name="pdate", key_path="pdate"),
            IndexSpec(name="profile", key_path="profile"),
            IndexSpec(name="date", key_path="date"),
        ),
    ),
    CollectionSpec(name=META, key_path="key"),
)


class RecordStoreInterface(ABC):
    """
    Abstract interface for the local record store.

    Any storage implementation must implement these methods. All of them
    open the store on demand.
    """

    @abstractmethod
    async def open(self) -> Any:
        """
        Open the store, or return the already-open handle.

        Concurrent callers share one in-flight open; every caller gets the
        same handle.

        Raises:
            StorageUnavailableError: If the store cannot be opened
        """
        pass

    @abstractmethod
    async def put(self, collection: str, value: dict) -> None:
        """
        Insert or fully replace the record with the same key.

        Raises:
            StorageWriteError: If the write fails
        """
        pass

    @abstractmethod
    async def get(self, collection: str, key: str) -> Optional[dict]:
        """
        Fetch one record by key.

        Returns:
            The record if found, None otherwise

        Raises:
            StorageReadError: If the read fails
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, key: str) -> None:
        """
        Delete one record by key. Deleting a missing key succeeds.

        Raises:
            StorageWriteError: If the delete fails
        """
        pass

    @abstractmethod
    async def count(self, collection: str, index: str, value: str) -> int:
        """
        Count records whose index value equals `value`.

        Raises:
            StorageReadError: If the read fails
        """
        pass

    @abstractmethod
    async def get_range(
        self,
        collection: str,
        index: str,
        lower: str,
        upper: str,
    ) -> list[dict]:
        """
        Records whose index value lies in [lower, upper], inclusive.

        Returned in index order, then primary key order.

        Raises:
            StorageReadError: If the read fails
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the handle. A later call to open() reopens."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageUnavailableError(StorageError):
    """Store could not be opened (missing, denied, or unsupported)."""
    pass


class StorageReadError(StorageError):
    """A read against an open store failed."""
    pass


class StorageWriteError(StorageError):
    """A write against an open store failed."""
    pass
