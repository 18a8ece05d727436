"""
SQLite Record Store Implementation

DESIGN DECISION: SQLite is used as the local backend because:
1. It is durable and ships with Python
2. Several processes on one device can share one database file
3. Secondary indexes give ordered range scans for free
4. A single file is easy to back up or delete

Each collection is one table: the primary key, the JSON record, and one
column per declared index holding that field's value. Schema setup is
gated on `PRAGMA user_version`, so it runs exactly once per database.

All SQLite calls run in a worker thread (asyncio.to_thread) against one
shared connection per instance. A lock serializes physical access to it.
"""

import asyncio
import json
import sqlite3
import threading
from typing import Any, Callable, Optional

from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from pfos.audit import AuditLogger
from pfos.services.storage.interface import (
    SCHEMA,
    SCHEMA_VERSION,
    CollectionSpec,
    RecordStoreInterface,
    StorageReadError,
    StorageUnavailableError,
    StorageWriteError,
)


def _is_locked(exc: BaseException) -> bool:
    """True for SQLite busy/locked errors, which are worth retrying."""
    return isinstance(exc, sqlite3.OperationalError) and "locked" in str(exc).lower()


def _index_value(value: Any) -> Any:
    # Only strings and numbers are indexable; anything else stays out of the index
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int, float)):
        return value
    return None


def _column(index_name: str) -> str:
    return f"idx_{index_name}"


class SQLiteRecordStore(RecordStoreInterface):
    """
    SQLite implementation of the record store.

    One instance per application instance. The connection is opened lazily
    by the first operation (or an explicit `open()`) and reused until
    `close()`.
    """

    def __init__(
        self,
        database_path: str,
        busy_timeout_seconds: float = 5.0,
        schema: tuple[CollectionSpec, ...] = SCHEMA,
        schema_version: int = SCHEMA_VERSION,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._path = str(database_path)
        self._busy_timeout = busy_timeout_seconds
        self._schema = schema
        self._schema_version = schema_version
        self._collections = {spec.name: spec for spec in schema}
        self._audit = audit_logger or AuditLogger()

        self._conn: Optional[sqlite3.Connection] = None
        self._opening: Optional[asyncio.Future] = None
        self._io_lock = threading.Lock()

    @property
    def database_path(self) -> str:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> sqlite3.Connection:
        """
        Open the database, or return the cached connection.

        The first caller starts the open; everyone who arrives while it is
        in flight awaits the same task. A failed open is not retried; the
        next call to open() starts a fresh attempt.
        """
        if self._conn is not None:
            return self._conn

        if self._opening is None:
            self._opening = asyncio.ensure_future(self._open_once())

        return await asyncio.shield(self._opening)

    async def _open_once(self) -> sqlite3.Connection:
        try:
            conn, created = await asyncio.to_thread(self._connect)
        except StorageUnavailableError as e:
            self._opening = None
            self._audit.log_store_unavailable(self._path, str(e))
            raise

        self._conn = conn
        self._opening = None
        self._audit.log_store_opened(self._path, self._schema_version, created)
        return conn

    def _connect(self) -> tuple[sqlite3.Connection, bool]:
        try:
            conn = sqlite3.connect(
                self._path,
                timeout=self._busy_timeout,
                check_same_thread=False,
            )
        except sqlite3.Error as e:
            raise StorageUnavailableError(
                f"Cannot open record store at {self._path}: {e}"
            ) from e

        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode = WAL")
            created = self._ensure_schema(conn)
        except StorageUnavailableError:
            conn.close()
            raise
        except sqlite3.Error as e:
            conn.close()
            raise StorageUnavailableError(
                f"Cannot initialize record store at {self._path}: {e}"
            ) from e

        return conn, created

    def _ensure_schema(self, conn: sqlite3.Connection) -> bool:
        """
        Create collections and indexes on first-ever open.

        Returns True if this call created the schema.
        """
        if self._stored_version(conn) == self._schema_version:
            return False

        conn.execute("BEGIN IMMEDIATE")
        try:
            # Another process may have finished setup while we waited for the lock
            if self._stored_version(conn) == self._schema_version:
                conn.rollback()
                return False

            for spec in self._schema:
                self._create_collection(conn, spec)
            conn.execute(f"PRAGMA user_version = {int(self._schema_version)}")
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        return True

    def _stored_version(self, conn: sqlite3.Connection) -> int:
        version = conn.execute("PRAGMA user_version").fetchone()[0]
        if version > self._schema_version:
            raise StorageUnavailableError(
                f"Record store at {self._path} has schema version {version}, "
                f"newer than supported version {self._schema_version}"
            )
        return version

    def _create_collection(self, conn: sqlite3.Connection, spec: CollectionSpec) -> None:
        index_columns = "".join(f', "{_column(idx.name)}"' for idx in spec.indexes)
        conn.execute(
            f'CREATE TABLE IF NOT EXISTS "{spec.name}" ('
            f'"key" TEXT PRIMARY KEY, "value" TEXT NOT NULL{index_columns})'
        )
        for idx in spec.indexes:
            unique = "UNIQUE " if idx.unique else ""
            conn.execute(
                f'CREATE {unique}INDEX IF NOT EXISTS "{spec.name}_{idx.name}_idx" '
                f'ON "{spec.name}" ("{_column(idx.name)}")'
            )

    async def close(self) -> None:
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        await asyncio.to_thread(self._locked, conn.close)

    # ------------------------------------------------------------------
    # Record operations
    # ------------------------------------------------------------------

    async def put(self, collection: str, value: dict) -> None:
        spec = self._collection(collection)
        key = value.get(spec.key_path)
        if key is None or key == "":
            raise StorageWriteError(
                f"{collection} record has no {spec.key_path!r} value"
            )

        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageWriteError(
                f"{collection} record {key} is not JSON-serializable: {e}"
            ) from e

        columns = ['"key"', '"value"'] + [f'"{_column(idx.name)}"' for idx in spec.indexes]
        params = [str(key), payload] + [
            _index_value(value.get(idx.key_path)) for idx in spec.indexes
        ]
        placeholders = ", ".join("?" * len(columns))
        sql = (
            f'INSERT OR REPLACE INTO "{spec.name}" ({", ".join(columns)}) '
            f"VALUES ({placeholders})"
        )

        conn = await self.open()
        try:
            await asyncio.to_thread(self._locked, self._write, conn, sql, params)
        except sqlite3.Error as e:
            raise StorageWriteError(
                f"Failed to write {collection} record {key}: {e}"
            ) from e

    async def get(self, collection: str, key: str) -> Optional[dict]:
        spec = self._collection(collection)
        rows = await self._read(
            f'SELECT "value" FROM "{spec.name}" WHERE "key" = ?',
            (str(key),),
        )
        if not rows:
            return None
        return self._decode(rows[0]["value"])

    async def delete(self, collection: str, key: str) -> None:
        spec = self._collection(collection)
        conn = await self.open()
        try:
            await asyncio.to_thread(
                self._locked,
                self._write,
                conn,
                f'DELETE FROM "{spec.name}" WHERE "key" = ?',
                [str(key)],
            )
        except sqlite3.Error as e:
            raise StorageWriteError(
                f"Failed to delete {collection} record {key}: {e}"
            ) from e

    async def count(self, collection: str, index: str, value: str) -> int:
        spec = self._collection(collection)
        column = _column(spec.index(index).name)
        rows = await self._read(
            f'SELECT COUNT(*) AS n FROM "{spec.name}" WHERE "{column}" = ?',
            (value,),
        )
        return int(rows[0]["n"])

    async def get_range(
        self,
        collection: str,
        index: str,
        lower: str,
        upper: str,
    ) -> list[dict]:
        spec = self._collection(collection)
        column = _column(spec.index(index).name)
        rows = await self._read(
            f'SELECT "value" FROM "{spec.name}" '
            f'WHERE "{column}" BETWEEN ? AND ? '
            f'ORDER BY "{column}", "key"',
            (lower, upper),
        )
        return [self._decode(row["value"]) for row in rows]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _collection(self, name: str) -> CollectionSpec:
        try:
            return self._collections[name]
        except KeyError:
            raise KeyError(f"Unknown collection: {name}") from None

    def _locked(self, fn: Callable, *args: Any) -> Any:
        with self._io_lock:
            return fn(*args)

    @retry(
        retry=retry_if_exception(_is_locked),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=1),
        reraise=True,
    )
    def _write(self, conn: sqlite3.Connection, sql: str, params: list) -> None:
        with conn:
            conn.execute(sql, params)

    def _fetch(self, conn: sqlite3.Connection, sql: str, params: tuple) -> list:
        return conn.execute(sql, params).fetchall()

    async def _read(self, sql: str, params: tuple) -> list:
        conn = await self.open()
        try:
            return await asyncio.to_thread(self._locked, self._fetch, conn, sql, params)
        except sqlite3.Error as e:
            raise StorageReadError(f"Read failed: {e}") from e

    def _decode(self, payload: str) -> dict:
        try:
            return json.loads(payload)
        except ValueError as e:
            raise StorageReadError(f"Stored record is not valid JSON: {e}") from e
