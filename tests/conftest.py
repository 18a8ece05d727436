"""
Shared fixtures.

Every test gets its own database file and marker file under tmp_path,
and its own broadcast channel name, so instances never leak between tests.
"""

import asyncio
from uuid import uuid4

import pytest
import pytest_asyncio

from pfos.audit import AuditLogger
from pfos.services.storage import SQLiteRecordStore
from pfos.services.sync import BroadcastChannel, ChangeBus, ChangeMarker
from pfos.services.profile_settings import SettingsManager
from pfos.services.transactions import TransactionRepository
from pfos.queries import QueryExecutor


POLL_INTERVAL = 0.02


async def wait_for(condition, timeout: float = 2.0) -> bool:
    """Poll `condition()` until it is truthy or `timeout` elapses."""
    deadline = asyncio.get_running_loop().time() + timeout
    while asyncio.get_running_loop().time() < deadline:
        if condition():
            return True
        await asyncio.sleep(0.01)
    return bool(condition())


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "pfos.db")


@pytest.fixture
def marker_path(tmp_path):
    return str(tmp_path / "pfos.db.changed.json")


@pytest.fixture
def channel_name():
    return f"pfos-test-{uuid4().hex}"


@pytest.fixture
def make_bus(marker_path, channel_name):
    def factory(origin=None, with_channel=True, with_marker=True):
        return ChangeBus(
            channel=BroadcastChannel(channel_name) if with_channel else None,
            marker=ChangeMarker(marker_path, origin=origin) if with_marker else None,
            poll_interval=POLL_INTERVAL,
            audit_logger=AuditLogger("test"),
        )
    return factory


@pytest_asyncio.fixture
async def store(db_path):
    store = SQLiteRecordStore(db_path, audit_logger=AuditLogger("test"))
    yield store
    await store.close()


@pytest_asyncio.fixture
async def bus(make_bus):
    bus = make_bus()
    yield bus
    await bus.close()


@pytest.fixture
def repository(store, bus):
    return TransactionRepository(store, bus, AuditLogger("test"))


@pytest.fixture
def settings_manager(store, bus):
    return SettingsManager(store, bus, AuditLogger("test"))


@pytest.fixture
def queries(store):
    return QueryExecutor(store, AuditLogger("test"))


@pytest.fixture
def eventually():
    return wait_for
