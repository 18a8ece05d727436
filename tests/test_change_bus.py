"""Tests for the change bus, broadcast channel and change marker."""

import asyncio
import os

import pytest

from pfos.audit import AuditLogger
from pfos.models.events import ChangeEvent
from pfos.services.sync import BroadcastChannel, ChangeBus, ChangeMarker

POLL_INTERVAL = 0.02


class TestBroadcastChannel:
    """Tests for the in-process channel."""

    async def test_delivers_to_peers_not_sender(self, channel_name, eventually):
        a = BroadcastChannel(channel_name)
        b = BroadcastChannel(channel_name)
        got_a, got_b = [], []
        a.add_listener(got_a.append)
        b.add_listener(got_b.append)

        a.post_message({"type": "DATA_CHANGED", "scope": "x", "at": 1})
        assert await eventually(lambda: len(got_b) == 1)
        await asyncio.sleep(0.05)
        assert got_a == []
        a.close()
        b.close()

    async def test_messages_are_copied(self, channel_name, eventually):
        a = BroadcastChannel(channel_name)
        b = BroadcastChannel(channel_name)
        got = []
        b.add_listener(got.append)

        message = {"scope": "x", "nested": {"n": 1}}
        a.post_message(message)
        message["nested"]["n"] = 2
        assert await eventually(lambda: len(got) == 1)
        assert got[0]["nested"]["n"] == 1
        a.close()
        b.close()

    def test_other_names_isolated(self, channel_name):
        a = BroadcastChannel(channel_name)
        other = BroadcastChannel(channel_name + "-other")
        got = []
        other.add_listener(got.append)
        a.post_message({"scope": "x"})
        assert got == []
        a.close()
        other.close()

    def test_closed_channel_rejects_posts(self, channel_name):
        a = BroadcastChannel(channel_name)
        a.close()
        assert a.closed
        with pytest.raises(RuntimeError):
            a.post_message({"scope": "x"})


class TestChangeMarker:
    """Tests for the rotating marker file."""

    def test_write_and_latest(self, marker_path):
        marker = ChangeMarker(marker_path, origin="a")
        assert marker.latest() is None
        marker.write(ChangeEvent(scope="settings", at=42))

        assert marker.latest() == ChangeEvent(scope="settings", at=42)
        raw = marker.read_raw()
        assert raw["origin"] == "a"
        assert raw["nonce"]

    def test_each_write_has_fresh_nonce(self, marker_path):
        marker = ChangeMarker(marker_path)
        marker.write(ChangeEvent(scope="x", at=1))
        first = marker.read_raw()["nonce"]
        marker.write(ChangeEvent(scope="x", at=1))
        assert marker.read_raw()["nonce"] != first

    def test_no_temp_files_left(self, marker_path, tmp_path):
        ChangeMarker(marker_path).write(ChangeEvent(scope="x", at=1))
        assert sorted(os.listdir(tmp_path)) == [os.path.basename(marker_path)]

    def test_garbage_marker_ignored(self, marker_path):
        with open(marker_path, "w", encoding="utf-8") as f:
            f.write("not json")
        assert ChangeMarker(marker_path).latest() is None

    def test_write_into_missing_directory_raises(self, tmp_path):
        marker = ChangeMarker(str(tmp_path / "missing" / "marker.json"))
        with pytest.raises(OSError):
            marker.write(ChangeEvent(scope="x", at=1))


class TestChangeBus:
    """Tests for cross-instance publish/subscribe."""

    async def test_broadcast_reaches_other_instance(self, make_bus, eventually):
        a = make_bus(origin="a", with_marker=False)
        b = make_bus(origin="b", with_marker=False)
        seen = []
        b.subscribe(seen.append)

        a.publish("transactions")
        assert await eventually(lambda: len(seen) == 1)
        assert seen[0].scope == "transactions"
        await a.close()
        await b.close()

    async def test_marker_reaches_other_instance(self, make_bus, eventually):
        a = make_bus(origin="a", with_channel=False)
        b = make_bus(origin="b", with_channel=False)
        seen = []
        b.subscribe(seen.append)
        # Let the watcher take its baseline before the write
        await asyncio.sleep(POLL_INTERVAL * 3)

        a.publish("settings")
        assert await eventually(lambda: len(seen) == 1)
        assert seen[0].scope == "settings"
        await a.close()
        await b.close()

    async def test_no_echo_to_publisher(self, make_bus):
        a = make_bus(origin="a")
        seen = []
        a.subscribe(seen.append)
        await asyncio.sleep(POLL_INTERVAL * 3)

        a.publish("transactions")
        await asyncio.sleep(POLL_INTERVAL * 5)
        assert seen == []
        await a.close()

    async def test_changes_before_subscribe_not_replayed(self, make_bus):
        a = make_bus(origin="a", with_channel=False)
        a.publish("transactions")

        b = make_bus(origin="b", with_channel=False)
        seen = []
        b.subscribe(seen.append)
        await asyncio.sleep(POLL_INTERVAL * 5)
        assert seen == []
        await a.close()
        await b.close()

    async def test_publish_survives_closed_channel(self, make_bus, marker_path):
        a = make_bus(origin="a")
        a._channel.close()

        event = a.publish("transactions")
        assert ChangeMarker(marker_path).latest() == event
        await a.close()

    async def test_publish_survives_unwritable_marker(self, channel_name, tmp_path, eventually):
        a = ChangeBus(
            channel=BroadcastChannel(channel_name),
            marker=ChangeMarker(str(tmp_path / "missing" / "marker.json"), origin="a"),
            audit_logger=AuditLogger("test"),
        )
        b = ChangeBus(channel=BroadcastChannel(channel_name))
        seen = []
        b.subscribe(seen.append)

        a.publish("transactions")
        assert await eventually(lambda: len(seen) == 1)
        await a.close()
        await b.close()

    async def test_async_handler(self, make_bus, eventually):
        a = make_bus(origin="a", with_marker=False)
        b = make_bus(origin="b", with_marker=False)
        seen = []

        async def handler(event):
            await asyncio.sleep(0)
            seen.append(event)

        b.subscribe(handler)
        a.publish("transactions")
        assert await eventually(lambda: len(seen) == 1)
        await a.close()
        await b.close()

    async def test_failing_handler_does_not_block_others(self, make_bus, eventually):
        a = make_bus(origin="a", with_marker=False)
        b = make_bus(origin="b", with_marker=False)
        seen = []

        def broken(event):
            raise ValueError("boom")

        async def broken_async(event):
            raise ValueError("boom")

        b.subscribe(broken)
        b.subscribe(broken_async)
        b.subscribe(seen.append)

        a.publish("transactions")
        a.publish("settings")
        assert await eventually(lambda: len(seen) == 2)
        await a.close()
        await b.close()

    async def test_unsubscribe(self, make_bus):
        a = make_bus(origin="a")
        b = make_bus(origin="b")
        seen = []
        unsubscribe = b.subscribe(seen.append)
        unsubscribe()

        a.publish("transactions")
        await asyncio.sleep(POLL_INTERVAL * 5)
        assert seen == []
        await a.close()
        await b.close()

    async def test_last_change(self, make_bus):
        a = make_bus(origin="a")
        b = make_bus(origin="b")
        assert b.last_change() is None

        event = a.publish("settings")
        assert b.last_change() == event
        await a.close()
        await b.close()

    async def test_bus_without_backends(self):
        bus = ChangeBus()
        event = bus.publish("transactions")
        assert event.scope == "transactions"
        assert bus.last_change() is None
        bus.subscribe(lambda event: None)()
        await bus.close()

    def test_subscribe_without_loop_registers_nothing(self, channel_name, marker_path):
        """Test that a failed subscribe leaves no orphaned broadcast listener."""
        channel = BroadcastChannel(channel_name)
        bus = ChangeBus(channel=channel, marker=ChangeMarker(marker_path, origin="a"))

        with pytest.raises(RuntimeError):
            bus.subscribe(lambda event: None)
        assert channel._listeners == []
        channel.close()

    async def test_pending_async_handler_is_kept_alive(self, make_bus, eventually):
        a = make_bus(origin="a", with_marker=False)
        b = make_bus(origin="b", with_marker=False)
        release = asyncio.Event()
        seen = []

        async def slow_handler(event):
            await release.wait()
            seen.append(event)

        b.subscribe(slow_handler)
        a.publish("transactions")
        assert await eventually(lambda: len(b._handler_tasks) == 1)

        release.set()
        assert await eventually(lambda: len(seen) == 1)
        assert await eventually(lambda: not b._handler_tasks)
        await a.close()
        await b.close()
