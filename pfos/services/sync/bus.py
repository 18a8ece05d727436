"""
Change Bus

Tells other live instances that data changed. Two delivery backends sit
behind one publish/subscribe surface:

1. BroadcastChannel - immediate, for instances in the same process
2. ChangeMarker     - polled file, for everything else

DESIGN DECISION: Notification is advisory. publish() never raises; a
dropped notification is logged and the mutation that triggered it still
succeeds. Subscribers may see the same change twice (once per backend)
and must treat every call as "re-run your queries", not as an event log.
"""

import asyncio
import functools
import inspect
from typing import Any, Callable, Optional

from pfos.audit import AuditLogger
from pfos.models.events import ChangeEvent
from pfos.services.sync.channel import BroadcastChannel
from pfos.services.sync.marker import ChangeMarker


ChangeHandler = Callable[[ChangeEvent], Any]


class ChangeBus:
    """Fan-out publisher and unified subscriber for change events."""

    def __init__(
        self,
        channel: Optional[BroadcastChannel] = None,
        marker: Optional[ChangeMarker] = None,
        poll_interval: float = 1.0,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._channel = channel
        self._marker = marker
        self._poll_interval = poll_interval
        self._audit = audit_logger or AuditLogger()
        self._watchers: set[asyncio.Task] = set()
        self._handler_tasks: set[asyncio.Future] = set()

    def publish(self, scope: str) -> ChangeEvent:
        """
        Announce that `scope` changed.

        Each backend is attempted independently; the marker is written even
        when the broadcast fails.
        """
        event = ChangeEvent.now(scope)

        if self._channel is not None:
            try:
                self._channel.post_message(event.to_message())
            except Exception as e:
                self._audit.log_notification_failed(scope, "broadcast", str(e))

        if self._marker is not None:
            try:
                self._marker.write(event)
            except Exception as e:
                self._audit.log_notification_failed(scope, "marker", str(e))

        return event

    def subscribe(self, handler: ChangeHandler) -> Callable[[], None]:
        """
        Call `handler(event)` for changes made by other instances.

        Handlers may be plain functions or coroutine functions. Must be
        called from a running event loop when a marker is configured.

        Returns:
            A callable that removes the subscription
        """
        dispatch = functools.partial(self._dispatch, handler)

        def on_message(message: dict) -> None:
            event = ChangeEvent.from_message(message)
            if event is not None:
                dispatch(event)

        # Raises before anything is registered when there is no running loop
        loop = asyncio.get_running_loop() if self._marker is not None else None

        if self._channel is not None:
            self._channel.add_listener(on_message)

        watcher = None
        if loop is not None:
            watcher = loop.create_task(
                self._marker.watch(dispatch, self._poll_interval)
            )
            self._watchers.add(watcher)
            watcher.add_done_callback(self._watchers.discard)

        def unsubscribe() -> None:
            if self._channel is not None:
                self._channel.remove_listener(on_message)
            if watcher is not None:
                watcher.cancel()

        return unsubscribe

    def last_change(self) -> Optional[ChangeEvent]:
        """Most recent change recorded in the marker, from any instance."""
        if self._marker is None:
            return None
        try:
            return self._marker.latest()
        except OSError:
            return None

    async def close(self) -> None:
        watchers = list(self._watchers)
        for watcher in watchers:
            watcher.cancel()
        if watchers:
            await asyncio.gather(*watchers, return_exceptions=True)
        if self._channel is not None:
            self._channel.close()

    def _dispatch(self, handler: ChangeHandler, event: ChangeEvent) -> None:
        try:
            result = handler(event)
        except Exception as e:
            self._audit.log_handler_failed(event.scope, str(e))
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._handler_tasks.add(task)
            task.add_done_callback(functools.partial(self._handler_done, event))

    def _handler_done(self, event: ChangeEvent, task: asyncio.Future) -> None:
        self._handler_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._audit.log_handler_failed(event.scope, str(error))
