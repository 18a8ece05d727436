"""
In-Process Broadcast Channel

Named channels shared by every instance in the same process. A message
posted on one channel object is delivered to every *other* open channel
object with the same name, never back to the sender.

Delivery is asynchronous: each listener is scheduled on the event loop
that was running when it registered, so a listener always runs in its
own instance's scheduler.
"""

import asyncio
import copy
import threading
import weakref
from typing import Callable, Optional

import structlog


MessageListener = Callable[[dict], None]

logger = structlog.get_logger(__name__)


class BroadcastChannel:
    """A named, process-wide broadcast channel endpoint."""

    _registry: dict[str, "weakref.WeakSet[BroadcastChannel]"] = {}
    _registry_lock = threading.Lock()

    def __init__(self, name: str):
        self.name = name
        self._listeners: list[tuple[MessageListener, Optional[asyncio.AbstractEventLoop]]] = []
        self._closed = False
        with self._registry_lock:
            self._registry.setdefault(name, weakref.WeakSet()).add(self)

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: MessageListener) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        self._listeners.append((listener, loop))

    def remove_listener(self, listener: MessageListener) -> None:
        self._listeners = [
            (fn, loop) for fn, loop in self._listeners if fn is not listener
        ]

    def post_message(self, message: dict) -> None:
        """
        Deliver a copy of `message` to every peer channel.

        Raises:
            RuntimeError: If this channel has been closed
        """
        if self._closed:
            raise RuntimeError(f"Broadcast channel {self.name!r} is closed")

        with self._registry_lock:
            peers = [
                peer for peer in self._registry.get(self.name, ())
                if peer is not self and not peer._closed
            ]
        for peer in peers:
            peer._deliver(copy.deepcopy(message))

    def _deliver(self, message: dict) -> None:
        for listener, loop in list(self._listeners):
            if loop is None:
                listener(message)
            elif loop.is_closed():
                logger.debug("broadcast_listener_loop_closed", channel=self.name)
            else:
                loop.call_soon_threadsafe(listener, message)

    def close(self) -> None:
        self._closed = True
        self._listeners = []
        with self._registry_lock:
            peers = self._registry.get(self.name)
            if peers is not None:
                peers.discard(self)
                if not peers:
                    del self._registry[self.name]
