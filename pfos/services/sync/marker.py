"""
Rotating Change Marker

A single small file holding the most recent change event. It is the
fallback path for instances that cannot share a broadcast channel with the
writer (other processes, or an instance started after the change).

Every write replaces the whole file atomically and carries a fresh nonce,
so watchers see each write as a distinct update even when two events
share a scope and a millisecond.
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Callable, Optional
from uuid import uuid4

import structlog
from pydantic import ValidationError

from pfos.models.events import ChangeEvent


logger = structlog.get_logger(__name__)


class ChangeMarker:
    """
    Reader/writer for the marker file.

    `origin` identifies the writing instance; watchers skip changes that
    their own instance wrote.
    """

    def __init__(self, path: str, origin: Optional[str] = None):
        self.path = Path(path)
        self.origin = origin or uuid4().hex

    def write(self, event: ChangeEvent) -> None:
        """
        Replace the marker with `event`.

        Raises:
            OSError: If the marker cannot be written
        """
        payload = {
            "scope": event.scope,
            "at": event.at,
            "origin": self.origin,
            "nonce": uuid4().hex,
        }
        tmp = self.path.with_name(f".{self.path.name}.{self.origin}.tmp")
        tmp.write_text(json.dumps(payload), encoding="utf-8")
        os.replace(tmp, self.path)

    def read_raw(self) -> Optional[dict]:
        """Raw marker contents, or None if there is no readable marker."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            data = json.loads(text)
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    def latest(self) -> Optional[ChangeEvent]:
        """The last change recorded by any instance, if any."""
        return self._to_event(self.read_raw())

    async def watch(
        self,
        handler: Callable[[ChangeEvent], None],
        interval: float,
    ) -> None:
        """
        Poll the marker and call `handler` for each change written by
        another instance. Runs until cancelled.

        Only changes written after the watch starts are reported.
        """
        last_nonce = self._nonce(self._safe_read())

        while True:
            await asyncio.sleep(interval)
            raw = self._safe_read()
            nonce = self._nonce(raw)
            if nonce is None or nonce == last_nonce:
                continue
            last_nonce = nonce

            if raw.get("origin") == self.origin:
                continue
            event = self._to_event(raw)
            if event is not None:
                handler(event)

    def _safe_read(self) -> Optional[dict]:
        try:
            return self.read_raw()
        except OSError as e:
            logger.debug("change_marker_unreadable", path=str(self.path), error=str(e))
            return None

    @staticmethod
    def _nonce(raw: Optional[dict]) -> Optional[str]:
        if raw is None:
            return None
        return raw.get("nonce")

    @staticmethod
    def _to_event(raw: Optional[dict]) -> Optional[ChangeEvent]:
        if raw is None:
            return None
        try:
            return ChangeEvent(scope=raw["scope"], at=raw["at"])
        except (KeyError, ValidationError):
            return None
