"""
Change Event Model

What instances tell each other when data changes: which entity class
changed, and when. Consumers re-run their queries; there is no payload.
"""

import time
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError


SCOPE_TRANSACTIONS = "transactions"
SCOPE_SETTINGS = "settings"

# Message type tag on the broadcast wire
DATA_CHANGED = "DATA_CHANGED"


def now_ms() -> int:
    return int(time.time() * 1000)


class ChangeEvent(BaseModel):
    """A "data changed" notification."""

    scope: str = Field(
        ...,
        description="Entity class that changed, e.g. 'transactions'"
    )
    at: int = Field(
        default_factory=now_ms,
        description="Milliseconds since epoch"
    )

    @classmethod
    def now(cls, scope: str) -> "ChangeEvent":
        return cls(scope=scope)

    def to_message(self) -> dict:
        """Broadcast wire shape."""
        return {"type": DATA_CHANGED, "scope": self.scope, "at": self.at}

    @classmethod
    def from_message(cls, message: Any) -> Optional["ChangeEvent"]:
        """Parse a broadcast message; anything that is not DATA_CHANGED is ignored."""
        if not isinstance(message, dict) or message.get("type") != DATA_CHANGED:
            return None
        try:
            return cls(scope=message["scope"], at=message["at"])
        except (KeyError, ValidationError):
            return None
