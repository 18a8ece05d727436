"""
Change Propagation Package

Cross-instance "data changed" notifications: an in-process broadcast
channel plus a polled marker file, composed behind ChangeBus.
"""

from pfos.services.sync.bus import ChangeBus, ChangeHandler
from pfos.services.sync.channel import BroadcastChannel
from pfos.services.sync.marker import ChangeMarker

__all__ = [
    "BroadcastChannel",
    "ChangeBus",
    "ChangeHandler",
    "ChangeMarker",
]
