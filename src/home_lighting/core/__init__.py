"""
Core components of the lighting daemon.

This package contains:
- bus: in-process Event Bus for notifications
- publisher: bounded outbound publish queue
- serializer: the single-threaded update loop
"""

from home_lighting.core.bus import Event, EventBus, EventFilter
from home_lighting.core.publisher import PublishQueue, PublishRequest
from home_lighting.core.serializer import UpdateSerializer

__all__ = [
    "Event",
    "EventBus",
    "EventFilter",
    "PublishQueue",
    "PublishRequest",
    "UpdateSerializer",
]
