"""
home-lighting: region lighting control over a pub/sub message bus.

This library provides:
- Region/device lighting state machine (windows, seasons, manual override)
- Inbound topic classification
- Single-threaded update serializer with a periodic ticker
- Bounded outbound publish queue
- MQTT daemon wrapper
"""

from home_lighting.core.bus import Event, EventBus, EventFilter
from home_lighting.core.publisher import PublishQueue, PublishRequest
from home_lighting.core.serializer import UpdateSerializer
from home_lighting.lighting.engine import LightingEngine
from home_lighting.lighting.models import LightingConfig

__version__ = "0.1.0"

__all__ = [
    "Event",
    "EventBus",
    "EventFilter",
    "PublishQueue",
    "PublishRequest",
    "UpdateSerializer",
    "LightingEngine",
    "LightingConfig",
]
