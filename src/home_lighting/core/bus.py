"""
Event Bus implementation for in-process lighting notifications.

The Event Bus is a simple, synchronous dispatcher. The update serializer
publishes on it; transports and observers subscribe.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, Callable, List

import logging

logger = logging.getLogger(__name__)

DEVICE_DISCOVERED = "device.discovered"
DEVICE_REMOVED = "device.removed"
REGION_DROPPED = "region.dropped"
CONTROL_CHANGED = "control.changed"


@dataclass
class Event:
    """
    A notification raised by the lighting engine.

    Attributes:
        type: Event type (e.g., "device.discovered", "control.changed")
        source: Event source (e.g., "lighting")
        region: Optional region name this event relates to
        device: Optional device name this event relates to
        payload: Event-specific data
        timestamp: When the event occurred
    """

    type: str
    source: str
    region: Optional[str] = None
    device: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)


class EventFilter:
    """
    Filter for event subscriptions.

    Allows subscribers to filter events by type and region.
    """

    def __init__(
        self,
        event_type: Optional[str] = None,
        region: Optional[str] = None,
    ):
        """
        Initialize an event filter.

        Args:
            event_type: Filter by event type (None = all types)
            region: Filter by region name (None = all regions)
        """
        self.event_type = event_type
        self.region = region

    def matches(self, event: Event) -> bool:
        """
        Check if an event matches this filter.

        Args:
            event: The event to check

        Returns:
            True if the event matches the filter
        """
        if self.event_type and event.type != self.event_type:
            return False

        if self.region and event.region != self.region:
            return False

        return True

    def __repr__(self) -> str:
        return f"EventFilter(event_type={self.event_type!r}, region={self.region!r})"


EventHandler = Callable[[Event], None]


class EventBus:
    """
    Simple, synchronous event bus for lighting events.

    Handlers are wrapped in try/except so a failing subscriber cannot stop
    the update loop.
    """

    def __init__(self) -> None:
        """Initialize the event bus."""
        self._handlers: List[tuple[EventFilter, EventHandler]] = []

    def subscribe(
        self,
        handler: EventHandler,
        event_filter: Optional[EventFilter] = None,
    ) -> None:
        """
        Subscribe to events.

        Args:
            handler: Callable that receives Event objects
            event_filter: Optional filter for events (None = receive all events)
        """
        if event_filter is None:
            event_filter = EventFilter()

        self._handlers.append((event_filter, handler))
        logger.debug(f"Subscribed handler {handler.__name__} with filter {event_filter}")

    def publish(self, event: Event) -> None:
        """
        Publish an event to all matching subscribers.

        Handlers are called synchronously and wrapped in try/except.

        Args:
            event: The event to publish
        """
        logger.debug(f"Publishing event: {event.type} from {event.source}")

        for event_filter, handler in list(self._handlers):
            if event_filter.matches(event):
                try:
                    handler(event)
                except Exception as e:
                    logger.error(
                        f"Error in event handler {handler.__name__} "
                        f"for event {event.type}: {e}",
                        exc_info=True,
                    )

    def unsubscribe(self, handler: EventHandler) -> None:
        """
        Unsubscribe a handler from all events.

        Args:
            handler: The handler to unsubscribe
        """
        self._handlers = [(f, h) for f, h in self._handlers if h != handler]
        logger.debug(f"Unsubscribed handler {handler.__name__}")
