"""
Update serializer: the single consumer of inbound updates.

Every mutation of region and device state, and every reconciliation
pass, happens on the serializer's thread. Transport callbacks only
classify messages and call `submit()`.
"""

import logging
import queue
import threading
import time
from datetime import datetime
from typing import Any, Callable, Optional, TYPE_CHECKING

from home_lighting.core.bus import (
    CONTROL_CHANGED,
    DEVICE_DISCOVERED,
    DEVICE_REMOVED,
    REGION_DROPPED,
    Event,
    EventBus,
)
from home_lighting.core.publisher import PublishQueue

if TYPE_CHECKING:
    from home_lighting.lighting.engine import LightingEngine
    from home_lighting.lighting.models import EngineResult

logger = logging.getLogger(__name__)

_STOP = object()


class UpdateSerializer:
    """
    Serializes updates and periodic ticks onto one thread.

    Each loop iteration handles exactly one of {update, tick} and then
    runs one reconciliation pass. The tick period is fixed: updates do
    not push the next tick back.
    """

    def __init__(
        self,
        engine: "LightingEngine",
        publish_queue: PublishQueue,
        bus: Optional[EventBus] = None,
        tick_interval: Optional[float] = None,
        clock: Callable[[], datetime] = datetime.now,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the serializer.

        Args:
            engine: Engine whose state this serializer owns
            publish_queue: Destination for publish requests
            bus: Optional bus for discovery/drop/control notifications
            tick_interval: Seconds between ticks (default from engine config)
            clock: Wall clock handed to the engine
            timer: Monotonic clock used to schedule ticks
        """
        self._engine = engine
        self._publish_queue = publish_queue
        self._bus = bus
        self._tick_interval = tick_interval or engine.config.tick_interval
        self._clock = clock
        self._timer = timer
        self._updates: "queue.Queue[Any]" = queue.Queue()
        self._next_tick = timer() + self._tick_interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # =========================================================================
    # Producer side (any thread)
    # =========================================================================

    def submit(self, update: Any) -> None:
        """Enqueue an update for the serializer thread."""
        self._updates.put(update)

    # =========================================================================
    # Consumer side (serializer thread)
    # =========================================================================

    def process(self, update: Any) -> "EngineResult":
        """Apply one update, then run one reconciliation pass."""
        now = self._clock()
        try:
            result = self._engine.handle_update(update, now)
            self._dispatch(result)
        finally:
            passed = self._reconcile(now)
        result.extend(passed)
        result.reconciled = passed.reconciled
        return result

    def tick(self) -> "EngineResult":
        """Run one reconciliation pass with no update."""
        logger.debug("Updater tick")
        return self._reconcile(self._clock())

    def run_once(self) -> None:
        """Handle one update or one tick, whichever is due first."""
        now = self._timer()
        if now >= self._next_tick:
            while self._next_tick <= now:
                self._next_tick += self._tick_interval
            self.tick()
            return

        try:
            update = self._updates.get(timeout=self._next_tick - now)
        except queue.Empty:
            return

        if update is _STOP:
            return

        self.process(update)

    def run(self) -> None:
        """Loop until `stop()` is called."""
        logger.info("Updater running")
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Error in update loop: {e}", exc_info=True)
        logger.info("Updater stopped")

    def start(self) -> None:
        """Run the loop on a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._next_tick = self._timer() + self._tick_interval
        self._thread = threading.Thread(target=self.run, name="lighting-updater", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the loop and wait for the thread to exit."""
        self._stop.set()
        self._updates.put(_STOP)
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    # =========================================================================
    # Helpers
    # =========================================================================

    def _reconcile(self, now: datetime) -> "EngineResult":
        result = self._engine.reconcile(now, self._publish_queue.last_publish)
        if not result.reconciled:
            logger.debug("Reconciliation deferred after recent publish")
        self._dispatch(result)
        return result

    def _dispatch(self, result: "EngineResult") -> None:
        self._publish_queue.put_all(result.publishes)

        if self._bus is None:
            return

        for device, region in result.discovered:
            self._bus.publish(
                Event(type=DEVICE_DISCOVERED, source="lighting", region=region, device=device)
            )

        for device, region in result.removed:
            self._bus.publish(
                Event(type=DEVICE_REMOVED, source="lighting", region=region, device=device)
            )

        for region in result.dropped_regions:
            self._bus.publish(Event(type=REGION_DROPPED, source="lighting", region=region))

        for transition in result.transitions:
            self._bus.publish(
                Event(
                    type=CONTROL_CHANGED,
                    source="lighting",
                    region=transition.region,
                    payload={
                        "previous": transition.previous.value,
                        "control": transition.new.value,
                        "reason": transition.reason,
                    },
                )
            )
