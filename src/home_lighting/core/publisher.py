"""
Outbound publish queue.

Decouples the engine, which produces publish requests, from the
transport call that sends them. The queue is bounded: producers block
when the consumer falls behind.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishRequest:
    """A request to publish a payload on a topic.

    An empty payload on a retained topic erases the retained value.
    """

    topic: str
    payload: str
    retained: bool = True


PublishHandler = Callable[[PublishRequest], None]


class PublishQueue:
    """
    Bounded buffer of publish requests.

    Also remembers when the last request was handed to the transport so
    the engine can hold off while its own commands echo back.
    """

    def __init__(
        self,
        maxsize: int = 100,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """
        Initialize the queue.

        Args:
            maxsize: Capacity before producers block
            clock: Source of publish timestamps
        """
        self._queue: "queue.Queue[PublishRequest]" = queue.Queue(maxsize=maxsize)
        self._clock = clock
        self._lock = threading.Lock()
        self._last_publish: Optional[datetime] = None

    @property
    def last_publish(self) -> Optional[datetime]:
        """When the last request was sent (None if never)."""
        with self._lock:
            return self._last_publish

    def mark_published(self, when: Optional[datetime] = None) -> None:
        """Stamp the publish clock (defaults to now)."""
        with self._lock:
            self._last_publish = when if when is not None else self._clock()

    def put(self, request: PublishRequest, timeout: Optional[float] = None) -> None:
        """
        Enqueue a request, blocking while the queue is full.

        Raises:
            queue.Full: If `timeout` is given and expires
        """
        self._queue.put(request, timeout=timeout)

    def put_all(self, requests: Iterable[PublishRequest]) -> None:
        for request in requests:
            self.put(request)

    def pending(self) -> int:
        return self._queue.qsize()

    def drain(self) -> List[PublishRequest]:
        """Remove and return every queued request without sending it."""
        drained: List[PublishRequest] = []
        while True:
            try:
                drained.append(self._queue.get_nowait())
            except queue.Empty:
                return drained

    def publish_next(self, send: PublishHandler, timeout: Optional[float] = None) -> bool:
        """
        Send the next queued request.

        Args:
            send: Transport publish call
            timeout: Seconds to wait for a request (None = wait forever)

        Returns:
            True if a request was sent, False if the wait timed out
        """
        try:
            request = self._queue.get(timeout=timeout)
        except queue.Empty:
            return False

        if request.payload == "":
            logger.debug(f"Erasing {request.topic}")
        else:
            logger.debug(f"Publishing {request.topic}: {request.payload}")

        self.mark_published()
        send(request)
        return True

    def run(self, send: PublishHandler, stop: threading.Event, poll: float = 0.5) -> None:
        """
        Consume requests until `stop` is set.

        Args:
            send: Transport publish call
            stop: Event that ends the loop
            poll: Seconds between checks of `stop`
        """
        while not stop.is_set():
            self.publish_next(send, timeout=poll)
