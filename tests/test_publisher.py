"""Tests for the outbound publish queue."""

import queue
import threading
from datetime import datetime

import pytest

from home_lighting import PublishQueue, PublishRequest

STAMP = datetime(2025, 12, 20, 19, 0)


class TestPublishQueue:
    """Tests for buffering and publish timestamps."""

    def test_fifo_order_and_timestamp(self):
        pq = PublishQueue(clock=lambda: STAMP)
        pq.put_all([PublishRequest("a", "1"), PublishRequest("b", "2")])
        sent = []

        assert pq.last_publish is None
        assert pq.publish_next(sent.append, timeout=0)
        assert pq.publish_next(sent.append, timeout=0)

        assert [r.topic for r in sent] == ["a", "b"]
        assert pq.last_publish == STAMP

    def test_publish_next_times_out(self):
        pq = PublishQueue()
        sent = []

        assert pq.publish_next(sent.append, timeout=0.01) is False
        assert sent == []
        assert pq.last_publish is None

    def test_bounded(self):
        pq = PublishQueue(maxsize=2)
        pq.put(PublishRequest("a", "1"))
        pq.put(PublishRequest("b", "1"))

        with pytest.raises(queue.Full):
            pq.put(PublishRequest("c", "1"), timeout=0.01)

    def test_drain(self):
        pq = PublishQueue()
        pq.put_all([PublishRequest("a", "1"), PublishRequest("b", "")])

        assert [r.topic for r in pq.drain()] == ["a", "b"]
        assert pq.pending() == 0
        assert pq.last_publish is None

    def test_mark_published(self):
        pq = PublishQueue(clock=lambda: STAMP)
        pq.mark_published()
        assert pq.last_publish == STAMP

        later = datetime(2025, 12, 20, 19, 5)
        pq.mark_published(later)
        assert pq.last_publish == later

    def test_retained_by_default(self):
        assert PublishRequest("a", "1").retained is True

    def test_run_until_stopped(self):
        pq = PublishQueue()
        stop = threading.Event()
        sent = []

        def send(request):
            sent.append(request)
            stop.set()

        pq.put(PublishRequest("a", "1"))
        pq.run(send, stop, poll=0.01)

        assert [r.topic for r in sent] == ["a"]
