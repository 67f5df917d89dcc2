"""Entry point for the lighting daemon."""

import logging
import signal
import threading
from typing import Optional, Sequence

from home_lighting.core.bus import EventBus
from home_lighting.core.publisher import PublishQueue
from home_lighting.core.serializer import UpdateSerializer
from home_lighting.lighting.engine import LightingEngine

from .config import load_config
from .log_setup import configure_logging
from .transport import MqttTransport

logger = logging.getLogger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> int:
    config = load_config(argv)
    configure_logging(config)

    logger.info("Lighting Daemon started")
    logger.info(f"mqtt broker = {config.broker}")

    engine = LightingEngine(config.lighting)
    publish_queue = PublishQueue(maxsize=config.lighting.publish_queue_size)
    # Let the retained-message burst settle before the first pass acts
    publish_queue.mark_published()

    bus = EventBus()
    serializer = UpdateSerializer(engine, publish_queue, bus)
    transport = MqttTransport(config, serializer, bus)

    try:
        transport.connect()
    except OSError as e:
        logger.error(f"Cannot connect to MQTT broker {config.broker}: {e}")
        return 1

    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda signum, frame: stop.set())

    serializer.start()
    transport.start()
    try:
        publish_queue.run(transport.publish, stop)
    except KeyboardInterrupt:
        pass
    finally:
        serializer.stop(timeout=5)
        transport.stop()
        logger.info("Lighting Daemon stopped")

    return 0
