"""
MQTT transport for the lighting daemon.

Subscribes to lighting, light level and device topics, feeds classified
updates to the serializer, and publishes requests from the publish queue.
"""

import logging
import threading
from typing import Optional, Set

import paho.mqtt.client as mqtt

from home_lighting.core.bus import DEVICE_DISCOVERED, DEVICE_REMOVED, Event, EventBus, EventFilter
from home_lighting.core.publisher import PublishRequest
from home_lighting.core.serializer import UpdateSerializer
from home_lighting.lighting import topics
from home_lighting.lighting.classifier import classify

from .config import DaemonConfig

logger = logging.getLogger(__name__)

KEEPALIVE = 60
QOS = 0


class MqttTransport:
    """
    Bridge between the MQTT broker and the update serializer.

    Subscribes to:
    - lighting/# (region properties and global enable)
    - environment/outdoor-light (ambient light level)
    - devices/<device>/# for every device the engine discovers, until
      the engine reports it removed
    """

    def __init__(
        self,
        config: DaemonConfig,
        serializer: UpdateSerializer,
        bus: EventBus,
        client: Optional[mqtt.Client] = None,
    ) -> None:
        self.host, self.port = config.broker_address
        self._serializer = serializer
        self._devices: Set[str] = set()
        self._lock = threading.Lock()

        if client is None:
            client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=config.client_id)
        self._client = client

        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

        bus.subscribe(self._on_device_discovered, EventFilter(event_type=DEVICE_DISCOVERED))
        bus.subscribe(self._on_device_removed, EventFilter(event_type=DEVICE_REMOVED))

    def connect(self) -> None:
        """Connect to the broker; raises OSError if it is unreachable."""
        logger.info(f"Connecting to MQTT broker {self.host}:{self.port}")
        self._client.connect(self.host, self.port, keepalive=KEEPALIVE)

    def start(self) -> None:
        """Start the network loop thread."""
        self._client.loop_start()

    def stop(self) -> None:
        logger.info("Stopping MQTT transport")
        self._client.loop_stop()
        self._client.disconnect()

    def publish(self, request: PublishRequest) -> None:
        """Publish one request; failures are logged, not raised."""
        info = self._client.publish(
            request.topic, request.payload, qos=QOS, retain=request.retained
        )
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.warning(f"Failed to publish {request.topic}: {mqtt.error_string(info.rc)}")

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def _subscribe(self, topic: str) -> None:
        result, _ = self._client.subscribe(topic, qos=QOS)
        if result != mqtt.MQTT_ERR_SUCCESS:
            logger.warning(f"Failed to subscribe to {topic}: {mqtt.error_string(result)}")
        else:
            logger.debug(f"Subscribed to {topic}")

    def _on_device_discovered(self, event: Event) -> None:
        if not event.device:
            return
        with self._lock:
            self._devices.add(event.device)
        self._subscribe(topics.device_subscription(event.device))

    def _on_device_removed(self, event: Event) -> None:
        if not event.device:
            return
        with self._lock:
            if event.device not in self._devices:
                return
            self._devices.discard(event.device)

        topic = topics.device_subscription(event.device)
        result, _ = self._client.unsubscribe(topic)
        if result != mqtt.MQTT_ERR_SUCCESS:
            logger.warning(f"Failed to unsubscribe from {topic}: {mqtt.error_string(result)}")
        else:
            logger.debug(f"Unsubscribed from {topic}")

    # =========================================================================
    # Client callbacks (network thread)
    # =========================================================================

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            logger.error(f"MQTT connection refused: {reason_code}")
            return

        logger.info("Connected to MQTT broker")
        self._subscribe(topics.LIGHTING_SUBSCRIPTION)
        self._subscribe(topics.OUTDOOR_LIGHT)

        with self._lock:
            devices = sorted(self._devices)
        for device in devices:
            self._subscribe(topics.device_subscription(device))

    def _on_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            logger.warning(f"Unexpected disconnection from MQTT broker: {reason_code}")
        else:
            logger.info("Disconnected from MQTT broker")

    def _on_message(self, client, userdata, msg) -> None:
        try:
            payload = msg.payload.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug(f"Discarding non UTF-8 payload on {msg.topic}")
            return

        logger.debug(f"Message: {msg.topic} {payload}")
        update = classify(msg.topic, payload)
        if update is None:
            return

        self._serializer.submit(update)
