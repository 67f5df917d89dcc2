"""
Inbound event classification.

Translates raw (topic, payload) pairs from the transport into typed
updates. This runs on the transport's callback thread and must not
touch engine state.
"""

import logging
from typing import Optional

from . import topics
from .models import (
    ButtonPressUpdate,
    GlobalEnableUpdate,
    LightLevelUpdate,
    OutletStateUpdate,
    RegionPropertyUpdate,
    Update,
    parse_int,
    parse_switch,
)

logger = logging.getLogger(__name__)


def classify(topic: str, payload: str) -> Optional[Update]:
    """
    Classify one inbound message.

    Args:
        topic: "/"-delimited topic
        payload: Decoded payload

    Returns:
        A typed update, or None if the message is not actionable
    """
    parts = topic.split("/")

    if any(part.startswith(topics.RESERVED_MARKER) for part in parts):
        return None

    namespace = parts[0]
    if namespace == topics.LIGHTING:
        return _classify_lighting(parts, payload)
    if topic == topics.OUTDOOR_LIGHT:
        return _classify_light_level(payload)
    if namespace == topics.DEVICES:
        return _classify_device(parts, payload)

    logger.debug(f"Discarding message on unrelated topic {topic}")
    return None


def _classify_lighting(parts: list[str], payload: str) -> Optional[Update]:
    # Empty payloads are erasures of retained values
    if payload == "":
        return None

    if len(parts) == 2 and parts[1] == topics.ENABLE:
        enabled = parse_switch(payload)
        if enabled is None:
            logger.debug(f"Ignoring enable payload '{payload}'")
            return None
        return GlobalEnableUpdate(enabled=enabled)

    if len(parts) < 3 or not parts[1]:
        return None

    key = "/".join(parts[2:])
    if not key:
        return None

    return RegionPropertyUpdate(region=parts[1], key=key, value=payload)


def _classify_light_level(payload: str) -> Optional[Update]:
    value = parse_int(payload)
    if value is None:
        return None
    return LightLevelUpdate(value=value)


def _classify_device(parts: list[str], payload: str) -> Optional[Update]:
    if len(parts) != 4:
        return None

    device = parts[1]
    attribute = (parts[2], parts[3])

    if attribute == ("outlet", "on"):
        return OutletStateUpdate(device=device, value=payload)
    if attribute == ("button", "button"):
        return ButtonPressUpdate(device=device, value=payload)

    return None
