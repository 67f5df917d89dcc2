"""
Topic layout shared by the classifier, the engine and the transport.

Inbound:
    lighting/enable
    lighting/<region>/<key...>
    environment/outdoor-light
    devices/<device>/outlet/on
    devices/<device>/button/button

Outbound:
    lighting/<region>/<key>
    devices/<device>/outlet/on/set
    devices/<device>/button/button/set
"""

LIGHTING = "lighting"
DEVICES = "devices"
ENVIRONMENT = "environment"

ENABLE = "enable"
OUTDOOR_LIGHT = f"{ENVIRONMENT}/outdoor-light"

# Segments starting with this mark Homie device metadata
RESERVED_MARKER = "$"

LIGHTING_SUBSCRIPTION = f"{LIGHTING}/#"


def region_topic(region: str, key: str) -> str:
    return f"{LIGHTING}/{region}/{key}"


def outlet_set_topic(device: str) -> str:
    return f"{DEVICES}/{device}/outlet/on/set"


def button_set_topic(device: str) -> str:
    return f"{DEVICES}/{device}/button/button/set"


def device_subscription(device: str) -> str:
    return f"{DEVICES}/{device}/#"
