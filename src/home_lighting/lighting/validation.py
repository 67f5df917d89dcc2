"""Homie identifier validation."""

import re

_HOMIE_ID = re.compile(r"[A-Za-z0-9][A-Za-z0-9-]*", re.ASCII)


def valid_device_name(name: str) -> bool:
    """
    Check that a device ID conforms to the Homie convention.

    Non-empty, ASCII letters, digits and hyphens only, and not starting
    with a hyphen.
    """
    return _HOMIE_ID.fullmatch(name) is not None
