"""
Lighting control for home-lighting.

Decides whether each region's outlets should be energized.

Features:
- Time-of-day windows, including windows that cross midnight
- "light" windows that open when it gets dark
- Seasons that wrap around New Year
- Manual override by button press or external command, expiring when
  the window changes
- Inference of manual toggles from outlet reports
"""

from .classifier import classify
from .engine import LightingEngine
from .models import (
    ButtonPressUpdate,
    Command,
    ControlState,
    ControlTransition,
    Device,
    EngineResult,
    GlobalEnableUpdate,
    LightingConfig,
    LightLevelUpdate,
    OutletStateUpdate,
    Region,
    RegionPropertyUpdate,
    Update,
)
from .registry import DeviceRegistry
from .validation import valid_device_name

__all__ = [
    "classify",
    "LightingEngine",
    "DeviceRegistry",
    "valid_device_name",
    "ButtonPressUpdate",
    "Command",
    "ControlState",
    "ControlTransition",
    "Device",
    "EngineResult",
    "GlobalEnableUpdate",
    "LightingConfig",
    "LightLevelUpdate",
    "OutletStateUpdate",
    "Region",
    "RegionPropertyUpdate",
    "Update",
]
