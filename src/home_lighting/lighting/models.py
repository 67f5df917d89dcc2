"""
Data models for the lighting engine.

Defines regions, devices, inbound updates, engine results and the
engine configuration.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple, Union
import logging
import re

from home_lighting.core.publisher import PublishRequest

logger = logging.getLogger(__name__)


# =============================================================================
# Enums
# =============================================================================


class ControlState(Enum):
    """Who decides whether a region is lit.

    AUTO: the window (and season) decides
    MANUAL_IN: forced off while inside the window
    MANUAL_OUT: forced on while outside the window
    """

    AUTO = "auto"
    MANUAL_IN = "manual-i"
    MANUAL_OUT = "manual-o"

    @classmethod
    def parse(cls, value: str) -> "ControlState":
        """Parse a control payload; unknown values become AUTO."""
        try:
            return cls(value)
        except ValueError:
            logger.debug(f"Unknown control value '{value}', using auto")
            return cls.AUTO

    @property
    def is_manual(self) -> bool:
        return self is not ControlState.AUTO


class Command(Enum):
    """External region commands."""

    ON = "on"
    OFF = "off"
    TOGGLE = "toggle"


_DECIMAL = re.compile(r"[+-]?[0-9]+")


def parse_int(value: str) -> Optional[int]:
    """Parse a plain decimal integer with an optional sign; anything else is None.

    Rejects whitespace, underscores and non-ASCII digits, all of which
    `int()` would accept.
    """
    if _DECIMAL.fullmatch(value) is None:
        return None
    return int(value)


def parse_switch(value: str) -> Optional[bool]:
    """Parse a Homie boolean payload ("true"/"false"); anything else is None."""
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def format_switch(value: bool) -> str:
    return "true" if value else "false"


def parse_power(value: str) -> Optional[bool]:
    """Parse a region state payload ("on"/"off"); anything else is None."""
    if value == "on":
        return True
    if value == "off":
        return False
    return None


def format_power(value: bool) -> str:
    return "on" if value else "off"


# =============================================================================
# Regions and Devices
# =============================================================================


REGION_KEYS = (
    "control",
    "state",
    "command",
    "window-start",
    "window-end",
    "season/start",
    "season/end",
    "devices",
    "drop",
)


@dataclass
class Region:
    """
    A named group of devices sharing one schedule and on/off policy.

    Attributes:
        name: Unique region name (topic segment)
        control: Current control state
        state: Last published state (True=on, False=off, None=unknown)
        command: Pending external command payload, cleared once processed
        window_start: "hh:mm" or "light"
        window_end: "hh:mm"
        season_start: "mm/dd"
        season_end: "mm/dd"
        retained_keys: Topic keys under this region holding a retained value
    """

    name: str
    control: ControlState = ControlState.AUTO
    state: Optional[bool] = None
    command: Optional[str] = None
    window_start: Optional[str] = None
    window_end: Optional[str] = None
    season_start: Optional[str] = None
    season_end: Optional[str] = None
    retained_keys: Set[str] = field(default_factory=set)

    @property
    def has_season(self) -> bool:
        return self.season_start is not None and self.season_end is not None

    def set_property(self, key: str, value: str) -> None:
        """
        Store one property received on a region topic.

        `devices` and `drop` are triggers handled by the engine; they are
        only remembered as retained keys so a drop can erase them.
        """
        self.retained_keys.add(key)

        if key == "control":
            self.control = ControlState.parse(value)
        elif key == "state":
            self.state = parse_power(value)
        elif key == "command":
            self.command = value
        elif key == "window-start":
            self.window_start = value
        elif key == "window-end":
            self.window_end = value
        elif key == "season/start":
            self.season_start = value
        elif key == "season/end":
            self.season_end = value
        elif key not in REGION_KEYS:
            logger.debug(f"Region {self.name}: ignoring unknown property '{key}'")


@dataclass
class Device:
    """
    One controllable outlet+button endpoint.

    Attributes:
        name: Homie device ID
        region: Name of the region that last claimed this device
        outlet: Last known outlet state
        button: Pending button press
        active: Scratch flag used while applying a device list
    """

    name: str
    region: str
    outlet: bool = False
    button: bool = False
    active: bool = False


# =============================================================================
# Inbound Updates
# =============================================================================


@dataclass(frozen=True)
class RegionPropertyUpdate:
    """A property of a region changed."""

    region: str
    key: str
    value: str


@dataclass(frozen=True)
class LightLevelUpdate:
    """The outdoor light sensor reported a new level."""

    value: int


@dataclass(frozen=True)
class OutletStateUpdate:
    """A device reported its outlet state."""

    device: str
    value: str


@dataclass(frozen=True)
class ButtonPressUpdate:
    """A device reported its button flag."""

    device: str
    value: str


@dataclass(frozen=True)
class GlobalEnableUpdate:
    """Lighting control was globally enabled or disabled."""

    enabled: bool


Update = Union[
    RegionPropertyUpdate,
    LightLevelUpdate,
    OutletStateUpdate,
    ButtonPressUpdate,
    GlobalEnableUpdate,
]


# =============================================================================
# Outbound Intents
# =============================================================================


@dataclass(frozen=True)
class ControlTransition:
    """A record of a control state change for debugging."""

    region: str
    previous: ControlState
    new: ControlState
    reason: str


@dataclass
class EngineResult:
    """Instructions for the host after applying an update or reconciling.

    Attributes:
        publishes: Publish requests, in order
        discovered: Newly created devices that need a subscription
        removed: Devices that left the registry, as (device, region)
        dropped_regions: Regions removed by a drop command
        transitions: Control state changes made during the pass
        reconciled: False if a reconciliation pass was suppressed
    """

    publishes: List[PublishRequest] = field(default_factory=list)
    discovered: List[Tuple[str, str]] = field(default_factory=list)
    removed: List[Tuple[str, str]] = field(default_factory=list)
    dropped_regions: List[str] = field(default_factory=list)
    transitions: List[ControlTransition] = field(default_factory=list)
    reconciled: bool = True

    def extend(self, other: "EngineResult") -> None:
        """Merge another result into this one."""
        self.publishes.extend(other.publishes)
        self.discovered.extend(other.discovered)
        self.removed.extend(other.removed)
        self.dropped_regions.extend(other.dropped_regions)
        self.transitions.extend(other.transitions)


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class LightingConfig:
    """Tunables for the lighting engine and its update loop."""

    version: int = 1
    tick_interval: float = 10.0              # Seconds between periodic passes
    defer_window: float = 2.0                # Seconds to hold off after a publish
    darkness_threshold: int = 4              # Light level below which is "dark"
    publish_queue_size: int = 100            # Bounded outbound buffer
    default_window_start_hour: int = 15      # Used when window-start fails to parse
    default_window_end_hour: int = 23        # Used when window-end fails to parse
    default_season_start: Tuple[int, int] = (11, 1)   # (month, day)
    default_season_end: Tuple[int, int] = (1, 6)      # (month, day)

    def __post_init__(self) -> None:
        if self.tick_interval <= 0:
            raise ValueError(f"tick_interval must be positive, got {self.tick_interval}")
        if self.defer_window < 0:
            raise ValueError(f"defer_window must not be negative, got {self.defer_window}")
        if self.publish_queue_size < 1:
            raise ValueError(
                f"publish_queue_size must be at least 1, got {self.publish_queue_size}"
            )

    def to_dict(self) -> dict:
        """Serialize to dict."""
        return {
            "version": self.version,
            "tick_interval": self.tick_interval,
            "defer_window": self.defer_window,
            "darkness_threshold": self.darkness_threshold,
            "publish_queue_size": self.publish_queue_size,
            "default_window_start_hour": self.default_window_start_hour,
            "default_window_end_hour": self.default_window_end_hour,
            "default_season_start": list(self.default_season_start),
            "default_season_end": list(self.default_season_end),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LightingConfig":
        """Deserialize from dict."""
        return cls(
            version=data.get("version", 1),
            tick_interval=data.get("tick_interval", 10.0),
            defer_window=data.get("defer_window", 2.0),
            darkness_threshold=data.get("darkness_threshold", 4),
            publish_queue_size=data.get("publish_queue_size", 100),
            default_window_start_hour=data.get("default_window_start_hour", 15),
            default_window_end_hour=data.get("default_window_end_hour", 23),
            default_season_start=tuple(data.get("default_season_start", (11, 1))),
            default_season_end=tuple(data.get("default_season_end", (1, 6))),
        )
