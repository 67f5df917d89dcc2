"""The Core Logic Engine for region lighting.

This module contains the pure business logic. It accepts updates and
time, and returns publish requests and state transitions. It never reads
the clock and never talks to the transport; the update serializer owns
an instance and is the only caller.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from home_lighting.core.publisher import PublishRequest

from . import topics
from .models import (
    ButtonPressUpdate,
    Command,
    ControlState,
    ControlTransition,
    EngineResult,
    GlobalEnableUpdate,
    LightingConfig,
    LightLevelUpdate,
    OutletStateUpdate,
    Region,
    RegionPropertyUpdate,
    Update,
    format_power,
    format_switch,
)
from .registry import DeviceRegistry
from .windows import in_daily_window, in_season

_LOGGER = logging.getLogger(__name__)


class LightingEngine:
    """The functional core of the lighting system."""

    def __init__(self, config: Optional[LightingConfig] = None) -> None:
        """Initialize an engine with no regions, disabled, in the dark.

        Args:
            config: Engine tunables (defaults if None).
        """
        self.config = config or LightingConfig()
        self._regions: Dict[str, Region] = {}
        self._registry = DeviceRegistry()
        self.light_level = 0
        self.enabled = False

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    def get_region(self, name: str) -> Optional[Region]:
        return self._regions.get(name)

    def region_names(self) -> List[str]:
        return sorted(self._regions)

    def region_in_window(self, name: str, now: datetime) -> bool:
        """Check whether a region's lights are scheduled on at `now`.

        Out of season counts as out of window. Manual overrides are not
        taken into account.
        """
        region = self._regions.get(name)
        if region is None:
            return False
        return self._in_window(region, now)

    # =========================================================================
    # Updates
    # =========================================================================

    def handle_update(self, update: Update, now: datetime) -> EngineResult:
        """Apply a single inbound update to engine state.

        Args:
            update: The classified update.
            now: Current datetime.

        Returns:
            EngineResult with any publishes or discoveries the update caused.
        """
        result = EngineResult()

        if isinstance(update, RegionPropertyUpdate):
            self._apply_region_property(update, result)
        elif isinstance(update, LightLevelUpdate):
            self.light_level = update.value
            _LOGGER.debug(f"Light level is {update.value}")
        elif isinstance(update, OutletStateUpdate):
            self._apply_outlet(update)
        elif isinstance(update, ButtonPressUpdate):
            self._registry.apply_button_update(update.device, update.value)
        elif isinstance(update, GlobalEnableUpdate):
            if update.enabled != self.enabled:
                _LOGGER.info(
                    "Lighting control enabled" if update.enabled else "Lighting control disabled"
                )
            self.enabled = update.enabled
        else:
            _LOGGER.warning(f"Unknown update type: {type(update).__name__}")

        return result

    def _apply_region_property(self, update: RegionPropertyUpdate, result: EngineResult) -> None:
        region = self._regions.get(update.region)
        if region is None:
            region = Region(name=update.region)
            self._regions[update.region] = region
            _LOGGER.info(f"New region {update.region}")
            if update.key != "control":
                self._publish_control(region, result)

        region.set_property(update.key, update.value)

        if update.key == "devices":
            before = {d.name for d in self._registry.devices_in(update.region)}
            for name in self._registry.apply_device_list(update.region, update.value):
                result.discovered.append((name, update.region))
            after = {d.name for d in self._registry.devices_in(update.region)}
            for name in sorted(before - after):
                result.removed.append((name, update.region))
        elif update.key == "drop":
            self._drop_region(region, result)

    def _apply_outlet(self, update: OutletStateUpdate) -> None:
        device = self._registry.get(update.device)
        if device is None:
            return

        region = self._regions.get(device.region)
        region_state = region.state if region else None
        self._registry.apply_outlet_update(update.device, update.value, region_state)

    def _drop_region(self, region: Region, result: EngineResult) -> None:
        _LOGGER.info(f"Dropping region {region.name}")
        for name in self._registry.drop_region(region.name):
            result.removed.append((name, region.name))

        for key in sorted(region.retained_keys):
            topic = topics.region_topic(region.name, key)
            result.publishes.append(PublishRequest(topic, ""))
            _LOGGER.debug(f"Erasing topic {topic}")

        del self._regions[region.name]
        result.dropped_regions.append(region.name)
        _LOGGER.info(f"Region {region.name} dropped")

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def reconcile(self, now: datetime, last_publish: Optional[datetime] = None) -> EngineResult:
        """Evaluate every region and bring devices in line.

        Args:
            now: Current datetime.
            last_publish: When the transport last published (None if never).

        Returns:
            EngineResult with publishes and control transitions. `reconciled`
            is False if the pass was held off after a recent publish.
        """
        result = EngineResult()

        pressed = self._acknowledge_buttons(result)
        triggered = bool(pressed) or any(r.command is not None for r in self._regions.values())

        # Hold off while our own commands echo back. A stamp in the future
        # means the wall clock stepped back and never defers.
        defer = timedelta(seconds=self.config.defer_window)
        since_publish = now - last_publish if last_publish is not None else None
        if not triggered and since_publish is not None and timedelta(0) <= since_publish < defer:
            result.reconciled = False
            return result

        if not self.enabled:
            for name in self.region_names():
                self._set_region_state(self._regions[name], False, result)
            return result

        for name in self.region_names():
            region = self._regions[name]
            in_window = self._in_window(region, now)

            for device_name in pressed.get(name, []):
                self._set_control(
                    region,
                    self._toggle(region.control, in_window),
                    f"button on {device_name}",
                    result,
                )

            if region.command is not None:
                self._apply_command(region, in_window, result)

            # Overrides hold only until the window state they contradict changes
            if in_window and region.control is ControlState.MANUAL_OUT:
                self._set_control(region, ControlState.AUTO, "window change", result)
            elif not in_window and region.control is ControlState.MANUAL_IN:
                self._set_control(region, ControlState.AUTO, "window change", result)

            should_be_on = in_window != region.control.is_manual
            _LOGGER.debug(
                f"Region {name}: in window={in_window}, control={region.control.value}, "
                f"should be on={should_be_on}"
            )
            self._set_region_state(region, should_be_on, result)

        return result

    def _acknowledge_buttons(self, result: EngineResult) -> Dict[str, List[str]]:
        """Clear pending button presses, returning pressed devices per region."""
        pressed: Dict[str, List[str]] = {}
        for device in self._registry.all_devices():
            if not device.button:
                continue
            _LOGGER.debug(f"Button on device {device.name} pushed")
            result.publishes.append(
                PublishRequest(topics.button_set_topic(device.name), format_switch(False))
            )
            device.button = False
            pressed.setdefault(device.region, []).append(device.name)
        return pressed

    def _in_window(self, region: Region, now: datetime) -> bool:
        config = self.config
        if region.has_season and not in_season(
            now,
            region.season_start,
            region.season_end,
            config.default_season_start,
            config.default_season_end,
        ):
            return False

        return in_daily_window(
            now,
            region.window_start,
            region.window_end,
            self.light_level,
            config.darkness_threshold,
            config.default_window_start_hour,
            config.default_window_end_hour,
        )

    @staticmethod
    def _toggle(control: ControlState, in_window: bool) -> ControlState:
        """Button press: leave a manual override, or contradict the window."""
        if control.is_manual:
            return ControlState.AUTO
        return ControlState.MANUAL_IN if in_window else ControlState.MANUAL_OUT

    def _apply_command(self, region: Region, in_window: bool, result: EngineResult) -> None:
        raw = region.command
        _LOGGER.debug(f"Command {raw} on region {region.name} received")

        try:
            command = Command(raw)
        except ValueError:
            _LOGGER.info(f"Unknown command '{raw}' on region {region.name} ignored")
            new_control = region.control
        else:
            if command is Command.ON:
                new_control = ControlState.AUTO if in_window else ControlState.MANUAL_OUT
            elif command is Command.OFF:
                new_control = ControlState.MANUAL_IN if in_window else ControlState.AUTO
            else:
                new_control = self._toggle(region.control, in_window)

        region.command = None
        region.retained_keys.discard("command")
        self._set_control(region, new_control, f"command {raw}", result)
        result.publishes.append(PublishRequest(topics.region_topic(region.name, "command"), ""))

    def _set_control(
        self,
        region: Region,
        control: ControlState,
        reason: str,
        result: EngineResult,
    ) -> None:
        previous = region.control
        region.control = control
        if control is not previous:
            result.transitions.append(ControlTransition(region.name, previous, control, reason))
            _LOGGER.debug(f"Region {region.name} control set to {control.value} by {reason}")
        self._publish_control(region, result)

    def _publish_control(self, region: Region, result: EngineResult) -> None:
        region.retained_keys.add("control")
        result.publishes.append(
            PublishRequest(topics.region_topic(region.name, "control"), region.control.value)
        )

    def _set_region_state(self, region: Region, on: bool, result: EngineResult) -> None:
        """Publish the region state and drive every device in it to `on`."""
        if region.state != on:
            state = format_power(on)
            result.publishes.append(PublishRequest(topics.region_topic(region.name, "state"), state))
            region.state = on
            region.retained_keys.add("state")
            _LOGGER.info(f"Set region {region.name} to {state}")

        for device in self._registry.devices_in(region.name):
            if device.outlet == on:
                continue
            result.publishes.append(
                PublishRequest(topics.outlet_set_topic(device.name), format_switch(on))
            )
            # Recorded now so the echoed outlet report is not taken for a manual toggle
            device.outlet = on
            _LOGGER.debug(f"Device {device.name} in region {region.name} set to {format_power(on)}")
