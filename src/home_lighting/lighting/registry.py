"""
DeviceRegistry for device-to-region membership.

The registry owns the device map, not the lighting behavior. It is only
ever touched from the update serializer's thread.
"""

from typing import Dict, List, Optional, Tuple
import logging

from .models import Device, format_switch, parse_switch
from .validation import valid_device_name

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """
    Tracks the devices each region controls.

    Responsibilities:
    - Store devices by name
    - Apply a region's device list (add, move, drop)
    - Record outlet and button reports from the devices

    Does NOT decide whether outlets should be on.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._devices: Dict[str, Device] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._devices

    def __len__(self) -> int:
        return len(self._devices)

    def get(self, name: str) -> Optional[Device]:
        """
        Get a device by name.

        Args:
            name: The device name

        Returns:
            The Device, or None if not registered
        """
        return self._devices.get(name)

    def all_devices(self) -> List[Device]:
        """Get all registered devices, ordered by name."""
        return [self._devices[name] for name in sorted(self._devices)]

    def devices_in(self, region: str) -> List[Device]:
        """
        Get the devices currently assigned to a region.

        Args:
            region: The region name

        Returns:
            Devices in the region, ordered by name
        """
        return [d for d in self.all_devices() if d.region == region]

    def get_or_create(self, name: str, region: str) -> Tuple[Device, bool]:
        """
        Find a device or create it in `region`.

        Args:
            name: The device name
            region: Region to assign a newly created device to

        Returns:
            (device, created) where created is True for a new device
        """
        device = self._devices.get(name)
        if device is not None:
            return device, False

        device = Device(name=name, region=region)
        self._devices[name] = device
        logger.info(f"New device {name} in region {region}")
        return device, True

    def apply_device_list(self, region: str, names: str) -> List[str]:
        """
        Replace a region's device list.

        Every listed device is created if needed and moved to `region`.
        Devices of `region` that are not listed are dropped. Devices in
        other regions are never dropped, so a device claimed by two
        lists belongs to whichever list was applied last.

        Args:
            region: The region announcing its devices
            names: Comma-separated device names

        Returns:
            Names of devices created by this update
        """
        for device in self._devices.values():
            device.active = False

        created: List[str] = []
        for name in names.split(","):
            if not valid_device_name(name):
                logger.info(f'Invalid device name "{name}" rejected')
                continue

            device, is_new = self.get_or_create(name, region)
            if is_new:
                created.append(name)
            elif device.region != region:
                logger.info(f"Device {name} moved from region {device.region} to {region}")

            device.region = region
            device.active = True

        for name in [n for n, d in self._devices.items() if d.region == region and not d.active]:
            del self._devices[name]
            logger.info(f"Device {name} in region {region} dropped")

        return created

    def apply_outlet_update(self, name: str, value: str, region_state: Optional[bool]) -> bool:
        """
        Record an outlet report from a device.

        A change to a state that disagrees with the region's published
        state was made outside the engine, so it counts as a button press.

        Args:
            name: The device name
            value: Outlet payload ("true"/"false")
            region_state: Last published state of the device's region

        Returns:
            True if a button press was inferred
        """
        device = self._devices.get(name)
        if device is None:
            return False

        outlet = parse_switch(value)
        if outlet is None:
            logger.debug(f"Device {name}: ignoring outlet payload '{value}'")
            return False

        if outlet == device.outlet:
            return False

        device.outlet = outlet
        logger.debug(f"Device {name} outlet changed to {format_switch(outlet)}")

        if region_state is not None and outlet != region_state:
            device.button = True
            logger.debug(f"Device {name} changed externally, treating as button press")
            return True

        return False

    def apply_button_update(self, name: str, value: str) -> None:
        """
        Record a button report from a device.

        Args:
            name: The device name
            value: Button payload; only "true" is a press
        """
        device = self._devices.get(name)
        if device is None:
            return

        device.button = value == "true"
        logger.debug(f"Device {name} button set to {value}")

    def drop_region(self, region: str) -> List[str]:
        """
        Drop every device assigned to a region.

        Args:
            region: The region name

        Returns:
            Names of the dropped devices
        """
        dropped = [d.name for d in self.devices_in(region)]
        for name in dropped:
            del self._devices[name]
            logger.info(f"Dropping device {name}")
        return dropped
