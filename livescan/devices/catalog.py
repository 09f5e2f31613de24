"""
==============================================================================
Device Catalog Module
==============================================================================

Enumeration and selection of capture devices.

Features:
---------
- Filters devices with empty ids
- Fills blank labels ("Camera 0a1b2c3d")
- Prefers rear/environment facing cameras by label
- Never fails: enumeration errors degrade to an empty list

Enumeration before a permission grant is unreliable on many platforms, so
errors here are only logged; the explicit open attempt reports them.

==============================================================================
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, List, Optional, Sequence

from .models import CaptureDevice

if TYPE_CHECKING:
    from .provider import CaptureProvider


# Module logger
logger = logging.getLogger(__name__)

REAR_LABEL_PATTERN = re.compile(r"back|rear|traseira|environment", re.IGNORECASE)


def pick_preferred(devices: Sequence[CaptureDevice]) -> Optional[str]:
    """
    Choose the default device id.

    First rear/environment facing device by label, else the first device,
    else None.
    """
    for device in devices:
        if REAR_LABEL_PATTERN.search(device.label or ""):
            return device.id

    return devices[0].id if devices else None


class DeviceCatalog:
    """
    Catalog of capture devices known to a provider.

    Attributes:
        devices: Result of the last enumeration

    Example:
        >>> catalog = DeviceCatalog(OpenCVCaptureProvider())
        >>> devices = catalog.enumerate()
        >>> catalog.preferred(devices)
        '2'
    """

    def __init__(self, provider: "CaptureProvider") -> None:
        self._provider = provider
        self._devices: List[CaptureDevice] = []

    @property
    def devices(self) -> List[CaptureDevice]:
        """Devices from the last enumeration."""
        return self._devices.copy()

    def enumerate(self) -> List[CaptureDevice]:
        """
        Enumerate capture devices.

        Returns:
            Devices with usable ids; empty when enumeration fails
        """
        try:
            raw_devices = self._provider.list_devices()
        except PermissionError as e:
            logger.warning(f"Device enumeration not permitted yet: {e}")
            raw_devices = []
        except Exception as e:
            logger.error(f"Device enumeration failed: {e}")
            raw_devices = []

        devices = []
        seen = set()

        for raw in raw_devices:
            device_id = str(raw.get("id") or "").strip()
            if not device_id or device_id in seen:
                continue

            seen.add(device_id)
            label = (raw.get("label") or "").strip() or f"Camera {device_id[:8]}"
            devices.append(CaptureDevice(id=device_id, label=label))

        self._devices = devices
        logger.info(f"🎥 Found {len(devices)} capture device(s)")
        return self.devices

    def preferred(self, devices: Optional[Sequence[CaptureDevice]] = None) -> Optional[str]:
        """Default device id among the given (or last enumerated) devices."""
        return pick_preferred(self._devices if devices is None else devices)

    def resolve(
        self,
        requested: Optional[str],
        devices: Optional[Sequence[CaptureDevice]] = None
    ) -> Optional[str]:
        """
        Resolve the device to open.

        An explicit request wins even if it was not enumerated, since
        labels and ids are often hidden until permission is granted.
        """
        if requested:
            return requested
        return self.preferred(devices)

    def find(self, device_id: str) -> Optional[CaptureDevice]:
        """Look up an enumerated device by id."""
        for device in self._devices:
            if device.id == device_id:
                return device
        return None
