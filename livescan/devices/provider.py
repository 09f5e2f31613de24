"""
==============================================================================
Capture Provider Module
==============================================================================

Video capture device access.

Interfaces:
-----------
- StreamHandle: an open stream producing frames
- CaptureProvider: enumerates devices and opens/closes streams

Implementation:
---------------
- OpenCVCaptureProvider: cv2.VideoCapture backed provider. On Linux device
  names and permissions come from sysfs and /dev/video*; elsewhere camera
  indexes are probed.

Failure signalling (consumed by CaptureSession):
- PermissionError: access to the device node was refused
- DeviceBusyError: device exists but cannot be opened or read
- CaptureNotSupportedError: OpenCV has no camera backend on this platform

==============================================================================
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional, Protocol

import cv2
import numpy as np

from .catalog import pick_preferred
from .models import CaptureDevice, StreamConstraints


# Module logger
logger = logging.getLogger(__name__)

SYSFS_VIDEO_ROOT = Path("/sys/class/video4linux")


class DeviceBusyError(OSError):
    """Device exists but is held elsewhere or produces no frames."""


class CaptureNotSupportedError(RuntimeError):
    """Platform lacks a usable video capture backend."""


class StreamHandle(Protocol):
    """Open video stream bound to one device."""

    device_id: str

    def read(self) -> Optional[np.ndarray]:
        """Return the next frame, or None when no frame could be read."""
        ...

    def release(self) -> None:
        """Stop the underlying hardware stream."""
        ...


class CaptureProvider(Protocol):
    """Source of capture devices and streams."""

    def list_devices(self) -> List[Dict[str, str]]:
        ...

    def open_stream(self, device_id: Optional[str], constraints: StreamConstraints) -> StreamHandle:
        ...

    def close_stream(self, handle: StreamHandle) -> None:
        ...


class OpenCVStreamHandle:
    """
    Stream handle wrapping a cv2.VideoCapture.

    Attributes:
        device_id: Camera index as a string
    """

    def __init__(self, device_id: str, capture: "cv2.VideoCapture") -> None:
        self.device_id = device_id
        self._capture = capture

    @property
    def is_open(self) -> bool:
        return self._capture is not None and self._capture.isOpened()

    def read(self) -> Optional[np.ndarray]:
        if self._capture is None:
            return None

        ret, frame = self._capture.read()
        if not ret or frame is None or frame.size == 0:
            return None
        return frame

    def release(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.debug(f"Camera {self.device_id} released")

    def __repr__(self) -> str:
        return f"OpenCVStreamHandle(device_id={self.device_id!r}, open={self.is_open})"


class OpenCVCaptureProvider:
    """
    Capture provider backed by OpenCV.

    Device ids are camera indexes rendered as strings ("0", "1", ...).

    Example:
        >>> provider = OpenCVCaptureProvider()
        >>> provider.list_devices()
        [{'id': '0', 'label': 'HD Webcam'}]
        >>> handle = provider.open_stream("0", StreamConstraints())
        >>> frame = handle.read()
        >>> provider.close_stream(handle)
    """

    def __init__(self, max_probe_devices: int = 10, api_preference: Optional[int] = None) -> None:
        """
        Initialize the provider.

        Args:
            max_probe_devices: Camera indexes probed when sysfs is unavailable
            api_preference: Explicit cv2.CAP_* backend (platform default if None)
        """
        self._max_probe_devices = max_probe_devices
        self._api_preference = api_preference if api_preference is not None else self._default_backend()

    @staticmethod
    def _default_backend() -> int:
        if sys.platform == "win32":
            return cv2.CAP_DSHOW
        if sys.platform.startswith("linux"):
            return cv2.CAP_V4L2
        return cv2.CAP_ANY

    # =========================================================================
    # ENUMERATION
    # =========================================================================

    def list_devices(self) -> List[Dict[str, str]]:
        """
        List capture devices.

        Raises:
            PermissionError: If device nodes exist but none is accessible
            CaptureNotSupportedError: If OpenCV has no camera backend
        """
        self._check_support()

        if SYSFS_VIDEO_ROOT.is_dir():
            return self._list_sysfs_devices()
        return self._probe_devices()

    def _list_sysfs_devices(self) -> List[Dict[str, str]]:
        devices = []
        denied = 0

        for node in sorted(SYSFS_VIDEO_ROOT.glob("video*"), key=lambda p: self._node_index(p.name)):
            index = self._node_index(node.name)
            if index < 0:
                continue

            # Metadata nodes share a name with the capture node but have index != 0
            if self._read_text(node / "index") not in ("", "0"):
                continue

            if not self._node_accessible(index):
                denied += 1
                continue

            label = self._read_text(node / "name")
            devices.append({"id": str(index), "label": label})

        if denied and not devices:
            raise PermissionError(f"Access denied to {denied} video device(s)")

        logger.debug(f"sysfs reported {len(devices)} capture device(s)")
        return devices

    def _probe_devices(self) -> List[Dict[str, str]]:
        devices = []

        for index in range(self._max_probe_devices):
            capture = cv2.VideoCapture(index, self._api_preference)
            try:
                if capture.isOpened():
                    devices.append({"id": str(index), "label": ""})
            finally:
                capture.release()

        logger.debug(f"Probed {len(devices)} capture device(s)")
        return devices

    # =========================================================================
    # STREAMS
    # =========================================================================

    def open_stream(self, device_id: Optional[str], constraints: StreamConstraints) -> OpenCVStreamHandle:
        """
        Open a stream on the given device (or the preferred one).

        Raises:
            PermissionError: Device node is not accessible
            DeviceBusyError: Device cannot be opened or produces no frames
            LookupError: Device id is not a camera index
            CaptureNotSupportedError: OpenCV has no camera backend
        """
        self._check_support()

        index = self._resolve_index(device_id or constraints.device_id, constraints)

        if not self._node_accessible(index):
            raise PermissionError(f"Access denied to camera {index}")

        capture = cv2.VideoCapture(index, self._api_preference)
        if not capture.isOpened():
            capture.release()
            raise DeviceBusyError(f"Camera {index} could not be opened")

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.height)
        # Keep only the newest frame so slow decodes drop frames instead of queueing
        capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        ret, _ = capture.read()
        if not ret:
            capture.release()
            raise DeviceBusyError(f"Camera {index} is not producing frames")

        width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info(f"📷 Camera {index} opened at {width}x{height}")

        return OpenCVStreamHandle(str(index), capture)

    def close_stream(self, handle: StreamHandle) -> None:
        handle.release()

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _resolve_index(self, device_id: Optional[str], constraints: StreamConstraints) -> int:
        if device_id is not None:
            try:
                return int(device_id)
            except ValueError:
                raise LookupError(f"Unknown camera id: {device_id!r}") from None

        try:
            listed = [
                CaptureDevice(id=d["id"], label=d.get("label", ""))
                for d in self.list_devices()
            ]
        except PermissionError:
            listed = []

        if constraints.facing_mode == "environment":
            preferred = pick_preferred(listed)
        else:
            preferred = listed[0].id if listed else None

        return int(preferred) if preferred is not None else 0

    def _check_support(self) -> None:
        if not cv2.videoio_registry.getCameraBackends():
            raise CaptureNotSupportedError("OpenCV was built without camera backends")

    @staticmethod
    def _node_index(name: str) -> int:
        suffix = name[len("video"):]
        return int(suffix) if suffix.isdigit() else -1

    @staticmethod
    def _node_accessible(index: int) -> bool:
        node = Path(f"/dev/video{index}")
        if not node.exists():
            return True
        return os.access(node, os.R_OK | os.W_OK)

    @staticmethod
    def _read_text(path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError:
            return ""
