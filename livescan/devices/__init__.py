"""
==============================================================================
Devices Package - Capture Device Management
==============================================================================

Camera enumeration, selection and stream access.

Classes:
--------
- CaptureDevice: Pydantic model for an enumerated camera
- StreamConstraints: Requested stream properties
- DeviceCatalog: Enumeration with rear-camera preference
- OpenCVCaptureProvider: cv2.VideoCapture backed provider

==============================================================================
"""

from .models import CaptureDevice, StreamConstraints
from .catalog import DeviceCatalog, pick_preferred
from .provider import (
    CaptureNotSupportedError,
    CaptureProvider,
    DeviceBusyError,
    OpenCVCaptureProvider,
    StreamHandle,
)

__all__ = [
    "CaptureDevice",
    "StreamConstraints",
    "DeviceCatalog",
    "pick_preferred",
    "CaptureProvider",
    "StreamHandle",
    "OpenCVCaptureProvider",
    "DeviceBusyError",
    "CaptureNotSupportedError",
]
