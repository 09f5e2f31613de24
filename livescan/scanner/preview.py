"""
==============================================================================
Preview Sink Module
==============================================================================

Renderable sink for the active capture stream.

The capture session attaches the sink when a stream opens and detaches it
on close. The decode loop hands every frame to the sink together with the
symbol found on it and the gate decision, and the sink keeps the latest
frame for preview. Frames are annotated and JPEG encoded lazily, only when
a preview is requested.

Box colors:
  - GREEN: accepted code
  - ORANGE: duplicate suppressed by the debounce window
  - RED: code rejected by length validation

==============================================================================
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Protocol

import cv2
import numpy as np

from .models import DecodeResult, GateResult, RejectReason


# Module logger
logger = logging.getLogger(__name__)


# =============================================================================
# COLOR CONSTANTS (BGR format for OpenCV)
# =============================================================================

class ScannerColors:
    """
    Color constants for detection visualization.

    All colors are in BGR format (OpenCV standard).
    """

    GREEN = (0, 255, 0)
    RED = (0, 0, 255)
    ORANGE = (0, 165, 255)

    TEXT_BLACK = (0, 0, 0)
    TEXT_WHITE = (255, 255, 255)


class FrameSink(Protocol):
    """Consumer of the frames of an open stream."""

    def attach(self, device_id: str) -> None:
        ...

    def render(
        self,
        frame: np.ndarray,
        detection: Optional[DecodeResult] = None,
        decision: Optional[GateResult] = None
    ) -> None:
        ...

    def detach(self) -> None:
        ...


class PreviewSink:
    """
    Keeps the latest frame of the attached stream for preview.

    Example:
        >>> sink = PreviewSink()
        >>> sink.attach("0")
        >>> sink.render(frame, detection, decision)
        >>> jpeg = sink.latest_jpeg()
    """

    def __init__(self, jpeg_quality: int = 70) -> None:
        self._jpeg_quality = jpeg_quality
        self._lock = threading.Lock()
        self._device_id: Optional[str] = None
        self._frame: Optional[np.ndarray] = None
        self._detection: Optional[DecodeResult] = None
        self._decision: Optional[GateResult] = None

    @property
    def device_id(self) -> Optional[str]:
        """Device currently attached, if any."""
        return self._device_id

    def attach(self, device_id: str) -> None:
        with self._lock:
            self._device_id = device_id
            self._frame = None
            self._detection = None
            self._decision = None
        logger.debug(f"Preview attached to camera {device_id}")

    def render(
        self,
        frame: np.ndarray,
        detection: Optional[DecodeResult] = None,
        decision: Optional[GateResult] = None
    ) -> None:
        with self._lock:
            if self._device_id is None:
                return
            self._frame = frame
            self._detection = detection
            self._decision = decision

    def detach(self) -> None:
        with self._lock:
            device_id = self._device_id
            self._device_id = None
            self._frame = None
            self._detection = None
            self._decision = None
        if device_id is not None:
            logger.debug(f"Preview detached from camera {device_id}")

    def latest_jpeg(self) -> Optional[bytes]:
        """
        Annotated JPEG of the latest frame.

        Returns:
            JPEG bytes, or None when nothing is attached or no frame arrived
        """
        with self._lock:
            if self._frame is None:
                return None
            frame = self._frame.copy()
            detection = self._detection
            decision = self._decision

        if detection is not None and detection.rect is not None:
            label, color = self._describe(detection, decision)
            self._draw_colored_box(frame, detection.rect, label, color)

        ok, buffer = cv2.imencode(
            ".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self._jpeg_quality]
        )
        if not ok:
            logger.warning("Preview frame could not be encoded")
            return None
        return buffer.tobytes()

    @staticmethod
    def _describe(detection: DecodeResult, decision: Optional[GateResult]):
        # Hershey fonts are ASCII only
        if decision is None or decision.accepted:
            return f"OK {decision.code if decision else detection.text}", ScannerColors.GREEN
        if decision.reason == RejectReason.DUPLICATE:
            return f"SEEN {decision.code}", ScannerColors.ORANGE
        return "INVALID LENGTH", ScannerColors.RED

    @staticmethod
    def _draw_colored_box(
        frame: np.ndarray,
        rect,
        label: str,
        color: tuple,
        thickness: int = 3
    ) -> None:
        """
        Draw a colored bounding box with label on the frame.

        Args:
            frame: OpenCV image to draw on
            rect: (left, top, width, height) of the symbol
            label: Text label to display
            color: BGR color tuple (e.g., ScannerColors.GREEN)
            thickness: Line thickness for the box
        """
        x, y, w, h = rect

        cv2.rectangle(frame, (x, y), (x + w, y + h), color, thickness)

        font = cv2.FONT_HERSHEY_SIMPLEX
        font_scale = 0.6
        font_thickness = 2

        label_size, _ = cv2.getTextSize(label, font, font_scale, font_thickness)

        # Label above the box when it fits, below otherwise
        label_y = y - 10 if y - 10 > label_size[1] else y + h + label_size[1] + 10
        cv2.rectangle(
            frame,
            (x, label_y - label_size[1] - 5),
            (x + label_size[0] + 10, label_y + 5),
            color,
            -1
        )

        text_color = ScannerColors.TEXT_BLACK if color == ScannerColors.GREEN else ScannerColors.TEXT_WHITE
        cv2.putText(frame, label, (x + 5, label_y), font, font_scale, text_color, font_thickness)
