"""
==============================================================================
Capture Session Module
==============================================================================

Lifecycle of one video stream bound to one device.

Guarantees:
-----------
- close() is idempotent and safe on a session that never opened
- close() stops the hardware stream and detaches the sink on every path
- close() during an in-flight open() releases the stream as soon as the
  open completes; open() then raises SessionCancelled, also when the
  open failed
- open() with the device already open returns the existing handle; a
  different device closes the current stream first

Failure classification:
----------------------
    PermissionError           -> permission (unrecoverable)
    DeviceBusyError           -> camera_unavailable (retry: reopen)
    CaptureNotSupportedError  -> unsupported (unrecoverable)
    anything else             -> camera_unavailable (retry: reopen)

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from livescan.core import exceptions
from livescan.devices.models import StreamConstraints
from livescan.devices.provider import (
    CaptureNotSupportedError,
    CaptureProvider,
    DeviceBusyError,
    StreamHandle,
)

from .preview import FrameSink


# Module logger
logger = logging.getLogger(__name__)


class SessionCancelled(Exception):
    """The session was closed while its stream was being opened."""


class CaptureSession:
    """
    Owner of a single capture stream.

    Attributes:
        handle: Open stream handle, or None
        device_id: Device of the open stream, or None

    Example:
        >>> async with CaptureSession(provider, sink) as session:
        ...     handle = await session.open("0")
        ...     frame = handle.read()
        >>> # stream released here
    """

    def __init__(
        self,
        provider: CaptureProvider,
        sink: Optional[FrameSink] = None,
        constraints: Optional[StreamConstraints] = None
    ) -> None:
        self._provider = provider
        self._sink = sink
        self._constraints = constraints or StreamConstraints()
        self._handle: Optional[StreamHandle] = None
        self._device_id: Optional[str] = None
        # Bumped by close(); an open that finishes under a newer generation is stale
        self._generation = 0

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def handle(self) -> Optional[StreamHandle]:
        return self._handle

    @property
    def device_id(self) -> Optional[str]:
        return self._device_id

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def open(
        self,
        device_id: Optional[str] = None,
        constraints: Optional[StreamConstraints] = None
    ) -> StreamHandle:
        """
        Open a stream on the device.

        Args:
            device_id: Exact device to open (provider default if None)
            constraints: Stream constraints (session defaults if None)

        Returns:
            Frame-producing stream handle

        Raises:
            ScannerError: Classified open failure
            SessionCancelled: close() was called before the open completed
        """
        if self._handle is not None:
            if device_id is None or device_id == self._device_id:
                logger.debug(f"Camera {self._device_id} already open")
                return self._handle
            await self.close()

        constraints = (constraints or self._constraints).for_device(device_id)
        generation = self._generation

        logger.info(f"📷 Opening camera {device_id or '(default)'}")
        pending = asyncio.ensure_future(
            asyncio.to_thread(self._provider.open_stream, device_id, constraints)
        )

        try:
            handle = await asyncio.shield(pending)
        except asyncio.CancelledError:
            # The worker thread keeps running; release whatever it acquires
            pending.add_done_callback(self._release_orphan)
            raise
        except Exception as e:
            if generation != self._generation:
                logger.info(f"🛑 Session closed during open, dropping failure: {e}")
                raise SessionCancelled(f"Session closed while opening camera {device_id}") from e
            raise self._classify(device_id, e) from e

        if generation != self._generation:
            logger.info(f"🛑 Session closed during open, releasing camera {handle.device_id}")
            await self._release(handle)
            raise SessionCancelled(f"Session closed while opening camera {handle.device_id}")

        self._handle = handle
        self._device_id = device_id or handle.device_id

        if self._sink is not None:
            self._sink.attach(self._device_id)

        logger.info(f"✅ Camera {self._device_id} streaming")
        return handle

    @staticmethod
    def _classify(device_id: Optional[str], error: Exception) -> exceptions.ScannerError:
        if isinstance(error, PermissionError):
            logger.warning(f"Camera permission denied: {error}")
            return exceptions.permission_denied()
        if isinstance(error, DeviceBusyError):
            logger.warning(f"Camera busy: {error}")
            return exceptions.camera_busy(device_id)
        if isinstance(error, CaptureNotSupportedError):
            logger.error(f"Capture not supported: {error}")
            return exceptions.unsupported(str(error))
        logger.error(f"Camera open failed: {error}")
        return exceptions.camera_unavailable(device_id, str(error))

    async def close(self) -> None:
        """Release the stream; safe to call any number of times."""
        self._generation += 1
        handle, self._handle = self._handle, None
        device_id, self._device_id = self._device_id, None

        try:
            if handle is not None:
                await self._release(handle)
                logger.info(f"🛑 Camera {device_id} closed")
        finally:
            if self._sink is not None:
                self._sink.detach()

    async def __aenter__(self) -> "CaptureSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _release(self, handle: StreamHandle) -> None:
        try:
            await asyncio.shield(asyncio.to_thread(self._provider.close_stream, handle))
        except Exception as e:
            logger.error(f"Failed to release camera {handle.device_id}: {e}")

    def _release_orphan(self, future: "asyncio.Future") -> None:
        if future.cancelled() or future.exception() is not None:
            return
        handle = future.result()
        logger.info(f"Releasing camera {handle.device_id} opened after cancellation")
        try:
            self._provider.close_stream(handle)
        except Exception as e:
            logger.error(f"Failed to release camera {handle.device_id}: {e}")
