"""
==============================================================================
Scanner Endpoints
==============================================================================

Scanner lifecycle control, device selection, preview and single-frame
decoding.

Lifecycle calls return the resulting state. When the call leaves the
scanner in an error, the error is raised so the response carries its
status code (403 permission, 503 camera unavailable, ...) and retry action.

==============================================================================
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response

from livescan.core import exceptions
from livescan.core.dependencies import get_controller
from livescan.core.exceptions import AppException, ScannerError
from livescan.scanner.controller import ScannerController
from livescan.scanner.models import ScannerPhase, ScannerState
from livescan.scanner.preview import PreviewSink
from livescan.schemas.scanner import (
    DecodeRequest,
    DecodeResponse,
    DeviceListResponse,
    ScannerStateResponse,
    StartRequest,
    SwitchRequest,
)
from livescan.utils.frames import decode_base64_frame


router = APIRouter(prefix="/scanner", tags=["Scanner"])


class ScannerAPIController:
    """Controller for scanner operations."""

    def __init__(self, controller: ScannerController):
        self._controller = controller

    @staticmethod
    def _respond(state: ScannerState) -> ScannerStateResponse:
        """Raise the published error, if any, else wrap the state."""
        if state.phase == ScannerPhase.ERROR and state.current_error is not None:
            raise ScannerError.from_info(state.current_error)
        return ScannerStateResponse(state=state)

    def state(self) -> ScannerStateResponse:
        return ScannerStateResponse(state=self._controller.state)

    async def devices(self) -> DeviceListResponse:
        """Re-enumerate cameras."""
        state = await self._controller.initialize()
        return DeviceListResponse(
            devices=list(state.available_devices),
            selected_device=state.selected_device
        )

    async def start(self, data: StartRequest) -> ScannerStateResponse:
        return self._respond(await self._controller.start(data.device_id))

    async def stop(self) -> ScannerStateResponse:
        return ScannerStateResponse(state=await self._controller.stop())

    async def switch(self, data: SwitchRequest) -> ScannerStateResponse:
        return self._respond(await self._controller.switch_device(data.device_id))

    async def retry(self) -> ScannerStateResponse:
        return self._respond(await self._controller.retry())

    def clear_last(self) -> ScannerStateResponse:
        return ScannerStateResponse(state=self._controller.clear_last_scan())

    async def decode(self, data: DecodeRequest) -> DecodeResponse:
        """Decode one submitted frame through the live gate."""
        frame = decode_base64_frame(data.frame)
        if frame is None:
            raise exceptions.invalid_frame()

        detection, decision = await self._controller.submit_frame(frame)
        return DecodeResponse(
            found=detection is not None,
            detection=detection,
            decision=decision
        )

    def preview(self) -> Response:
        """Latest annotated frame as JPEG."""
        sink = self._controller.sink
        jpeg = sink.latest_jpeg() if isinstance(sink, PreviewSink) else None
        if jpeg is None:
            raise AppException("No preview frame available", "PREVIEW_UNAVAILABLE", 404)
        return Response(content=jpeg, media_type="image/jpeg", headers={"Cache-Control": "no-store"})


# =============================================================================
# ROUTES
# =============================================================================

@router.get("/state", response_model=ScannerStateResponse)
async def get_state(controller: ScannerController = Depends(get_controller)):
    """Current scanner state snapshot."""
    return ScannerAPIController(controller).state()


@router.get("/devices", response_model=DeviceListResponse)
async def list_devices(controller: ScannerController = Depends(get_controller)):
    """Enumerate cameras; rear-facing cameras are preferred by default."""
    return await ScannerAPIController(controller).devices()


@router.post("/start", response_model=ScannerStateResponse)
async def start_scanning(
    data: Optional[StartRequest] = None,
    controller: ScannerController = Depends(get_controller)
):
    """Start scanning on the requested, selected or preferred camera."""
    return await ScannerAPIController(controller).start(data or StartRequest())


@router.post("/stop", response_model=ScannerStateResponse)
async def stop_scanning(controller: ScannerController = Depends(get_controller)):
    """Stop scanning and release the camera. Idempotent."""
    return await ScannerAPIController(controller).stop()


@router.post("/switch", response_model=ScannerStateResponse)
async def switch_device(
    data: SwitchRequest,
    controller: ScannerController = Depends(get_controller)
):
    """Switch to another camera."""
    return await ScannerAPIController(controller).switch(data)


@router.post("/retry", response_model=ScannerStateResponse)
async def retry(controller: ScannerController = Depends(get_controller)):
    """Retry after a recoverable error."""
    return await ScannerAPIController(controller).retry()


@router.post("/clear-last", response_model=ScannerStateResponse)
async def clear_last_scan(controller: ScannerController = Depends(get_controller)):
    """Forget the last accepted code."""
    return ScannerAPIController(controller).clear_last()


@router.post("/decode", response_model=DecodeResponse)
async def decode_frame(
    data: DecodeRequest,
    controller: ScannerController = Depends(get_controller)
):
    """Decode a single base64 frame; accepted codes are delivered like live scans."""
    return await ScannerAPIController(controller).decode(data)


@router.get("/preview")
async def preview(controller: ScannerController = Depends(get_controller)):
    """Latest frame of the live stream with the detection drawn on it."""
    return ScannerAPIController(controller).preview()
