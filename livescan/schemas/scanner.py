"""
==============================================================================
Scanner Schemas Module
==============================================================================

Request and response schemas for scanner control and scan history.

==============================================================================
"""

from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from livescan.devices.models import CaptureDevice
from livescan.scanner.models import (
    DecodeResult,
    GateResult,
    HistoryEntry,
    ScannerState,
)


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class StartRequest(BaseModel):
    """Start scanning, optionally on a specific camera."""
    device_id: Optional[str] = Field(default=None, max_length=255)

    @field_validator("device_id")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            v = v.strip()
        return v or None


class SwitchRequest(BaseModel):
    """Move scanning to another camera."""
    device_id: str = Field(..., min_length=1, max_length=255)

    @field_validator("device_id")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Device id cannot be blank")
        return v


class DecodeRequest(BaseModel):
    """Single frame as base64 (plain or data URL)."""
    frame: str = Field(..., min_length=1)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class ScannerStateResponse(BaseModel):
    """Current scanner state."""
    success: bool = True
    state: ScannerState


class DeviceListResponse(BaseModel):
    """Enumerated cameras and the selected one."""
    success: bool = True
    devices: List[CaptureDevice]
    selected_device: Optional[str] = None


class DecodeResponse(BaseModel):
    """Outcome of decoding a submitted frame."""
    success: bool = True
    found: bool
    detection: Optional[DecodeResult] = None
    decision: Optional[GateResult] = None


class HistoryResponse(BaseModel):
    """Scan history, newest first."""
    success: bool = True
    entries: List[HistoryEntry]
    total: int = Field(ge=0)
    cap: int = Field(ge=1)


class RescanResponse(BaseModel):
    """History entry re-delivered to scan subscribers."""
    success: bool = True
    code: str
    entry: HistoryEntry
