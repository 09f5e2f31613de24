"""
==============================================================================
Schemas Package - Pydantic Models
==============================================================================

Request and response schemas using Pydantic for validation.

This package provides:
- Common: Shared response schemas
- Scanner: Scanner control and history schemas

==============================================================================
"""

from .common import MessageResponse
from .scanner import (
    StartRequest,
    SwitchRequest,
    DecodeRequest,
    ScannerStateResponse,
    DeviceListResponse,
    DecodeResponse,
    HistoryResponse,
    RescanResponse,
)

__all__ = [
    # Common
    "MessageResponse",
    # Scanner
    "StartRequest",
    "SwitchRequest",
    "DecodeRequest",
    "ScannerStateResponse",
    "DeviceListResponse",
    "DecodeResponse",
    "HistoryResponse",
    "RescanResponse",
]
