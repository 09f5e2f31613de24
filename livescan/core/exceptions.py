"""
Application Exception Handling

AppException for service-level errors and ScannerError for capture and
decode failures, with FastAPI integration.
"""

import enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict


class AppException(Exception):
    """
    Unified application exception.

    Provides a consistent error response format across the API.

    Usage:
        raise AppException("Scanner is not running", "INVALID_STATE", 409)
        raise AppException("No entry at index 3", "HISTORY_ENTRY_NOT_FOUND", 404, {"index": 3})

    Error Codes:
        Scanner:
            - PERMISSION (403)
            - CAMERA_UNAVAILABLE (503)
            - DECODE_FAILURE (500)
            - UNSUPPORTED (501)

        Controller:
            - INVALID_STATE (409)

        History:
            - HISTORY_ENTRY_NOT_FOUND (404)

        General:
            - INVALID_FRAME (400)
            - INTERNAL_ERROR (500)
    """

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (e.g., "INVALID_STATE")
            status_code: HTTP status code (default: 400)
            details: Additional error context (optional)
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        error_dict = {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "timestamp": self.timestamp
            }
        }

        if self.details:
            error_dict["error"]["details"] = self.details

        return error_dict


# ============================================
# SCANNER ERRORS
# ============================================

class ErrorKind(str, enum.Enum):
    """
    Scanner failure taxonomy.

    - PERMISSION: camera access denied, needs a settings change
    - CAMERA_UNAVAILABLE: device busy or unreadable, retryable
    - DECODE_FAILURE: sustained decoder faults, retry restarts the session
    - UNSUPPORTED: platform lacks a required capability
    - VALIDATION_FAILURE: code rejected by the gate, never surfaced as a fault
    """

    PERMISSION = "permission"
    CAMERA_UNAVAILABLE = "camera_unavailable"
    DECODE_FAILURE = "decode_failure"
    UNSUPPORTED = "unsupported"
    VALIDATION_FAILURE = "validation_failure"

    def __str__(self) -> str:
        return self.value


class RetryKind(str, enum.Enum):
    """What the controller does when a retry is requested."""

    REOPEN = "reopen"
    RESTART_SESSION = "restart_session"

    def __str__(self) -> str:
        return self.value


class RetryAction(BaseModel):
    """Tagged retry instruction carried by recoverable errors."""

    model_config = ConfigDict(frozen=True)

    kind: RetryKind
    device_id: Optional[str] = None


class ScannerErrorInfo(BaseModel):
    """Immutable snapshot of a ScannerError for state consumers."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    recoverable: bool
    retry_action: Optional[RetryAction] = None


_STATUS_BY_KIND = {
    ErrorKind.PERMISSION: 403,
    ErrorKind.CAMERA_UNAVAILABLE: 503,
    ErrorKind.DECODE_FAILURE: 500,
    ErrorKind.UNSUPPORTED: 501,
    ErrorKind.VALIDATION_FAILURE: 422,
}


class ScannerError(AppException):
    """
    Capture or decode failure raised by the scanning pipeline.

    Attributes:
        kind: ErrorKind classification
        recoverable: Whether retry() may resolve the failure
        retry_action: Tagged retry instruction (None when unrecoverable)
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        recoverable: bool,
        retry_action: Optional[RetryAction] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.kind = kind
        self.recoverable = recoverable
        self.retry_action = retry_action if recoverable else None
        super().__init__(
            message,
            kind.value.upper(),
            _STATUS_BY_KIND[kind],
            details
        )

    @classmethod
    def from_info(cls, info: ScannerErrorInfo) -> "ScannerError":
        """Rebuild a raisable error from a state snapshot."""
        return cls(info.kind, info.message, info.recoverable, info.retry_action)

    def to_info(self) -> ScannerErrorInfo:
        """Snapshot for ScannerState."""
        return ScannerErrorInfo(
            kind=self.kind,
            message=self.message,
            recoverable=self.recoverable,
            retry_action=self.retry_action
        )

    def to_dict(self) -> Dict[str, Any]:
        error_dict = super().to_dict()
        error_dict["error"]["recoverable"] = self.recoverable
        if self.retry_action:
            error_dict["error"]["retry_action"] = self.retry_action.model_dump(mode="json")
        return error_dict


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    FastAPI exception handler for AppException.

    Converts AppException (and ScannerError) to a JSON error response.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)


# ============================================
# CONVENIENCE FACTORY FUNCTIONS
# ============================================

def permission_denied() -> ScannerError:
    """Camera access was refused by the operating system."""
    return ScannerError(
        ErrorKind.PERMISSION,
        "Camera access was denied. Enable it in the system settings.",
        recoverable=False
    )


def camera_busy(device_id: Optional[str]) -> ScannerError:
    """Camera is held by another process or unreadable."""
    return ScannerError(
        ErrorKind.CAMERA_UNAVAILABLE,
        "Camera is in use by another application.",
        recoverable=True,
        retry_action=RetryAction(kind=RetryKind.REOPEN, device_id=device_id),
        details={"device_id": device_id} if device_id else None
    )


def camera_unavailable(device_id: Optional[str], reason: str = "") -> ScannerError:
    """Camera could not be opened for any other reason."""
    details: Dict[str, Any] = {}
    if device_id:
        details["device_id"] = device_id
    if reason:
        details["reason"] = reason
    return ScannerError(
        ErrorKind.CAMERA_UNAVAILABLE,
        "Could not access the camera.",
        recoverable=True,
        retry_action=RetryAction(kind=RetryKind.REOPEN, device_id=device_id),
        details=details
    )


def decode_failure(device_id: Optional[str], faults: int) -> ScannerError:
    """Decoder kept faulting on consecutive frames."""
    return ScannerError(
        ErrorKind.DECODE_FAILURE,
        f"Decoding failed on {faults} consecutive frames.",
        recoverable=True,
        retry_action=RetryAction(kind=RetryKind.RESTART_SESSION, device_id=device_id),
        details={"consecutive_faults": faults}
    )


def unsupported(reason: str) -> ScannerError:
    """Platform lacks video capture support."""
    return ScannerError(
        ErrorKind.UNSUPPORTED,
        f"Video capture is not supported on this platform: {reason}",
        recoverable=False
    )


def invalid_state(current: str, action: str) -> AppException:
    """Controller cannot perform the action in its current phase."""
    return AppException(
        f"Cannot {action} while scanner is {current}",
        "INVALID_STATE",
        409,
        {"current_phase": current, "action": action}
    )


def history_entry_not_found(index: int) -> AppException:
    """History has no entry at the given index."""
    return AppException(
        f"No history entry at index {index}",
        "HISTORY_ENTRY_NOT_FOUND",
        404,
        {"index": index}
    )


def invalid_frame() -> AppException:
    """Submitted frame could not be decoded as an image."""
    return AppException("Frame is not a readable image", "INVALID_FRAME", 400)
