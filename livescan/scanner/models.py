"""
==============================================================================
Scanner Models Module
==============================================================================

Pydantic models shared by the scanning pipeline.

- ScannerPhase / ScannerState: controller state snapshot
- DecodeResult: one symbol found by the decode engine
- ScanEvent: candidate scan handed to the gate
- GateResult / RejectReason: gate decision
- HistoryEntry: persisted accepted scan

==============================================================================
"""

import enum
from datetime import datetime, timezone
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from livescan.core.exceptions import ScannerErrorInfo
from livescan.devices.models import CaptureDevice


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


class ScannerPhase(str, enum.Enum):
    """
    Controller lifecycle phase.

    IDLE -> INITIALIZING -> READY -> SCANNING <-> ERROR (recoverable)
    Any phase -> STOPPED via stop().
    """

    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"
    SCANNING = "scanning"
    ERROR = "error"
    STOPPED = "stopped"

    def __str__(self) -> str:
        return self.value


class ScannerState(BaseModel):
    """
    Snapshot of the scanner published to subscribers.

    Only ScannerController creates new snapshots.
    """

    model_config = ConfigDict(frozen=True)

    phase: ScannerPhase = ScannerPhase.IDLE
    initialized: bool = False
    scanning: bool = False
    permission_granted: Optional[bool] = None
    selected_device: Optional[str] = None
    available_devices: Tuple[CaptureDevice, ...] = ()
    last_accepted_code: Optional[str] = None
    current_error: Optional[ScannerErrorInfo] = None

    def check_invariants(self) -> None:
        """
        Validate the snapshot.

        Scanning requires an initialized scanner and at most a recoverable error.

        Raises:
            ValueError: If the snapshot is inconsistent
        """
        if not self.scanning:
            return
        if not self.initialized:
            raise ValueError("Scanner cannot be scanning before initialization")
        if self.current_error is not None and not self.current_error.recoverable:
            raise ValueError("Scanner cannot be scanning with an unrecoverable error")


class DecodeResult(BaseModel):
    """Symbol reported by the decode engine."""

    model_config = ConfigDict(frozen=True)

    text: str
    symbology: str
    rect: Optional[Tuple[int, int, int, int]] = None


class ScanEvent(BaseModel):
    """Candidate scan produced by the decode loop."""

    model_config = ConfigDict(frozen=True)

    raw_text: str
    normalized_code: str
    symbology: str
    observed_at: datetime = Field(default_factory=utc_now)


class RejectReason(str, enum.Enum):
    """Why the gate refused a candidate."""

    VALIDATION_FAILURE = "validation_failure"
    DUPLICATE = "duplicate"

    def __str__(self) -> str:
        return self.value


class GateResult(BaseModel):
    """Gate decision for one candidate."""

    model_config = ConfigDict(frozen=True)

    accepted: bool
    code: str
    reason: Optional[RejectReason] = None
    message: Optional[str] = None


class HistoryEntry(BaseModel):
    """Accepted scan kept in the history."""

    model_config = ConfigDict(frozen=True)

    code: str
    symbology: str
    observed_at: datetime

    @classmethod
    def from_event(cls, event: ScanEvent) -> "HistoryEntry":
        return cls(
            code=event.normalized_code,
            symbology=event.symbology,
            observed_at=event.observed_at
        )
