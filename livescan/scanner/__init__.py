"""
==============================================================================
Scanner Package - Continuous Barcode Scanning
==============================================================================

Camera frames in, validated codes out, exactly once per physical scan.

Pipeline:
---------
    DeviceCatalog -> CaptureSession -> DecodeLoop -> ScanGate
        -> ScanHistory -> FeedbackEmitter -> scan subscribers

Classes:
--------
- ScannerController: State machine and facade
- CaptureSession: One open camera stream
- DecodeLoop: Frame-by-frame decoding
- ScanGate: Length validation and debounce
- FeedbackEmitter: Confirmation tone
- PreviewSink: Latest annotated frame

Not imported here:
- `livescan.scanner.core`: pyzbar needs the native zbar library on import
- `livescan.scanner.factory`: depends on the services layer, which
  depends on these models

==============================================================================
"""

from .models import (
    DecodeResult,
    GateResult,
    HistoryEntry,
    RejectReason,
    ScanEvent,
    ScannerPhase,
    ScannerState,
)
from .engine import DecodeEngine, DecodeEngineFault
from .gate import ScanGate
from .feedback import AudioOutput, FeedbackEmitter, SoundDeviceOutput
from .preview import FrameSink, PreviewSink
from .session import CaptureSession, SessionCancelled
from .loop import DecodeLoop
from .controller import ScannerController

__all__ = [
    "DecodeResult",
    "GateResult",
    "HistoryEntry",
    "RejectReason",
    "ScanEvent",
    "ScannerPhase",
    "ScannerState",
    "DecodeEngine",
    "DecodeEngineFault",
    "ScanGate",
    "AudioOutput",
    "FeedbackEmitter",
    "SoundDeviceOutput",
    "FrameSink",
    "PreviewSink",
    "CaptureSession",
    "SessionCancelled",
    "DecodeLoop",
    "ScannerController",
]
