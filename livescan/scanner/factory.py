"""
==============================================================================
Scanner Factory Module
==============================================================================

Wires a ScannerController from Settings.

Any collaborator can be injected; the defaults are the OpenCV capture
provider, the pyzbar decode engine, sounddevice audio and the SQL
key-value store.

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from livescan.config import Settings, get_settings
from livescan.db.database import DatabaseManager
from livescan.db.store import KeyValueStore, SqlKeyValueStore
from livescan.devices.catalog import DeviceCatalog
from livescan.devices.models import StreamConstraints
from livescan.devices.provider import CaptureProvider, OpenCVCaptureProvider
from livescan.services.history_service import ScanHistory

from .controller import ScannerController
from .engine import DecodeEngine
from .feedback import AudioOutput, FeedbackEmitter, SoundDeviceOutput
from .gate import ScanGate
from .preview import PreviewSink


# Module logger
logger = logging.getLogger(__name__)


def build_controller(
    settings: Optional[Settings] = None,
    provider: Optional[CaptureProvider] = None,
    engine: Optional[DecodeEngine] = None,
    store: Optional[KeyValueStore] = None,
    audio_factory: Optional[Callable[[], AudioOutput]] = None
) -> ScannerController:
    """
    Build a ScannerController.

    Args:
        settings: Application settings (cached settings if None)
        provider: Capture provider (OpenCV if None)
        engine: Decode engine (pyzbar if None)
        store: Key-value store for the history (SQL store if None)
        audio_factory: Audio output factory (sounddevice if None)

    Returns:
        Controller in the IDLE phase
    """
    settings = settings or get_settings()

    if provider is None:
        provider = OpenCVCaptureProvider(max_probe_devices=settings.max_probe_devices)

    if engine is None:
        # Imported here: pyzbar loads the native zbar library on import
        from .core import PyzbarDecodeEngine
        engine = PyzbarDecodeEngine(settings.symbologies)

    if store is None:
        store = SqlKeyValueStore(DatabaseManager().session_factory)

    if audio_factory is None:
        audio_factory = lambda: SoundDeviceOutput(gain=settings.tone_gain)  # noqa: E731

    constraints = StreamConstraints(
        facing_mode=settings.facing_mode,
        width=settings.video_width,
        height=settings.video_height,
        aspect_ratio=settings.aspect_ratio
    )

    controller = ScannerController(
        catalog=DeviceCatalog(provider),
        provider=provider,
        engine=engine,
        gate=ScanGate(settings.accepted_lengths, settings.debounce_ms),
        feedback=FeedbackEmitter(
            audio_factory,
            frequency_hz=settings.tone_frequency_hz,
            duration_ms=settings.tone_duration_ms,
            enabled=settings.feedback_enabled
        ),
        history=ScanHistory(store, key=settings.history_key, cap=settings.history_cap),
        sink=PreviewSink(settings.preview_jpeg_quality) if settings.preview_enabled else None,
        constraints=constraints,
        fault_threshold=settings.fault_threshold
    )

    logger.info(
        f"Scanner configured: lengths={settings.accepted_lengths}, "
        f"debounce={settings.debounce_seconds}s, history cap={settings.history_cap}"
    )
    return controller
