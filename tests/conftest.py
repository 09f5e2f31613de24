"""
==============================================================================
Pytest Configuration and Fixtures
==============================================================================

Provides fake collaborators for the scanner (capture provider, decode
engine, key-value store, audio output), controller and client fixtures.

==============================================================================
"""

import os

# Settings are read once; point them at in-memory resources before import
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("FEEDBACK_ENABLED", "false")

import asyncio
import threading
import time
from collections import deque
from typing import Callable, Dict, Generator, List, Optional

import numpy as np
import pytest
from fastapi.testclient import TestClient

from livescan.devices.catalog import DeviceCatalog
from livescan.devices.provider import DeviceBusyError
from livescan.scanner.controller import ScannerController
from livescan.scanner.engine import DecodeEngineFault
from livescan.scanner.feedback import FeedbackEmitter
from livescan.scanner.gate import ScanGate
from livescan.scanner.models import DecodeResult
from livescan.services.history_service import ScanHistory


# ============================================================================
# FAKE COLLABORATORS
# ============================================================================

class FakeHandle:
    """Stream handle producing blank frames."""

    def __init__(self, device_id: str, unreadable: bool = False):
        self.device_id = device_id
        self.unreadable = unreadable
        self.released = False
        self._frame = np.zeros((48, 64, 3), dtype=np.uint8)

    def read(self) -> Optional[np.ndarray]:
        time.sleep(0.002)
        if self.released or self.unreadable:
            return None
        return self._frame

    def release(self) -> None:
        self.released = True


class FakeCaptureProvider:
    """
    In-memory capture provider.

    Attributes:
        failures: Exception to raise per device id ("*" for every device)
        gate: When set, open_stream blocks until the event is set
        close_gate: When set, close_stream blocks until the event is set
        calls: ("open" | "close", device_id) in call order
    """

    def __init__(self, devices: Optional[List[Dict[str, str]]] = None):
        self.devices = devices if devices is not None else [
            {"id": "cam1", "label": "Front Camera"},
            {"id": "cam2", "label": "Back Camera"},
        ]
        self.list_error: Optional[Exception] = None
        self.failures: Dict[str, Exception] = {}
        self.gate: Optional[threading.Event] = None
        self.open_started = threading.Event()
        self.close_gate: Optional[threading.Event] = None
        self.close_started = threading.Event()
        self.unreadable = False
        self.calls: List[tuple] = []
        self.opened: List[FakeHandle] = []
        self.closed: List[FakeHandle] = []
        self._lock = threading.Lock()

    def list_devices(self) -> List[Dict[str, str]]:
        if self.list_error is not None:
            raise self.list_error
        return [dict(device) for device in self.devices]

    def open_stream(self, device_id, constraints) -> FakeHandle:
        self.open_started.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)

        device_id = device_id or "default"
        with self._lock:
            self.calls.append(("open", device_id))

        error = self.failures.get(device_id) or self.failures.get("*")
        if error is not None:
            raise error

        handle = FakeHandle(device_id, unreadable=self.unreadable)
        with self._lock:
            self.opened.append(handle)
        return handle

    def close_stream(self, handle: FakeHandle) -> None:
        self.close_started.set()
        if self.close_gate is not None:
            self.close_gate.wait(timeout=5)

        with self._lock:
            self.calls.append(("close", handle.device_id))
            self.closed.append(handle)
        handle.release()

    @property
    def active(self) -> List[FakeHandle]:
        """Handles opened and not yet closed."""
        return [handle for handle in self.opened if not handle.released]


class FakeDecodeEngine:
    """Decode engine returning scripted results, then nothing."""

    def __init__(self):
        self.script = deque()
        self.faulty = False
        self.calls = 0

    def push(self, *items) -> None:
        """Queue DecodeResult, None or exception items."""
        self.script.extend(items)

    def push_text(self, *texts: str, symbology: str = "EAN13") -> None:
        self.push(*(DecodeResult(text=text, symbology=symbology, rect=(2, 2, 20, 10)) for text in texts))

    def try_decode(self, frame):
        self.calls += 1
        if self.faulty:
            raise DecodeEngineFault("Malformed frame")
        if not self.script:
            return None
        item = self.script.popleft()
        if isinstance(item, Exception):
            raise item
        return item


class MemoryStore:
    """Dict backed key-value store."""

    def __init__(self):
        self.data: Dict[str, bytes] = {}
        self.fail_writes = False
        self.writes = 0

    def get(self, key: str) -> Optional[bytes]:
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        if self.fail_writes:
            raise IOError("Store is read-only")
        self.writes += 1
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class RecordingAudioOutput:
    """Audio output recording played tones."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.tones: List[tuple] = []
        self.closed = False

    def play_tone(self, frequency_hz: float, duration_ms: int) -> None:
        if self.fail:
            raise RuntimeError("No audio device")
        self.tones.append((frequency_hz, duration_ms))

    def close(self) -> None:
        self.closed = True


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


# ============================================================================
# COLLABORATOR FIXTURES
# ============================================================================

@pytest.fixture
def provider() -> FakeCaptureProvider:
    return FakeCaptureProvider()


@pytest.fixture
def make_handle():
    """Factory for fake stream handles."""
    return FakeHandle


@pytest.fixture
def engine() -> FakeDecodeEngine:
    return FakeDecodeEngine()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def audio() -> RecordingAudioOutput:
    return RecordingAudioOutput()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def busy_error() -> DeviceBusyError:
    return DeviceBusyError("Device or resource busy")


@pytest.fixture
def wait_until() -> Callable:
    """Async helper polling a predicate until it holds."""

    async def _wait_until(predicate: Callable[[], bool], timeout: float = 3.0) -> None:
        deadline = time.monotonic() + timeout
        while not predicate():
            if time.monotonic() > deadline:
                raise AssertionError("Condition not met in time")
            await asyncio.sleep(0.005)

    return _wait_until


# ============================================================================
# CONTROLLER FIXTURES
# ============================================================================

@pytest.fixture
def make_controller(provider, engine, store, audio, clock) -> Callable[..., ScannerController]:
    """Factory building a controller over the fake collaborators."""

    def _make(
        fault_threshold: int = 30,
        sink=None,
        cap: int = 50,
        on_error=None
    ) -> ScannerController:
        return ScannerController(
            catalog=DeviceCatalog(provider),
            provider=provider,
            engine=engine,
            gate=ScanGate({6, 9}, debounce_ms=800, clock=clock),
            feedback=FeedbackEmitter(lambda: audio),
            history=ScanHistory(store, cap=cap),
            sink=sink,
            fault_threshold=fault_threshold,
            on_error=on_error
        )

    return _make


@pytest.fixture
def controller(make_controller) -> ScannerController:
    return make_controller()


# ============================================================================
# CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def client(make_controller) -> Generator[TestClient, None, None]:
    """Test client whose lifespan builds a controller over the fakes."""
    from livescan.main import Application

    application = Application(controller_factory=make_controller)

    with TestClient(application.app) as test_client:
        yield test_client
