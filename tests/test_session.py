"""
==============================================================================
Capture Session Tests
==============================================================================
"""

import asyncio
import threading

import pytest

from livescan.core.exceptions import ErrorKind, RetryKind, ScannerError
from livescan.devices.provider import CaptureNotSupportedError
from livescan.scanner.session import CaptureSession, SessionCancelled


class RecordingSink:
    """Frame sink recording attach/detach calls."""

    def __init__(self):
        self.events = []

    def attach(self, device_id):
        self.events.append(("attach", device_id))

    def render(self, frame, detection=None, decision=None):
        self.events.append(("render", None))

    def detach(self):
        self.events.append(("detach", None))


class TestCaptureSessionLifecycle:
    """Tests for open/close."""

    @pytest.mark.asyncio
    async def test_open_and_close(self, provider):
        sink = RecordingSink()
        session = CaptureSession(provider, sink)

        handle = await session.open("cam1")
        assert session.is_open
        assert session.device_id == "cam1"
        assert handle is session.handle
        assert sink.events == [("attach", "cam1")]

        await session.close()
        assert not session.is_open
        assert session.device_id is None
        assert handle.released
        assert provider.calls == [("open", "cam1"), ("close", "cam1")]
        assert sink.events[-1] == ("detach", None)

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, provider):
        session = CaptureSession(provider)
        await session.open("cam1")
        await session.close()
        await session.close()
        assert provider.calls.count(("close", "cam1")) == 1

    @pytest.mark.asyncio
    async def test_close_never_opened(self, provider):
        sink = RecordingSink()
        session = CaptureSession(provider, sink)
        await session.close()
        assert provider.calls == []
        assert sink.events == [("detach", None)]

    @pytest.mark.asyncio
    async def test_open_same_device_reuses_stream(self, provider):
        session = CaptureSession(provider)
        first = await session.open("cam1")
        again = await session.open("cam1")
        default = await session.open(None)
        assert first is again is default
        assert provider.calls == [("open", "cam1")]
        await session.close()

    @pytest.mark.asyncio
    async def test_open_other_device_closes_first(self, provider):
        session = CaptureSession(provider)
        first = await session.open("cam1")
        second = await session.open("cam2")
        assert first.released
        assert not second.released
        assert provider.calls == [("open", "cam1"), ("close", "cam1"), ("open", "cam2")]
        await session.close()

    @pytest.mark.asyncio
    async def test_context_manager_releases(self, provider):
        async with CaptureSession(provider) as session:
            handle = await session.open("cam1")
        assert handle.released
        assert provider.active == []

    @pytest.mark.asyncio
    async def test_constraints_pinned_to_device(self, provider):
        seen = []
        original = provider.open_stream

        def recording_open(device_id, constraints):
            seen.append(constraints)
            return original(device_id, constraints)

        provider.open_stream = recording_open
        session = CaptureSession(provider)
        await session.open("cam2")
        assert seen[0].device_id == "cam2"
        assert seen[0].width == 1280
        await session.close()


class TestCaptureSessionFailures:
    """Tests for failure classification."""

    @pytest.mark.asyncio
    async def test_permission_denied(self, provider):
        provider.failures["cam1"] = PermissionError("denied")
        session = CaptureSession(provider)

        with pytest.raises(ScannerError) as exc_info:
            await session.open("cam1")

        error = exc_info.value
        assert error.kind == ErrorKind.PERMISSION
        assert not error.recoverable
        assert error.retry_action is None
        assert error.status_code == 403
        assert not session.is_open

    @pytest.mark.asyncio
    async def test_device_busy(self, provider, busy_error):
        provider.failures["cam1"] = busy_error

        with pytest.raises(ScannerError) as exc_info:
            await CaptureSession(provider).open("cam1")

        error = exc_info.value
        assert error.kind == ErrorKind.CAMERA_UNAVAILABLE
        assert error.recoverable
        assert error.retry_action.kind == RetryKind.REOPEN
        assert error.retry_action.device_id == "cam1"

    @pytest.mark.asyncio
    async def test_other_failure(self, provider):
        provider.failures["cam1"] = RuntimeError("driver crashed")

        with pytest.raises(ScannerError) as exc_info:
            await CaptureSession(provider).open("cam1")

        error = exc_info.value
        assert error.kind == ErrorKind.CAMERA_UNAVAILABLE
        assert error.recoverable
        assert error.details["reason"] == "driver crashed"

    @pytest.mark.asyncio
    async def test_unsupported(self, provider):
        provider.failures["*"] = CaptureNotSupportedError("no video backend")

        with pytest.raises(ScannerError) as exc_info:
            await CaptureSession(provider).open("cam1")

        assert exc_info.value.kind == ErrorKind.UNSUPPORTED
        assert not exc_info.value.recoverable


class TestCaptureSessionCancellation:
    """Tests for close() racing an in-flight open()."""

    @pytest.mark.asyncio
    async def test_close_during_open_releases_stream(self, provider, wait_until):
        provider.gate = threading.Event()
        sink = RecordingSink()
        session = CaptureSession(provider, sink)

        opening = asyncio.create_task(session.open("cam1"))
        await wait_until(provider.open_started.is_set)

        await session.close()
        provider.gate.set()

        with pytest.raises(SessionCancelled):
            await opening

        assert len(provider.opened) == 1
        assert provider.closed == provider.opened
        assert provider.active == []
        assert not session.is_open
        assert ("attach", "cam1") not in sink.events

    @pytest.mark.asyncio
    async def test_task_cancelled_during_open_releases_stream(self, provider, wait_until):
        provider.gate = threading.Event()
        session = CaptureSession(provider)

        opening = asyncio.create_task(session.open("cam1"))
        await wait_until(provider.open_started.is_set)

        opening.cancel()
        with pytest.raises(asyncio.CancelledError):
            await opening

        provider.gate.set()
        await wait_until(lambda: len(provider.closed) == 1)
        assert provider.active == []

    @pytest.mark.asyncio
    async def test_close_during_failing_open_is_cancellation(self, provider, wait_until):
        provider.gate = threading.Event()
        provider.failures["cam1"] = PermissionError("Access denied")
        session = CaptureSession(provider)

        opening = asyncio.create_task(session.open("cam1"))
        await wait_until(provider.open_started.is_set)

        await session.close()
        provider.gate.set()

        with pytest.raises(SessionCancelled):
            await opening
        assert provider.opened == []
        assert not session.is_open
