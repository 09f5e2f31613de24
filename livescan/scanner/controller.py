"""
==============================================================================
Scanner Controller Module
==============================================================================

State machine coordinating capture, decoding, gating and fan-out.

States:
-------
    IDLE -> INITIALIZING -> READY -> SCANNING <-> ERROR (recoverable)
    any  -> STOPPED                      via stop()
    INITIALIZING/SCANNING -> ERROR (unrecoverable) on permission denial

Operations:
-----------
- initialize(): enumerate devices, select the preferred one
- start(device_id): open the session and run the decode loop
- stop(): tear everything down; idempotent, safe mid-start
- switch_device(device_id): stop then start on another camera; the
  selected device only changes once the new camera is streaming
- retry(): re-run the retry action of a recoverable error
- clear_last_scan(): forget the last accepted code
- resubmit(index): re-deliver a history entry to scan subscribers
- submit_frame(frame): decode one uploaded frame through the same gate

Fan-out of an accepted scan, in order:
    ScanHistory.add -> FeedbackEmitter.beep -> scan subscribers

The controller is the only writer of ScannerState. Every snapshot is
checked against the state invariants before it is published.

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, List, Optional, Set, Tuple

import numpy as np

from livescan.core import exceptions
from livescan.core.exceptions import RetryKind, ScannerError
from livescan.devices.catalog import DeviceCatalog
from livescan.devices.models import StreamConstraints
from livescan.devices.provider import CaptureProvider
from livescan.utils.validators import CodeValidator

from .engine import DecodeEngine, DecodeEngineFault
from .feedback import FeedbackEmitter
from .gate import ScanGate
from .loop import DecodeLoop
from .models import (
    DecodeResult,
    GateResult,
    HistoryEntry,
    ScanEvent,
    ScannerPhase,
    ScannerState,
)
from .preview import FrameSink
from .session import CaptureSession, SessionCancelled

if TYPE_CHECKING:
    from livescan.services.history_service import ScanHistory


# Module logger
logger = logging.getLogger(__name__)

StateListener = Callable[[ScannerState], None]
ScanListener = Callable[[ScanEvent], None]
ErrorListener = Callable[[ScannerError], None]


class ScannerController:
    """
    Facade over the scanning pipeline.

    Attributes:
        state: Current ScannerState snapshot

    Example:
        >>> controller = ScannerController(catalog, provider, engine, gate, feedback, history)
        >>> controller.subscribe_scans(lambda event: print(event.normalized_code))
        >>> await controller.start()
        >>> ...
        >>> await controller.dispose()
    """

    def __init__(
        self,
        catalog: DeviceCatalog,
        provider: CaptureProvider,
        engine: DecodeEngine,
        gate: ScanGate,
        feedback: FeedbackEmitter,
        history: ScanHistory,
        sink: Optional[FrameSink] = None,
        constraints: Optional[StreamConstraints] = None,
        fault_threshold: int = 30,
        on_error: Optional[ErrorListener] = None
    ) -> None:
        self._catalog = catalog
        self._engine = engine
        self._gate = gate
        self._feedback = feedback
        self._history = history
        self._on_error = on_error
        self._sink = sink

        self._session = CaptureSession(provider, sink, constraints)
        self._loop = DecodeLoop(
            engine,
            on_candidate=self._handle_candidate,
            on_failure=self._handle_decode_failure,
            sink=sink,
            fault_threshold=fault_threshold
        )

        self._state = ScannerState()
        self._lifecycle = asyncio.Lock()
        # Bumped by stop(); lifecycle work started under an older epoch is abandoned
        self._epoch = 0
        self._pending: Set[asyncio.Task] = set()

        self._state_listeners: List[StateListener] = []
        self._scan_listeners: List[ScanListener] = []
        self._error_listeners: List[ErrorListener] = []

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> ScannerState:
        return self._state

    @property
    def history(self) -> ScanHistory:
        return self._history

    @property
    def sink(self) -> Optional[FrameSink]:
        return self._sink

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def subscribe_state(self, listener: StateListener) -> Callable[[], None]:
        """
        Receive every published ScannerState, starting with the current one.

        Returns:
            Callable that removes the subscription
        """
        self._state_listeners.append(listener)
        self._notify(listener, self._state)
        return lambda: self._unsubscribe(self._state_listeners, listener)

    def subscribe_scans(self, listener: ScanListener) -> Callable[[], None]:
        """Receive accepted scans in acceptance order."""
        self._scan_listeners.append(listener)
        return lambda: self._unsubscribe(self._scan_listeners, listener)

    def subscribe_errors(self, listener: ErrorListener) -> Callable[[], None]:
        """Receive capture and decode failures."""
        self._error_listeners.append(listener)
        return lambda: self._unsubscribe(self._error_listeners, listener)

    @staticmethod
    def _unsubscribe(listeners: list, listener) -> None:
        if listener in listeners:
            listeners.remove(listener)

    # =========================================================================
    # LIFECYCLE OPERATIONS
    # =========================================================================

    async def initialize(self) -> ScannerState:
        """Enumerate devices; refreshes the device list when already initialized."""
        async with self._lifecycle:
            await self._initialize_locked()
        return self._state

    async def start(self, device_id: Optional[str] = None) -> ScannerState:
        """
        Start scanning.

        Failures are published as ScannerState.current_error rather than
        raised.

        Args:
            device_id: Camera to use (selected or preferred device if None)

        Raises:
            AppException: INVALID_STATE after an unrecoverable error
        """
        async with self._lifecycle:
            state = self._state
            if state.current_error is not None and not state.current_error.recoverable:
                raise exceptions.invalid_state(state.phase.value, "start")

            if state.scanning and (device_id is None or device_id == state.selected_device):
                return state

            epoch = self._epoch
            if not state.initialized:
                await self._initialize_locked()
                if epoch != self._epoch:
                    return self._state

            await self._start_locked(device_id or self._state.selected_device, epoch)
        return self._state

    async def stop(self) -> ScannerState:
        """
        Stop scanning and release the camera.

        Does not wait for an in-flight start; a stream it acquires later is
        released as soon as its open completes.
        """
        self._epoch += 1
        await self._teardown()
        self._publish(phase=ScannerPhase.STOPPED, scanning=False, current_error=None)
        logger.info("⏹️ Scanner stopped")
        return self._state

    async def switch_device(self, device_id: str) -> ScannerState:
        """
        Move scanning to another camera.

        When not scanning only the selection changes. On failure the previous
        device stays selected and the error is published.
        """
        async with self._lifecycle:
            state = self._state
            if device_id == state.selected_device and state.scanning:
                return state

            if not state.scanning:
                self._publish(selected_device=device_id)
                logger.info(f"📷 Selected camera {device_id}")
                return self._state

            logger.info(f"🔀 Switching camera {state.selected_device} -> {device_id}")
            await self._start_locked(device_id, self._epoch)
        return self._state

    async def retry(self) -> ScannerState:
        """
        Re-run the retry action of the current recoverable error.

        Raises:
            AppException: INVALID_STATE when there is nothing to retry
        """
        async with self._lifecycle:
            error = self._state.current_error
            if error is None or not error.recoverable or error.retry_action is None:
                raise exceptions.invalid_state(self._state.phase.value, "retry")

            action = error.retry_action
            logger.info(f"🔁 Retrying ({action.kind.value}) on camera {action.device_id}")

            device_id = action.device_id
            if action.kind == RetryKind.RESTART_SESSION:
                device_id = device_id or self._state.selected_device
            await self._start_locked(device_id, self._epoch)
        return self._state

    async def dispose(self) -> None:
        """Stop scanning and release every resource."""
        for task in list(self._pending):
            task.cancel()
        await self.stop()
        self._feedback.close()
        self._state_listeners.clear()
        self._scan_listeners.clear()
        self._error_listeners.clear()
        logger.info("Scanner controller disposed")

    async def __aenter__(self) -> "ScannerController":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    # =========================================================================
    # SCAN OPERATIONS
    # =========================================================================

    def clear_last_scan(self) -> ScannerState:
        """Forget the last accepted code; the next scan of it is accepted at once."""
        self._gate.reset()
        self._publish(last_accepted_code=None)
        return self._state

    def resubmit(self, index: int) -> HistoryEntry:
        """
        Deliver a history entry to scan subscribers again.

        The entry is not re-added to the history and bypasses the gate.

        Raises:
            AppException: HISTORY_ENTRY_NOT_FOUND
        """
        entries = self._history.list()
        if index < 0 or index >= len(entries):
            raise exceptions.history_entry_not_found(index)

        entry = entries[index]
        code = self._history.rescan(entry.code)
        event = ScanEvent(raw_text=code, normalized_code=code, symbology=entry.symbology)
        logger.info(f"🔁 Resubmitting {code}")
        self._notify_scan(event)
        return entry

    async def submit_frame(
        self,
        frame: np.ndarray
    ) -> Tuple[Optional[DecodeResult], Optional[GateResult]]:
        """
        Decode a single frame outside of the live stream.

        Returns:
            (symbol found or None, gate decision or None)

        Raises:
            AppException: INVALID_FRAME when the engine cannot process it
        """
        try:
            result = await asyncio.to_thread(self._engine.try_decode, frame)
        except DecodeEngineFault as e:
            logger.warning(f"Submitted frame rejected: {e}")
            raise exceptions.invalid_frame() from e

        if result is None:
            return None, None

        event = ScanEvent(
            raw_text=result.text,
            normalized_code=CodeValidator.normalize(result.text),
            symbology=result.symbology
        )
        return result, self._handle_candidate(event)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    async def _initialize_locked(self) -> None:
        first = not self._state.initialized
        if first:
            self._publish(phase=ScannerPhase.INITIALIZING)

        devices = await asyncio.to_thread(self._catalog.enumerate)
        selected = self._state.selected_device
        if selected is None or all(device.id != selected for device in devices):
            selected = self._catalog.preferred(devices) or selected

        changes = dict(available_devices=tuple(devices), selected_device=selected, initialized=True)
        if self._state.phase == ScannerPhase.INITIALIZING:
            changes["phase"] = ScannerPhase.READY
        self._publish(**changes)

    async def _start_locked(self, device_id: Optional[str], epoch: int) -> None:
        target = self._catalog.resolve(device_id, self._state.available_devices)

        # The previous session is fully released before any new open
        await self._teardown()
        if epoch != self._epoch:
            return

        try:
            handle = await self._session.open(target)
        except SessionCancelled:
            return
        except ScannerError as e:
            if epoch == self._epoch:
                self._fail(e)
            return

        if epoch != self._epoch:
            await self._session.close()
            return

        self._publish(
            phase=ScannerPhase.SCANNING,
            scanning=True,
            permission_granted=True,
            selected_device=self._session.device_id,
            current_error=None
        )
        self._loop.start(handle)

        # Labels are often hidden until permission is granted
        if not self._state.available_devices:
            devices = await asyncio.to_thread(self._catalog.enumerate)
            self._publish(available_devices=tuple(devices))

    async def _teardown(self) -> None:
        await self._loop.stop()
        await self._session.close()

    def _fail(self, error: ScannerError) -> None:
        changes = dict(phase=ScannerPhase.ERROR, scanning=False, current_error=error.to_info())
        if error.kind == exceptions.ErrorKind.PERMISSION:
            changes["permission_granted"] = False
        self._publish(**changes)

        logger.error(f"❌ Scanner error [{error.kind.value}]: {error.message}")
        sinks = list(self._error_listeners)
        if self._on_error is not None:
            sinks.append(self._on_error)
        for listener in sinks:
            try:
                listener(error)
            except Exception as e:
                logger.error(f"Error listener failed: {e}")

    def _handle_decode_failure(self, faults: int) -> None:
        task = asyncio.get_running_loop().create_task(
            self._recover_from_decode_failure(faults, self._epoch)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _recover_from_decode_failure(self, faults: int, epoch: int) -> None:
        async with self._lifecycle:
            if epoch != self._epoch or not self._state.scanning:
                return
            device_id = self._session.device_id
            await self._teardown()
            if epoch != self._epoch:
                return
            self._fail(exceptions.decode_failure(device_id, faults))

    def _handle_candidate(self, event: ScanEvent) -> GateResult:
        decision = self._gate.accept(event)
        if decision.accepted:
            self._deliver(event, decision.code)
        return decision

    def _deliver(self, event: ScanEvent, code: str) -> None:
        logger.info(f"✅ Scanned {code} ({event.symbology})")

        try:
            self._history.add(HistoryEntry.from_event(event))
        except Exception as e:
            logger.error(f"Failed to record scan {code}: {e}")

        self._feedback.beep()
        self._publish(last_accepted_code=code)
        self._notify_scan(event)

    def _notify_scan(self, event: ScanEvent) -> None:
        for listener in list(self._scan_listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Scan listener failed: {e}")

    def _publish(self, **changes) -> None:
        state = self._state.model_copy(update=changes)
        state.check_invariants()
        self._state = state
        for listener in list(self._state_listeners):
            self._notify(listener, state)

    @staticmethod
    def _notify(listener: StateListener, state: ScannerState) -> None:
        try:
            listener(state)
        except Exception as e:
            logger.error(f"State listener failed: {e}")
