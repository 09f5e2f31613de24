"""
==============================================================================
Decode Loop Module
==============================================================================

Drives frames from an open stream into the decode engine.

Per frame:
---------
- No symbol: continue silently
- Symbol: ScanEvent (digits-only normalized code) to the candidate callback
- Engine fault or unreadable frame: logged; after `fault_threshold`
  consecutive faults the loop stops and reports the failure

Frames are pulled one at a time: a frame is read only after the previous
decode finished, so frames produced meanwhile are dropped by the stream
instead of queueing. The loop keeps no cross-frame memory; deduplication
belongs to the gate.

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from livescan.devices.provider import StreamHandle
from livescan.utils.validators import CodeValidator

from .engine import DecodeEngine, DecodeEngineFault
from .models import GateResult, ScanEvent
from .preview import FrameSink


# Module logger
logger = logging.getLogger(__name__)

CandidateCallback = Callable[[ScanEvent], Optional[GateResult]]
FailureCallback = Callable[[int], None]


class DecodeLoop:
    """
    Continuous decode loop for one stream.

    Attributes:
        is_running: True while the loop task is alive

    Example:
        >>> loop = DecodeLoop(engine, on_candidate=gate_and_fan_out, on_failure=report)
        >>> loop.start(handle)
        >>> ...
        >>> await loop.stop()
    """

    def __init__(
        self,
        engine: DecodeEngine,
        on_candidate: CandidateCallback,
        on_failure: FailureCallback,
        sink: Optional[FrameSink] = None,
        fault_threshold: int = 30,
        fault_backoff: float = 0.01,
        stop_timeout: float = 2.0
    ) -> None:
        self._engine = engine
        self._on_candidate = on_candidate
        self._on_failure = on_failure
        self._sink = sink
        self._fault_threshold = fault_threshold
        self._fault_backoff = fault_backoff
        self._stop_timeout = stop_timeout
        self._task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Future] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    def start(self, handle: StreamHandle) -> asyncio.Task:
        """
        Start decoding frames from the handle.

        Returns:
            The asyncio Task running the loop
        """
        if self.is_running:
            return self._task

        self._running = True
        self._task = asyncio.create_task(self._run(handle), name=f"decode-loop-{handle.device_id}")
        self._task.add_done_callback(self._on_task_done)
        logger.info(f"🔄 Decode loop started on camera {handle.device_id}")
        return self._task

    async def stop(self) -> None:
        """Stop the loop and wait for it to finish."""
        self._running = False
        task, self._task = self._task, None

        if task is None or task.done():
            return

        # Let an in-flight read finish so the stream is idle before it is released
        done, _ = await asyncio.wait({task}, timeout=self._stop_timeout)
        if not done:
            logger.warning("Decode loop did not finish in time, cancelling")
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        # The worker thread outlives the cancelled task; the handle is only
        # released once it has returned
        inflight, self._inflight = self._inflight, None
        if inflight is not None and not inflight.done():
            logger.warning("Waiting for in-flight frame call to return")
            await asyncio.gather(inflight, return_exceptions=True)
        logger.info("🛑 Decode loop stopped")

    async def _offload(self, func, *args):
        self._inflight = asyncio.ensure_future(asyncio.to_thread(func, *args))
        return await asyncio.shield(self._inflight)

    async def _run(self, handle: StreamHandle) -> None:
        faults = 0

        while self._running:
            try:
                frame = await self._offload(handle.read)
                if frame is None:
                    raise DecodeEngineFault("Unreadable frame")
                result = await self._offload(self._engine.try_decode, frame)
            except DecodeEngineFault as e:
                faults += 1
                logger.debug(f"Decode fault {faults}/{self._fault_threshold}: {e}")
                if faults >= self._fault_threshold:
                    self._running = False
                    logger.error(f"❌ {faults} consecutive decode faults, stopping loop")
                    self._on_failure(faults)
                    return
                await asyncio.sleep(self._fault_backoff)
                continue

            faults = 0
            decision = None

            if result is not None:
                event = ScanEvent(
                    raw_text=result.text,
                    normalized_code=CodeValidator.normalize(result.text),
                    symbology=result.symbology
                )
                decision = self._on_candidate(event)

            if self._sink is not None:
                self._sink.render(frame, result, decision)

            # Let other tasks run between frames
            await asyncio.sleep(0)

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._running = False
            logger.error(f"Decode loop crashed: {exc!r}")
            self._on_failure(self._fault_threshold)
