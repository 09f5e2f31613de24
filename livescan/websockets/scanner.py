"""
==============================================================================
Scanner WebSocket Module
==============================================================================

Live scanner feed and control over a WebSocket connection.

Protocol:
---------
Server -> client:
    {"type": "state", "state": {...}}       every published ScannerState,
                                            starting with the current one
    {"type": "scan", "code": "123456", ...} every accepted scan, in order
    {"type": "error", "error": {...}}       capture/decode failures and
                                            rejected commands
    {"type": "pong"}

Client -> server:
    {"type": "start", "device_id": "0"}     device_id optional
    {"type": "stop"}
    {"type": "switch", "device_id": "1"}
    {"type": "retry"}
    {"type": "clear_last"}
    {"type": "ping"}

==============================================================================
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Set

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from livescan.core.dependencies import get_controller_ws
from livescan.core.exceptions import AppException, ScannerError
from livescan.scanner.controller import ScannerController
from livescan.scanner.models import ScanEvent, ScannerState


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter()


class ScannerWebSocketHandler:
    """
    Handler for one scanner WebSocket connection.

    Controller notifications are queued and sent by a single writer task,
    so messages reach the client in publication order.
    """

    def __init__(self, websocket: WebSocket, controller: ScannerController):
        self._websocket = websocket
        self._controller = controller
        self._outbox: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()
        self._unsubscribers: List[Callable[[], None]] = []
        self._commands: Set[asyncio.Task] = set()

    # =========================================================================
    # CONTROLLER NOTIFICATIONS
    # =========================================================================

    def _on_state(self, state: ScannerState) -> None:
        self._outbox.put_nowait({"type": "state", "state": state.model_dump(mode="json")})

    def _on_scan(self, event: ScanEvent) -> None:
        self._outbox.put_nowait({
            "type": "scan",
            "code": event.normalized_code,
            "raw_text": event.raw_text,
            "symbology": event.symbology,
            "observed_at": event.observed_at.isoformat()
        })

    def _on_error(self, error: ScannerError) -> None:
        self._outbox.put_nowait({"type": "error", "error": error.to_dict()["error"]})

    def send_error(self, message: str, code: str = "ERROR") -> None:
        """Queue an error message for the client."""
        self._outbox.put_nowait({
            "type": "error",
            "error": {"code": code, "message": message}
        })

    # =========================================================================
    # COMMANDS
    # =========================================================================

    async def handle_command(self, data: Dict[str, Any]) -> None:
        """
        Run one client command.

        start, switch and retry may wait on a camera open, so they run as
        tasks and the next message (typically stop) is read right away.
        """
        kind = data.get("type")

        try:
            if kind == "start":
                self._spawn(self._controller.start(data.get("device_id") or None))
            elif kind == "stop":
                await self._controller.stop()
            elif kind == "switch":
                device_id = data.get("device_id")
                if not device_id:
                    self.send_error("device_id is required", "VALIDATION_ERROR")
                    return
                self._spawn(self._controller.switch_device(str(device_id)))
            elif kind == "retry":
                self._spawn(self._controller.retry())
            elif kind == "clear_last":
                self._controller.clear_last_scan()
            elif kind == "ping":
                self._outbox.put_nowait({"type": "pong"})
            else:
                self.send_error(f"Unknown message type: {kind}", "UNKNOWN_TYPE")
        except AppException as e:
            self.send_error(e.message, e.code)

    def _spawn(self, command: Awaitable[Any]) -> None:
        task = asyncio.create_task(self._run_lifecycle(command))
        self._commands.add(task)
        task.add_done_callback(self._commands.discard)

    async def _run_lifecycle(self, command: Awaitable[Any]) -> None:
        try:
            await command
        except AppException as e:
            self.send_error(e.message, e.code)
        except Exception as e:
            logger.error(f"Scanner command failed: {e}")
            self.send_error("Scanner command failed", "INTERNAL_ERROR")

    # =========================================================================
    # CONNECTION LIFECYCLE
    # =========================================================================

    async def _pump(self) -> None:
        while True:
            message = await self._outbox.get()
            await self._websocket.send_json(message)

    async def run(self) -> None:
        """Main handler loop."""
        await self._websocket.accept()
        logger.info("📱 Scanner WebSocket connected")

        self._unsubscribers = [
            self._controller.subscribe_state(self._on_state),
            self._controller.subscribe_scans(self._on_scan),
            self._controller.subscribe_errors(self._on_error),
        ]
        writer = asyncio.create_task(self._pump(), name="scanner-ws-writer")

        try:
            while True:
                data = await self._websocket.receive_json()
                if not isinstance(data, dict):
                    self.send_error("Messages must be JSON objects", "VALIDATION_ERROR")
                    continue
                await self.handle_command(data)

        except WebSocketDisconnect:
            logger.info("📱 Client disconnected")
        except Exception as e:
            logger.error(f"WebSocket error: {e}")
        finally:
            for unsubscribe in self._unsubscribers:
                unsubscribe()
            writer.cancel()
            await asyncio.gather(writer, return_exceptions=True)
            logger.info("✅ Scanner WebSocket closed")


@router.websocket("/ws/scanner")
async def websocket_scanner(
    websocket: WebSocket,
    controller: ScannerController = Depends(get_controller_ws)
):
    """Live scanner state, accepted scans and control commands."""
    handler = ScannerWebSocketHandler(websocket, controller)
    await handler.run()
