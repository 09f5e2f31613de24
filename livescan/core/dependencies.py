"""
==============================================================================
FastAPI Dependencies Module
==============================================================================

Dependency injection for the scanner API.

The ScannerController is created once in the application lifespan and
stored on `app.state`; HTTP routes and WebSocket handlers receive it
through these dependencies.

Usage Examples:
--------------
    @router.post("/scanner/start")
    async def start(controller: ScannerController = Depends(get_controller)):
        return await controller.start()

    @router.websocket("/ws/scanner")
    async def feed(websocket: WebSocket, controller=Depends(get_controller_ws)):
        ...

==============================================================================
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import Request, WebSocket

from .exceptions import AppException

if TYPE_CHECKING:
    from livescan.scanner.controller import ScannerController


# Module logger
logger = logging.getLogger(__name__)


def _controller_from_state(state) -> "ScannerController":
    controller = getattr(state, "controller", None)
    if controller is None:
        logger.error("Scanner controller requested before startup completed")
        raise AppException("Scanner is not available", "SCANNER_NOT_READY", 503)
    return controller


def get_controller(request: Request) -> "ScannerController":
    """
    FastAPI dependency that provides the application's ScannerController.

    Raises:
        AppException: SCANNER_NOT_READY when the lifespan has not run
    """
    return _controller_from_state(request.app.state)


def get_controller_ws(websocket: WebSocket) -> "ScannerController":
    """WebSocket variant of get_controller."""
    return _controller_from_state(websocket.app.state)
