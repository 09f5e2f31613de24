"""
==============================================================================
Scan History Endpoints
==============================================================================

Listing, clearing, removing and re-submitting accepted scans.

Indexes are newest-first positions as returned by GET /history.

==============================================================================
"""

from fastapi import APIRouter, Depends

from livescan.core import exceptions
from livescan.core.dependencies import get_controller
from livescan.scanner.controller import ScannerController
from livescan.schemas.common import MessageResponse
from livescan.schemas.scanner import HistoryResponse, RescanResponse


router = APIRouter(prefix="/history", tags=["History"])


class HistoryController:
    """Controller for scan history operations."""

    def __init__(self, controller: ScannerController):
        self._controller = controller
        self._history = controller.history

    def list(self) -> HistoryResponse:
        entries = self._history.list()
        return HistoryResponse(entries=entries, total=len(entries), cap=self._history.cap)

    def clear(self) -> MessageResponse:
        self._history.clear()
        return MessageResponse(message="Scan history cleared")

    def remove(self, index: int) -> MessageResponse:
        if not self._history.remove(index):
            raise exceptions.history_entry_not_found(index)
        return MessageResponse(message=f"History entry {index} removed")

    def rescan(self, index: int) -> RescanResponse:
        entry = self._controller.resubmit(index)
        return RescanResponse(code=entry.code, entry=entry)


@router.get("", response_model=HistoryResponse)
async def list_history(controller: ScannerController = Depends(get_controller)):
    """Accepted scans, newest first."""
    return HistoryController(controller).list()


@router.delete("", response_model=MessageResponse)
async def clear_history(controller: ScannerController = Depends(get_controller)):
    """Remove every history entry."""
    return HistoryController(controller).clear()


@router.delete("/{index}", response_model=MessageResponse)
async def remove_entry(index: int, controller: ScannerController = Depends(get_controller)):
    """Remove one history entry."""
    return HistoryController(controller).remove(index)


@router.post("/{index}/rescan", response_model=RescanResponse)
async def rescan_entry(index: int, controller: ScannerController = Depends(get_controller)):
    """Deliver a history entry to scan subscribers again."""
    return HistoryController(controller).rescan(index)
