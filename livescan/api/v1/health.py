"""
==============================================================================
Health Check Endpoints
==============================================================================

System health status endpoints for monitoring and orchestration.

==============================================================================
"""

from fastapi import APIRouter, Depends

from livescan.core.dependencies import get_controller
from livescan.db.database import DatabaseManager
from livescan.scanner.controller import ScannerController


router = APIRouter(prefix="/health", tags=["Health"])


class HealthController:
    """Controller for health check operations."""

    def __init__(self, controller: ScannerController):
        self._controller = controller

    def check_database(self) -> str:
        """Check database connectivity."""
        return "healthy" if DatabaseManager().verify_connection() else "unhealthy"

    def check_scanner(self) -> dict:
        """Check scanner status."""
        state = self._controller.state
        if state.current_error is not None and not state.current_error.recoverable:
            status = "unhealthy"
        elif state.current_error is not None:
            status = "degraded"
        else:
            status = "healthy"
        return {
            "status": status,
            "phase": state.phase.value,
            "devices": len(state.available_devices),
        }

    def get_health(self) -> dict:
        """Get full health status."""
        db_status = self.check_database()
        scanner_info = self.check_scanner()

        healthy = db_status == "healthy" and scanner_info["status"] == "healthy"

        return {
            "status": "healthy" if healthy else "degraded",
            "components": {
                "api": "healthy",
                "database": db_status,
                "scanner": scanner_info["status"]
            },
            "details": {
                "scanner_phase": scanner_info["phase"],
                "devices_found": scanner_info["devices"],
                "history_entries": len(self._controller.history)
            }
        }


@router.get("")
async def health_check(controller: ScannerController = Depends(get_controller)):
    """
    Health check endpoint.

    Returns system status including API, database, and scanner.
    """
    return HealthController(controller).get_health()


@router.get("/ready")
async def readiness_check():
    """Readiness probe for container orchestration."""
    return {"ready": True}


@router.get("/live")
async def liveness_check():
    """Liveness probe for container orchestration."""
    return {"alive": True}
