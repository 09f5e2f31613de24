"""
==============================================================================
LiveScan Barcode Service - Application Entry Point
==============================================================================

FastAPI application with:
- RESTful scanner control and scan history endpoints
- WebSocket live scanner feed
- Persistent scan history (SQLAlchemy)

Usage:
------
    # Development
    uvicorn livescan.main:app --reload

    # Production
    uvicorn livescan.main:app --host 0.0.0.0 --port 8000

==============================================================================
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from livescan.config import get_settings
from livescan.core.exceptions import register_exception_handlers
from livescan.db import DatabaseManager, init_db
from livescan.api.router import api_router
from livescan.scanner.controller import ScannerController
from livescan.scanner.factory import build_controller
from livescan.websockets import scanner_router


# ============================================================================
# LOGGING SETUP
# ============================================================================

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

logger = logging.getLogger(__name__)


# ============================================================================
# APPLICATION FACTORY
# ============================================================================

class Application:
    """
    FastAPI application factory and manager.

    Handles application lifecycle including:
    - Database and scanner controller startup
    - Camera and audio release on shutdown
    - Middleware, router and exception handler setup

    Args:
        controller_factory: Builds the ScannerController (settings-driven
            build_controller if None)
    """

    def __init__(self, controller_factory: Optional[Callable[[], ScannerController]] = None):
        """Initialize the application."""
        self._settings = get_settings()
        self._controller_factory = controller_factory or (lambda: build_controller(self._settings))
        self._app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create and configure the FastAPI application."""
        app = FastAPI(
            title=self._settings.app_name,
            version="1.0.0",
            description="Continuous camera barcode scanning with validated, debounced scans",
            lifespan=self._lifespan,
            docs_url="/docs",
            redoc_url="/redoc",
        )

        # Configure middleware
        self._configure_middleware(app)

        # Register exception handlers
        register_exception_handlers(app)

        # Register routers
        self._register_routers(app)

        # Register root endpoint
        self._register_root(app)

        return app

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        """Application lifespan manager."""
        # Startup
        await self._startup(app)
        yield
        # Shutdown
        await self._shutdown(app)

    async def _startup(self, app: FastAPI) -> None:
        """Application startup tasks."""
        logger.info("=" * 60)
        logger.info(f"🚀 Starting {self._settings.app_name}")
        logger.info("=" * 60)

        # Initialize database
        self._settings.ensure_directories()
        init_db()

        # Build scanner and enumerate cameras
        controller = self._controller_factory()
        app.state.controller = controller
        state = await controller.initialize()

        logger.info("=" * 60)
        logger.info(f"✅ {self._settings.app_name} ready ({len(state.available_devices)} camera(s))")
        logger.info(f"📍 Running on http://{self._settings.host}:{self._settings.port}")
        logger.info(f"📖 API Docs: http://{self._settings.host}:{self._settings.port}/docs")
        logger.info("=" * 60)

    async def _shutdown(self, app: FastAPI) -> None:
        """Application shutdown tasks."""
        logger.info("🛑 Shutting down...")
        controller = getattr(app.state, "controller", None)
        if controller is not None:
            await controller.dispose()
            app.state.controller = None
        DatabaseManager().dispose()
        logger.info("✅ Shutdown complete")

    def _configure_middleware(self, app: FastAPI) -> None:
        """Configure application middleware."""
        app.add_middleware(
            CORSMiddleware,
            allow_origins=self._settings.cors_origins_list,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def _register_routers(self, app: FastAPI) -> None:
        """Register API routers."""
        # REST API routes
        app.include_router(api_router)

        # WebSocket routes
        app.include_router(scanner_router)

    def _register_root(self, app: FastAPI) -> None:
        """Register root endpoint."""

        @app.get("/")
        async def root():
            """Service summary."""
            return {
                "name": self._settings.app_name,
                "docs": "/docs",
                "websocket": "/ws/scanner"
            }

    @property
    def app(self) -> FastAPI:
        """Get the FastAPI application instance."""
        return self._app


# ============================================================================
# APPLICATION INSTANCE
# ============================================================================

# Create application instance
application = Application()
app = application.app


# ============================================================================
# ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "livescan.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )
