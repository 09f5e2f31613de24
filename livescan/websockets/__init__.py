"""
==============================================================================
WebSocket Package
==============================================================================

Real-time WebSocket handlers for the scanner.

Handlers:
---------
- scanner: Live state/scan feed and scanner control commands

==============================================================================
"""

from .scanner import router as scanner_router

__all__ = ["scanner_router"]
