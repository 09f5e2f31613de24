"""
==============================================================================
API v1 Endpoints
==============================================================================

Version 1 of the REST API.

Routers:
--------
- health: Health check endpoints
- scanner: Scanner lifecycle, devices, preview and frame decoding
- history: Scan history operations

==============================================================================
"""

from . import health, scanner, history

__all__ = ["health", "scanner", "history"]
