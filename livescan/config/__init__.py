"""
==============================================================================
Configuration Package
==============================================================================

Centralized configuration management using Pydantic Settings.

Usage:
------
    from livescan.config import get_settings, Settings

    settings = get_settings()
    print(settings.accepted_lengths)
    print(settings.debounce_ms)

==============================================================================
"""

from .settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
