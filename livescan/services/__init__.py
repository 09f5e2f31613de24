"""
==============================================================================
Services Package - Business Logic Layer
==============================================================================

Service classes sitting between the scanner and persistence.

This package provides:
- ScanHistory: Bounded, persisted log of accepted scans

    ┌─────────────────┐
    │ScannerController│
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │   ScanHistory   │  ← Business Logic
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │  KeyValueStore  │  ← Data Access
    └─────────────────┘

==============================================================================
"""

from .history_service import ScanHistory

__all__ = [
    "ScanHistory",
]
