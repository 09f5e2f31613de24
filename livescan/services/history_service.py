"""
==============================================================================
Scan History Service Module
==============================================================================

Bounded, persisted log of accepted scans.

- Newest entry first, capped at a fixed count (default 50)
- Every mutation is written to the key-value store under one key
- Unreadable persisted data loads as an empty history
- Store failures are logged and never propagate

Persisted Format:
----------------
JSON array of {"code", "symbology", "observed_at"} objects, newest first.

==============================================================================
"""

from __future__ import annotations

import logging
import threading
from typing import List

from pydantic import TypeAdapter, ValidationError

from livescan.db.store import KeyValueStore
from livescan.scanner.models import HistoryEntry


# Module logger
logger = logging.getLogger(__name__)

_ENTRIES = TypeAdapter(List[HistoryEntry])


class ScanHistory:
    """
    Size-bounded scan history backed by a KeyValueStore.

    Attributes:
        key: Store key holding the serialized list
        cap: Maximum number of entries kept

    Example:
        >>> history = ScanHistory(store, cap=50)
        >>> history.add(HistoryEntry(code="123456", symbology="EAN13", observed_at=now))
        >>> history.list()[0].code
        '123456'
    """

    def __init__(self, store: KeyValueStore, key: str = "scan_history", cap: int = 50) -> None:
        """
        Initialize and load the persisted history.

        Args:
            store: Persistent key-value store
            key: Store key
            cap: Maximum entry count (must be positive)
        """
        if cap < 1:
            raise ValueError(f"History cap must be positive, got {cap}")

        self._store = store
        self.key = key
        self.cap = cap
        self._lock = threading.Lock()
        self._entries: List[HistoryEntry] = self._load()

    def __len__(self) -> int:
        return len(self._entries)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def list(self) -> List[HistoryEntry]:
        """Entries, newest first."""
        with self._lock:
            return list(self._entries)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def add(self, entry: HistoryEntry) -> None:
        """Prepend an entry, evicting the oldest beyond the cap."""
        with self._lock:
            self._entries.insert(0, entry)
            del self._entries[self.cap:]
            self._persist()

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()
            self._persist()
        logger.info("🗑️ Scan history cleared")

    def remove(self, index: int) -> bool:
        """
        Remove the entry at a newest-first index.

        Returns:
            False when the index is out of range
        """
        with self._lock:
            if index < 0 or index >= len(self._entries):
                return False
            removed = self._entries.pop(index)
            self._persist()

        logger.debug(f"Removed history entry {index}: {removed.code}")
        return True

    def rescan(self, code: str) -> str:
        """Return the code unchanged for callers re-submitting it downstream."""
        return code

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def _load(self) -> List[HistoryEntry]:
        try:
            raw = self._store.get(self.key)
        except Exception as e:
            logger.error(f"Failed to read scan history: {e}")
            return []

        if not raw:
            return []

        try:
            entries = _ENTRIES.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"⚠️ Discarding unreadable scan history: {e.error_count()} errors")
            return []

        logger.info(f"📜 Loaded {len(entries)} history entries")
        return entries[:self.cap]

    def _persist(self) -> None:
        try:
            self._store.set(self.key, _ENTRIES.dump_json(self._entries))
        except Exception as e:
            logger.error(f"Failed to persist scan history: {e}")
