"""
==============================================================================
Key-Value Store Module
==============================================================================

Persistent key-value store interface and its SQLAlchemy implementation.

Writes are last-write-wins; atomicity is whatever a single transaction of
the underlying database gives.

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from sqlalchemy.orm import Session

from .models import KeyValueEntry


# Module logger
logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Bytes keyed by string."""

    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class SqlKeyValueStore:
    """
    Key-value store in the kv_store table.

    Each operation runs in its own session and transaction.

    Example:
        >>> store = SqlKeyValueStore(DatabaseManager().session_factory)
        >>> store.set("scan_history", b"[]")
        >>> store.get("scan_history")
        b'[]'
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[bytes]:
        session = self._session_factory()
        try:
            entry = session.get(KeyValueEntry, key)
            return bytes(entry.value) if entry is not None else None
        finally:
            session.close()

    def set(self, key: str, value: bytes) -> None:
        session = self._session_factory()
        try:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                session.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def delete(self, key: str) -> None:
        session = self._session_factory()
        try:
            entry = session.get(KeyValueEntry, key)
            if entry is not None:
                session.delete(entry)
                session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
