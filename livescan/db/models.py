"""
==============================================================================
SQLAlchemy ORM Models Module
==============================================================================

Database Schema:
---------------

    ┌─────────────────────────────────────────────────────────────────┐
    │                           kv_store                               │
    ├─────────────────────────────────────────────────────────────────┤
    │ key (VARCHAR, PK)                                               │
    │ value (BLOB, NOT NULL)                                          │
    │ updated_at (DATETIME, AUTO UPDATE)                              │
    └─────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, LargeBinary, String, func

from livescan.db.database import Base


class KeyValueEntry(Base):
    """
    One value of the persistent key-value store.

    Attributes:
        key: Store key (e.g. "scan_history")
        value: Opaque bytes
        updated_at: Last write time
    """

    __tablename__ = "kv_store"

    key = Column(String(255), primary_key=True)
    value = Column(LargeBinary, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<KeyValueEntry(key={self.key!r}, size={len(self.value or b'')})>"
