"""
==============================================================================
Database Package
==============================================================================

SQLAlchemy infrastructure backing the persistent key-value store.

Architecture:
------------
├── database.py   - DatabaseManager class, session factory
├── models.py     - KeyValueEntry ORM model
├── store.py      - KeyValueStore interface, SqlKeyValueStore
└── init_db.py    - Table creation

Usage:
------
    from livescan.db import DatabaseManager, SqlKeyValueStore, init_db

    db_manager = init_db()
    store = SqlKeyValueStore(db_manager.session_factory)

==============================================================================
"""

from .database import Base, DatabaseManager
from .models import KeyValueEntry
from .store import KeyValueStore, SqlKeyValueStore
from .init_db import init_db

__all__ = [
    "Base",
    "DatabaseManager",
    "KeyValueEntry",
    "KeyValueStore",
    "SqlKeyValueStore",
    "init_db",
]
