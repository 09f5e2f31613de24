"""
==============================================================================
Database Initialization Module
==============================================================================

Creates the tables used by the key-value store.

Usage:
------
    from livescan.db import init_db

    init_db()

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Optional

from livescan.db.database import DatabaseManager

# Registers the ORM models on Base.metadata
from livescan.db import models  # noqa: F401


# Module logger
logger = logging.getLogger(__name__)


def init_db(db_manager: Optional[DatabaseManager] = None) -> DatabaseManager:
    """
    Create tables and verify the connection.

    Args:
        db_manager: DatabaseManager to use (singleton if None)

    Returns:
        The DatabaseManager that was initialized
    """
    db_manager = db_manager or DatabaseManager()

    logger.info("Creating database tables...")
    db_manager.create_tables()

    if db_manager.verify_connection():
        logger.info("✅ Database ready")
    else:
        logger.warning("⚠️ Database connection could not be verified")

    return db_manager
