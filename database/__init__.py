"""Database module for managing connections to PostgreSQL.

This module handles:
- Database connection pool initialization
- Schema management
- Connection lifecycle
"""

import logging
from typing import Optional
import backoff
import asyncpg

from .lib.schema_manager import SchemaManager
from .exceptions import DatabaseError, DatabaseSchemaError, DatabaseNotInitializedError
from .store import BaseStore, PostgresStore, blank_account

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.Pool] = None

@backoff.on_exception(
    backoff.expo,
    (asyncpg.exceptions.PostgresConnectionError, asyncpg.exceptions.CannotConnectNowError, OSError),
    max_tries=5
)
async def init_db(db_url: Optional[str] = None) -> asyncpg.Pool:
    """Initialize the database connection pool and schema.

    Args:
        db_url: Optional database URL. If not provided, will use settings.

    Returns:
        The connection pool

    Raises:
        ValueError: If database URL is not provided
        DatabaseSchemaError: If the schema cannot be applied
    """
    global _pool

    if _pool:
        return _pool

    # Import here to avoid loading settings for pool-less callers
    from config import settings_conf

    url = db_url or settings_conf.get('db_url')
    if not url:
        raise ValueError("Database URL not provided")

    pool = await asyncpg.create_pool(
        url,
        min_size=2,
        max_size=20,
        max_inactive_connection_lifetime=300.0,  # 5 minutes
        command_timeout=60.0
    )

    try:
        await SchemaManager(pool).initialize()
    except Exception:
        await pool.close()
        raise

    _pool = pool
    logger.info("Database pool initialized")
    return _pool

async def get_pool() -> asyncpg.Pool:
    """Get the database connection pool.

    Returns:
        The connection pool

    Raises:
        DatabaseNotInitializedError: If pool hasn't been initialized
    """
    if not _pool:
        raise DatabaseNotInitializedError("Database pool has not been initialized")
    return _pool

async def close() -> None:
    """Close the database connection pool."""
    global _pool

    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")

# Export public interface
__all__ = [
    'init_db',
    'get_pool',
    'close',
    'BaseStore',
    'PostgresStore',
    'blank_account',
    'DatabaseError',
    'DatabaseSchemaError',
    'DatabaseNotInitializedError'
]
