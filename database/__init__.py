"""Database module for managing connections to PostgreSQL or CockroachDB.

This module handles:
- Database connection pool initialization
- Schema management
- Connection lifecycle
"""

import logging
import ssl
from typing import Optional, Dict, Any
import backoff
import asyncpg
from urllib.parse import urlparse, parse_qs

from .exceptions import DatabaseError, DatabaseSchemaError
from .lib.schema_manager import SchemaManager

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.Pool] = None
_schema_manager: Optional[SchemaManager] = None

def _get_ssl_context() -> ssl.SSLContext:
    """Create SSL context for hosted database connections."""
    ssl_context = ssl.create_default_context()
    ssl_context.verify_mode = ssl.CERT_REQUIRED
    ssl_context.check_hostname = True
    return ssl_context

def _get_connection_kwargs(db_url: str) -> Dict[str, Any]:
    """Get connection kwargs from database URL.

    SSL is enabled unless the URL asks for ``sslmode=disable``.

    Args:
        db_url: Database connection URL

    Returns:
        Dict of connection parameters
    """
    parsed = urlparse(db_url)
    params = parse_qs(parsed.query)

    # asyncpg passes any other query parameters through as server settings
    kwargs: Dict[str, Any] = {}
    if params.get('sslmode', ['require'])[0] != 'disable':
        kwargs['ssl'] = _get_ssl_context()

    return kwargs

@backoff.on_exception(
    backoff.expo,
    (OSError, asyncpg.exceptions.PostgresConnectionError, asyncpg.exceptions.CannotConnectNowError),
    max_tries=5
)
async def _create_pool(url: str, settings: Dict[str, Any]) -> asyncpg.Pool:
    return await asyncpg.create_pool(
        url,
        min_size=settings['db_min_pool_size'],
        max_size=settings['db_max_pool_size'],
        max_inactive_connection_lifetime=300.0,  # 5 minutes
        command_timeout=settings['db_command_timeout'],
        **_get_connection_kwargs(url)
    )

async def init_db(db_url: Optional[str] = None) -> None:
    """Initialize the database connection pool and schema.

    Args:
        db_url: Optional database URL. If not provided, will use settings.

    Raises:
        ValueError: If database URL is not provided
        DatabaseSchemaError: If schema migration fails
    """
    global _pool, _schema_manager

    # Import here to avoid circular imports
    from config import settings_conf

    url = db_url or settings_conf.get('db_url')
    if not url:
        raise ValueError("Database URL not provided")

    try:
        _pool = await _create_pool(url, settings_conf)
        logger.info("Database pool created")

        _schema_manager = SchemaManager(_pool)
        await _schema_manager.initialize()

    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        await close()
        raise

async def get_pool() -> asyncpg.Pool:
    """Get the database connection pool.

    Returns:
        The connection pool

    Raises:
        RuntimeError: If pool hasn't been initialized
    """
    if not _pool:
        await init_db()
    if not _pool:
        raise RuntimeError("Failed to initialize database pool")
    return _pool

async def close() -> None:
    """Close the database connection pool."""
    global _pool, _schema_manager

    if _pool:
        await _pool.close()
        _pool = None
        _schema_manager = None

# Export public interface
__all__ = ['init_db', 'get_pool', 'close', 'DatabaseError', 'DatabaseSchemaError']
