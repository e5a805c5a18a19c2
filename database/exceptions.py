"""Database exceptions."""
import asyncio

import asyncpg


class DatabaseError(Exception):
    """Base class for database errors."""
    pass


class DatabaseSchemaError(DatabaseError):
    """Raised when the schema cannot be loaded or migrated."""
    pass


# Failures of the store itself, as opposed to errors raised by our own checks.
# A lost connection surfaces as an InterfaceError or OSError, a command
# timeout as asyncio.TimeoutError.
STORAGE_ERRORS = (
    asyncpg.exceptions.PostgresError,
    asyncpg.exceptions.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)
