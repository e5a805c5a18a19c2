"""Error taxonomy shared by every storefront module.

Each kind maps to one HTTP status so callers can tell input problems
apart from storage failures. Modules subclass these for their own
specific cases.
"""
from typing import Optional


class StorefrontError(Exception):
    """Base class for all storefront errors."""
    kind = "error"
    status_code = 500


class ValidationError(StorefrontError):
    """Raised when caller input is missing or malformed."""
    kind = "validation_error"
    status_code = 400

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"Missing or invalid field: {field}")


class AuthenticationError(StorefrontError):
    """Raised when a credential is missing, invalid or expired."""
    kind = "authentication_error"
    status_code = 401


class ConflictError(StorefrontError):
    """Raised when a write would duplicate an existing record."""
    kind = "conflict"
    status_code = 409


class NotFoundError(StorefrontError):
    """Raised when an id does not resolve to a record."""
    kind = "not_found"
    status_code = 404


class InvalidTransitionError(StorefrontError):
    """Raised when a status change is not allowed from the current state."""
    kind = "invalid_transition"
    status_code = 409

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot transition from {current} to {requested}"
        )


class TransactionError(StorefrontError):
    """Raised when a multi-step write failed and was rolled back in full.

    The underlying storage exception is chained as ``__cause__``.
    """
    kind = "transaction_failed"
    status_code = 503


__all__ = [
    'StorefrontError',
    'ValidationError',
    'AuthenticationError',
    'ConflictError',
    'NotFoundError',
    'InvalidTransitionError',
    'TransactionError'
]
