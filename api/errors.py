"""Translation of storefront errors into HTTP responses."""

import logging

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from errors import StorefrontError, ValidationError, AuthenticationError

logger = logging.getLogger(__name__)

def http_error(e: StorefrontError) -> HTTPException:
    """Build the HTTPException for a storefront error.

    The body names the error kind so callers can tell them apart.
    """
    detail = {"error": e.kind, "message": str(e)}
    if isinstance(e, ValidationError):
        detail["field"] = e.field
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(e, AuthenticationError) else None
    return HTTPException(status_code=e.status_code, detail=detail, headers=headers)

def internal_error(e: Exception) -> HTTPException:
    """Log an unexpected failure with its traceback and hide it from the caller."""
    logger.exception(f"Unhandled error: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "internal_error", "message": "Internal server error"}
    )

async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed requests as 400 naming the offending fields."""
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": {
                "error": ValidationError.kind,
                "message": "Request validation failed",
                "field": errors[0]["field"] if errors else None,
                "errors": errors,
            }
        }
    )
