"""
Error taxonomy for the HTTP layer.

Every error a handler raises is an AppError subclass carrying the HTTP status
it maps to. Database failures arrive as GatewayError (vendor SQLSTATE plus the
database message) and are translated per endpoint with translate_db_error.
"""
import logging
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Missing or malformed input, detected before any database call (400)."""

    INVALID_NUMBER = "INVALID_NUMBER"
    INVALID_DATE = "INVALID_DATE"
    INVALID_TIMESTAMP = "INVALID_TIMESTAMP"
    MISSING_REQUIRED = "MISSING_REQUIRED"
    OUT_OF_RANGE = "OUT_OF_RANGE"

    def __init__(
        self,
        message: str,
        kind: str = MISSING_REQUIRED,
        field: Optional[str] = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.field = field
        super().__init__(message, status_code=status_code, details={"kind": kind, "field": field})


class NotFoundError(AppError):
    """Keyed lookup returned no rows (404)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class ConflictError(AppError):
    """Uniqueness violation raised by the database (409)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class PreconditionError(AppError):
    """Business rule rejected by a stored routine (400)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class UnexpectedError(AppError):
    """Anything not expected by the handler; the client only sees the generic message (500)."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, status_code=500)


class AuthError(AppError):
    """Missing (401) or invalid/expired (403) bearer token."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message, status_code=status_code)


class GatewayError(Exception):
    """Raised by the database gateway; code is the vendor SQLSTATE when the driver reports one."""

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code
        super().__init__(message)

    def __repr__(self) -> str:
        return f"GatewayError(code={self.code!r}, message={self.message!r})"


# Vendor codes raised by the stored routines
DUPLICATE = "45000"
UNIQUE_VIOLATION = "23505"
PRECONDITION_FAILED = "P0001"
UNKNOWN_EMPLOYEE = "P0002"
ALREADY_MEMBER = "P0003"


def translate_db_error(
    exc: GatewayError,
    expected: Mapping[str, AppError],
    fallback_message: str,
) -> AppError:
    """Map a gateway failure to the AppError registered for its code; anything else is logged and becomes a 500."""
    mapped = expected.get(exc.code) if exc.code else None
    if mapped is not None:
        logger.info("database rejected request: code=%s message=%s", exc.code, exc.message)
        return mapped
    logger.error("unexpected database error: %r", exc, exc_info=exc)
    return UnexpectedError(fallback_message)
