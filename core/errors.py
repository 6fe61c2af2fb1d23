"""
Platform Errors

One tagged error type for every failure a service can report.
Services raise PlatformError; the API layer turns it into
{"success": false, "error": ..., "code": ...} with the error's status code.
"""
import functools
import logging
from enum import Enum
from typing import Any, Dict, Optional

import asyncpg

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    # Authentication
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"

    # Validation
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"

    # Resources
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"

    # Database
    DATABASE_ERROR = "DATABASE_ERROR"
    FOREIGN_KEY_VIOLATION = "FOREIGN_KEY_VIOLATION"
    UNIQUE_CONSTRAINT_VIOLATION = "UNIQUE_CONSTRAINT_VIOLATION"

    # Files
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    UPLOAD_FAILED = "UPLOAD_FAILED"

    # Business rules
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    CAMPAIGN_INACTIVE = "CAMPAIGN_INACTIVE"
    MILESTONE_NOT_READY = "MILESTONE_NOT_READY"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    INVALID_STATUS = "INVALID_STATUS"
    DUPLICATE_REVIEW = "DUPLICATE_REVIEW"
    DUPLICATE_FEEDBACK = "DUPLICATE_FEEDBACK"
    ALREADY_RELEASED = "ALREADY_RELEASED"
    DELETION_BLOCKED = "DELETION_BLOCKED"

    # System
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class PlatformError(Exception):
    """Service-level failure with a machine-readable code and HTTP status"""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body = {"success": False, "error": self.message, "code": self.code.value}
        if self.details:
            body["details"] = self.details
        return body

    def __repr__(self) -> str:
        return f"PlatformError({self.code.value}, {self.message!r}, {self.status_code})"


def handle_db_error(exc: Exception) -> PlatformError:
    """Translate a driver exception into a PlatformError"""
    if isinstance(exc, PlatformError):
        return exc
    if isinstance(exc, asyncpg.UniqueViolationError):
        return PlatformError(
            ErrorCode.UNIQUE_CONSTRAINT_VIOLATION, "Resource already exists", 409,
            {"constraint": exc.constraint_name},
        )
    if isinstance(exc, asyncpg.ForeignKeyViolationError):
        return PlatformError(
            ErrorCode.FOREIGN_KEY_VIOLATION, "Referenced resource does not exist", 400,
            {"constraint": exc.constraint_name},
        )
    # Malformed ids and values the driver or server cannot coerce
    if isinstance(exc, asyncpg.DataError):
        return PlatformError(ErrorCode.INVALID_INPUT, "Invalid input value", 400)
    if isinstance(exc, asyncpg.PostgresError):
        return PlatformError(
            ErrorCode.DATABASE_ERROR, "Database operation failed", 500,
            {"sqlstate": exc.sqlstate},
        )
    return PlatformError(ErrorCode.INTERNAL_ERROR, "An unexpected error occurred", 500)


def with_error_handling(func):
    """Decorator for async service functions: anything that is not a
    PlatformError is logged and re-raised as one."""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except PlatformError:
            raise
        except Exception as e:
            logger.error(f"{func.__qualname__} failed: {e}", exc_info=True)
            raise handle_db_error(e) from e
    return wrapper


# === Helpers ===

def validation_error(field: str, message: str) -> PlatformError:
    return PlatformError(ErrorCode.VALIDATION_ERROR, f"{field}: {message}", 400, {"field": field})


def not_found(entity: str = "Resource") -> PlatformError:
    return PlatformError(ErrorCode.NOT_FOUND, f"{entity} not found", 404)


def forbidden(message: str = "Access denied") -> PlatformError:
    return PlatformError(ErrorCode.FORBIDDEN, message, 403)


def file_upload_error(reason: str) -> PlatformError:
    if reason == "size":
        return PlatformError(ErrorCode.FILE_TOO_LARGE, "File size exceeds the maximum allowed limit", 413)
    if reason == "type":
        return PlatformError(ErrorCode.INVALID_FILE_TYPE, "File type is not supported", 400)
    return PlatformError(ErrorCode.UPLOAD_FAILED, "File upload failed. Please try again.", 500)


_BUSINESS_ERRORS = {
    "insufficient_funds": (ErrorCode.INSUFFICIENT_FUNDS, "Insufficient funds for this operation"),
    "campaign_inactive": (ErrorCode.CAMPAIGN_INACTIVE, "Campaign is not currently active"),
    "milestone_not_ready": (ErrorCode.MILESTONE_NOT_READY, "Milestone is not ready for verification"),
}


def business_error(kind: str) -> PlatformError:
    code, message = _BUSINESS_ERRORS.get(kind, (ErrorCode.INTERNAL_ERROR, "Business rule violation"))
    return PlatformError(code, message, 400)
