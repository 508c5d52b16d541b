"""
Error taxonomy for the validation service.

Every error carries an ErrorCode so the HTTP layer can render the
standard error payload. Inside a batch, the validator converts these
into an unsatisfied outcome for the affected requirement only.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    AI_ERROR = "AI_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class ValidationServiceError(Exception):
    """Base class for all service errors."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    http_status: int = 500

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigurationError(ValidationServiceError):
    """Missing store reference, credentials or required document content."""

    code = ErrorCode.CONFIGURATION_ERROR
    http_status = 500


class ProviderError(ValidationServiceError):
    """Transport failure or non-2xx response from an AI backend."""

    code = ErrorCode.AI_ERROR
    http_status = 502

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message, details)
        self.status_code = status_code


class ProviderTimeoutError(ProviderError):
    """A poll-until-done operation exceeded its absolute timeout."""

    code = ErrorCode.TIMEOUT_ERROR
    http_status = 504


class ExtractionError(ProviderError):
    """Document layout analysis reported failure."""


class InvalidRequestError(ValidationServiceError):
    """Caller supplied an unusable value (unknown requirement type, ...)."""

    code = ErrorCode.VALIDATION_ERROR
    http_status = 400


class NotFoundError(ValidationServiceError):
    code = ErrorCode.NOT_FOUND
    http_status = 404


class ResponseParseError(ValidationServiceError):
    """Model output contained no parseable JSON object."""

    code = ErrorCode.AI_ERROR
    http_status = 502


def error_payload(exc: Exception) -> dict[str, Any]:
    """Build the standard error body for an exception."""
    if isinstance(exc, ValidationServiceError):
        code, message, details = exc.code, exc.message, exc.details
    else:
        code, message, details = ErrorCode.INTERNAL_ERROR, str(exc), None
    return {
        "success": False,
        "error": {
            "code": code.value,
            "message": message,
            "details": details,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    }
