"""
Centralized Exceptions
Error taxonomy and structured error handling for the live feed.
"""

import re
from typing import Dict, Any, Optional
from fastapi import HTTPException, status


class CryptoDashError(Exception):
    """Base exception for cryptodash."""

    def __init__(self, message: str, error_code: str = "UNKNOWN", details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(CryptoDashError):
    """Configuration error (missing or invalid feed credentials)."""

    def __init__(self, message: str = "Configuration error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIG_ERROR", details)


class NetworkError(CryptoDashError):
    """Network connectivity error."""

    def __init__(self, message: str = "Network error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "NETWORK_ERROR", details)


class ValidationError(CryptoDashError):
    """Data validation error."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", details)


# Error mapping to HTTP responses
ERROR_TO_HTTP_STATUS = {
    ConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    NetworkError: status.HTTP_503_SERVICE_UNAVAILABLE,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def create_http_exception(error: CryptoDashError) -> HTTPException:
    """Convert CryptoDashError to HTTPException with proper status code."""
    status_code = ERROR_TO_HTTP_STATUS.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail={
            "error": error.error_code,
            "message": sanitize_error_message(error.message),
            "details": error.details
        }
    )


_TOKEN_QUERY = re.compile(r"(token=)[^&\s'\"]+", re.IGNORECASE)


def sanitize_error_message(message: str) -> str:
    """Strip credentials from messages before they reach logs or callers."""
    # Transport errors echo the connection URI, which carries the token
    return _TOKEN_QUERY.sub(r"\1***", message)


def create_structured_error_response(error: Exception) -> Dict[str, Any]:
    """Create structured error response for logging and API responses."""
    if isinstance(error, CryptoDashError):
        return {
            "error_type": error.error_code,
            "message": sanitize_error_message(error.message),
            "details": error.details,
        }
    return {
        "error_type": "UNKNOWN_ERROR",
        "message": sanitize_error_message(str(error)),
        "details": {},
    }
