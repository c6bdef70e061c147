"""Exceptions for the Canvas API.

Every failure the client can produce is one of the classes below. Each
carries an ``ErrorKind`` tag so the MCP boundary can report it without
inspecting the class hierarchy.
"""

from enum import Enum
from typing import Any

PREVIEW_LENGTH = 200


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""

    CONFIG = "config"
    TRANSPORT = "transport"
    DECODE = "decode"
    API = "api"
    NOT_FOUND = "not_found"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    INVALID_PARAMETER = "invalid_parameter"
    INTERNAL = "internal"


class CanvasError(Exception):
    """Base exception for Canvas errors."""

    kind: ErrorKind = ErrorKind.INTERNAL
    prefix = "Internal error"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        return f"{self.prefix}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Structured form returned to the MCP host."""
        data: dict[str, Any] = {
            "success": False,
            "error_type": self.kind.value,
            "message": self.message,
        }
        if self.status_code is not None:
            data["status_code"] = self.status_code
        return data


class ConfigError(CanvasError):
    """Invalid or missing configuration value."""

    kind = ErrorKind.CONFIG
    prefix = "Configuration error"


class TransportError(CanvasError):
    """Network failure before a response status was received."""

    kind = ErrorKind.TRANSPORT
    prefix = "HTTP request failed"


class InternalError(CanvasError):
    """Error that fits no other kind."""


class DecodeError(InternalError):
    """Response body was not valid JSON or did not match the expected shape."""

    kind = ErrorKind.DECODE

    def __init__(self, message: str, body: str):
        self.body_preview = body[:PREVIEW_LENGTH]
        super().__init__(
            f"Failed to parse Canvas API response: {message}. Response: {self.body_preview}"
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["body_preview"] = self.body_preview
        return data


class ApiError(CanvasError):
    """Non-2xx response not covered by a more specific kind."""

    kind = ErrorKind.API
    prefix = "Canvas API error"

    def __init__(self, status_code: int, message: str):
        super().__init__(message, status_code)

    def __str__(self) -> str:
        return f"{self.prefix}: {self.status_code} - {self.message}"


class NotFoundError(CanvasError):
    """Resource not found (404)."""

    kind = ErrorKind.NOT_FOUND
    prefix = "Resource not found"

    def __init__(self, message: str):
        super().__init__(message, 404)


class AuthError(CanvasError):
    """Token rejected (401) or access forbidden (403)."""

    kind = ErrorKind.AUTH
    prefix = "Authentication failed"


class RateLimitError(CanvasError):
    """Rate limit exceeded (429)."""

    kind = ErrorKind.RATE_LIMIT
    prefix = "Rate limit exceeded"

    def __init__(self, message: str, retry_after: int | None = None):
        super().__init__(message, 429)
        self.retry_after = retry_after

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.retry_after is not None:
            data["retry_after"] = self.retry_after
        return data


class InvalidParameterError(CanvasError):
    """Caller passed an invalid argument to a tool."""

    kind = ErrorKind.INVALID_PARAMETER
    prefix = "Invalid parameter"


def error_from_status(
    status_code: int, message: str, retry_after: int | None = None
) -> CanvasError:
    """Map a non-2xx status code and extracted message to an error."""
    if status_code == 401:
        return AuthError(message, 401)
    if status_code == 403:
        return AuthError(f"Forbidden: {message}", 403)
    if status_code == 404:
        return NotFoundError(message)
    if status_code == 429:
        return RateLimitError(message, retry_after)
    return ApiError(status_code, message)
