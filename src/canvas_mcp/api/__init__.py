"""API module for the Canvas MCP server."""

from canvas_mcp.api.client import CanvasClient
from canvas_mcp.api.exceptions import (
    ApiError,
    AuthError,
    CanvasError,
    ConfigError,
    DecodeError,
    ErrorKind,
    InternalError,
    InvalidParameterError,
    NotFoundError,
    RateLimitError,
    TransportError,
    error_from_status,
)

__all__ = [
    # Client
    "CanvasClient",
    # Exceptions
    "CanvasError",
    "ErrorKind",
    "ApiError",
    "AuthError",
    "ConfigError",
    "DecodeError",
    "InternalError",
    "InvalidParameterError",
    "NotFoundError",
    "RateLimitError",
    "TransportError",
    "error_from_status",
]
