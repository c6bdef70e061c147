"""Async HTTP client for the Canvas LMS REST API."""

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import TypeAdapter, ValidationError

from canvas_mcp import __version__
from canvas_mcp.api.exceptions import (
    CanvasError,
    ConfigError,
    DecodeError,
    InvalidParameterError,
    TransportError,
    error_from_status,
)

if TYPE_CHECKING:
    from canvas_mcp.config import CanvasConfig

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0
CONNECT_TIMEOUT = 10.0
KEEPALIVE_EXPIRY = 90.0
MAX_KEEPALIVE_CONNECTIONS = 10


def _auth_header(token: str) -> str:
    """Build the Authorization header value, rejecting unencodable tokens."""
    value = f"Bearer {token}"
    try:
        value.encode("ascii")
    except UnicodeEncodeError as e:
        raise ConfigError(f"Invalid API token: {e}") from e
    if any(ord(c) < 32 or ord(c) == 127 for c in value):
        raise ConfigError("Invalid API token: contains control characters")
    return value


def extract_error_message(body: str) -> str:
    """Pull a human-readable message out of an error response body.

    Uses the JSON ``message`` field, then ``error``, then the raw body.
    """
    try:
        data = json.loads(body)
    except ValueError:
        return body

    if isinstance(data, dict):
        value = data.get("message", data.get("error"))
        if isinstance(value, str):
            return value
    return body


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {name}")


def _retry_after(response: httpx.Response) -> int | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class CanvasClient:
    """Async HTTP client for the Canvas API.

    One instance is shared by every tool call. The underlying
    ``httpx.AsyncClient`` pools connections and is safe for concurrent use.

    Usage:
        async with CanvasClient(config) as client:
            user = await client.get("/users/self")
    """

    def __init__(
        self,
        config: "CanvasConfig",
        transport: httpx.AsyncBaseTransport | None = None,
        request_timeout: float = REQUEST_TIMEOUT,
    ):
        """Create the client.

        Args:
            config: Validated configuration
            transport: Optional httpx transport, mainly for tests
            request_timeout: Deadline in seconds for a whole request, from
                connecting until the body has been read

        Raises:
            ConfigError: If the token cannot be sent as a header value.
        """
        self.config = config
        self.request_timeout = request_timeout
        self._client = httpx.AsyncClient(
            headers={
                "Authorization": _auth_header(config.api_token.get_secret_value()),
                "Accept": "application/json",
                "User-Agent": f"canvas-mcp/{__version__}",
            },
            timeout=httpx.Timeout(request_timeout, connect=CONNECT_TIMEOUT),
            limits=httpx.Limits(
                max_keepalive_connections=MAX_KEEPALIVE_CONNECTIONS,
                keepalive_expiry=KEEPALIVE_EXPIRY,
            ),
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        """Get the base API URL."""
        return self.config.api_url

    async def __aenter__(self) -> "CanvasClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close pooled connections."""
        await self._client.aclose()

    def build_url(self, path: str) -> str:
        """Build the full URL for an API endpoint.

        Leading slashes on ``path`` are ignored. A trailing slash is dropped
        from single-segment paths (``courses/``) and kept on deeper ones.
        """
        path = path.lstrip("/")
        if "/" not in path.rstrip("/"):
            path = path.rstrip("/")
        return f"{self.base_url.rstrip('/')}/{path}"

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    async def get(self, path: str, response_type: Any = None) -> Any:
        """GET a path and decode the JSON response.

        Args:
            path: Endpoint path relative to the API base URL
            response_type: Optional type to validate the body into (pydantic
                model, dataclass, ``list[...]`` etc.). Plain JSON when omitted.

        Raises:
            CanvasError: On transport failure, non-2xx status or decode failure.
        """
        response = await self._send("GET", path)
        return self._decode(response, response_type)

    async def post(self, path: str, body: Any, response_type: Any = None) -> Any:
        """POST a JSON body and decode the JSON response."""
        response = await self._send("POST", path, json=body)
        return self._decode(response, response_type)

    async def put(self, path: str, body: Any, response_type: Any = None) -> Any:
        """PUT a JSON body and decode the JSON response."""
        response = await self._send("PUT", path, json=body)
        return self._decode(response, response_type)

    async def delete(self, path: str, response_type: Any = None) -> Any:
        """DELETE a path and decode the JSON response."""
        response = await self._send("DELETE", path)
        return self._decode(response, response_type)

    async def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Make a request and return the raw response without decoding.

        The body has been read, so ``.text``, ``.content`` and ``.headers``
        are available. Non-2xx responses still raise.
        """
        return await self._send(method, path, **kwargs)

    async def get_current_user(self) -> dict[str, Any]:
        """Get the current user (useful for testing the connection)."""
        return await self.get("/users/self")

    # -------------------------------------------------------------------------
    # Response handling
    # -------------------------------------------------------------------------

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send a request, returning a fully read 2xx response.

        ``request_timeout`` bounds the whole exchange, from connecting until
        the last byte of the body has been read.
        """
        url = self.build_url(path)
        logger.debug(f"{method} {url}")

        try:
            request = self._client.build_request(method, url, **kwargs)
        except httpx.InvalidURL as e:
            raise InvalidParameterError(f"Invalid URL {url!r}: {e}") from e
        except (TypeError, ValueError) as e:
            raise InvalidParameterError(f"Request body is not JSON serializable: {e}") from e

        try:
            response = await asyncio.wait_for(self._exchange(request), self.request_timeout)
        except asyncio.TimeoutError as e:
            logger.warning(f"{method} {url} timed out after {self.request_timeout}s")
            raise TransportError(f"Request timed out after {self.request_timeout}s") from e

        logger.debug(f"{method} {url} -> {response.status_code}")
        return response

    async def _exchange(self, request: httpx.Request) -> httpx.Response:
        """Send ``request`` and read the full body, raising on non-2xx."""
        try:
            response = await self._client.send(request, stream=True)
        except httpx.RequestError as e:
            logger.warning(f"{request.method} {request.url} failed: {e!r}")
            raise TransportError(str(e) or type(e).__name__) from e

        try:
            if not response.is_success:
                raise await self._error_from_response(response)
            try:
                await response.aread()
            except httpx.RequestError as e:
                raise TransportError(str(e) or type(e).__name__) from e
        finally:
            await response.aclose()
        return response

    async def _error_from_response(self, response: httpx.Response) -> CanvasError:
        """Convert a non-2xx response into a CanvasError."""
        status = response.status_code
        try:
            await response.aread()
            message = extract_error_message(response.text)
        except (httpx.HTTPError, UnicodeDecodeError):
            message = httpx.codes.get_reason_phrase(status) or "Unknown error"

        error = error_from_status(status, message, _retry_after(response))
        logger.warning(f"{response.request.method} {response.request.url} -> {status}: {error}")
        return error

    def _decode(self, response: httpx.Response, response_type: Any = None) -> Any:
        """Strictly decode a successful response body."""
        text = response.text
        try:
            if response_type is None:
                return json.loads(text, parse_constant=_reject_constant)
            return TypeAdapter(response_type).validate_json(text, strict=True)
        except (ValueError, ValidationError) as e:
            raise DecodeError(str(e), text) from e
