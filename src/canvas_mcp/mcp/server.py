"""MCP server for the Canvas LMS API.

Answers the host's identity/capability handshake and dispatches tool calls
to handlers that share one CanvasClient. No tools are registered yet;
handlers are added with the ``CanvasServer.tool`` decorator.

Usage:
    # Run the server
    python -m canvas_mcp

    # Or via entry point
    canvas-mcp
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from functools import wraps
from typing import Any, AsyncIterator, Callable, TypeVar

from mcp.server.fastmcp import FastMCP
from mcp.types import LATEST_PROTOCOL_VERSION

from canvas_mcp import __version__
from canvas_mcp.api.client import CanvasClient
from canvas_mcp.api.exceptions import CanvasError, InternalError, InvalidParameterError
from canvas_mcp.config import CanvasConfig

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable)

SERVER_NAME = "canvas-mcp"
NOT_SPECIFIED = "Not specified"


def mcp_error_handler(f: F) -> F:
    """Decorator turning tool failures into structured error responses.

    CanvasError is reported with its own kind, ValueError (input
    validation) as invalid_parameter, anything else is logged and
    reported as an internal error without details.
    """

    @wraps(f)
    async def wrapper(*args, **kwargs):
        try:
            return await f(*args, **kwargs)
        except CanvasError as e:
            logger.warning(f"MCP tool {f.__name__} failed: {e}")
            return e.to_dict()
        except ValueError as e:
            return InvalidParameterError(str(e)).to_dict()
        except Exception:
            logger.exception(f"MCP tool error in {f.__name__}")
            return InternalError("An unexpected error occurred").to_dict()

    return wrapper  # type: ignore


def build_instructions(config: CanvasConfig) -> str:
    """Human-readable instructions sent to the host during the handshake."""
    return (
        "Canvas LMS MCP Server\n"
        f"Institution: {config.institution_name or NOT_SPECIFIED}\n"
        f"API URL: {config.api_url}\n"
        "\n"
        "This server provides tools for interacting with Canvas LMS."
    )


@dataclass(frozen=True)
class ServerIdentity:
    """Identity and capabilities reported to the MCP host."""

    name: str
    version: str
    protocol_version: str
    institution_name: str
    api_url: str
    tools: tuple[str, ...]
    instructions: str

    @property
    def capabilities(self) -> dict[str, Any]:
        return {"tools": {"listChanged": False}}

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["tools"] = list(self.tools)
        data["capabilities"] = self.capabilities
        return data


class CanvasServer:
    """Canvas MCP server.

    Owns the configuration, the shared HTTP client and the tool registry.
    Construction is the only step that can fail; afterwards the server is
    ready to serve.
    """

    def __init__(self, config: CanvasConfig, client: CanvasClient | None = None):
        """Create the server.

        Args:
            config: Validated configuration
            client: Pre-built client, mainly for tests

        Raises:
            ConfigError: If the client cannot be built from the configuration.
        """
        self.config = config
        self.client = client or CanvasClient(config)
        self._tools: dict[str, Callable] = {}

        self.mcp = FastMCP(
            name=SERVER_NAME,
            instructions=build_instructions(config),
            lifespan=self._lifespan,
        )
        self.mcp._mcp_server.version = __version__

    @asynccontextmanager
    async def _lifespan(self, app: FastMCP) -> AsyncIterator["CanvasServer"]:
        """Close the HTTP client when the session ends."""
        logger.info(f"Serving {SERVER_NAME} {__version__} for {self.config.api_url}")
        try:
            yield self
        finally:
            await self.client.aclose()
            logger.info("Session ended, HTTP client closed")

    def get_info(self) -> ServerIdentity:
        """Return the server identity for the handshake."""
        return ServerIdentity(
            name=SERVER_NAME,
            version=__version__,
            protocol_version=LATEST_PROTOCOL_VERSION,
            institution_name=self.config.institution_name or NOT_SPECIFIED,
            api_url=self.config.api_url,
            tools=tuple(self._tools),
            instructions=build_instructions(self.config),
        )

    def tool(self, name: str | None = None, description: str | None = None) -> Callable[[F], F]:
        """Register an async tool handler.

        Usage:
            @server.tool()
            async def get_profile() -> dict:
                return await server.client.get("/users/self/profile")
        """

        def decorator(fn: F) -> F:
            tool_name = name or fn.__name__
            if tool_name in self._tools:
                raise ValueError(f"Tool already registered: {tool_name}")

            handler = mcp_error_handler(fn)
            self._tools[tool_name] = handler
            self.mcp.add_tool(handler, name=tool_name, description=description)
            logger.debug(f"Registered tool {tool_name}")
            return handler

        return decorator

    @property
    def tools(self) -> dict[str, Callable]:
        """Registered tool handlers by name."""
        return dict(self._tools)

    def run(self) -> None:
        """Serve over stdio until the host disconnects."""
        self.mcp.run(transport="stdio")
