"""Tests for the MCP server and handshake."""

import asyncio

import httpx
import pytest
import respx
from mcp.types import LATEST_PROTOCOL_VERSION

from canvas_mcp import __version__
from canvas_mcp.api.exceptions import ConfigError, NotFoundError
from canvas_mcp.config import load_config
from canvas_mcp.mcp.server import CanvasServer, ServerIdentity, mcp_error_handler


@pytest.fixture
def server(config):
    return CanvasServer(config)


class TestServerCreation:
    """Tests for CanvasServer construction."""

    def test_server_creation(self, server, config):
        """Server shares the config with its client."""
        assert server.config is config
        assert server.client.config is config
        assert server.mcp.name == "canvas-mcp"

    def test_invalid_token_is_fatal(self, tmp_path):
        """An unusable token stops construction."""
        config = load_config(api_token="bad\ntoken", api_url="https://school.edu", log_dir=tmp_path)

        with pytest.raises(ConfigError):
            CanvasServer(config)


class TestGetInfo:
    """Tests for the handshake identity."""

    def test_server_info(self, server):
        """Name, version, protocol and capabilities are reported."""
        info = server.get_info()

        assert isinstance(info, ServerIdentity)
        assert info.name == "canvas-mcp"
        assert info.version == __version__
        assert info.protocol_version == LATEST_PROTOCOL_VERSION
        assert "tools" in info.capabilities
        assert info.tools == ()

    def test_institution_not_specified(self, server):
        """Missing institution name uses a placeholder."""
        info = server.get_info()

        assert info.institution_name == "Not specified"
        assert "Institution: Not specified" in info.instructions
        assert "API URL: https://school.edu/api/v1" in info.instructions

    def test_institution_name(self, tmp_path):
        """The institution name is interpolated into the instructions."""
        config = load_config(
            api_token="t",
            api_url="https://school.edu",
            institution_name="Test University",
            log_dir=tmp_path,
        )

        info = CanvasServer(config).get_info()

        assert info.institution_name == "Test University"
        assert "Institution: Test University" in info.instructions

    def test_repeated_calls_identical(self, server):
        """get_info has no observable state between calls."""
        first = server.get_info()
        second = server.get_info()

        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_instructions_passed_to_fastmcp(self, server):
        """The host sees the same instructions in the handshake."""
        assert server.mcp.instructions == server.get_info().instructions

    def test_to_dict(self, server):
        """to_dict gives a JSON friendly record."""
        data = server.get_info().to_dict()

        assert data["name"] == "canvas-mcp"
        assert data["tools"] == []
        assert data["capabilities"] == {"tools": {"listChanged": False}}


@pytest.mark.asyncio
class TestToolRegistry:
    """Tests for tool registration and the error boundary."""

    async def test_register_tool(self, server):
        """Registered tools show up in the registry and the handshake."""

        @server.tool(description="Echo the input")
        async def echo(text: str) -> dict:
            return {"success": True, "text": text}

        assert "echo" in server.tools
        assert server.get_info().tools == ("echo",)
        assert await server.tools["echo"](text="hi") == {"success": True, "text": "hi"}

        listed = await server.mcp.list_tools()
        assert [t.name for t in listed] == ["echo"]

    async def test_duplicate_tool_rejected(self, server):
        """Tool names are unique."""

        @server.tool(name="ping")
        async def first() -> dict:
            return {}

        with pytest.raises(ValueError, match="already registered"):

            @server.tool(name="ping")
            async def second() -> dict:
                return {}

    @respx.mock
    async def test_tool_uses_shared_client(self, server):
        """Tool handlers reach Canvas through the server's client."""
        respx.get("https://school.edu/api/v1/users/self").mock(
            return_value=httpx.Response(200, json={"id": 1, "name": "Ada"})
        )

        @server.tool()
        async def whoami() -> dict:
            user = await server.client.get_current_user()
            return {"success": True, "name": user["name"]}

        assert await server.tools["whoami"]() == {"success": True, "name": "Ada"}

    @respx.mock
    async def test_concurrent_tool_calls(self, server):
        """Several calls can be in flight on the shared client."""
        respx.get(url__regex=r"https://school\.edu/api/v1/courses/\d+").mock(
            side_effect=lambda request: httpx.Response(
                200, json={"id": int(request.url.path.rsplit("/", 1)[-1])}
            )
        )

        @server.tool()
        async def get_course(course_id: int) -> dict:
            return await server.client.get(f"/courses/{course_id}")

        results = await asyncio.gather(*(server.tools["get_course"](course_id=i) for i in range(5)))

        assert [r["id"] for r in results] == [0, 1, 2, 3, 4]

    @respx.mock
    async def test_canvas_error_becomes_structured(self, server):
        """CanvasError from a tool is returned as a structured failure."""
        respx.get("https://school.edu/api/v1/courses/999").mock(
            return_value=httpx.Response(404, json={"message": "The specified resource does not exist."})
        )

        @server.tool()
        async def get_course() -> dict:
            return await server.client.get("/courses/999")

        result = await server.tools["get_course"]()

        assert result == {
            "success": False,
            "error_type": "not_found",
            "message": "The specified resource does not exist.",
            "status_code": 404,
        }

    async def test_lifespan_closes_client(self, server):
        """The HTTP client is closed when the session ends."""
        async with server._lifespan(server.mcp) as ctx:
            assert ctx is server
            assert not server.client._client.is_closed

        assert server.client._client.is_closed


@pytest.mark.asyncio
class TestMcpErrorHandler:
    """Tests for mcp_error_handler."""

    async def test_passes_through_result(self):
        @mcp_error_handler
        async def ok() -> dict:
            return {"success": True}

        assert await ok() == {"success": True}

    async def test_canvas_error(self):
        @mcp_error_handler
        async def missing() -> dict:
            raise NotFoundError("course 1")

        result = await missing()

        assert result["success"] is False
        assert result["error_type"] == "not_found"

    async def test_value_error_is_invalid_parameter(self):
        @mcp_error_handler
        async def bad_input(days: int) -> dict:
            raise ValueError("days must be positive")

        result = await bad_input(days=-1)

        assert result == {
            "success": False,
            "error_type": "invalid_parameter",
            "message": "days must be positive",
        }

    async def test_unexpected_error_is_masked(self, caplog):
        @mcp_error_handler
        async def broken() -> dict:
            raise KeyError("secret detail")

        result = await broken()

        assert result["error_type"] == "internal"
        assert "secret detail" not in result["message"]
        assert "MCP tool error in broken" in caplog.text


class TestMcpErrorHandlerWrapping:
    """Tests for decorator metadata."""

    def test_preserves_name(self):
        async def named_tool() -> dict:
            return {}

        assert mcp_error_handler(named_tool).__name__ == "named_tool"
