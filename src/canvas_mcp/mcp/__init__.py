"""MCP server module for the Canvas MCP server.

This module provides an MCP (Model Context Protocol) server that exposes
the Canvas LMS API to Claude and other AI agents over stdio.
"""

from canvas_mcp.mcp.server import CanvasServer, ServerIdentity, mcp_error_handler

__all__ = ["CanvasServer", "ServerIdentity", "mcp_error_handler"]
