"""CLI helpers for the Canvas MCP server."""
