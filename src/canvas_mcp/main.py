"""Main CLI entry point for the Canvas MCP server."""

import asyncio
import logging
from typing import Annotated, Any

import typer
from rich.console import Console

from canvas_mcp.api.client import CanvasClient
from canvas_mcp.api.exceptions import CanvasError
from canvas_mcp.cli.errors import format_error
from canvas_mcp.config import CanvasConfig, load_config
from canvas_mcp.logging_config import setup_logging
from canvas_mcp.mcp.server import CanvasServer

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="canvas-mcp",
    help="MCP server exposing the Canvas LMS API over stdio",
    add_completion=False,
)


@app.command()
def main(
    test: Annotated[
        bool,
        typer.Option("--test", help="Test the Canvas API connection and exit"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show technical details on errors"),
    ] = False,
):
    """
    Run the Canvas MCP server on stdin/stdout.

    Examples:
        canvas-mcp
        canvas-mcp --test
    """
    if test:
        run_connection_test(verbose=verbose)
    else:
        serve(verbose=verbose)


def serve(verbose: bool = False) -> None:
    """Load configuration and serve until the host disconnects.

    Only configuration problems reach stderr, and only before serving starts.
    """
    try:
        config = load_config()
    except CanvasError as e:
        format_error(e, err_console, verbose=verbose)
        raise typer.Exit(1)

    log_file = setup_logging(config)
    logger.info(f"Logging to {log_file}")

    try:
        server = CanvasServer(config)
    except CanvasError as e:
        logger.error(f"Failed to create MCP server: {e}")
        format_error(e, err_console, verbose=verbose)
        raise typer.Exit(1)

    server.run()


async def _fetch_current_user(client: CanvasClient) -> dict[str, Any]:
    async with client:
        return await client.get_current_user()


def run_connection_test(verbose: bool = False) -> None:
    """Check configuration, connectivity and server construction."""
    console.print("Testing Canvas API connection...")
    console.print()

    try:
        config: CanvasConfig = load_config()
    except CanvasError as e:
        console.print("[red]✗[/red] Configuration could not be loaded")
        format_error(e, err_console, verbose=verbose)
        raise typer.Exit(1)

    log_file = setup_logging(config)
    console.print("[green]✓[/green] Configuration loaded")
    if config.institution_name:
        console.print(f"  Institution: {config.institution_name}")
    console.print(f"  API URL: {config.api_url}")
    console.print(f"  Log file: {log_file}")

    try:
        client = CanvasClient(config)
    except CanvasError as e:
        console.print("[red]✗[/red] Failed to create HTTP client")
        format_error(e, err_console, verbose=verbose)
        raise typer.Exit(1)
    console.print("[green]✓[/green] HTTP client created")

    try:
        with console.status("Testing API connection..."):
            user = asyncio.run(_fetch_current_user(client))
    except CanvasError as e:
        console.print("[red]✗[/red] API connection failed")
        format_error(e, err_console, verbose=verbose)
        raise typer.Exit(1)

    if isinstance(user, dict):
        if user.get("name"):
            console.print(f"[green]✓[/green] Connected as: {user['name']}")
        if user.get("id") is not None:
            console.print(f"  User ID: {user['id']}")
    else:
        console.print("[green]✓[/green] Connected")

    try:
        server = CanvasServer(config)
    except CanvasError as e:
        console.print("[red]✗[/red] Failed to create MCP server")
        format_error(e, err_console, verbose=verbose)
        raise typer.Exit(1)

    info = server.get_info()
    console.print(f"[green]✓[/green] MCP server created: {info.name} v{info.version}")
    console.print()
    console.print("[green bold]✓ All tests passed![/green bold]")
