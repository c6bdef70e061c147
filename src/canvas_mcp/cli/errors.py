"""User-friendly error messages with actionable suggestions."""

from dataclasses import dataclass

from rich.console import Console
from rich.panel import Panel

from canvas_mcp.api.exceptions import CanvasError, ErrorKind, RateLimitError


@dataclass
class ErrorInfo:
    """Structured error information for display."""

    title: str
    suggestion: str
    checklist: tuple[str, ...] = ()


REQUIRED_VARIABLES = (
    "CANVAS_API_TOKEN - Your Canvas API access token",
    "CANVAS_API_URL - Your Canvas API URL (e.g., https://institution.instructure.com/api/v1)",
)

ERROR_MESSAGES = {
    ErrorKind.CONFIG: ErrorInfo(
        title="Configuration error",
        suggestion="Please ensure the following environment variables are set:",
        checklist=REQUIRED_VARIABLES,
    ),
    ErrorKind.AUTH: ErrorInfo(
        title="Authentication failed",
        suggestion="Please check:",
        checklist=(
            "Your API token is valid and has not expired",
            "The token belongs to this Canvas instance",
        ),
    ),
    ErrorKind.TRANSPORT: ErrorInfo(
        title="Connection failed",
        suggestion="Please check:",
        checklist=(
            "Your API URL is correct",
            "You have network access to Canvas",
        ),
    ),
    ErrorKind.NOT_FOUND: ErrorInfo(
        title="Not found",
        suggestion="Check that CANVAS_API_URL points at the API root of your Canvas instance.",
    ),
    ErrorKind.RATE_LIMIT: ErrorInfo(
        title="Rate limit exceeded",
        suggestion="Wait {retry_after} seconds and try again.",
    ),
    ErrorKind.API: ErrorInfo(
        title="Canvas API error",
        suggestion="This is probably a temporary problem. Try again later.",
    ),
    ErrorKind.DECODE: ErrorInfo(
        title="Unexpected response",
        suggestion="Canvas did not return JSON. Check that CANVAS_API_URL is correct.",
    ),
}

UNKNOWN = ErrorInfo(
    title="Unexpected error",
    suggestion="If this keeps happening, run with DEBUG=true and check the server log.",
)


def format_error(error: Exception, console: Console, verbose: bool = False) -> None:
    """Format and display a user-friendly error message."""
    kind = error.kind if isinstance(error, CanvasError) else None
    info = ERROR_MESSAGES.get(kind, UNKNOWN)

    suggestion = info.suggestion
    if "{retry_after}" in suggestion:
        retry_after = error.retry_after if isinstance(error, RateLimitError) else None
        suggestion = suggestion.format(retry_after=retry_after or 60)

    message = error.message if isinstance(error, CanvasError) else str(error)
    content_lines = [
        f"[white]{message}[/white]",
        "",
        f"[yellow]{suggestion}[/yellow]",
    ]
    content_lines.extend(f"  - {item}" for item in info.checklist)

    if verbose:
        content_lines.append("")
        content_lines.append(f"[dim]Type: {type(error).__name__}[/dim]")
        content_lines.append(f"[dim]Details: {error}[/dim]")

    console.print()
    console.print(Panel(
        "\n".join(content_lines),
        title=f"[red bold]Error: {info.title}[/red bold]",
        border_style="red",
        padding=(1, 2),
    ))
