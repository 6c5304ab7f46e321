"""Output formatting utilities."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape

from ..core.exceptions import ExitCode, format_json_error

console = Console()


def print_error(message: str) -> None:
    """Print error message."""
    console.print(f"[red]Error: {escape(message)}[/red]")


def print_success(message: str) -> None:
    """Print success message."""
    console.print(f"[green]✓ {escape(message)}[/green]")


def print_warning(message: str) -> None:
    """Print warning message."""
    console.print(f"[yellow]⚠ {escape(message)}[/yellow]")


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    console.print_json(json.dumps(data, indent=2, default=str))


def handle_error(
    exc: Exception,
    json_errors: bool = False,
    context: Optional[dict[str, Any]] = None,
) -> int:
    """Handle an exception with appropriate output format.

    Args:
        exc: The exception to handle
        json_errors: If True, output JSON format; otherwise Rich format
        context: Optional additional context (session, prompt file, etc.)

    Returns:
        Exit code to use for sys.exit()
    """
    if json_errors:
        print(format_json_error(exc, context))
    else:
        print_error(str(exc))

    if hasattr(exc, "exit_code"):
        return exc.exit_code
    return ExitCode.GENERAL_ERROR
