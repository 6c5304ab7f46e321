"""
Progress output for ralphctl.

Provides user-facing progress messages that print to stdout by default.
Separate from logging (which goes to stderr for debug/diagnostics).

Usage:
    from ..core.progress import progress, LoopProgress

    progress("Session: auth")
    lp = LoopProgress(max_iterations=10)
    lp.iteration_start(1)
    lp.iteration_done(1, duration_ms=3200)
"""

import sys
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.markup import escape

# Global quiet flag - when True, suppresses progress output
_quiet = False

# Global timestamp flag - when True, includes timestamps in progress output
_show_timestamps = False


def set_quiet(quiet: bool = True) -> None:
    """Set global quiet mode."""
    global _quiet
    _quiet = quiet


def is_quiet() -> bool:
    """Check if quiet mode is enabled."""
    return _quiet


def set_timestamps(enabled: bool = True) -> None:
    """Enable or disable timestamps in progress output."""
    global _show_timestamps
    _show_timestamps = enabled


def progress(message: str, end: str = "\n", flush: bool = True) -> None:
    """Print progress message to stdout (unless quiet mode).

    Args:
        message: The message to print
        end: String appended after the message (default: newline)
        flush: Whether to flush stdout immediately
    """
    if not _quiet:
        if _show_timestamps:
            timestamp = datetime.now().strftime("%H:%M:%S")
            message = f"{timestamp} {message}"
        print(message, end=end, flush=flush, file=sys.stdout)


class LoopProgress:
    """Iteration banners for a running loop.

    Uses rich markup when stdout is a terminal, plain text otherwise.
    """

    def __init__(self, max_iterations: int, console: Optional[Console] = None):
        self.max_iterations = max_iterations
        self.console = console or Console(highlight=False)

    def _print(self, markup: str, plain: str) -> None:
        if _quiet:
            return
        if self.console.is_terminal:
            self.console.print(markup)
        else:
            progress(plain)

    def iteration_start(self, iteration: int) -> None:
        text = f"━━━ Iteration {iteration}/{self.max_iterations} ━━━"
        self._print(f"\n[cyan]{text}[/cyan]\n", f"\n{text}\n")

    def iteration_done(self, iteration: int, duration_ms: int) -> None:
        text = f"━━━ Iteration {iteration} complete ({duration_ms / 1000:.1f}s) ━━━"
        self._print(f"\n[dim]{text}[/dim]\n", f"\n{text}\n")

    def warning(self, message: str) -> None:
        self._print(f"[yellow]{escape(message)}[/yellow]", message)

    def note(self, message: str) -> None:
        self._print(f"[dim]{escape(message)}[/dim]", message)

    def done(self, stop_reason: str, progress_file: str) -> None:
        self._print(
            f"\n[green]✓ Session complete: {escape(stop_reason)}[/green]\n[dim]  Progress: {escape(progress_file)}[/dim]",
            f"\n✓ Session complete: {stop_reason}\n  Progress: {progress_file}",
        )
