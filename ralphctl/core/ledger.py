"""
Append-only progress ledger (progress.md).

The ledger is a markdown file with three kinds of sections:

    # Session: auth                      header (new session)
    ## Resumed: 2026-10-18 14:32:05       header (resumed session)
    ## Iteration 1 - 14:33:10             one per iteration
    ## Summary                            once, after the loop ends

Every write opens the file, writes one complete section, flushes and
fsyncs before returning. Nothing is buffered between calls, so a crash
mid-loop leaves every finished iteration on disk, and an iteration that
was interrupted leaves no partial record.
"""

import os
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from .exceptions import LedgerError
from .session import SessionInfo
from .tokens import TokenUsage, format_token_usage


class IterationStatus(Enum):
    """Terminal status of one iteration."""
    COMPLETED = "completed"
    FAILED = "failed"
    RETRIED = "retried"


@dataclass(frozen=True)
class ProgressHeader:
    """Run metadata written at the top of the ledger (or in a Resumed section)."""
    session_name: str
    start_time: datetime
    tool: str
    model: str
    max_iterations: int
    is_resumed: bool = False


@dataclass(frozen=True)
class IterationRecord:
    """Outcome of one iteration. Written once, never changed."""
    iteration: int
    timestamp: datetime
    status: IterationStatus
    duration_ms: int
    exit_code: int
    files_changed: Optional[int] = None
    diff_summary: Optional[str] = None
    tokens: Optional[TokenUsage] = None
    commit_message: Optional[str] = None


@dataclass(frozen=True)
class SessionSummary:
    """Closing record of a loop run."""
    total_iterations: int
    stop_reason: str
    total_duration_ms: int
    total_tokens: Optional[TokenUsage] = None


def _format_start_time(moment: datetime) -> str:
    """UTC "YYYY-MM-DD HH:MM:SS"."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M:%S")


class ProgressLedger:
    """Writes a session's progress.md.

    Args:
        session: Session whose progress_file is written
        verbosity: "minimal" (status, duration and exit code only),
            "standard" (adds tokens, files changed, git diff) or
            "full" (also records the commit message)
    """

    def __init__(self, session: SessionInfo, verbosity: str = "standard"):
        self.session = session
        self.verbosity = verbosity
        self._started = time.monotonic()
        self._summary_written = False

    @property
    def path(self):
        return self.session.progress_file

    def _write(self, lines: list[str], mode: str = "a") -> None:
        with open(self.path, mode, encoding="utf-8") as f:
            f.write("\n".join(lines))
            f.flush()
            os.fsync(f.fileno())

    def write_header(self, header: ProgressHeader) -> None:
        """Start the ledger, or mark a resumed run without touching prior content."""
        if header.is_resumed and self.path.exists():
            self._write([
                "",
                "---",
                "",
                f"## Resumed: {_format_start_time(header.start_time)}",
                f"Tool: {header.tool}",
                f"Model: {header.model}",
                f"Max Iterations: {header.max_iterations}",
                "",
                "",
            ])
            return

        self._write([
            f"# Session: {header.session_name}",
            f"Started: {_format_start_time(header.start_time)}",
            f"Tool: {header.tool}",
            f"Model: {header.model}",
            f"Max Iterations: {header.max_iterations}",
            "",
            "---",
            "",
            "",
        ], mode="w")

    def render_iteration(self, record: IterationRecord) -> list[str]:
        """Lines for one iteration section; absent optional fields are omitted."""
        lines = [
            f"## Iteration {record.iteration} - {record.timestamp.strftime('%H:%M:%S')}",
            f"- Status: {record.status.value}",
            f"- Duration: {record.duration_ms / 1000:.1f}s",
            f"- Exit code: {record.exit_code}",
        ]
        if self.verbosity != "minimal":
            if record.tokens is not None and not record.tokens.is_empty():
                lines.append(f"- Tokens: {format_token_usage(record.tokens)}")
            if record.files_changed is not None:
                lines.append(f"- Files changed: {record.files_changed}")
            if record.diff_summary:
                lines.append(f"- Git diff: {record.diff_summary}")
        if self.verbosity == "full" and record.commit_message:
            lines.append(f"- Commit: {record.commit_message}")
        lines.append("")
        lines.append("")
        return lines

    def append_iteration(self, record: IterationRecord) -> None:
        """Append one iteration section.

        Raises:
            LedgerError: If the summary has already been written
        """
        if self._summary_written:
            raise LedgerError("Iteration appended after summary", str(self.path))
        self._write(self.render_iteration(record))

    def write_summary(self, summary: SessionSummary) -> None:
        """Append the closing section. Must be called exactly once.

        Raises:
            LedgerError: On a second call
        """
        if self._summary_written:
            raise LedgerError("Summary already written", str(self.path))

        lines = [
            "---",
            "",
            "## Summary",
            f"Total iterations: {summary.total_iterations}",
            f"Stop reason: {summary.stop_reason}",
            f"Duration: {summary.total_duration_ms / 1000 / 60:.1f}m",
        ]
        if summary.total_tokens is not None and not summary.total_tokens.is_empty():
            lines.append(f"Total tokens: {format_token_usage(summary.total_tokens)}")
        lines.append("")

        self._write(lines)
        self._summary_written = True

    def elapsed_ms(self) -> int:
        """Milliseconds since this ledger was opened."""
        return int((time.monotonic() - self._started) * 1000)
