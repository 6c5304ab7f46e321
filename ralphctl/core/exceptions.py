"""
Custom exceptions for ralphctl.

Provides specific exception types with associated exit codes
for the failure modes of a loop run. All exceptions support JSON
serialization for CI integration via --json-errors flag.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional


class ExitCode:
    """Standard exit codes for ralphctl."""
    SUCCESS = 0
    GENERAL_ERROR = 1
    MISSING_FILES = 2
    TOOL_UNAVAILABLE = 3
    CONFIG_INVALID = 4
    LOOP_FAILED = 5


@dataclass
class PromptFileMissing(Exception):
    """Raised when the prompt file passed to a run does not exist.

    Attributes:
        path: Absolute path that was looked up
    """
    path: str

    def __str__(self) -> str:
        return f"Prompt file not found: {self.path}"

    @property
    def exit_code(self) -> int:
        return ExitCode.MISSING_FILES


@dataclass
class ToolUnavailable(Exception):
    """Raised when the agent binary for a tool cannot be resolved.

    Attributes:
        tool: Tool identifier (e.g., "claude-code")
        available: Other tools found on this machine, if known
    """
    tool: str
    available: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        message = f"Tool '{self.tool}' is not installed or not in PATH"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        return message

    @property
    def exit_code(self) -> int:
        return ExitCode.TOOL_UNAVAILABLE


@dataclass
class UnknownTool(Exception):
    """Raised when a tool name does not match any known adapter."""
    name: str
    known: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"Unknown tool: {self.name}. Available tools: {', '.join(self.known)}"

    @property
    def exit_code(self) -> int:
        return ExitCode.CONFIG_INVALID


@dataclass
class ConfigError(Exception):
    """Raised when the merged configuration fails validation.

    Attributes:
        issues: One message per invalid field ("path: problem")
        source_path: Config file the values came from, if any
    """
    issues: list[str]
    source_path: Optional[str] = None

    def __str__(self) -> str:
        where = f" ({self.source_path})" if self.source_path else ""
        lines = "\n".join(f"  - {issue}" for issue in self.issues)
        return f"Invalid configuration{where}:\n{lines}"

    @property
    def exit_code(self) -> int:
        return ExitCode.CONFIG_INVALID


@dataclass
class InvalidSessionName(Exception):
    """Raised when a session name cannot be used as a directory under .ralph/."""
    name: str

    def __str__(self) -> str:
        return f"Invalid session name: {self.name!r} (must be a single path component)"

    @property
    def exit_code(self) -> int:
        return ExitCode.CONFIG_INVALID


@dataclass
class LedgerError(Exception):
    """Raised when the progress ledger is used out of order."""
    message: str
    progress_file: Optional[str] = None

    def __str__(self) -> str:
        if self.progress_file:
            return f"{self.message}: {self.progress_file}"
        return self.message

    @property
    def exit_code(self) -> int:
        return ExitCode.GENERAL_ERROR


def exception_to_json(exc: Exception, context: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """Convert an exception to a JSON-serializable dictionary.

    Args:
        exc: The exception to convert
        context: Optional additional context (session, iteration, etc.)

    Returns:
        JSON-serializable dict with error details
    """
    error_dict: dict[str, Any] = {
        "type": type(exc).__name__,
        "message": str(exc),
    }

    if hasattr(exc, "exit_code"):
        error_dict["exit_code"] = exc.exit_code
    else:
        error_dict["exit_code"] = ExitCode.GENERAL_ERROR

    if isinstance(exc, PromptFileMissing):
        error_dict["path"] = exc.path

    elif isinstance(exc, ToolUnavailable):
        error_dict["tool"] = exc.tool
        if exc.available:
            error_dict["available"] = exc.available

    elif isinstance(exc, UnknownTool):
        error_dict["tool"] = exc.name
        error_dict["known"] = exc.known

    elif isinstance(exc, InvalidSessionName):
        error_dict["name"] = exc.name

    elif isinstance(exc, ConfigError):
        error_dict["issues"] = exc.issues
        if exc.source_path:
            error_dict["source_path"] = exc.source_path

    if context:
        error_dict["context"] = context

    return {"error": error_dict}


def format_json_error(exc: Exception, context: Optional[dict[str, Any]] = None) -> str:
    """Format an exception as a JSON string."""
    return json.dumps(exception_to_json(exc, context), indent=2, default=str)
