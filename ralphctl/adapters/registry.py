"""
Adapter registry.

One entry per ToolName. The mapping is checked to be exhaustive at import
time, so adding a tool to the enum without an adapter fails immediately.
"""

from pathlib import Path
from typing import Callable, Optional, Type

from ..core.config import ToolName
from ..core.tokens import TokenUsage
from .base import ToolAdapter
from .claude import ClaudeCodeAdapter
from .codex import CodexAdapter
from .cursor import CursorAdapter
from .opencode import OpenCodeAdapter

ADAPTERS: dict[ToolName, Type[ToolAdapter]] = {
    ToolName.CLAUDE_CODE: ClaudeCodeAdapter,
    ToolName.OPENCODE: OpenCodeAdapter,
    ToolName.CURSOR: CursorAdapter,
    ToolName.CODEX: CodexAdapter,
}

_missing = set(ToolName) - set(ADAPTERS)
if _missing:
    raise RuntimeError(f"No adapter registered for: {', '.join(t.value for t in _missing)}")


def get_adapter(
    tool: "str | ToolName",
    command: Optional[str] = None,
    working_dir: Optional[Path] = None,
) -> ToolAdapter:
    """Get an adapter instance for a tool.

    Raises:
        UnknownTool: If the name matches no tool
    """
    return ADAPTERS[ToolName.parse(tool)](command=command, working_dir=working_dir)


def list_tools() -> list[str]:
    """All tool names."""
    return [tool.value for tool in ADAPTERS]


async def get_available_tools() -> list[str]:
    """Names of tools whose binary is installed."""
    available = []
    for tool in ADAPTERS:
        if await get_adapter(tool).is_available():
            available.append(tool.value)
    return available


def get_token_parser(tool: "str | ToolName") -> Callable[[str], Optional[TokenUsage]]:
    """The token usage parser for a tool's output."""
    return get_adapter(tool).parse_tokens
