"""Cursor agent adapter."""

from pathlib import Path
from typing import Optional

from ..core.tokens import TokenUsage, parse_cursor_tokens
from .base import ToolAdapter


class CursorAdapter(ToolAdapter):
    """Adapter for the Cursor agent CLI (binary name ``agent``)."""

    name = "cursor"
    command_name = "agent"

    def common_paths(self) -> list[Path]:
        return [Path.home() / ".local" / "bin" / self.command_name]

    def parse_tokens(self, output: str) -> Optional[TokenUsage]:
        return parse_cursor_tokens(output)
