"""
Claude Code adapter.

Runs the ``claude`` CLI in print mode with the combined prompt on stdin.
"""

from pathlib import Path
from typing import Optional

from ..core.tokens import TokenUsage, parse_claude_code_tokens
from .base import ToolAdapter


class ClaudeCodeAdapter(ToolAdapter):
    """Adapter for Anthropic's Claude Code CLI."""

    name = "claude-code"
    command_name = "claude"

    def common_paths(self) -> list[Path]:
        # The official installer puts the binary under ~/.claude/local and
        # only adds a shell alias, so PATH lookup alone misses it.
        home = Path.home()
        return [
            home / ".claude" / "local" / self.command_name,
            Path("/usr/local/bin") / self.command_name,
            home / ".local" / "bin" / self.command_name,
        ]

    def parse_tokens(self, output: str) -> Optional[TokenUsage]:
        return parse_claude_code_tokens(output)
