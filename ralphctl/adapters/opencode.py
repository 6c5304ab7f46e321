"""OpenCode adapter."""

from typing import Optional

from ..core.tokens import TokenUsage, parse_opencode_tokens
from .base import ToolAdapter


class OpenCodeAdapter(ToolAdapter):
    """Adapter for the opencode CLI (``opencode run``)."""

    name = "opencode"
    command_name = "opencode"

    def parse_tokens(self, output: str) -> Optional[TokenUsage]:
        return parse_opencode_tokens(output)
