"""OpenAI Codex CLI adapter."""

from typing import Optional

from ..core.tokens import TokenUsage, parse_codex_tokens
from .base import ToolAdapter


class CodexAdapter(ToolAdapter):
    """Adapter for ``codex exec``."""

    name = "codex"
    command_name = "codex"

    def parse_tokens(self, output: str) -> Optional[TokenUsage]:
        return parse_codex_tokens(output)
