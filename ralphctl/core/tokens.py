"""
Token usage tracking for agent tools.

Each tool reports token usage differently in its free-text output.
This module provides best-effort parsers that extract a TokenUsage
from that output, and the field-wise accumulator used for the
session summary.

Parsers are heuristic and order-dependent: within a parser, later
patterns may overwrite fields set by earlier ones, and when a parser
falls back to another parser the first one that finds anything wins.
"""

import re
from dataclasses import dataclass, fields, replace
from typing import Callable, Optional


@dataclass(frozen=True)
class TokenUsage:
    """Token usage for one iteration or a running total.

    Every field is optional. A field that no iteration reported stays
    None, so a summary can say "no cost data" instead of "$0.00".
    """
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    cache_read_tokens: Optional[int] = None
    cache_write_tokens: Optional[int] = None
    cost: Optional[float] = None  # dollars

    def is_empty(self) -> bool:
        """True if no field is set."""
        return all(getattr(self, f.name) is None for f in fields(self))

    def to_dict(self) -> dict:
        """Serialize the fields that are set."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


TokenParser = Callable[[str], Optional[TokenUsage]]


def accumulate_tokens(total: TokenUsage, iteration: TokenUsage) -> TokenUsage:
    """Add an iteration's usage into a running total, field by field.

    A field is added only when the iteration defines it; an absent total
    field counts as 0 for that addition. Fields neither side defines
    remain None.
    """
    updates = {}
    for f in fields(TokenUsage):
        value = getattr(iteration, f.name)
        if value is not None:
            updates[f.name] = (getattr(total, f.name) or 0) + value
    return replace(total, **updates)


def _int(match: re.Match) -> int:
    return int(match.group(1).replace(",", ""))


def parse_claude_code_tokens(output: str) -> Optional[TokenUsage]:
    """Parse Claude Code token usage from output.

    Recognised formats:
    - "Total tokens: 1234 in, 567 out"
    - "Input: 1234 tokens" / "Output: 567 tokens"
    - "input_tokens: 1234" / "output_tokens": 567 (JSON-style)
    - "Total cost: $0.0123" or "Cost: $0.0123"
    - "cache_read_input_tokens: 100", "Cache write tokens: 50"
    """
    usage: dict = {}

    total_match = re.search(r"Total tokens:\s*(\d+)\s*in,\s*(\d+)\s*out", output, re.IGNORECASE)
    if total_match:
        usage["input_tokens"] = int(total_match.group(1))
        usage["output_tokens"] = int(total_match.group(2))
        usage["total_tokens"] = usage["input_tokens"] + usage["output_tokens"]

    input_match = re.search(r"Input:\s*(\d+)\s*tokens?", output, re.IGNORECASE)
    output_match = re.search(r"Output:\s*(\d+)\s*tokens?", output, re.IGNORECASE)
    if input_match and output_match:
        usage["input_tokens"] = _int(input_match)
        usage["output_tokens"] = _int(output_match)
        usage["total_tokens"] = usage["input_tokens"] + usage["output_tokens"]

    input_json = re.search(r"(?<![a-z_])input_tokens[\"\s:]+(\d+)", output, re.IGNORECASE)
    output_json = re.search(r"(?<![a-z_])output_tokens[\"\s:]+(\d+)", output, re.IGNORECASE)
    if input_json:
        usage["input_tokens"] = _int(input_json)
    if output_json:
        usage["output_tokens"] = _int(output_json)
    if (input_json or output_json) and usage.get("input_tokens") and usage.get("output_tokens"):
        usage["total_tokens"] = usage["input_tokens"] + usage["output_tokens"]

    cost_match = re.search(r"(?:Total\s+)?[Cc]ost:\s*\$?(\d+(?:\.\d+)?)", output)
    if cost_match:
        usage["cost"] = float(cost_match.group(1))

    cache_read = re.search(
        r"cache[_\s]?read[_\s]?(?:input[_\s]?)?tokens?[\"\s:]+(\d+)", output, re.IGNORECASE
    )
    cache_write = re.search(
        r"cache[_\s]?(?:creation|write)[_\s]?(?:input[_\s]?)?tokens?[\"\s:]+(\d+)",
        output,
        re.IGNORECASE,
    )
    if cache_read:
        usage["cache_read_tokens"] = _int(cache_read)
    if cache_write:
        usage["cache_write_tokens"] = _int(cache_write)

    return TokenUsage(**usage) if usage else None


def parse_opencode_tokens(output: str) -> Optional[TokenUsage]:
    """Parse OpenCode token usage from output.

    OpenCode fronts several providers, so OpenAI ("prompt_tokens"),
    Gemini ("promptTokenCount") and generic total formats are tried
    before falling back to the Claude Code parser.
    """
    usage: dict = {}

    prompt_match = re.search(r"prompt[_\s]?tokens[\"\s:]+(\d+)", output, re.IGNORECASE)
    completion_match = re.search(r"completion[_\s]?tokens[\"\s:]+(\d+)", output, re.IGNORECASE)
    if prompt_match:
        usage["input_tokens"] = _int(prompt_match)
    if completion_match:
        usage["output_tokens"] = _int(completion_match)

    gemini_prompt = re.search(r"prompt[_\s]?token[_\s]?count[\"\s:]+(\d+)", output, re.IGNORECASE)
    gemini_candidates = re.search(
        r"candidates[_\s]?token[_\s]?count[\"\s:]+(\d+)", output, re.IGNORECASE
    )
    if gemini_prompt:
        usage["input_tokens"] = _int(gemini_prompt)
    if gemini_candidates:
        usage["output_tokens"] = _int(gemini_candidates)

    total_match = re.search(r"total[_\s]?tokens?[_\s]?(?:count)?[\"\s:]+(\d+)", output, re.IGNORECASE)
    if total_match:
        usage["total_tokens"] = _int(total_match)

    if not usage:
        return parse_claude_code_tokens(output)

    if usage.get("input_tokens") and usage.get("output_tokens") and "total_tokens" not in usage:
        usage["total_tokens"] = usage["input_tokens"] + usage["output_tokens"]

    return TokenUsage(**usage)


def parse_cursor_tokens(output: str) -> Optional[TokenUsage]:
    """Parse Cursor agent token usage from output."""
    usage: dict = {}

    input_match = re.search(r"(?:input|prompt)[_\s]?tokens?[\"\s:]+(\d+)", output, re.IGNORECASE)
    output_match = re.search(
        r"(?:output|completion|response)[_\s]?tokens?[\"\s:]+(\d+)", output, re.IGNORECASE
    )
    total_match = re.search(r"total[_\s]?tokens?[\"\s:]+(\d+)", output, re.IGNORECASE)

    if input_match:
        usage["input_tokens"] = _int(input_match)
    if output_match:
        usage["output_tokens"] = _int(output_match)
    if total_match:
        usage["total_tokens"] = _int(total_match)

    if usage.get("input_tokens") and usage.get("output_tokens") and "total_tokens" not in usage:
        usage["total_tokens"] = usage["input_tokens"] + usage["output_tokens"]

    return TokenUsage(**usage) if usage else None


def parse_codex_tokens(output: str) -> Optional[TokenUsage]:
    """Parse Codex token usage from output.

    Codex prints the count on the line after "tokens used", with
    thousands separators:

        tokens used
        7,116
    """
    match = re.search(r"tokens\s+used\s*\n\s*([\d,]+)", output, re.IGNORECASE)
    if match:
        return TokenUsage(total_tokens=_int(match))
    return parse_opencode_tokens(output)


def parse_any_tokens(output: str) -> Optional[TokenUsage]:
    """Generic parser that tries every known format in turn."""
    return (
        parse_claude_code_tokens(output)
        or parse_opencode_tokens(output)
        or parse_cursor_tokens(output)
    )


def format_token_usage(usage: TokenUsage) -> str:
    """Format token usage for display.

    Examples:
        "1,234 in, 567 out"
        "7,116 total"
        "1,234 in, 567 out (cache: read: 100, write: 50) - $0.0123"
    """
    parts = []
    if usage.input_tokens is not None:
        parts.append(f"{usage.input_tokens:,} in")
    if usage.output_tokens is not None:
        parts.append(f"{usage.output_tokens:,} out")

    result = ", ".join(parts)
    if usage.total_tokens is not None and not parts:
        result = f"{usage.total_tokens:,} total"

    if usage.cache_read_tokens is not None or usage.cache_write_tokens is not None:
        cache_parts = []
        if usage.cache_read_tokens is not None:
            cache_parts.append(f"read: {usage.cache_read_tokens:,}")
        if usage.cache_write_tokens is not None:
            cache_parts.append(f"write: {usage.cache_write_tokens:,}")
        cache_str = f"cache: {', '.join(cache_parts)}"
        result = f"{result} ({cache_str})" if result else cache_str

    if usage.cost is not None:
        cost_str = f"${usage.cost:.4f}"
        result = f"{result} - {cost_str}" if result else cost_str

    return result or "unknown"
