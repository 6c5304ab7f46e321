"""Adapters for the agent CLIs ralphctl can drive."""

from .base import ExecutionResult, ToolAdapter
from .registry import ADAPTERS, get_adapter, get_available_tools, get_token_parser, list_tools

__all__ = [
    "ADAPTERS",
    "ExecutionResult",
    "ToolAdapter",
    "get_adapter",
    "get_available_tools",
    "get_token_parser",
    "list_tools",
]
