"""
Shared utilities for command implementations.
"""

import asyncio
from typing import Any, Coroutine

import click


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Execute an async coroutine synchronously.

    Usage:
        def my_command(...):
            run_async(_my_command_async(...))
    """
    return asyncio.run(coro)


def json_errors_enabled(ctx: click.Context) -> bool:
    """Whether the group was invoked with --json-errors."""
    return bool(ctx.obj.get("json_errors", False)) if ctx.obj else False
