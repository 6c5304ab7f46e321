"""
Stop condition evaluation.

Conditions are checked after every iteration in a fixed order, first
match wins:

1. max iterations reached
2. output pattern found in the iteration's combined output
3. stop hook exits 0 (run separately, see run_stop_hook)
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..core.config import StopConditions
from .hooks import execute_hook

logger = logging.getLogger("ralphctl.loop.stop")


@dataclass
class StopCheckContext:
    iteration: int
    max_iterations: int
    output: str
    working_dir: Optional[Path] = None


@dataclass
class StopResult:
    should_stop: bool
    reason: Optional[str] = None


def check_stop_conditions(conditions: StopConditions, context: StopCheckContext) -> StopResult:
    """Evaluate the synchronous stop conditions for a finished iteration."""
    if conditions.max_iterations and context.iteration >= context.max_iterations:
        return StopResult(True, f"Reached max iterations ({context.max_iterations})")

    pattern = conditions.output_pattern
    if pattern.enabled and pattern.pattern:
        if re.search(pattern.pattern, context.output):
            return StopResult(True, f"Output pattern matched: {pattern.pattern}")

    return StopResult(False)


async def run_stop_hook(
    command: str,
    env: dict[str, str],
    cwd: Optional[Path] = None,
) -> StopResult:
    """Run the stop hook; exit code 0 means stop.

    Any other exit code, or a failure to start the command, means
    keep going.
    """
    result = await execute_hook(command, env, cwd)
    logger.debug(f"Stop hook exited with code {result.exit_code}")
    if result.exit_code == 0:
        return StopResult(True, f"Stop hook returned success: {command}")
    return StopResult(False)
