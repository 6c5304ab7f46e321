"""
Retry policy for failed iterations.

A pure decision table. Exit code 0 always continues; a non-zero exit is
stopped on, retried (once) or tolerated depending on the strategy:

    strategy     first failure   failure after one retry
    stop         STOP            -
    retry-once   RETRY           STOP
    continue     CONTINUE        -
"""

from enum import Enum

from ..core.config import ErrorStrategy


class RetryAction(Enum):
    RETRY = "retry"
    STOP = "stop"
    CONTINUE = "continue"


def decide_retry(strategy: ErrorStrategy, exit_code: int, has_retried: bool) -> RetryAction:
    """Decide what happens after an agent run.

    Args:
        strategy: Configured error_handling.strategy
        exit_code: Exit code of the latest run
        has_retried: Whether this iteration already used its retry
    """
    if exit_code == 0:
        return RetryAction.CONTINUE

    if strategy is ErrorStrategy.STOP:
        return RetryAction.STOP
    if strategy is ErrorStrategy.CONTINUE:
        return RetryAction.CONTINUE
    if strategy is ErrorStrategy.RETRY_ONCE:
        return RetryAction.STOP if has_retried else RetryAction.RETRY

    raise ValueError(f"Unknown error strategy: {strategy!r}")
