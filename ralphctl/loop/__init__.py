"""The iteration loop: controller, retry policy, stop conditions and hooks."""

from .hooks import HookExecutor, HookResult
from .retry import RetryAction, decide_retry
from .runner import RunOptions, RunResult, run_loop
from .stop import StopCheckContext, StopResult, check_stop_conditions, run_stop_hook

__all__ = [
    "HookExecutor",
    "HookResult",
    "RetryAction",
    "RunOptions",
    "RunResult",
    "StopCheckContext",
    "StopResult",
    "check_stop_conditions",
    "decide_retry",
    "run_loop",
    "run_stop_hook",
]
