"""Core components for ralphctl."""

from .config import Config, ToolName, load_config
from .ledger import IterationRecord, IterationStatus, ProgressHeader, ProgressLedger, SessionSummary
from .logging import get_logger, setup_logging
from .progress import LoopProgress, is_quiet, progress, set_quiet
from .session import SessionInfo, SessionManager
from .tokens import TokenUsage, accumulate_tokens, format_token_usage

__all__ = [
    "Config",
    "IterationRecord",
    "IterationStatus",
    "LoopProgress",
    "ProgressHeader",
    "ProgressLedger",
    "SessionInfo",
    "SessionManager",
    "SessionSummary",
    "TokenUsage",
    "ToolName",
    "accumulate_tokens",
    "format_token_usage",
    "get_logger",
    "is_quiet",
    "load_config",
    "progress",
    "set_quiet",
    "setup_logging",
]
