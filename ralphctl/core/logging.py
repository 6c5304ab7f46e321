"""
Logging configuration for ralphctl.

Provides centralized logging setup with verbosity levels:
- 0 (default): WARNING - errors and warnings only
- 1 (-v):      INFO - iterations, retries, stop decisions
- 2 (-vv):     DEBUG - commands, hook environments, git queries
- 3+ (-vvv):   TRACE - everything (raw agent output, hook output)

Log records emitted while a loop is running are prefixed with the
session name and iteration position, e.g. ``[auth:3/10]``.
"""

import copy
import logging
import sys
from dataclasses import dataclass
from typing import Optional

# Custom TRACE level (more verbose than DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")


def trace(self, message, *args, **kwargs):
    """Log at TRACE level."""
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kwargs)


logging.Logger.trace = trace


@dataclass
class LoopContext:
    """Context for loop-aware logging.

    Tracks the current session and iteration position.
    """
    session_name: Optional[str] = None
    iteration: Optional[int] = None
    max_iterations: Optional[int] = None

    def format_prefix(self) -> str:
        """Format the context as a log prefix.

        Examples:
            [auth]
            [auth:3/10]
        """
        if not self.session_name:
            return ""
        if self.iteration is not None and self.max_iterations:
            return f"[{self.session_name}:{self.iteration}/{self.max_iterations}]"
        return f"[{self.session_name}]"


_current_loop_context: Optional[LoopContext] = None


def get_loop_context() -> Optional[LoopContext]:
    """Get the current loop context."""
    return _current_loop_context


def set_loop_context(context: Optional[LoopContext]) -> None:
    """Set the current loop context."""
    global _current_loop_context
    _current_loop_context = context


class LoopContextFormatter(logging.Formatter):
    """Formatter that includes loop context if available.

    The prefix is applied to a copy; the record other handlers see is
    left untouched.
    """

    def format(self, record):
        ctx = get_loop_context()
        if ctx:
            prefix = ctx.format_prefix()
            if prefix:
                record = copy.copy(record)
                record.msg = f"{prefix} {record.msg}"
        return super().format(record)


def setup_logging(verbosity: int = 0, quiet: bool = False) -> logging.Logger:
    """Configure logging based on verbosity level.

    Args:
        verbosity: Number of -v flags (0=WARNING, 1=INFO, 2=DEBUG, 3+=TRACE)
        quiet: If True, suppress all output except errors

    Returns:
        The configured root logger for ralphctl
    """
    if quiet:
        level = logging.ERROR
    elif verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    elif verbosity == 2:
        level = logging.DEBUG
    else:
        level = TRACE

    logger = logging.getLogger("ralphctl")
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if verbosity >= 2:
        fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        formatter = LoopContextFormatter(fmt, datefmt="%H:%M:%S")
    elif verbosity == 1:
        formatter = LoopContextFormatter("[%(levelname)s] %(message)s")
    else:
        formatter = logging.Formatter("%(message)s")

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger for a module.

    Args:
        name: Module name (e.g., "ralphctl.loop.runner").
              If None, returns the root ralphctl logger.
    """
    if name is None:
        return logging.getLogger("ralphctl")
    return logging.getLogger(name)
