"""Tests for ralphctl logging configuration."""

import logging

import pytest

from ralphctl.core.logging import (
    TRACE,
    LoopContext,
    LoopContextFormatter,
    get_logger,
    get_loop_context,
    set_loop_context,
    setup_logging,
)

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def restore_ralphctl_logger():
    logger = logging.getLogger("ralphctl")
    level, handlers = logger.level, list(logger.handlers)
    yield
    logger.setLevel(level)
    logger.handlers[:] = handlers


class TestTraceLevel:
    """Test custom TRACE level setup."""

    def test_trace_level_name(self):
        assert TRACE == 5
        assert logging.getLevelName(TRACE) == "TRACE"

    def test_trace_method(self, caplog):
        logger = logging.getLogger("ralphctl.test.trace")
        with caplog.at_level(TRACE, logger="ralphctl.test.trace"):
            logger.trace("raw output")
        assert [r.levelno for r in caplog.records] == [TRACE]

    def test_trace_suppressed_at_debug(self, caplog):
        logger = logging.getLogger("ralphctl.test.trace2")
        with caplog.at_level(logging.DEBUG, logger="ralphctl.test.trace2"):
            logger.trace("hidden")
        assert caplog.records == []


class TestSetupLogging:

    @pytest.mark.parametrize("verbosity, level", [
        (0, logging.WARNING),
        (1, logging.INFO),
        (2, logging.DEBUG),
        (3, TRACE),
        (5, TRACE),
    ])
    def test_verbosity_levels(self, verbosity, level):
        assert setup_logging(verbosity).level == level

    def test_quiet_overrides_verbosity(self):
        assert setup_logging(3, quiet=True).level == logging.ERROR

    def test_single_handler(self):
        setup_logging(1)
        logger = setup_logging(2)
        assert len(logger.handlers) == 1

    def test_context_formatter_when_verbose(self):
        logger = setup_logging(1)
        assert isinstance(logger.handlers[0].formatter, LoopContextFormatter)

    def test_get_logger(self):
        assert get_logger().name == "ralphctl"
        assert get_logger("ralphctl.loop").name == "ralphctl.loop"


class TestLoopContext:
    """Session and iteration prefix on log records."""

    def test_prefix_with_iteration(self):
        assert LoopContext("auth", 3, 10).format_prefix() == "[auth:3/10]"

    def test_prefix_session_only(self):
        assert LoopContext("auth").format_prefix() == "[auth]"

    def test_empty_prefix(self):
        assert LoopContext().format_prefix() == ""

    def test_set_and_clear(self):
        set_loop_context(LoopContext("auth", 1, 2))
        assert get_loop_context().session_name == "auth"
        set_loop_context(None)
        assert get_loop_context() is None

    def test_formatter_adds_prefix(self):
        record = logging.LogRecord("ralphctl", logging.INFO, __file__, 1, "Retrying", None, None)
        set_loop_context(LoopContext("auth", 2, 5))
        assert LoopContextFormatter("%(message)s").format(record) == "[auth:2/5] Retrying"

    def test_formatter_without_context(self):
        record = logging.LogRecord("ralphctl", logging.INFO, __file__, 1, "Idle", None, None)
        assert LoopContextFormatter("%(message)s").format(record) == "Idle"

    def test_formatter_leaves_record_unchanged(self):
        """Formatting the same record twice (e.g. two handlers) prefixes once each time."""
        record = logging.LogRecord("ralphctl", logging.INFO, __file__, 1, "hello", None, None)
        set_loop_context(LoopContext("auth", 3, 10))
        formatter = LoopContextFormatter("%(message)s")

        assert formatter.format(record) == "[auth:3/10] hello"
        assert formatter.format(record) == "[auth:3/10] hello"
        assert record.msg == "hello"
