"""Tests for the sessions command helpers."""

from datetime import datetime, timedelta

import pytest

from ralphctl.commands.sessions import format_age

pytestmark = pytest.mark.unit

NOW = datetime(2026, 10, 18, 12, 0, 0)


class TestFormatAge:
    """Test format_age utility."""

    def test_just_now(self):
        assert format_age(NOW - timedelta(seconds=30), NOW) == "just now"

    def test_minutes_ago(self):
        assert format_age(NOW - timedelta(minutes=15), NOW) == "15m ago"

    def test_hours_ago(self):
        assert format_age(NOW - timedelta(hours=5, minutes=59), NOW) == "5h ago"

    def test_days_ago(self):
        assert format_age(NOW - timedelta(days=3, hours=2), NOW) == "3d ago"
