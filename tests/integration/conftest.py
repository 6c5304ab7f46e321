"""Pytest configuration for integration tests.

All tests in this directory are automatically marked as integration tests.
"""

import os
import stat

import pytest


def pytest_collection_modifyitems(items):
    """Mark all tests in integration directory as integration tests."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def fake_agent(tmp_path, monkeypatch):
    """Install a shell script named ``fake-agent`` on PATH.

    Call with the script body; returns the script path.
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")

    def install(body):
        path = bin_dir / "fake-agent"
        path.write_text(f"#!/bin/sh\n{body}\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR)
        return path

    return install
