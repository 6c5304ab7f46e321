"""Tests for ralphctl/loop/hooks.py - lifecycle hook execution."""

import asyncio
import os

import pytest

from ralphctl.core.config import Hooks
from ralphctl.loop.hooks import HookExecutor, HookResult, execute_hook

pytestmark = pytest.mark.unit


@pytest.fixture
def open_stdin():
    """Make fd 0 a pipe whose write end stays open, like an idle terminal."""
    read_fd, write_fd = os.pipe()
    saved = os.dup(0)
    os.dup2(read_fd, 0)
    try:
        yield
    finally:
        os.dup2(saved, 0)
        for fd in (saved, read_fd, write_fd):
            os.close(fd)


BASE_ENV = {
    "RL_ITERATION": "0",
    "RL_SESSION_NAME": "auth",
    "RL_PROMPT_FILE": "/work/feature-auth.md",
    "RL_SESSION_DIR": "/work/.ralph/auth",
    "RL_TOOL": "claude-code",
    "RL_MODEL": "claude-sonnet-4-5",
}

DUMP_ENV = 'env | grep "^RL_" | sort'


def parse_env(stdout: str) -> dict:
    return dict(line.split("=", 1) for line in stdout.splitlines() if "=" in line)


class TestExecuteHook:
    """Single command execution."""

    @pytest.mark.asyncio
    async def test_captures_output_and_exit_code(self):
        result = await execute_hook("echo out; echo err >&2; exit 4", {})
        assert result == HookResult(exit_code=4, stdout="out\n", stderr="err\n")
        assert result.success is False

    @pytest.mark.asyncio
    async def test_env_is_merged_over_process_env(self, monkeypatch):
        monkeypatch.setenv("RALPHCTL_TEST_VAR", "inherited")
        result = await execute_hook('echo "$RALPHCTL_TEST_VAR $RL_TOOL"', {"RL_TOOL": "codex"})
        assert result.stdout == "inherited codex\n"

    @pytest.mark.asyncio
    async def test_spawn_failure_is_reported_not_raised(self, tmp_path):
        result = await execute_hook("true", {}, cwd=tmp_path / "missing")
        assert result.exit_code == 1
        assert result.stderr

    @pytest.mark.asyncio
    async def test_reading_hook_does_not_block(self, open_stdin):
        """A hook that reads stdin gets EOF instead of waiting on the terminal."""
        result = await asyncio.wait_for(execute_hook("cat; echo done", {}), timeout=5)
        assert result.exit_code == 0
        assert result.stdout == "done\n"


class TestHookExecutor:
    """Hook environment contract per lifecycle point."""

    @pytest.mark.asyncio
    async def test_unset_hook_returns_none(self):
        executor = HookExecutor(Hooks(), BASE_ENV)
        assert await executor.run_pre_iteration(1) is None
        assert await executor.run_post_iteration(1, 0) is None
        assert await executor.run_on_error(1, 2) is None
        assert await executor.run_on_complete(3, "done") is None

    @pytest.mark.asyncio
    async def test_pre_iteration_env(self):
        executor = HookExecutor(Hooks(pre_iteration=DUMP_ENV), BASE_ENV)
        env = parse_env((await executor.run_pre_iteration(2)).stdout)
        assert env["RL_ITERATION"] == "2"
        assert env["RL_SESSION_NAME"] == "auth"
        assert env["RL_PROMPT_FILE"] == "/work/feature-auth.md"
        assert env["RL_SESSION_DIR"] == "/work/.ralph/auth"
        assert env["RL_TOOL"] == "claude-code"
        assert env["RL_MODEL"] == "claude-sonnet-4-5"
        assert "RL_EXIT_CODE" not in env

    @pytest.mark.asyncio
    async def test_post_iteration_adds_exit_code(self):
        executor = HookExecutor(Hooks(post_iteration=DUMP_ENV), BASE_ENV)
        env = parse_env((await executor.run_post_iteration(3, 0)).stdout)
        assert env["RL_ITERATION"] == "3"
        assert env["RL_EXIT_CODE"] == "0"

    @pytest.mark.asyncio
    async def test_on_error_adds_exit_code(self):
        executor = HookExecutor(Hooks(on_error=DUMP_ENV), BASE_ENV)
        env = parse_env((await executor.run_on_error(1, 127)).stdout)
        assert env["RL_EXIT_CODE"] == "127"

    @pytest.mark.asyncio
    async def test_on_complete_env(self):
        executor = HookExecutor(Hooks(on_complete=DUMP_ENV), BASE_ENV)
        env = parse_env((await executor.run_on_complete(5, "Reached max iterations (5)")).stdout)
        assert env["RL_TOTAL_ITERATIONS"] == "5"
        assert env["RL_STOP_REASON"] == "Reached max iterations (5)"
        assert "RL_EXIT_CODE" not in env

    @pytest.mark.asyncio
    async def test_failing_hook_does_not_raise(self):
        executor = HookExecutor(Hooks(post_iteration="exit 9"), BASE_ENV)
        result = await executor.run_post_iteration(1, 0)
        assert result.exit_code == 9

    @pytest.mark.asyncio
    async def test_runs_in_cwd(self, tmp_path):
        executor = HookExecutor(Hooks(pre_iteration="touch marker"), BASE_ENV, cwd=tmp_path)
        await executor.run_pre_iteration(1)
        assert (tmp_path / "marker").exists()

    @pytest.mark.asyncio
    async def test_base_env_is_copied(self):
        env = dict(BASE_ENV)
        executor = HookExecutor(Hooks(), env)
        env["RL_TOOL"] = "changed"
        assert executor.base_env["RL_TOOL"] == "claude-code"
