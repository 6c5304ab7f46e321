"""
Lifecycle hooks.

Hooks are user shell commands run at fixed points of the loop:
pre_iteration, post_iteration, on_error and on_complete. They run under
``sh -c`` in the working directory with RL_* variables describing the
run merged over the process environment:

    RL_ITERATION, RL_SESSION_NAME, RL_PROMPT_FILE, RL_SESSION_DIR,
    RL_TOOL, RL_MODEL                      every hook
    RL_EXIT_CODE                           post_iteration, on_error
    RL_STOP_REASON, RL_TOTAL_ITERATIONS    on_complete

A hook never affects control flow: its exit status is logged and
reported, and failures to start it are folded into the result.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..core.config import Hooks

logger = logging.getLogger("ralphctl.loop.hooks")


@dataclass
class HookResult:
    """Exit status and output of one hook run."""
    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0


async def execute_hook(
    command: str,
    env: dict[str, str],
    cwd: Optional[Path] = None,
) -> HookResult:
    """Run one shell command with extra environment variables.

    Never raises: a spawn failure yields exit code 1 with the error text
    in stderr. Hooks get no stdin, so a hook that reads input sees EOF
    instead of blocking the loop.
    """
    run_env = os.environ.copy()
    run_env.update(env)
    try:
        proc = await asyncio.create_subprocess_exec(
            "sh", "-c", command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=run_env,
            cwd=cwd,
        )
        stdout, stderr = await proc.communicate()
    except OSError as e:
        return HookResult(exit_code=1, stdout="", stderr=str(e))

    return HookResult(
        exit_code=proc.returncode if proc.returncode is not None else 1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


class HookExecutor:
    """Runs the configured lifecycle hooks of one loop run.

    Args:
        hooks: Hook commands from the config
        base_env: RL_* variables shared by every hook (RL_ITERATION is
            overwritten per call)
        cwd: Directory hooks run in
    """

    def __init__(self, hooks: Hooks, base_env: dict[str, str], cwd: Optional[Path] = None):
        self.hooks = hooks
        self.base_env = dict(base_env)
        self.cwd = cwd

    async def _run(self, name: str, command: Optional[str], env: dict[str, str]) -> Optional[HookResult]:
        if not command:
            return None

        logger.debug(f"Running {name} hook: {command}")
        result = await execute_hook(command, {**self.base_env, **env}, self.cwd)
        if result.stdout.strip():
            logger.trace(f"{name} hook stdout:\n{result.stdout.rstrip()}")
        if result.success:
            logger.debug(f"{name} hook succeeded")
        else:
            logger.warning(f"{name} hook exited with code {result.exit_code}")
            if result.stderr.strip():
                logger.debug(f"{name} hook stderr:\n{result.stderr.rstrip()}")
        return result

    async def run_pre_iteration(self, iteration: int) -> Optional[HookResult]:
        return await self._run("pre_iteration", self.hooks.pre_iteration, {
            "RL_ITERATION": str(iteration),
        })

    async def run_post_iteration(self, iteration: int, exit_code: int) -> Optional[HookResult]:
        return await self._run("post_iteration", self.hooks.post_iteration, {
            "RL_ITERATION": str(iteration),
            "RL_EXIT_CODE": str(exit_code),
        })

    async def run_on_error(self, iteration: int, exit_code: int) -> Optional[HookResult]:
        return await self._run("on_error", self.hooks.on_error, {
            "RL_ITERATION": str(iteration),
            "RL_EXIT_CODE": str(exit_code),
        })

    async def run_on_complete(self, total_iterations: int, stop_reason: str) -> Optional[HookResult]:
        return await self._run("on_complete", self.hooks.on_complete, {
            "RL_ITERATION": str(total_iterations),
            "RL_TOTAL_ITERATIONS": str(total_iterations),
            "RL_STOP_REASON": stop_reason,
        })
