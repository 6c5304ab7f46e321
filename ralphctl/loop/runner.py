"""
Iteration loop controller.

run_loop() drives one session: it resolves the tool and session, then
runs the agent repeatedly until a stop condition fires. Each iteration
goes through the same fixed sequence:

    pre_iteration hook
    execute agent (with at most one retry, see retry.py)
    extract token usage and proposed commit message
    auto-commit (per-iteration strategy)
    git stats, append ledger record
    post_iteration hook
    stop conditions, then stop hook

Every way out of the loop, including an exception from the agent run,
ends with exactly one summary in the ledger and the on_complete hook.
A KeyboardInterrupt is not caught and leaves the ledger as it was after
the last finished iteration.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..adapters import ToolAdapter, get_adapter, get_token_parser
from ..core import git
from ..core.config import CommitStrategy, Config, ToolName, get_tool_config
from ..core.exceptions import ToolUnavailable
from ..core.ledger import (
    IterationRecord,
    IterationStatus,
    ProgressHeader,
    ProgressLedger,
    SessionSummary,
)
from ..core.logging import LoopContext, set_loop_context
from ..core.models import format_model_for_tool
from ..core.progress import LoopProgress, progress
from ..core.prompt import combined_prompt, extract_tasks, generate_checklist
from ..core.session import SessionInfo, SessionManager
from ..core.tokens import TokenUsage, accumulate_tokens
from .hooks import HookExecutor
from .retry import RetryAction, decide_retry
from .stop import StopCheckContext, check_stop_conditions, run_stop_hook

logger = logging.getLogger("ralphctl.loop.runner")

ERROR_REASON_PREFIXES = ("Error on iteration", "Execution error:")


@dataclass
class RunOptions:
    """Inputs of one loop run."""
    prompt_file: Path
    config: Config
    tool: ToolName
    model: Optional[str] = None
    session_name: Optional[str] = None
    auto_commit: Optional[bool] = None    # None = use config.git.auto_commit
    working_dir: Optional[Path] = None
    verbose: bool = False


@dataclass
class RunResult:
    """Outcome of a loop run."""
    total_iterations: int
    stop_reason: str
    session: SessionInfo
    success: bool
    total_tokens: Optional[TokenUsage] = None

    def to_dict(self) -> dict:
        return {
            "total_iterations": self.total_iterations,
            "stop_reason": self.stop_reason,
            "session": self.session.to_dict(),
            "success": self.success,
            "total_tokens": self.total_tokens.to_dict() if self.total_tokens else None,
        }


def resolve_model(options: RunOptions, default_model: Optional[str]) -> Optional[str]:
    """CLI model > config default_model > tool default, formatted for the tool."""
    name = options.model or options.config.default_model or default_model
    if not name:
        return None
    return format_model_for_tool(name, options.tool.value, options.config.models)


def _perform_commit(
    message: Optional[str],
    iteration: int,
    session_name: str,
    config: Config,
    tool: str,
    cwd: Path,
    lp: LoopProgress,
) -> Optional[str]:
    """Commit all changes; returns the message used, or None if nothing was committed."""
    if not git.get_git_status(cwd).has_changes:
        logger.debug("No changes to commit")
        return None

    message = message or git.format_commit_message(
        config.git.commit_message_template, iteration, session_name, tool
    )
    result = git.commit(message, add_all=True, cwd=cwd)
    if result.success:
        lp.note(f"  Committed: {(result.commit_hash or 'done')[:7]}")
        lp.note(f"  Message: {message}")
        logger.info(f"Committed {result.commit_hash}: {message}")
        return message

    if result.error != "No changes to commit":
        lp.warning(f"  Commit skipped: {result.error}")
        logger.warning(f"Commit failed: {result.error}")
    return None


async def run_loop(options: RunOptions, adapter: Optional[ToolAdapter] = None) -> RunResult:
    """Run the agent loop for one session.

    Args:
        options: Run inputs
        adapter: Adapter to use instead of the registered one for options.tool

    Returns:
        RunResult; success is False when the loop ended on an error

    Raises:
        ToolUnavailable: If the agent binary is not installed (before any
            session is created)
        PromptFileMissing: If the prompt file does not exist
        InvalidSessionName: If the session name is not a single path component
    """
    config = options.config
    tool_name = options.tool.value
    working_dir = Path(options.working_dir or Path.cwd()).resolve()
    lp = LoopProgress(config.max_iterations)

    should_auto_commit = (
        options.auto_commit if options.auto_commit is not None else config.git.auto_commit
    )
    is_git_repo = git.is_git_repository(working_dir) if should_auto_commit else False
    if should_auto_commit and not is_git_repo:
        logger.warning(f"Auto-commit enabled but {working_dir} is not a git repository")
        lp.warning("Warning: Auto-commit enabled but not in a git repository")
    commit_enabled = should_auto_commit and is_git_repo

    tool_config = get_tool_config(config, options.tool)
    if adapter is None:
        adapter = get_adapter(options.tool, command=tool_config.command, working_dir=working_dir)
    model = resolve_model(options, tool_config.model)

    if not await adapter.is_available():
        raise ToolUnavailable(tool=tool_name)

    manager = SessionManager(working_dir)
    session = manager.get_or_create_session(options.prompt_file, options.session_name)
    if not session.checklist_file.exists():
        manager.write_checklist(session, generate_checklist(extract_tasks(session.prompt_file.read_text())))
    if session.is_resumed:
        progress(f"\nResuming session: {session.name}")
    else:
        progress(f"\nSession: {session.name}")
    progress(f"Directory: {session.dir}")
    if commit_enabled:
        progress(f"Auto-commit: {config.git.commit_strategy.value}")

    ledger = ProgressLedger(session, verbosity=config.session.progress_verbosity)
    ledger.write_header(ProgressHeader(
        session_name=session.name,
        start_time=datetime.now(timezone.utc),
        tool=tool_name,
        model=model or "default",
        max_iterations=config.max_iterations,
        is_resumed=session.is_resumed,
    ))

    base_env = {
        "RL_ITERATION": "0",
        "RL_SESSION_NAME": session.name,
        "RL_PROMPT_FILE": str(session.prompt_file),
        "RL_SESSION_DIR": str(session.dir),
        "RL_TOOL": tool_name,
        "RL_MODEL": model or "",
    }
    hooks = HookExecutor(config.hooks, base_env, cwd=working_dir)
    parse_tokens = get_token_parser(options.tool)
    strategy = config.error_handling.strategy

    iteration = 0
    stop_reason: Optional[str] = None
    total_tokens = TokenUsage()
    last_commit_message: Optional[str] = None

    try:
        with combined_prompt(session.prompt_file, session) as prompt_path:
            command = adapter.build_command(prompt_path, tool_config, model)
            logger.debug(f"Command: {command}")

            while iteration < config.max_iterations:
                iteration += 1
                set_loop_context(LoopContext(session.name, iteration, config.max_iterations))

                await hooks.run_pre_iteration(iteration)
                lp.iteration_start(iteration)

                retried = False
                try:
                    result = await adapter.execute(command)
                    action = decide_retry(strategy, result.exit_code, has_retried=False)
                    if action is RetryAction.RETRY:
                        logger.info(f"Exit code {result.exit_code}, retrying")
                        lp.warning(f"\nRetrying iteration {iteration}...")
                        await hooks.run_on_error(iteration, result.exit_code)
                        retried = True
                        result = await adapter.execute(command)
                        action = decide_retry(strategy, result.exit_code, has_retried=True)
                except Exception as e:
                    logger.error(f"Execution error: {e}")
                    lp.warning(f"\nExecution error: {e}")
                    stop_reason = f"Execution error: {e}"
                    break

                if action is RetryAction.STOP:
                    await hooks.run_on_error(iteration, result.exit_code)
                    stop_reason = f"Error on iteration {iteration} (exit code {result.exit_code})"
                    logger.error(stop_reason)
                    break
                if result.exit_code != 0:
                    logger.warning(f"Iteration failed with exit code {result.exit_code}, continuing")
                    lp.warning(f"\nIteration {iteration} failed with exit code {result.exit_code}")

                output = result.output
                if options.verbose:
                    logger.trace(f"Agent output:\n{output}")

                iteration_tokens = parse_tokens(output)
                if iteration_tokens is not None:
                    total_tokens = accumulate_tokens(total_tokens, iteration_tokens)

                last_commit_message = git.parse_commit_message(output)
                committed_message = None
                if commit_enabled and config.git.commit_strategy is CommitStrategy.PER_ITERATION:
                    committed_message = _perform_commit(
                        last_commit_message, iteration, session.name, config, tool_name,
                        working_dir, lp,
                    )

                if result.exit_code != 0:
                    status = IterationStatus.FAILED
                elif retried:
                    status = IterationStatus.RETRIED
                else:
                    status = IterationStatus.COMPLETED

                ledger.append_iteration(IterationRecord(
                    iteration=iteration,
                    timestamp=datetime.now(),
                    status=status,
                    duration_ms=result.duration_ms,
                    exit_code=result.exit_code,
                    files_changed=git.get_files_changed_count(working_dir),
                    diff_summary=git.get_git_diff_summary(working_dir),
                    tokens=iteration_tokens,
                    commit_message=committed_message,
                ))

                await hooks.run_post_iteration(iteration, result.exit_code)
                lp.iteration_done(iteration, result.duration_ms)

                stop = check_stop_conditions(config.stop_conditions, StopCheckContext(
                    iteration=iteration,
                    max_iterations=config.max_iterations,
                    output=output,
                    working_dir=working_dir,
                ))
                if stop.should_stop:
                    stop_reason = stop.reason
                    break

                stop_hook = config.stop_conditions.hook
                if stop_hook.enabled and stop_hook.command:
                    stop = await run_stop_hook(stop_hook.command, {
                        "RL_ITERATION": str(iteration),
                        "RL_SESSION_NAME": session.name,
                        "RL_PROMPT_FILE": str(session.prompt_file),
                        "RL_SESSION_DIR": str(session.dir),
                        "RL_EXIT_CODE": str(result.exit_code),
                    }, cwd=working_dir)
                    if stop.should_stop:
                        stop_reason = stop.reason
                        break
    finally:
        set_loop_context(None)

    if stop_reason is None:
        stop_reason = f"Reached max iterations ({config.max_iterations})"
    logger.info(f"Stopping: {stop_reason}")

    if commit_enabled and config.git.commit_strategy is CommitStrategy.ON_STOP:
        _perform_commit(
            last_commit_message, iteration, session.name, config, tool_name, working_dir, lp
        )

    ledger.write_summary(SessionSummary(
        total_iterations=iteration,
        stop_reason=stop_reason,
        total_duration_ms=ledger.elapsed_ms(),
        total_tokens=None if total_tokens.is_empty() else total_tokens,
    ))

    await hooks.run_on_complete(iteration, stop_reason)
    lp.done(stop_reason, str(session.progress_file))

    return RunResult(
        total_iterations=iteration,
        stop_reason=stop_reason,
        session=session,
        success=not stop_reason.startswith(ERROR_REASON_PREFIXES),
        total_tokens=None if total_tokens.is_empty() else total_tokens,
    )
