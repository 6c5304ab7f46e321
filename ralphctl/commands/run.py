"""
ralphctl run - Run the agent loop against a prompt file.

Usage:
    ralphctl run feature-auth.md
    ralphctl run feature-auth.md -n 20 --tool opencode --model gemini-3-flash
    ralphctl run PROMPT.md --name billing --commit
    ralphctl run feature-auth.md --dry-run
    ralphctl run feature-auth.md -D          # print the combined prompt and exit
"""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..adapters import get_adapter, get_available_tools
from ..core.config import ToolName, cli_overrides_to_layer, get_tool_config, load_config
from ..core.exceptions import (
    ConfigError,
    ExitCode,
    InvalidSessionName,
    LedgerError,
    PromptFileMissing,
    ToolUnavailable,
    UnknownTool,
)
from ..core.logging import get_logger
from ..core.prompt import combined_prompt
from ..core.session import SessionManager
from ..loop.runner import RunOptions, resolve_model, run_loop
from ..utils.output import handle_error
from .utils import json_errors_enabled, run_async

logger = get_logger(__name__)
console = Console()

HANDLED_ERRORS = (
    ConfigError, UnknownTool, ToolUnavailable, PromptFileMissing, InvalidSessionName, LedgerError,
)


@click.command("run")
@click.argument("prompt_file", type=click.Path(path_type=Path))
@click.option("--max-iterations", "-n", type=click.IntRange(1, 1000),
              help="Maximum loop iterations")
@click.option("--tool", "-t", type=click.Choice([t.value for t in ToolName]),
              help="Agent tool to run")
@click.option("--model", "-m", help="Model override (alias or full id)")
@click.option("--name", "session_name", help="Session name (default: derived from the file name)")
@click.option("--config", "-c", "config_path", type=click.Path(path_type=Path),
              help="Config file (default: search for .ralphctl.yaml)")
@click.option("--commit/--no-commit", default=None, help="Enable or disable auto-commit")
@click.option("--dry-run", is_flag=True, help="Show what would run without executing")
@click.option("--debug-prompt", "-D", is_flag=True, help="Print the full prompt and exit")
@click.pass_context
def run(
    ctx: click.Context,
    prompt_file: Path,
    max_iterations: Optional[int],
    tool: Optional[str],
    model: Optional[str],
    session_name: Optional[str],
    config_path: Optional[Path],
    commit: Optional[bool],
    dry_run: bool,
    debug_prompt: bool,
) -> None:
    """Run the agent repeatedly against PROMPT_FILE until a stop condition fires.

    \b
    Progress is recorded in .ralph/<session>/progress.md. Running again
    with the same session name resumes the session.

    \b
    Examples:
      ralphctl run feature-auth.md
      ralphctl run feature-auth.md -n 5 -t codex
      ralphctl -v run PROMPT.md --name auth --commit
    """
    json_errors = json_errors_enabled(ctx)
    verbosity = ctx.obj.get("verbosity", 0) if ctx.obj else 0
    context = {"prompt_file": str(prompt_file)}

    try:
        config = load_config(
            config_path,
            cli_overrides_to_layer(max_iterations=max_iterations, tool=tool, model=model,
                                   commit=commit),
        )
        options = RunOptions(
            prompt_file=prompt_file,
            config=config,
            tool=config.default_tool,
            model=model,
            session_name=session_name,
            auto_commit=commit,
            verbose=verbosity >= 3,
        )

        if debug_prompt:
            _print_debug_prompt(options)
            return

        if dry_run or verbosity >= 1:
            _print_configuration(options)

        if dry_run:
            run_async(_check_availability(options))
            return

        result = run_async(run_loop(options))

    except HANDLED_ERRORS as e:
        logger.debug(f"run failed: {e!r}")
        sys.exit(handle_error(e, json_errors=json_errors, context=context))

    if not result.success:
        sys.exit(ExitCode.LOOP_FAILED)


def _print_debug_prompt(options: RunOptions) -> None:
    manager = SessionManager(options.working_dir)
    session = manager.preview_session(options.prompt_file, options.session_name)
    if not session.prompt_file.is_file():
        raise PromptFileMissing(path=str(session.prompt_file))
    with combined_prompt(session.prompt_file, session) as path:
        click.echo(path.read_text())


def _print_configuration(options: RunOptions) -> None:
    config = options.config
    tool_config = get_tool_config(config, options.tool)
    adapter = get_adapter(options.tool, command=tool_config.command)
    model = resolve_model(options, tool_config.model)
    auto_commit = options.auto_commit if options.auto_commit is not None else config.git.auto_commit

    try:
        command = adapter.build_command(options.prompt_file, tool_config, model)
    except ToolUnavailable:
        command = tool_config.template

    table = Table(title="Configuration", show_header=False, box=None)
    table.add_column("Key", style="bold")
    table.add_column("Value", style="cyan")
    table.add_row("Tool", options.tool.value)
    table.add_row("Model", model or "default")
    table.add_row("Max iterations", str(config.max_iterations))
    table.add_row("Auto-commit", str(auto_commit).lower())
    table.add_row("Error strategy", config.error_handling.strategy.value)
    table.add_row("Prompt file", escape(str(options.prompt_file)))
    table.add_row("Config file", str(config.source_path) if config.source_path else "(defaults)")
    table.add_row("Command", f"[yellow]{escape(command)}[/yellow]")
    console.print(table)


async def _check_availability(options: RunOptions) -> None:
    console.print("[yellow]Dry run - no execution[/yellow]")
    tool_config = get_tool_config(options.config, options.tool)
    adapter = get_adapter(options.tool, command=tool_config.command)
    if await adapter.is_available():
        console.print(f"\n[green]✓ Tool '{options.tool.value}' is available[/green]")
        return

    console.print(f"\n[red]⚠ Warning: '{options.tool.value}' is not installed or not in PATH[/red]")
    available = await get_available_tools()
    if available:
        console.print(f"[dim]Available tools: {', '.join(available)}[/dim]")
