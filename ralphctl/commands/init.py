"""
init command - Create a .ralphctl.yaml for the current project.

Usage:
    ralphctl init                       # interactive
    ralphctl init --yes --tool codex    # accept defaults, no prompts
"""

from dataclasses import replace
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from ..adapters import get_available_tools, list_tools
from ..core.config import (
    CONFIG_FILENAME,
    CommitStrategy,
    Config,
    ErrorHandling,
    ErrorStrategy,
    GitConfig,
    ToolName,
    config_exists,
    write_config,
)
from .utils import run_async


@click.command()
@click.option("--tool", "-t", type=click.Choice(list_tools()), help="Default agent tool")
@click.option("--max-iterations", "-n", type=click.IntRange(1, 1000), help="Default max iterations")
@click.option("--auto-commit/--no-auto-commit", default=None, help="Commit after iterations")
@click.option("--commit-strategy", type=click.Choice([s.value for s in CommitStrategy]),
              help="When to auto-commit")
@click.option("--error-strategy", type=click.Choice([s.value for s in ErrorStrategy]),
              help="What to do when the agent fails")
@click.option("--force", is_flag=True, help="Overwrite an existing config")
@click.option("--yes", "-y", is_flag=True, help="Use defaults for anything not given")
def init(
    tool: Optional[str],
    max_iterations: Optional[int],
    auto_commit: Optional[bool],
    commit_strategy: Optional[str],
    error_strategy: Optional[str],
    force: bool,
    yes: bool,
) -> None:
    """Create .ralphctl.yaml in the current directory.

    Options not given on the command line are asked for interactively
    unless --yes is passed.
    """
    console = Console()
    config_path = Path.cwd() / CONFIG_FILENAME

    if config_exists(config_path) and not force:
        if yes or not click.confirm(f"{CONFIG_FILENAME} already exists. Overwrite?", default=False):
            console.print("[yellow]Aborted.[/yellow]")
            return

    available = run_async(get_available_tools())
    if available:
        console.print(f"[green]Found: {', '.join(available)}[/green]")
    else:
        console.print("[yellow]No tools detected. You can still configure them manually.[/yellow]")

    def ask(value, prompt: str, default, **kwargs):
        if value is not None or yes:
            return default if value is None else value
        return click.prompt(prompt, default=default, **kwargs)

    tool = ask(tool, "Default tool", available[0] if available else ToolName.CLAUDE_CODE.value,
               type=click.Choice(list_tools()))
    max_iterations = ask(max_iterations, "Default max iterations", 10,
                         type=click.IntRange(1, 1000))
    if auto_commit is None and not yes:
        auto_commit = click.confirm("Enable auto-commit after iterations?", default=False)
    auto_commit = bool(auto_commit)
    if auto_commit:
        commit_strategy = ask(commit_strategy, "Commit strategy", CommitStrategy.PER_ITERATION.value,
                              type=click.Choice([s.value for s in CommitStrategy]))
    error_strategy = ask(error_strategy, "Error strategy", ErrorStrategy.RETRY_ONCE.value,
                         type=click.Choice([s.value for s in ErrorStrategy]))

    defaults = Config()
    config = replace(
        defaults,
        default_tool=ToolName.parse(tool),
        max_iterations=max_iterations,
        error_handling=ErrorHandling(strategy=ErrorStrategy(error_strategy)),
        git=replace(
            GitConfig(),
            auto_commit=auto_commit,
            commit_strategy=CommitStrategy(commit_strategy or CommitStrategy.PER_ITERATION.value),
        ),
    )
    write_config(config, config_path)

    console.print(f"[green]✓ Created {config_path}[/green]")
    console.print("[dim]Run 'ralphctl run <prompt-file>' to start a session.[/dim]")
