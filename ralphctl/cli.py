#!/usr/bin/env python3
"""
ralphctl - run a coding agent in a bounded loop

Repeatedly invokes an agent CLI (Claude Code, opencode, Cursor, Codex)
against a prompt file until a stop condition fires, recording every
iteration in an append-only progress log.

Usage:
    ralphctl run feature-auth.md
    ralphctl run feature-auth.md -n 20 --tool codex
    ralphctl init
    ralphctl sessions list
    ralphctl tools

For more information: ralphctl --help
"""

import click

from . import __version__
from .commands.init import init
from .commands.run import run
from .commands.sessions import sessions
from .commands.tools import tools
from .core.logging import setup_logging
from .core.progress import set_quiet, set_timestamps


@click.group()
@click.version_option(version=__version__, prog_name="ralphctl")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v, -vv, -vvv)")
@click.option("-q", "--quiet", is_flag=True, help="Suppress output except errors")
@click.option("--json-errors", is_flag=True, help="Output errors as JSON for CI integration")
@click.pass_context
def cli(ctx: click.Context, verbose: int, quiet: bool, json_errors: bool) -> None:
    """ralphctl - run a coding agent in a bounded loop

    \b
    Commands:
      run       Run the agent loop against a prompt file
      init      Create .ralphctl.yaml
      sessions  Inspect sessions under .ralph/
      tools     List supported tools

    \b
    Verbosity:
      -v       INFO level (iterations, retries, stop decisions)
      -vv      DEBUG level (commands, hooks, git)
      -vvv     TRACE level (agent output, hook output)
      -q       Quiet mode (errors only)

    \b
    Examples:
      ralphctl run feature-auth.md
      ralphctl -v run PROMPT.md --name auth -n 5
      ralphctl --json-errors run plan.md 2>&1 | jq .error   # CI mode
    """
    ctx.ensure_object(dict)
    ctx.obj["verbosity"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["json_errors"] = json_errors
    setup_logging(verbose, quiet)
    set_quiet(quiet or json_errors)
    set_timestamps(verbose >= 1 and not quiet and not json_errors)


cli.add_command(run)
cli.add_command(init)
cli.add_command(sessions)
cli.add_command(tools)


def main():
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
