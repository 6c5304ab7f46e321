"""
ralphctl sessions - Inspect loop sessions in the current project.

Usage:
    ralphctl sessions list
    ralphctl sessions list --format json
    ralphctl sessions show auth
    ralphctl sessions show auth --checklist
    ralphctl sessions check auth 2
"""

import sys
from datetime import datetime
from typing import Optional

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from ..core.exceptions import ExitCode, InvalidSessionName
from ..core.prompt import extract_tasks, update_checklist_item
from ..core.session import SessionInfo, SessionManager
from ..utils.output import print_error, print_json, print_success

console = Console()


def format_age(modified: datetime, now: Optional[datetime] = None) -> str:
    """Format a timestamp as a human-readable age like '2h ago', '3d ago'."""
    delta = (now or datetime.now()) - modified
    if delta.days > 0:
        return f"{delta.days}d ago"
    elif delta.seconds >= 3600:
        return f"{delta.seconds // 3600}h ago"
    elif delta.seconds >= 60:
        return f"{delta.seconds // 60}m ago"
    else:
        return "just now"


@click.group("sessions")
def sessions():
    """Inspect loop sessions stored under .ralph/.

    \b
    Commands:
      list     List sessions in this project
      show     Print a session's progress log
      check    Mark a checklist task done
    """
    pass


@sessions.command("list")
@click.option("--format", "output_format", type=click.Choice(["table", "json"]),
              default="table", help="Output format")
def list_sessions(output_format: str):
    """List sessions, newest first."""
    sessions_list = SessionManager().list_sessions()

    if output_format == "json":
        print_json({"sessions": sessions_list})
        return

    if not sessions_list:
        console.print("[yellow]No sessions found[/yellow]")
        return

    table = Table(title="Sessions")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Iterations", justify="right")
    table.add_column("Status")
    table.add_column("Modified", style="dim")
    for s in sessions_list:
        status = "[green]finished[/green]" if s["finished"] else "[yellow]open[/yellow]"
        table.add_row(s["name"], str(s["iterations"]), status, format_age(s["modified"]))
    console.print(table)


def _load_or_exit(manager: SessionManager, name: str) -> SessionInfo:
    try:
        session = manager.load_session(name)
    except InvalidSessionName as e:
        print_error(str(e))
        sys.exit(e.exit_code)
    if session is None:
        print_error(f"Session not found: {name}")
        sys.exit(ExitCode.MISSING_FILES)
    return session


@sessions.command("show")
@click.argument("name")
@click.option("--checklist", is_flag=True, help="Show the checklist instead of the progress log")
@click.option("--raw", is_flag=True, help="Print the markdown source")
def show_session(name: str, checklist: bool, raw: bool):
    """Print the progress log (or checklist) of session NAME."""
    manager = SessionManager()
    session = _load_or_exit(manager, name)

    if checklist:
        content = manager.read_checklist(session)
        missing = session.checklist_file
    else:
        content = session.progress_file.read_text() if session.progress_file.exists() else ""
        missing = session.progress_file
    if not content:
        print_error(f"No {missing.name} in {session.dir}")
        sys.exit(ExitCode.MISSING_FILES)

    if raw:
        click.echo(content)
    else:
        console.print(Markdown(content))


@sessions.command("check")
@click.argument("name")
@click.argument("task_number", type=click.IntRange(min=1))
@click.option("--undo", is_flag=True, help="Uncheck the task instead")
def check_task(name: str, task_number: int, undo: bool):
    """Mark task TASK_NUMBER (1-based) of session NAME's checklist done."""
    manager = SessionManager()
    session = _load_or_exit(manager, name)

    content = manager.read_checklist(session)
    tasks = extract_tasks(content)
    if task_number > len(tasks):
        print_error(f"Session {name} has {len(tasks)} checklist task(s), not {task_number}")
        sys.exit(ExitCode.MISSING_FILES)

    manager.write_checklist(session, update_checklist_item(content, task_number - 1, not undo))
    state = "open" if undo else "done"
    print_success(f"Task {task_number} marked {state}: {tasks[task_number - 1]}")
