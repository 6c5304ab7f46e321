"""
tools command - List supported agent tools and whether they are installed.
"""

import click
from rich.console import Console
from rich.table import Table

from ..adapters import ADAPTERS, get_adapter
from ..core.config import DEFAULT_TOOL_CONFIGS
from ..utils.output import print_json


@click.command("tools")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def tools(json_output: bool) -> None:
    """List supported tools, their default model and install location."""
    rows = []
    for tool in ADAPTERS:
        info = get_adapter(tool).get_info()
        rows.append({
            "tool": tool.value,
            "command": info["command"],
            "default_model": DEFAULT_TOOL_CONFIGS[tool].model,
            "path": info["path"],
            "available": info["path"] is not None,
        })

    if json_output:
        print_json({"tools": rows})
        return

    table = Table(title="Tools")
    table.add_column("Tool", style="cyan")
    table.add_column("Command")
    table.add_column("Default model", style="dim")
    table.add_column("Status")
    for row in rows:
        status = f"[green]✓ {row['path']}[/green]" if row["available"] else "[red]not found[/red]"
        table.add_row(row["tool"], row["command"], row["default_model"] or "-", status)
    Console().print(table)
