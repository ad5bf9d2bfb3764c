"""CLI — Trigger file tools."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from maze_control.exceptions import TriggerConfigError
from maze_control.triggers.loader import load_trigger_table

app = typer.Typer(help="Validate and inspect trigger configuration files.")
console = Console()


def _target(trigger: object) -> str:
    for field in ("arduino_ip", "govee_device_ip"):
        value = getattr(trigger, field, None)
        if value:
            return str(value)
    return "-"


@app.command("check")
def check(
    file: Path = typer.Argument(..., help="Trigger file (.json, .yaml, .yml)."),
) -> None:
    """Validate a trigger file and list the triggers it defines."""
    try:
        table = load_trigger_table(file)
    except TriggerConfigError as exc:
        console.print(f"[red]Invalid:[/red] {exc.reason}")
        raise typer.Exit(1)

    listing = Table(title=f"Triggers in {file}")
    listing.add_column("ID", style="cyan")
    listing.add_column("Name")
    listing.add_column("Type", style="magenta")
    listing.add_column("Target", style="green")
    for trigger in table:
        listing.add_row(trigger.id, trigger.name, trigger.kind, _target(trigger))
    console.print(listing)

    if table.duplicate_ids:
        console.print(
            "[yellow]Duplicate ids (first declaration wins):[/yellow] "
            + ", ".join(table.duplicate_ids)
        )
    console.print(f"[green]OK[/green]: {len(table)} trigger(s).")
