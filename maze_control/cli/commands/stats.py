"""CLI — Print the activation statistics snapshot."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from maze_control.config import Settings
from maze_control.exceptions import TriggerConfigError
from maze_control.ledger.stats import Stats, StatsAggregator
from maze_control.ledger.store import TokenLedger
from maze_control.triggers.loader import load_trigger_table

console = Console()


async def _collect(settings: Settings) -> Stats:
    try:
        names = load_trigger_table(settings.triggers.config_path).names()
    except TriggerConfigError as exc:
        console.print(f"[yellow]Trigger names unavailable:[/yellow] {exc.reason}")
        names = {}

    ledger = TokenLedger(settings.ledger.db_path, settings.ledger.default_tokens)
    await ledger.init()
    try:
        return await StatsAggregator(ledger, settings.stats.window_minutes).get_stats(names)
    finally:
        await ledger.close()


def show_stats(
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
) -> None:
    """Show totals, per-trigger counts and per-user usage."""
    settings = Settings.load(config_file=config)
    snapshot = asyncio.run(_collect(settings))

    console.print(
        f"[bold]Users:[/bold] {snapshot.total_users}    "
        f"[bold]Recharges:[/bold] {snapshot.total_recharges}"
    )

    per_trigger = Table(title="Activations by trigger")
    per_trigger.add_column("Trigger", style="cyan")
    per_trigger.add_column("Name")
    per_trigger.add_column("Public", justify="right", style="green")
    per_trigger.add_column("Admin", justify="right", style="green")
    per_trigger.add_column("Failures", justify="right", style="red")
    for row in snapshot.trigger_activations:
        per_trigger.add_row(
            row.trigger_id,
            row.trigger_name or "-",
            str(row.public_count),
            str(row.admin_count),
            str(row.failure_count),
        )
    console.print(per_trigger)

    last_hour = sum(p.public_count + p.admin_count for p in snapshot.activations_last_hour)
    console.print(
        f"Activations in the last {len(snapshot.activations_last_hour)} minutes: {last_hour}"
    )

    per_user = Table(title="Users")
    per_user.add_column("User", style="cyan")
    per_user.add_column("Created")
    per_user.add_column("Admin")
    per_user.add_column("Tokens used", justify="right")
    for user in snapshot.user_stats:
        per_user.add_row(
            user.id,
            user.created_at.strftime("%Y-%m-%d %H:%M"),
            "yes" if user.is_admin else "",
            str(user.tokens_used),
        )
    console.print(per_user)
