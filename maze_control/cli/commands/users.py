"""CLI — User balance maintenance."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from maze_control.config import Settings
from maze_control.exceptions import UserNotFoundError
from maze_control.ledger.models import User
from maze_control.ledger.store import TokenLedger

app = typer.Typer(help="Inspect and adjust user balances.")
console = Console()


async def _recharge(settings: Settings, user_id: str) -> User:
    ledger = TokenLedger(settings.ledger.db_path, settings.ledger.default_tokens)
    await ledger.init()
    try:
        return await ledger.recharge(user_id)
    finally:
        await ledger.close()


@app.command("recharge")
def recharge(
    user_id: str = typer.Argument(..., help="User id (the session cookie value)."),
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
) -> None:
    """Reset a user's balance to the default allotment."""
    settings = Settings.load(config_file=config)
    try:
        user = asyncio.run(_recharge(settings, user_id))
    except UserNotFoundError as exc:
        console.print(f"[red]{exc.message}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]{user.id}[/green] now has {user.tokens_remaining} tokens.")
