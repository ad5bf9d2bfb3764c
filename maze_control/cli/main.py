"""Maze Control CLI — Entry point.

Usage:
    maze-control serve
    maze-control stats
    maze-control triggers check <config.json>
    maze-control users recharge <user_id>
"""

from __future__ import annotations

import typer
from rich.console import Console

from maze_control.cli.commands import server, stats, triggers, users

app = typer.Typer(
    name="maze-control",
    help="Maze Control — token-rationed activation dashboard for sound and light props.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

console = Console()

app.command("serve")(server.serve)
app.command("stats")(stats.show_stats)
app.add_typer(triggers.app, name="triggers")
app.add_typer(users.app, name="users")


@app.callback()
def main_callback() -> None:
    pass


if __name__ == "__main__":
    app()
