"""CLI — Run the dashboard server."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from rich.console import Console

console = Console()


def serve(
    host: Annotated[str | None, typer.Option(help="Host to bind to.")] = None,
    port: Annotated[int | None, typer.Option(help="Port to listen on.")] = None,
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
    log_level: Annotated[str | None, typer.Option(help="Log level.")] = None,
) -> None:
    """Start the dashboard (API + trigger watcher)."""
    from maze_control.api.server import create_app
    from maze_control.config import Settings

    settings = Settings.load(config_file=config)
    if host is not None:
        settings.server.host = host
    if port is not None:
        settings.server.port = port
    if log_level is not None:
        settings.server.log_level = log_level  # type: ignore[assignment]
        settings.logging.level = log_level  # type: ignore[assignment]

    console.print(
        f"[bold green]Starting Maze Control on {settings.server.host}:{settings.server.port}[/bold green]"
    )

    app_instance = create_app(settings=settings)

    uvicorn.run(
        app_instance,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.server.log_level,
    )
