"""API layer — FastAPI application factory.

``create_app()`` is the single entry point for building the FastAPI app.
All dependencies are wired here so that tests can override them by
calling ``create_app()`` with custom objects (typically fake executors).
"""

from __future__ import annotations

from fastapi import FastAPI

from maze_control import __version__
from maze_control.api.middleware import RequestContextMiddleware, build_error_handler
from maze_control.api.routes import activations, admin, health, triggers, users
from maze_control.config import Settings, get_settings
from maze_control.devices import ExecutorRegistry, GoveeLanClient, build_executors, build_http_client
from maze_control.exceptions import MazeControlError
from maze_control.ledger.stats import StatsAggregator
from maze_control.ledger.store import TokenLedger
from maze_control.logging import configure_logging, get_logger
from maze_control.orchestrator import ActivationOrchestrator
from maze_control.triggers.loader import load_trigger_table
from maze_control.triggers.registry import TriggerRegistry
from maze_control.triggers.watcher import TriggerConfigWatcher

log = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    executors: ExecutorRegistry | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings:  Optional settings override (used in tests).
        executors: Optional executor registry.  When omitted the real HTTP
                   and Govee LAN executors are built from ``settings.devices``.

    Returns:
        A fully configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    configure_logging(
        level=settings.logging.level,
        format=settings.logging.format,
        log_file=str(settings.logging.file) if settings.logging.file else None,
    )

    app = FastAPI(
        title="Maze Control",
        description="Token-rationed activation dashboard for sound and light props.",
        version=__version__,
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
    )

    app.add_middleware(RequestContextMiddleware)

    # Exception handlers
    app.add_exception_handler(MazeControlError, build_error_handler())  # type: ignore[arg-type]

    # Routers
    app.include_router(health.router)
    app.include_router(triggers.router)
    app.include_router(activations.router)
    app.include_router(users.router)
    app.include_router(admin.router)

    app.state.settings = settings

    # Startup / shutdown lifecycle
    @app.on_event("startup")
    async def startup() -> None:
        log.info("dashboard_starting", version=__version__)

        ledger = TokenLedger(settings.ledger.db_path, settings.ledger.default_tokens)
        await ledger.init()
        app.state.ledger = ledger

        # A missing or invalid trigger file at startup is fatal.
        table = load_trigger_table(settings.triggers.config_path)
        registry = TriggerRegistry(table)
        app.state.trigger_registry = registry

        registry_executors = executors
        if registry_executors is None:
            dev = settings.devices
            app.state.http_client = build_http_client(dev.http_timeout_seconds)
            app.state.lan_client = GoveeLanClient(
                command_port=dev.govee_command_port,
                listen_port=dev.govee_listen_port,
            )
            registry_executors = build_executors(dev, app.state.http_client, app.state.lan_client)
        app.state.executors = registry_executors

        app.state.orchestrator = ActivationOrchestrator(registry, ledger, registry_executors)
        app.state.stats = StatsAggregator(ledger, settings.stats.window_minutes)

        app.state.trigger_watcher = None
        if settings.triggers.watch:
            watcher = TriggerConfigWatcher(settings.triggers.config_path, registry)
            watcher.start()
            app.state.trigger_watcher = watcher

        log.info(
            "dashboard_ready",
            triggers=len(table),
            executors=registry_executors.kinds(),
            port=settings.server.port,
        )

    @app.on_event("shutdown")
    async def shutdown() -> None:
        log.info("dashboard_stopping")
        if getattr(app.state, "trigger_watcher", None) is not None:
            await app.state.trigger_watcher.stop()
        if hasattr(app.state, "orchestrator"):
            await app.state.orchestrator.shutdown(settings.server.shutdown_drain_seconds)
        if hasattr(app.state, "executors"):
            await app.state.executors.aclose()
        if hasattr(app.state, "http_client"):
            await app.state.http_client.aclose()
        if hasattr(app.state, "lan_client"):
            await app.state.lan_client.close()
        if hasattr(app.state, "ledger"):
            await app.state.ledger.close()

    return app
