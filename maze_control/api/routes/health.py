"""GET /health and GET /api/version."""

from __future__ import annotations

import time

from fastapi import APIRouter, Request

from maze_control import __version__
from maze_control.api.dependencies import OrchestratorDep, RegistryDep
from maze_control.api.schemas import HealthResponse, VersionResponse

router = APIRouter(tags=["health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Dashboard health check")
async def health(
    request: Request,
    registry: RegistryDep,
    orchestrator: OrchestratorDep,
) -> HealthResponse:
    table = registry.current()
    watcher = getattr(request.app.state, "trigger_watcher", None)
    return HealthResponse(
        status="ok",
        version=__version__,
        uptime_seconds=round(time.time() - _start_time, 2),
        triggers_loaded=len(table),
        duplicate_trigger_ids=list(table.duplicate_ids),
        trigger_reload_error=watcher.error if watcher is not None else None,
        activations_in_flight=orchestrator.in_flight,
    )


@router.get("/api/version", response_model=VersionResponse, summary="Dashboard version")
async def version() -> VersionResponse:
    return VersionResponse(version=__version__)
