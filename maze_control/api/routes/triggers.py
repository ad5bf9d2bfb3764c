"""GET /api/triggers — public trigger listing."""

from __future__ import annotations

from fastapi import APIRouter

from maze_control.api.dependencies import CurrentUserDep, RegistryDep
from maze_control.api.schemas import TriggerResponse

router = APIRouter(prefix="/api", tags=["triggers"])


@router.get("/triggers", response_model=list[TriggerResponse], summary="List triggers")
async def list_triggers(registry: RegistryDep, _user: CurrentUserDep) -> list[TriggerResponse]:
    # One snapshot per request; a concurrent reload does not mix tables.
    table = registry.current()
    return [TriggerResponse(**trigger.public_view()) for trigger in table]
