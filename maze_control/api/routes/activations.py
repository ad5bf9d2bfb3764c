"""POST /api/activate/{trigger_id} — spend a token and fire a trigger.

200 means the dispatch was *started*.  Whether the device actually fired
shows up later in the user's balance (refund) and in the statistics.
"""

from __future__ import annotations

from fastapi import APIRouter

from maze_control.api.dependencies import CurrentUserDep, OrchestratorDep, session_user
from maze_control.api.schemas import ActivateResponse
from maze_control.exceptions import InsufficientTokensError, TriggerNotFoundError
from maze_control.orchestrator import ActivationStatus

router = APIRouter(prefix="/api", tags=["activations"])


@router.post(
    "/activate/{trigger_id}",
    response_model=ActivateResponse,
    summary="Activate a trigger",
    responses={403: {"description": "Out of tokens"}, 404: {"description": "Unknown trigger"}},
)
async def activate(
    trigger_id: str,
    user: CurrentUserDep,
    orchestrator: OrchestratorDep,
) -> ActivateResponse:
    outcome = await orchestrator.activate(session_user(user), trigger_id)

    if outcome.status is ActivationStatus.NOT_FOUND:
        raise TriggerNotFoundError(trigger_id)
    if outcome.status is ActivationStatus.INSUFFICIENT_TOKENS:
        raise InsufficientTokensError(user.id)

    return ActivateResponse(
        status=outcome.status,
        trigger_id=trigger_id,
        action_id=outcome.action_id,
        message=f"Trigger '{trigger_id}' activation initiated!",
    )
