"""Session user endpoints.

    GET  /api/user/status — current balance
    POST /api/recharge    — reset the balance to the default allotment
"""

from __future__ import annotations

from fastapi import APIRouter

from maze_control.api.dependencies import CurrentUserDep, LedgerDep
from maze_control.api.schemas import UserResponse

router = APIRouter(prefix="/api", tags=["users"])


@router.get("/user/status", response_model=UserResponse, summary="Current user")
async def user_status(user: CurrentUserDep) -> UserResponse:
    return UserResponse(**user.to_dict())


@router.post("/recharge", response_model=UserResponse, summary="Recharge tokens")
async def recharge(user: CurrentUserDep, ledger: LedgerDep) -> UserResponse:
    recharged = await ledger.recharge(user.id)
    return UserResponse(**recharged.to_dict())
