"""Admin endpoints.

    POST /api/admin/login   {admin_key} → new admin session cookie
    POST /api/admin/logout  → new public session cookie
    GET  /api/stats         → aggregate snapshot (admins only)

Login and logout never reuse the current user: each issues a brand new
user row so admin and public activity stay separate in the statistics.
"""

from __future__ import annotations

import secrets

from fastapi import APIRouter, HTTPException, Response, status

from maze_control.api.dependencies import (
    AdminUserDep,
    ConfigDep,
    LedgerDep,
    RegistryDep,
    StatsDep,
    set_session_cookie,
)
from maze_control.api.schemas import AdminLoginRequest, UserResponse
from maze_control.ledger.stats import Stats
from maze_control.logging import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["admin"])


@router.post("/admin/login", response_model=UserResponse, summary="Start an admin session")
async def admin_login(
    body: AdminLoginRequest,
    response: Response,
    config: ConfigDep,
    ledger: LedgerDep,
) -> UserResponse:
    expected = config.security.admin_secret_key
    if not secrets.compare_digest(body.admin_key.encode(), expected.encode()):
        log.warning("admin_login_rejected")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid secret key")

    user = await ledger.create_user(is_admin=True)
    set_session_cookie(response, config.security, user.id)
    log.info("admin_session_created", user_id=user.id)
    return UserResponse(**user.to_dict())


@router.post("/admin/logout", response_model=UserResponse, summary="Return to a public session")
async def admin_logout(response: Response, config: ConfigDep, ledger: LedgerDep) -> UserResponse:
    user = await ledger.create_user()
    set_session_cookie(response, config.security, user.id)
    log.info("admin_logged_out", user_id=user.id)
    return UserResponse(**user.to_dict())


@router.get("/stats", response_model=Stats, summary="Activation statistics")
async def stats(_admin: AdminUserDep, aggregator: StatsDep, registry: RegistryDep) -> Stats:
    return await aggregator.get_stats(registry.current().names())
