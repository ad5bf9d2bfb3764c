"""API layer — FastAPI dependency injection.

The ledger, registry, orchestrator and stats aggregator are created once at
startup and stored on ``app.state``.  The session dependency resolves the
``spooky-user-id`` cookie into a ledger :class:`User`, creating a fresh
public user on first visit.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, Response, status

from maze_control.config import SecurityConfig, Settings
from maze_control.ledger.models import User
from maze_control.ledger.stats import StatsAggregator
from maze_control.ledger.store import TokenLedger
from maze_control.logging import get_logger
from maze_control.orchestrator import ActivationOrchestrator, SessionUser
from maze_control.triggers.registry import TriggerRegistry

log = get_logger(__name__)


def get_config(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[no-any-return]


def get_ledger(request: Request) -> TokenLedger:
    return request.app.state.ledger  # type: ignore[no-any-return]


def get_trigger_registry(request: Request) -> TriggerRegistry:
    return request.app.state.trigger_registry  # type: ignore[no-any-return]


def get_orchestrator(request: Request) -> ActivationOrchestrator:
    return request.app.state.orchestrator  # type: ignore[no-any-return]


def get_stats_aggregator(request: Request) -> StatsAggregator:
    return request.app.state.stats  # type: ignore[no-any-return]


def set_session_cookie(response: Response, security: SecurityConfig, user_id: str) -> None:
    response.set_cookie(
        key=security.cookie_name,
        value=user_id,
        max_age=security.cookie_max_age_seconds,
        path="/",
        httponly=True,
        samesite="lax",
    )


async def get_current_user(request: Request, response: Response) -> User:
    """Resolve the session cookie, creating a public user on first visit."""
    settings: Settings = request.app.state.settings
    ledger: TokenLedger = request.app.state.ledger
    cookie_name = settings.security.cookie_name

    user_id = request.cookies.get(cookie_name)
    if not user_id:
        user = await ledger.create_user()
        set_session_cookie(response, settings.security, user.id)
        log.info("session_created", user_id=user.id)
        return user

    user = await ledger.get_user(user_id)
    if user is None:
        log.warning("session_unknown", user_id=user_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session, please refresh",
            headers={"Set-Cookie": f"{cookie_name}=; Max-Age=0; Path=/"},
        )
    return user


async def require_admin(user: Annotated[User, Depends(get_current_user)]) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admins only.")
    return user


def session_user(user: User) -> SessionUser:
    return SessionUser(user_id=user.id, is_admin=user.is_admin)


# Shorthand type aliases for route signatures.
ConfigDep = Annotated[Settings, Depends(get_config)]
LedgerDep = Annotated[TokenLedger, Depends(get_ledger)]
RegistryDep = Annotated[TriggerRegistry, Depends(get_trigger_registry)]
OrchestratorDep = Annotated[ActivationOrchestrator, Depends(get_orchestrator)]
StatsDep = Annotated[StatsAggregator, Depends(get_stats_aggregator)]
CurrentUserDep = Annotated[User, Depends(get_current_user)]
AdminUserDep = Annotated[User, Depends(require_admin)]
