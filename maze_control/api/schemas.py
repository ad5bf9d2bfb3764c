"""API layer — Request and response schemas.

These are the browser-facing contracts.  Trigger secrets never appear in
them: :class:`TriggerResponse` is built from ``Trigger.public_view()``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from maze_control.orchestrator import ActivationStatus


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class AdminLoginRequest(BaseModel):
    """POST /api/admin/login"""

    admin_key: str = Field(description="Shared admin secret.")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    id: str
    tokens_remaining: int
    is_admin: bool


class TriggerResponse(BaseModel):
    id: str
    name: str
    description: str
    type: str


class ActivateResponse(BaseModel):
    status: ActivationStatus
    trigger_id: str
    action_id: int | None = None
    message: str


class VersionResponse(BaseModel):
    version: str


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
    triggers_loaded: int
    duplicate_trigger_ids: list[str] = Field(default_factory=list)
    trigger_reload_error: str | None = None
    activations_in_flight: int = 0


class ErrorResponse(BaseModel):
    error: str
    code: str
    detail: Any | None = None
    request_id: str | None = None
