"""HTTP middleware and the error handler.

:class:`RequestContextMiddleware` gives every request an id (taken from an
incoming ``X-Request-ID`` header when present), binds it into the log
context for everything the request logs, and writes one ``http_request``
event per response.

:func:`build_error_handler` turns :class:`MazeControlError` into an
:class:`ErrorResponse` body with the status the dashboard promises.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from maze_control.api.schemas import ErrorResponse
from maze_control.exceptions import (
    InsufficientTokensError,
    MazeControlError,
    TriggerConfigError,
    TriggerNotFoundError,
    UserNotFoundError,
)
from maze_control.logging import bind_activation_context, clear_activation_context, get_logger

log = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        clear_activation_context()
        bind_activation_context(request_id=request_id)

        started = time.perf_counter()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        log.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response


# First match wins; anything else is a 500.
_ERROR_STATUS: tuple[tuple[type[MazeControlError], int, str], ...] = (
    (TriggerNotFoundError, 404, "not_found"),
    (InsufficientTokensError, 403, "insufficient_tokens"),
    (UserNotFoundError, 401, "invalid_session"),
    (TriggerConfigError, 400, "invalid_config"),
)


def _classify(exc: MazeControlError) -> tuple[int, str]:
    for exc_type, status_code, code in _ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status_code, code
    return 500, "internal_error"


def build_error_handler() -> Any:
    """Return the FastAPI exception handler for :class:`MazeControlError`."""

    async def handler(request: Request, exc: MazeControlError) -> JSONResponse:
        status_code, code = _classify(exc)
        if status_code >= 500:
            log.error("request_failed", error=exc.message, error_type=type(exc).__name__)
        body = ErrorResponse(
            error=exc.message,
            code=code,
            detail=exc.context or None,
            request_id=getattr(request.state, "request_id", None),
        )
        return JSONResponse(status_code=status_code, content=body.model_dump())

    return handler
