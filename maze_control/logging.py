"""Logging setup for the dashboard.

structlog renders every record, including those emitted through stdlib
``logging`` by uvicorn and httpx, so the server log is one consistent
stream.  Activation identifiers (``user_id``, ``trigger_id``,
``action_id``) and the HTTP ``request_id`` are carried in structlog's
context variables and appear on every event logged while they are bound.
A dispatch task inherits the bindings of the request that started it.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def bind_activation_context(**identifiers: Any) -> None:
    """Bind the non-None identifiers to the current task's log context."""
    structlog.contextvars.bind_contextvars(
        **{key: value for key, value in identifiers.items() if value is not None}
    )


def clear_activation_context() -> None:
    structlog.contextvars.clear_contextvars()


def configure_logging(
    level: str = "info",
    format: str = "console",
    log_file: str | None = None,
) -> None:
    """Route structlog and stdlib logging through one formatter.

    ``format`` is ``"console"`` or ``"json"``.  Records always go to stdout;
    *log_file* adds a second handler.
    """
    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    renderer: Any = (
        structlog.processors.JSONRenderer()
        if format == "json"
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = handlers
    root.setLevel(level.upper())

    for name in ("uvicorn.access", "httpx", "asyncio", "watchfiles"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
