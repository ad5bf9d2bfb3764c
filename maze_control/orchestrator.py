"""Activation orchestrator — token gate, detached dispatch, refund.

Lifecycle of one activation::

    Requested ──lookup──► NotFound                      (no ledger call)
        │
        └─► debit + pending action (one transaction)
                ├─► Denied                              (InsufficientTokens, no charge)
                └─► Dispatched (background task)
                        ├─► Succeeded                   (action.success = 1)
                        └─► Failed ─► Refunded          (non-admin only)

The caller gets its answer as soon as the transaction commits.  Whether the
device actually fired is only visible later, through the action log and the
user's balance.

No lock is held here across a ledger call.  The ledger's own transaction is
what keeps concurrent activations from over-spending.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum

from maze_control.devices.base import ExecutorRegistry
from maze_control.exceptions import InsufficientTokensError, MazeControlError
from maze_control.ledger.store import TokenLedger
from maze_control.logging import bind_activation_context, get_logger
from maze_control.triggers.models import Trigger
from maze_control.triggers.registry import TriggerRegistry

log = get_logger(__name__)


class ActivationStatus(str, Enum):
    INITIATED = "initiated"
    INSUFFICIENT_TOKENS = "insufficient_tokens"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class SessionUser:
    """The ``(user_id, is_admin)`` pair resolved by the session layer."""

    user_id: str
    is_admin: bool = False


@dataclass(frozen=True)
class ActivationOutcome:
    status: ActivationStatus
    trigger_id: str
    action_id: int | None = None

    @property
    def initiated(self) -> bool:
        return self.status is ActivationStatus.INITIATED


class ActivationOrchestrator:
    """Gate activations on the ledger and dispatch them in the background.

    Usage::

        orchestrator = ActivationOrchestrator(registry, ledger, executors)
        outcome = await orchestrator.activate(SessionUser("u1"), "scream")
        ...
        await orchestrator.shutdown(timeout=15)
    """

    def __init__(
        self,
        registry: TriggerRegistry,
        ledger: TokenLedger,
        executors: ExecutorRegistry,
    ) -> None:
        self._registry = registry
        self._ledger = ledger
        self._executors = executors
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    async def activate(self, user: SessionUser, trigger_id: str) -> ActivationOutcome:
        """Spend a token on *trigger_id* and start the dispatch.

        Raises:
            StorageError:      The ledger transaction failed (nothing charged).
            UserNotFoundError: The session's user row does not exist.
        """
        bind_activation_context(user_id=user.user_id, trigger_id=trigger_id)

        trigger = self._registry.lookup(trigger_id)
        if trigger is None:
            log.info("activation_not_found")
            return ActivationOutcome(ActivationStatus.NOT_FOUND, trigger_id)

        try:
            action_id = await self._ledger.debit_and_record(user.user_id, trigger.id)
        except InsufficientTokensError:
            log.info("activation_denied", reason="insufficient_tokens")
            return ActivationOutcome(ActivationStatus.INSUFFICIENT_TOKENS, trigger_id)

        task = asyncio.create_task(
            self._dispatch(user, trigger, action_id), name=f"activation_{action_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        log.info("activation_initiated", action_id=action_id, kind=trigger.kind)
        return ActivationOutcome(ActivationStatus.INITIATED, trigger_id, action_id)

    async def wait_idle(self) -> None:
        """Wait until every dispatch started so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: float = 15.0) -> None:
        """Let in-flight dispatches finish; cancel whatever outlives *timeout*."""
        if not self._tasks:
            return
        log.info("orchestrator_draining", in_flight=len(self._tasks), timeout=timeout)
        _, pending = await asyncio.wait(list(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            log.warning("orchestrator_dispatches_cancelled", count=len(pending))

    # ------------------------------------------------------------------
    # Background dispatch
    # ------------------------------------------------------------------

    async def _dispatch(self, user: SessionUser, trigger: Trigger, action_id: int) -> None:
        bind_activation_context(
            user_id=user.user_id, action_id=action_id, trigger_id=trigger.id
        )
        started = time.monotonic()
        try:
            await self._executors.dispatch(trigger)
        except asyncio.CancelledError:
            log.warning("dispatch_cancelled", kind=trigger.kind)
            await self._refund(user)
            raise
        except Exception as exc:
            # Anything escaping an executor is a dispatch failure, typed or not.
            log.warning(
                "dispatch_failed",
                kind=trigger.kind,
                error=str(exc),
                error_type=type(exc).__name__,
                duration_ms=round((time.monotonic() - started) * 1000),
            )
            await self._refund(user)
            return

        try:
            await self._ledger.mark_action_success(action_id)
        except MazeControlError as exc:
            log.error("mark_success_failed", error=exc.message)
            return
        log.info(
            "dispatch_succeeded",
            kind=trigger.kind,
            duration_ms=round((time.monotonic() - started) * 1000),
        )

    async def _refund(self, user: SessionUser) -> None:
        if user.is_admin:
            log.debug("refund_skipped_admin")
            return
        try:
            await self._ledger.credit_one(user.user_id)
        except MazeControlError as exc:
            log.error("refund_failed", error=exc.message, error_type=type(exc).__name__)
