"""Maze Control — Exception hierarchy.

All exceptions raised by the dashboard inherit from MazeControlError so that
callers can catch the full family with a single except clause when needed.

Hierarchy:
    MazeControlError
    ├── ActivationError
    │   ├── TriggerNotFoundError
    │   └── InsufficientTokensError
    ├── LedgerError
    │   ├── StorageError
    │   └── UserNotFoundError
    ├── DispatchError
    │   ├── UnknownTriggerTypeError
    │   ├── DeviceRequestError
    │   ├── DeviceTimeoutError
    │   └── MalformedReplyError
    ├── PartialRestoreError
    └── TriggerConfigError

Errors raised before the ledger transaction commits (activation, ledger) leave
no trace in the store.  ``DispatchError`` is raised after the debit is durable
and is compensated by a refund instead of a rollback.
"""

from __future__ import annotations

from typing import Any


class MazeControlError(Exception):
    """Base exception for all Maze Control errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Activation gate
# ---------------------------------------------------------------------------


class ActivationError(MazeControlError):
    """Base for terminal rejections of an activation request (no charge)."""


class TriggerNotFoundError(ActivationError):
    """No trigger with this id exists in the active trigger table."""

    def __init__(self, trigger_id: str) -> None:
        super().__init__(
            f"Trigger '{trigger_id}' not found",
            context={"trigger_id": trigger_id},
        )
        self.trigger_id = trigger_id


class InsufficientTokensError(ActivationError):
    """A non-admin user tried to spend a token with a zero balance."""

    def __init__(self, user_id: str) -> None:
        super().__init__(
            "You are out of tokens!",
            context={"user_id": user_id},
        )
        self.user_id = user_id


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class LedgerError(MazeControlError):
    """Base for token ledger errors."""


class StorageError(LedgerError):
    """A SQLite operation failed; the enclosing transaction was rolled back."""


class UserNotFoundError(LedgerError):
    """The user row does not exist (or disappeared mid-transaction)."""

    def __init__(self, user_id: str) -> None:
        super().__init__(
            f"User '{user_id}' not found",
            context={"user_id": user_id},
        )
        self.user_id = user_id


# ---------------------------------------------------------------------------
# Device dispatch
# ---------------------------------------------------------------------------


class DispatchError(MazeControlError):
    """A device executor failed after the token was already spent."""


class UnknownTriggerTypeError(DispatchError):
    """No executor is registered for the trigger's kind tag."""

    def __init__(self, kind: str) -> None:
        super().__init__(
            f"Unknown trigger type: '{kind}'",
            context={"kind": kind},
        )
        self.kind = kind


class DeviceRequestError(DispatchError):
    """An HTTP device returned an error status or could not be reached."""

    def __init__(self, address: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(
            f"Device request to {address} failed: {reason}",
            context={"address": address, "reason": reason, "status_code": status_code},
        )
        self.address = address
        self.status_code = status_code


class DeviceTimeoutError(DispatchError):
    """A request/reply exchange did not receive its reply before the deadline."""

    def __init__(self, address: str, timeout_seconds: float) -> None:
        super().__init__(
            f"No reply from {address} within {timeout_seconds:g}s",
            context={"address": address, "timeout_seconds": timeout_seconds},
        )
        self.address = address
        self.timeout_seconds = timeout_seconds


class MalformedReplyError(DispatchError):
    """A device reply could not be decoded."""

    def __init__(self, address: str, reason: str, raw: bytes | None = None) -> None:
        super().__init__(
            f"Malformed reply from {address}: {reason}",
            context={"address": address, "reason": reason, "raw": raw[:256] if raw else None},
        )
        self.address = address


# ---------------------------------------------------------------------------
# Effects and configuration
# ---------------------------------------------------------------------------


class PartialRestoreError(MazeControlError):
    """A light could not be returned to its captured state after an effect.

    Logged only: the effect already happened physically, so the activation
    still counts as a success.
    """

    def __init__(self, address: str, failed_steps: list[str]) -> None:
        super().__init__(
            f"Could not fully restore {address}: failed steps {failed_steps}",
            context={"address": address, "failed_steps": failed_steps},
        )
        self.failed_steps = failed_steps


class TriggerConfigError(MazeControlError):
    """The trigger configuration file is unreadable or invalid."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(
            f"Invalid trigger configuration '{path}': {reason}",
            context={"path": path, "reason": reason},
        )
        self.path = path
        self.reason = reason
