"""Ledger row models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

# SQLite CURRENT_TIMESTAMP layout; always UTC.
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(moment: datetime) -> str:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        # Rows written by other tools may carry ISO-8601 with an offset.
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class User:
    id: str
    tokens_remaining: int
    is_admin: bool
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tokens_remaining": self.tokens_remaining,
            "is_admin": self.is_admin,
        }


@dataclass(frozen=True)
class Action:
    """One activation attempt.  ``success`` stays False until confirmed."""

    id: int
    user_id: str
    trigger_id: str
    timestamp: datetime
    success: bool


@dataclass(frozen=True)
class Recharge:
    id: int
    user_id: str
    timestamp: datetime
