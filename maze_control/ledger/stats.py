"""Statistics aggregator — read-only views over the action log.

Produces the snapshot shown on the admin statistics page:

    - totals (users, recharges)
    - per-trigger success / failure counts split by admin and public users
    - a zero-filled per-minute activation series ending at the current minute
    - per-user action counts

Pending actions (never marked successful) count as failures; the log does
not distinguish "still running" from "failed".
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Mapping

from pydantic import BaseModel, Field

from maze_control.ledger.models import format_timestamp, parse_timestamp
from maze_control.ledger.store import TokenLedger


class TriggerStat(BaseModel):
    trigger_id: str
    trigger_name: str = ""
    public_count: int = 0
    admin_count: int = 0
    public_failures: int = 0
    admin_failures: int = 0
    failure_count: int = 0


class UserStat(BaseModel):
    id: str
    created_at: datetime
    is_admin: bool
    tokens_used: int


class ActivationMinute(BaseModel):
    minute: datetime
    public_count: int = 0
    admin_count: int = 0


class Stats(BaseModel):
    total_users: int = 0
    total_recharges: int = 0
    trigger_activations: list[TriggerStat] = Field(default_factory=list)
    user_stats: list[UserStat] = Field(default_factory=list)
    activations_last_hour: list[ActivationMinute] = Field(default_factory=list)


def _truncate_to_minute(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).replace(second=0, microsecond=0)


def zero_fill(
    counts: Mapping[datetime, tuple[int, int]],
    now: datetime,
    window_minutes: int,
) -> list[ActivationMinute]:
    """Return exactly *window_minutes* points, oldest first, ending at *now*.

    *counts* maps minute-truncated UTC datetimes to ``(public, admin)``.
    """
    end = _truncate_to_minute(now)
    series: list[ActivationMinute] = []
    for offset in range(window_minutes - 1, -1, -1):
        minute = end - timedelta(minutes=offset)
        public, admin = counts.get(minute, (0, 0))
        series.append(ActivationMinute(minute=minute, public_count=public, admin_count=admin))
    return series


class StatsAggregator:
    """Run the statistics queries against a :class:`TokenLedger`."""

    def __init__(self, ledger: TokenLedger, window_minutes: int = 60) -> None:
        self._ledger = ledger
        self._window = window_minutes

    async def get_stats(
        self,
        trigger_names: Mapping[str, str] | None = None,
        now: datetime | None = None,
    ) -> Stats:
        trigger_names = trigger_names or {}
        now = now or datetime.now(timezone.utc)
        end = _truncate_to_minute(now)
        window_start = end - timedelta(minutes=self._window - 1)
        window_end = end + timedelta(minutes=1)

        async with self._ledger.reader() as conn:
            async with conn.execute("SELECT COUNT(*) FROM users") as cur:
                total_users = (await cur.fetchone())[0]
            async with conn.execute("SELECT COUNT(*) FROM recharges") as cur:
                total_recharges = (await cur.fetchone())[0]

            async with conn.execute(
                """
                SELECT u.id, u.created_at, u.is_admin, COUNT(a.id)
                FROM users u
                LEFT JOIN actions a ON u.id = a.user_id
                GROUP BY u.id
                ORDER BY u.created_at DESC, u.id
                """
            ) as cur:
                user_rows = await cur.fetchall()

            async with conn.execute(
                """
                SELECT
                    strftime('%Y-%m-%d %H:%M:00', a.timestamp) AS minute,
                    SUM(CASE WHEN u.is_admin = 0 THEN 1 ELSE 0 END),
                    SUM(CASE WHEN u.is_admin = 1 THEN 1 ELSE 0 END)
                FROM actions a
                JOIN users u ON a.user_id = u.id
                WHERE a.timestamp >= ? AND a.timestamp < ?
                GROUP BY minute
                """,
                (format_timestamp(window_start), format_timestamp(window_end)),
            ) as cur:
                minute_rows = await cur.fetchall()

            async with conn.execute(
                """
                SELECT
                    a.trigger_id,
                    SUM(CASE WHEN u.is_admin = 0 AND a.success = 1 THEN 1 ELSE 0 END),
                    SUM(CASE WHEN u.is_admin = 1 AND a.success = 1 THEN 1 ELSE 0 END),
                    SUM(CASE WHEN u.is_admin = 0 AND a.success = 0 THEN 1 ELSE 0 END),
                    SUM(CASE WHEN u.is_admin = 1 AND a.success = 0 THEN 1 ELSE 0 END)
                FROM actions a
                JOIN users u ON a.user_id = u.id
                GROUP BY a.trigger_id
                ORDER BY a.trigger_id
                """
            ) as cur:
                trigger_rows = await cur.fetchall()

        counts = {
            parse_timestamp(minute): (public or 0, admin or 0)
            for minute, public, admin in minute_rows
            if minute is not None
        }

        return Stats(
            total_users=total_users,
            total_recharges=total_recharges,
            user_stats=[
                UserStat(
                    id=uid,
                    created_at=parse_timestamp(created_at),
                    is_admin=bool(is_admin),
                    tokens_used=used,
                )
                for uid, created_at, is_admin, used in user_rows
            ],
            activations_last_hour=zero_fill(counts, now, self._window),
            trigger_activations=[
                TriggerStat(
                    trigger_id=tid,
                    trigger_name=trigger_names.get(tid, ""),
                    public_count=pub_ok,
                    admin_count=adm_ok,
                    public_failures=pub_fail,
                    admin_failures=adm_fail,
                    failure_count=pub_fail + adm_fail,
                )
                for tid, pub_ok, adm_ok, pub_fail, adm_fail in trigger_rows
            ],
        )
