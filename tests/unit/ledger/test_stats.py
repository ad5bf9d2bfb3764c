"""Unit tests — StatsAggregator and zero_fill."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from maze_control.ledger.stats import StatsAggregator, zero_fill
from maze_control.ledger.store import TokenLedger

NOW = datetime(2024, 10, 31, 22, 30, 45, tzinfo=timezone.utc)


class MovableClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> MovableClock:
    return MovableClock(NOW)


@pytest_asyncio.fixture
async def clocked_ledger(tmp_path: Path, clock: MovableClock) -> AsyncGenerator[TokenLedger, None]:
    store = TokenLedger(tmp_path / "stats.db", default_tokens=5, clock=clock)
    await store.init()
    yield store
    await store.close()


@pytest.mark.unit
class TestZeroFill:
    def test_length_and_order(self) -> None:
        series = zero_fill({}, NOW, 60)
        assert len(series) == 60
        assert series[-1].minute == NOW.replace(second=0)
        assert series[0].minute == NOW.replace(second=0) - timedelta(minutes=59)
        assert all(p.public_count == 0 and p.admin_count == 0 for p in series)

    def test_counts_placed_on_their_minute(self) -> None:
        minute = NOW.replace(second=0) - timedelta(minutes=5)
        series = zero_fill({minute: (2, 1)}, NOW, 10)
        hit = [p for p in series if p.public_count or p.admin_count]
        assert len(hit) == 1
        assert hit[0].minute == minute
        assert (hit[0].public_count, hit[0].admin_count) == (2, 1)

    def test_naive_now_treated_as_utc(self) -> None:
        series = zero_fill({}, NOW.replace(tzinfo=None), 3)
        assert series[-1].minute.tzinfo is not None

    @pytest.mark.parametrize("window", [1, 15, 60, 120])
    def test_any_window_size(self, window: int) -> None:
        assert len(zero_fill({}, NOW, window)) == window


@pytest.mark.unit
class TestStatsAggregator:
    async def test_empty_store(self, clocked_ledger: TokenLedger) -> None:
        stats = await StatsAggregator(clocked_ledger).get_stats({}, now=NOW)
        assert stats.total_users == 0
        assert stats.total_recharges == 0
        assert stats.trigger_activations == []
        assert stats.user_stats == []
        assert len(stats.activations_last_hour) == 60

    async def test_trigger_counts_split_by_admin_and_outcome(
        self, clocked_ledger: TokenLedger
    ) -> None:
        public = await clocked_ledger.create_user(user_id="public")
        admin = await clocked_ledger.create_user(is_admin=True, user_id="admin")

        ok = await clocked_ledger.debit_and_record(public.id, "scream")
        await clocked_ledger.mark_action_success(ok)
        await clocked_ledger.debit_and_record(public.id, "scream")  # stays pending
        ok = await clocked_ledger.debit_and_record(admin.id, "scream")
        await clocked_ledger.mark_action_success(ok)
        await clocked_ledger.debit_and_record(admin.id, "storm")

        stats = await StatsAggregator(clocked_ledger).get_stats(
            {"scream": "Scream"}, now=NOW
        )

        by_id = {row.trigger_id: row for row in stats.trigger_activations}
        scream = by_id["scream"]
        assert scream.trigger_name == "Scream"
        assert (scream.public_count, scream.admin_count) == (1, 1)
        assert (scream.public_failures, scream.admin_failures) == (1, 0)
        assert scream.failure_count == 1

        storm = by_id["storm"]
        assert storm.trigger_name == ""
        assert storm.admin_failures == 1
        assert storm.failure_count == 1

    async def test_time_series_buckets(
        self, clocked_ledger: TokenLedger, clock: MovableClock
    ) -> None:
        public = await clocked_ledger.create_user()
        admin = await clocked_ledger.create_user(is_admin=True)

        clock.now = NOW - timedelta(minutes=2)
        await clocked_ledger.debit_and_record(public.id, "scream")
        await clocked_ledger.debit_and_record(public.id, "scream")
        await clocked_ledger.debit_and_record(admin.id, "storm")
        clock.now = NOW - timedelta(minutes=90)  # outside the window
        await clocked_ledger.debit_and_record(public.id, "scream")

        stats = await StatsAggregator(clocked_ledger).get_stats({}, now=NOW)

        series = stats.activations_last_hour
        assert len(series) == 60
        bucket = series[-3]
        assert bucket.minute == NOW.replace(second=0) - timedelta(minutes=2)
        assert (bucket.public_count, bucket.admin_count) == (2, 1)
        assert sum(p.public_count + p.admin_count for p in series) == 3

    async def test_custom_window(self, clocked_ledger: TokenLedger) -> None:
        stats = await StatsAggregator(clocked_ledger, window_minutes=15).get_stats(now=NOW)
        assert len(stats.activations_last_hour) == 15

    async def test_user_stats_newest_first(
        self, clocked_ledger: TokenLedger, clock: MovableClock
    ) -> None:
        clock.now = NOW - timedelta(hours=2)
        older = await clocked_ledger.create_user(user_id="older")
        clock.now = NOW - timedelta(hours=1)
        newer = await clocked_ledger.create_user(user_id="newer")
        await clocked_ledger.debit_and_record(older.id, "scream")
        await clocked_ledger.debit_and_record(older.id, "scream")
        await clocked_ledger.recharge(older.id)

        stats = await StatsAggregator(clocked_ledger).get_stats({}, now=NOW)

        assert [u.id for u in stats.user_stats] == [newer.id, older.id]
        assert stats.user_stats[1].tokens_used == 2
        assert stats.user_stats[0].tokens_used == 0
        assert stats.total_users == 2
        assert stats.total_recharges == 1
