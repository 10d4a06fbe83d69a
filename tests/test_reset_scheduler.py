"""
Тесты ежедневного сброса счётчиков.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from ad_rewards.services.reset_scheduler import RESET_MARKER_PATH, ResetScheduler, SchedulerState

from conftest import NOW, YESTERDAY, InMemoryStore

# 05:59 in the reference timezone
BEFORE_CUTOFF = datetime(2024, 5, 9, 23, 59, tzinfo=timezone.utc)


class TestIsDue:
    @pytest.fixture
    def scheduler(self, store):
        return ResetScheduler(store)

    def test_due_after_cutoff_with_old_marker(self, scheduler):
        assert scheduler.is_due(NOW, "2024-05-09") is True

    def test_due_without_marker(self, scheduler):
        assert scheduler.is_due(NOW, None) is True

    def test_not_due_twice_a_day(self, scheduler):
        assert scheduler.is_due(NOW, "2024-05-10") is False

    def test_not_due_before_cutoff(self, scheduler):
        assert scheduler.is_due(BEFORE_CUTOFF, "2024-05-09") is False

    def test_reference_day_differs_from_utc_day(self, scheduler):
        # 2024-05-10 20:00 UTC is 02:00 on 2024-05-11 in the reference timezone
        late_evening = datetime(2024, 5, 10, 20, 0, tzinfo=timezone.utc)
        assert scheduler.is_due(late_evening, "2024-05-10") is False

    def test_seconds_until_next_reset(self, scheduler):
        assert scheduler.seconds_until_next_reset(BEFORE_CUTOFF) == 60
        assert scheduler.seconds_until_next_reset(NOW) == 21 * 3600


class TestTick:
    @pytest.fixture
    def store(self):
        return InMemoryStore({
            RESET_MARKER_PATH: "2024-05-09",
            "watchRecords/42/adexora": {"watchedToday": 5, "lastWatched": YESTERDAY.isoformat()},
            "watchRecords/42/gigapub": {"watchedToday": 2},
            "watchRecords/7/adextra": {"watchedToday": 1},
            "accounts/42": {"id": "42", "balance": 1.0},
        })

    @pytest.fixture
    def scheduler(self, store):
        return ResetScheduler(store)

    @pytest.mark.asyncio
    async def test_resets_every_record_and_writes_marker(self, scheduler, store):
        report = await scheduler.tick(NOW)

        assert report.performed is True
        assert report.records_reset == 3
        assert report.reset_date == "2024-05-10"
        assert store.data[RESET_MARKER_PATH] == "2024-05-10"
        for path in ("watchRecords/42/adexora", "watchRecords/42/gigapub", "watchRecords/7/adextra"):
            assert store.data[path]["watchedToday"] == 0
            assert store.data[path]["lastReset"] == NOW.isoformat()
        # other fields survive the merge
        assert store.data["watchRecords/42/adexora"]["lastWatched"] == YESTERDAY.isoformat()
        assert scheduler.state == SchedulerState.IDLE

    @pytest.mark.asyncio
    async def test_marker_written_before_records(self, scheduler, store):
        await scheduler.tick(NOW)

        assert store.writes[0] == ("set", RESET_MARKER_PATH)

    @pytest.mark.asyncio
    async def test_second_tick_same_day_is_noop(self, scheduler, store):
        await scheduler.tick(NOW)
        store.data["watchRecords/42/adexora"]["watchedToday"] = 1

        report = await scheduler.tick(NOW + timedelta(hours=3))

        assert report.performed is False
        assert store.data["watchRecords/42/adexora"]["watchedToday"] == 1

    @pytest.mark.asyncio
    async def test_before_cutoff_is_noop(self, scheduler, store):
        report = await scheduler.tick(BEFORE_CUTOFF)

        assert report.performed is False
        assert store.data[RESET_MARKER_PATH] == "2024-05-09"

    @pytest.mark.asyncio
    async def test_force_ignores_marker(self, scheduler, store):
        store.data[RESET_MARKER_PATH] = "2024-05-10"

        report = await scheduler.tick(NOW, force=True)

        assert report.performed is True
        assert store.data["watchRecords/42/gigapub"]["watchedToday"] == 0

    @pytest.mark.asyncio
    async def test_failure_returns_to_idle_with_marker_already_written(self, scheduler, store):
        store.failing.add("update")

        report = await scheduler.tick(NOW)

        assert report.performed is False
        assert report.error
        assert scheduler.state == SchedulerState.IDLE
        assert store.data[RESET_MARKER_PATH] == "2024-05-10"
        assert store.data["watchRecords/42/adexora"]["watchedToday"] == 5

    @pytest.mark.asyncio
    async def test_tick_while_resetting_is_skipped(self, scheduler, store):
        scheduler.state = SchedulerState.RESETTING

        report = await scheduler.tick(NOW)

        assert report.performed is False
        assert store.data[RESET_MARKER_PATH] == "2024-05-09"

    @pytest.mark.asyncio
    async def test_no_records(self):
        scheduler = ResetScheduler(InMemoryStore())

        report = await scheduler.tick(NOW)

        assert report.performed is True
        assert report.records_reset == 0


class TestRunForever:
    @pytest.mark.asyncio
    async def test_first_tick_runs_immediately_and_stops_on_event(self):
        store = InMemoryStore({"watchRecords/42/adexora": {"watchedToday": 3}})
        scheduler = ResetScheduler(store, interval_seconds=0.01, clock=lambda: NOW)
        stop_event = asyncio.Event()

        task = asyncio.create_task(scheduler.run_forever(stop_event))
        await asyncio.sleep(0.05)
        stop_event.set()
        await asyncio.wait_for(task, timeout=1)

        assert RESET_MARKER_PATH in store.data
        assert store.data["watchRecords/42/adexora"]["watchedToday"] == 0
