"""
tests/test_scheduler.py

Sweep enumeration, priorities, jitter windows and manual triggers.
"""

from __future__ import annotations

import asyncio
import random
from datetime import datetime, timedelta, timezone

import pytest

from app.config import ScheduleSettings, ScrapeSettings
from app.domain.kol_tracking import JobPriority, PlatformType, ScrapeStatus
from app.queue import ScrapeQueue
from app.scheduler.jobs import FULL_SWEEP, HEALTH_SWEEP, PRIORITY_SWEEP, ScrapeScheduler
from app.scraping.errors import KolNotFoundError
from tests.fakes import FakeStore


class FixedClock:
    def __call__(self) -> float:
        return 500.0


NOW = datetime.now(timezone.utc)


@pytest.fixture()
def store() -> FakeStore:
    fake = FakeStore()
    fake.add_kol(1, "Active priority", is_priority=True)
    fake.add_kol(2, "Active regular")
    fake.add_kol(3, "Inactive", is_active=False, is_priority=True)

    fake.add_platform(10, 1, PlatformType.TIKTOK, last_scraped_at=NOW - timedelta(days=1))
    fake.add_platform(11, 1, PlatformType.YOUTUBE)
    fake.add_platform(
        20,
        2,
        PlatformType.INSTAGRAM,
        last_scraped_at=NOW - timedelta(hours=2),
        scrape_status=ScrapeStatus.FAILED,
    )
    fake.add_platform(21, 2, PlatformType.FACEBOOK, last_scraped_at=NOW - timedelta(days=30))
    fake.add_platform(30, 3, PlatformType.TIKTOK)
    return fake


def _scheduler(store: FakeStore, **overrides) -> tuple[ScrapeScheduler, ScrapeQueue]:
    queue = ScrapeQueue(settings=ScrapeSettings(), clock=FixedClock())
    settings = ScheduleSettings(**overrides)
    return ScrapeScheduler(queue=queue, store=store, settings=settings, rng=random.Random(3)), queue


def _waiting(queue: ScrapeQueue) -> dict[int, int]:
    return {job.target.platform_id: job.priority for job in queue.state.waiting_jobs()}


class TestSweeps:
    def test_full_sweep_covers_active_kols_only(self, store: FakeStore) -> None:
        scheduler, queue = _scheduler(store, full_sweep_jitter_seconds=60)

        result = asyncio.run(scheduler.full_sweep())

        assert result.enqueued == 4
        assert result.errors == []
        assert _waiting(queue) == {
            10: JobPriority.NORMAL,
            11: JobPriority.NORMAL,
            20: JobPriority.NORMAL,
            21: JobPriority.NORMAL,
        }
        for job in queue.state.waiting_jobs():
            assert 500.0 <= job.available_at <= 560.0

    def test_priority_sweep_is_limited_and_most_overdue_first(self, store: FakeStore) -> None:
        scheduler, queue = _scheduler(store, priority_sweep_limit=1)

        result = asyncio.run(scheduler.priority_sweep())

        assert result.enqueued == 1
        # Never-scraped platform 11 is more overdue than 10.
        assert _waiting(queue) == {11: JobPriority.HIGH}

    def test_health_sweep_mixes_failed_and_stale(self, store: FakeStore) -> None:
        scheduler, queue = _scheduler(store, stale_after_days=14)

        result = asyncio.run(scheduler.health_sweep())

        waiting = queue.state.waiting_jobs()
        by_platform: dict[int, list[int]] = {}
        for job in waiting:
            by_platform.setdefault(job.target.platform_id, []).append(job.priority)
        assert by_platform[20] == [JobPriority.LOW]
        assert by_platform[21] == [JobPriority.NORMAL]
        assert by_platform[11] == [JobPriority.NORMAL]
        assert 30 not in by_platform
        assert result.enqueued == 3

    def test_health_sweep_halves_fail_independently(self, store: FakeStore) -> None:
        store.fail_enumeration.add("failed")
        scheduler, queue = _scheduler(store)

        result = asyncio.run(scheduler.health_sweep())

        assert result.enqueued == 2
        assert len(result.errors) == 1
        assert "health_sweep.failed" in result.errors[0]
        assert set(_waiting(queue)) == {11, 21}

    def test_enumeration_failure_is_reported_not_raised(self, store: FakeStore) -> None:
        store.fail_enumeration.add("active")
        scheduler, queue = _scheduler(store)

        result = asyncio.run(scheduler.full_sweep())

        assert result.enqueued == 0
        assert result.errors
        assert queue.status().waiting == 0

    def test_invalid_platform_is_skipped(self, store: FakeStore) -> None:
        store.add_platform(22, 2, "myspace")  # type: ignore[arg-type]
        scheduler, queue = _scheduler(store)

        result = asyncio.run(scheduler.full_sweep())

        assert result.enqueued == 4
        assert 22 not in _waiting(queue)


class TestRules:
    def test_run_rule_records_outcome(self, store: FakeStore) -> None:
        scheduler, _ = _scheduler(store)

        asyncio.run(scheduler.run_rule(FULL_SWEEP))

        status = scheduler.status()[FULL_SWEEP]
        assert status["state"] == "idle"
        assert status["running"] is False
        assert status["last_enqueued"] == 4
        assert status["last_error"] is None
        assert status["last_run_at"] is not None
        assert status["scheduled"] is False

    def test_manual_triggers_use_the_rules(self, store: FakeStore) -> None:
        scheduler, queue = _scheduler(store)

        async def scenario() -> None:
            await scheduler.trigger_full_sweep()
            await scheduler.trigger_priority_sweep()

        asyncio.run(scenario())

        report = scheduler.status()
        assert report[FULL_SWEEP]["last_enqueued"] == 4
        assert report[PRIORITY_SWEEP]["last_enqueued"] == 2
        assert report[HEALTH_SWEEP]["last_run_at"] is None
        # Duplicates are allowed: platforms 10 and 11 are queued twice.
        assert queue.status().waiting == 6

    def test_trigger_for_kol_is_high_priority_without_delay(self, store: FakeStore) -> None:
        scheduler, queue = _scheduler(store)

        count = asyncio.run(scheduler.trigger_for_kol(2))

        assert count == 2
        assert _waiting(queue) == {20: JobPriority.HIGH, 21: JobPriority.HIGH}
        assert all(job.available_at == 500.0 for job in queue.state.waiting_jobs())

    def test_trigger_for_unknown_kol_raises(self, store: FakeStore) -> None:
        scheduler, _ = _scheduler(store)

        with pytest.raises(KolNotFoundError):
            asyncio.run(scheduler.trigger_for_kol(99))

    def test_retry_failed_since(self, store: FakeStore) -> None:
        scheduler, queue = _scheduler(store)

        assert asyncio.run(scheduler.retry_failed_since(1)) == 0
        assert asyncio.run(scheduler.retry_failed_since(24)) == 1
        assert _waiting(queue) == {20: JobPriority.LOW}

    def test_start_registers_cron_jobs(self, store: FakeStore) -> None:
        scheduler, _ = _scheduler(store)

        async def scenario() -> dict:
            scheduler.start()
            try:
                assert scheduler.running
                return scheduler.status()
            finally:
                scheduler.shutdown()

        report = asyncio.run(scenario())
        assert scheduler.running is False
        assert {rule["cron"] for rule in report.values()} == {"0 0 * * 0", "0 2 * * *", "0 * * * *"}
        assert all(rule["scheduled"] for rule in report.values())
        assert all(rule["next_run_at"] is not None for rule in report.values())
