"""
tests/test_scrape_queue.py

ScrapeQueue dispatch order, retry budget, backoff and control operations.

Each test drives one queue inside one ``asyncio.run`` call; processors are
plain coroutines so no browser or database is involved.
"""

from __future__ import annotations

import asyncio

import pytest

from app.config import ScrapeSettings
from app.domain.kol_tracking import JobPriority, PlatformType, ScrapeStatus, ScrapeTarget
from app.queue import JobState, ScrapeQueue, build_target
from app.scraping.errors import InvalidJobError
from tests.fakes import FakeStore


def _settings(**overrides) -> ScrapeSettings:
    values = {"max_concurrent": 1, "retry_attempts": 3, "backoff_base_seconds": 0.0}
    values.update(overrides)
    return ScrapeSettings(**values)


def _target(platform_id: int, platform_type: PlatformType = PlatformType.TIKTOK) -> ScrapeTarget:
    return ScrapeTarget(platform_id=platform_id, platform_type=platform_type, username=f"u{platform_id}")


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


# ---------------------------------------------------------------------------
# Target validation
# ---------------------------------------------------------------------------


class TestBuildTarget:
    def test_normalizes_platform_type(self) -> None:
        target = build_target(ScrapeTarget(platform_id=1, platform_type="YouTube", username=" anna "))  # type: ignore[arg-type]
        assert target.platform_type is PlatformType.YOUTUBE
        assert target.username == "anna"

    def test_unknown_platform_is_rejected(self) -> None:
        with pytest.raises(InvalidJobError):
            build_target(ScrapeTarget(platform_id=1, platform_type="myspace", username="a"))  # type: ignore[arg-type]

    def test_missing_url_and_username_is_rejected(self) -> None:
        with pytest.raises(InvalidJobError):
            build_target(ScrapeTarget(platform_id=1, platform_type=PlatformType.TIKTOK))

    def test_max_attempts_below_one_is_rejected(self) -> None:
        queue = ScrapeQueue(settings=_settings())
        with pytest.raises(InvalidJobError):
            queue.enqueue(_target(1), max_attempts=0)


# ---------------------------------------------------------------------------
# Dispatch order
# ---------------------------------------------------------------------------


class TestDispatchOrder:
    def test_priority_then_insertion_order(self) -> None:
        async def scenario() -> list[int]:
            seen: list[int] = []

            async def processor(job):
                seen.append(job.target.platform_id)

            queue = ScrapeQueue(processor=processor, settings=_settings())
            queue.enqueue(_target(1), priority=JobPriority.NORMAL)  # A
            queue.enqueue(_target(2), priority=JobPriority.LOW)  # B
            queue.enqueue(_target(3), priority=JobPriority.NORMAL)  # C
            queue.start()
            await asyncio.wait_for(queue.join(), timeout=5)
            await queue.close()
            return seen

        assert asyncio.run(scenario()) == [1, 3, 2]

    def test_delayed_job_keeps_waiting_without_blocking_others(self) -> None:
        clock = FakeClock()
        queue = ScrapeQueue(settings=_settings(), clock=clock)
        queue.enqueue(_target(1), priority=JobPriority.HIGH, delay=30)
        queue.enqueue(_target(2), priority=JobPriority.LOW)

        first = queue.state.pop_eligible(clock())
        assert first is not None and first.target.platform_id == 2
        assert queue.state.pop_eligible(clock()) is None
        assert queue.state.seconds_until_eligible(clock()) == pytest.approx(30)

        clock.now += 30
        second = queue.state.pop_eligible(clock())
        assert second is not None and second.target.platform_id == 1

    def test_platform_with_active_job_is_skipped(self) -> None:
        clock = FakeClock()
        queue = ScrapeQueue(settings=_settings(), clock=clock)
        first = queue.enqueue(_target(1))
        duplicate = queue.enqueue(_target(1))
        other = queue.enqueue(_target(2), priority=JobPriority.LOW)

        assert queue.state.pop_eligible(clock()) is first
        # The duplicate is blocked, so the lower-priority job runs next.
        assert queue.state.pop_eligible(clock()) is other
        assert queue.state.pop_eligible(clock()) is None

        queue.report_outcome(first.id, result=None)
        assert queue.state.pop_eligible(clock()) is duplicate

    def test_at_most_one_active_job_per_platform_with_many_workers(self) -> None:
        async def scenario() -> int:
            active: set[int] = set()
            overlaps = 0

            async def processor(job):
                nonlocal overlaps
                if job.target.platform_id in active:
                    overlaps += 1
                active.add(job.target.platform_id)
                await asyncio.sleep(0.01)
                active.discard(job.target.platform_id)

            queue = ScrapeQueue(processor=processor, settings=_settings(max_concurrent=4))
            for _ in range(4):
                queue.enqueue(_target(7))
            queue.enqueue(_target(8))
            queue.start()
            await asyncio.wait_for(queue.join(), timeout=5)
            await queue.close()
            assert queue.status().completed == 5
            return overlaps

        assert asyncio.run(scenario()) == 0


# ---------------------------------------------------------------------------
# Retries
# ---------------------------------------------------------------------------


class TestRetries:
    def test_backoff_doubles_from_base(self) -> None:
        queue = ScrapeQueue(settings=_settings(backoff_base_seconds=5.0))
        assert [queue.backoff_delay(n) for n in (1, 2, 3)] == [5.0, 10.0, 20.0]

    def test_failure_requeues_with_backoff(self) -> None:
        clock = FakeClock()
        queue = ScrapeQueue(settings=_settings(backoff_base_seconds=5.0), clock=clock)
        job = queue.enqueue(_target(1))

        assert queue.state.pop_eligible(clock()) is job
        queue.report_outcome(job.id, error=RuntimeError("boom"))

        assert job.state is JobState.WAITING
        assert job.available_at == pytest.approx(clock() + 5.0)
        assert job.last_error == "boom"
        assert queue.state.pop_eligible(clock()) is None
        clock.now += 5.0
        assert queue.state.pop_eligible(clock()) is job
        assert job.attempts_made == 2

    def test_attempts_never_exceed_max(self) -> None:
        async def scenario():
            calls = 0

            async def processor(job):
                nonlocal calls
                calls += 1
                raise RuntimeError("always broken")

            store = FakeStore()
            store.add_kol(1)
            store.add_platform(1, 1)
            queue = ScrapeQueue(processor=processor, store=store, settings=_settings())
            job = queue.enqueue(_target(1), max_attempts=3)
            queue.start()
            await asyncio.wait_for(queue.join(), timeout=5)
            await queue.close()
            return calls, job, queue, store

        calls, job, queue, store = asyncio.run(scenario())
        assert calls == 3
        assert job.attempts_made == 3
        assert job.state is JobState.FAILED
        assert queue.failed_jobs() == [job]
        assert queue.status().failed == 1
        assert store.platforms[1].scrape_status is ScrapeStatus.FAILED
        assert store.status_updates.count((1, ScrapeStatus.FAILED)) == 3

    def test_non_retryable_error_fails_immediately(self) -> None:
        clock = FakeClock()
        queue = ScrapeQueue(settings=_settings(), clock=clock)
        job = queue.enqueue(_target(1), max_attempts=5)
        queue.state.pop_eligible(clock())
        queue.report_outcome(job.id, error=InvalidJobError("bad payload"))

        assert job.state is JobState.FAILED
        assert job.attempts_made == 1

    def test_success_marks_platform_and_drops_job(self) -> None:
        async def scenario():
            async def processor(job):
                return "ok"

            store = FakeStore()
            store.add_kol(1)
            store.add_platform(1, 1)
            queue = ScrapeQueue(processor=processor, store=store, settings=_settings())
            job = queue.enqueue(_target(1))
            queue.start()
            await asyncio.wait_for(queue.join(), timeout=5)
            await queue.close()
            return job, queue, store

        job, queue, store = asyncio.run(scenario())
        assert job.state is JobState.COMPLETED
        assert queue.get_job(job.id) is None
        assert queue.status().completed == 1
        assert store.status_updates == [(1, ScrapeStatus.PENDING), (1, ScrapeStatus.SUCCESS)]
        assert store.platforms[1].last_scraped_at is not None

    def test_completed_job_is_kept_when_requested(self) -> None:
        clock = FakeClock()
        queue = ScrapeQueue(settings=_settings(), clock=clock)
        job = queue.enqueue(_target(1), remove_on_complete=False)
        queue.state.pop_eligible(clock())
        queue.report_outcome(job.id, result={"followers": 10})
        assert queue.get_job(job.id) is job
        assert job.result == {"followers": 10}


# ---------------------------------------------------------------------------
# Control operations
# ---------------------------------------------------------------------------


class TestControl:
    def test_pause_and_resume_are_idempotent(self) -> None:
        queue = ScrapeQueue(settings=_settings())
        queue.pause()
        queue.pause()
        assert queue.status().paused is True
        queue.resume()
        queue.resume()
        assert queue.status().paused is False

    def test_paused_queue_dispatches_nothing(self) -> None:
        async def scenario() -> tuple[int, int]:
            seen: list[int] = []

            async def processor(job):
                seen.append(job.target.platform_id)

            queue = ScrapeQueue(processor=processor, settings=_settings())
            queue.pause()
            queue.enqueue(_target(1))
            queue.start()
            await asyncio.sleep(0.05)
            before = len(seen)
            queue.resume()
            await asyncio.wait_for(queue.join(), timeout=5)
            await queue.close()
            return before, len(seen)

        assert asyncio.run(scenario()) == (0, 1)

    def test_clear_discards_waiting_jobs_only_once(self) -> None:
        queue = ScrapeQueue(settings=_settings())
        queue.enqueue(_target(1))
        queue.enqueue(_target(2))
        assert queue.clear() == 2
        assert queue.clear() == 0
        assert queue.status().waiting == 0

    def test_status_counts(self) -> None:
        clock = FakeClock()
        queue = ScrapeQueue(settings=_settings(), clock=clock)
        queue.enqueue(_target(1))
        queue.enqueue(_target(2))
        queue.state.pop_eligible(clock())

        status = queue.status()
        assert (status.waiting, status.active, status.completed, status.failed) == (1, 1, 0, 0)

    def test_start_without_processor_raises(self) -> None:
        async def scenario() -> None:
            ScrapeQueue(settings=_settings()).start()

        with pytest.raises(RuntimeError):
            asyncio.run(scenario())

    def test_close_returns_when_idle(self) -> None:
        async def scenario() -> bool:
            async def processor(job):
                return None

            queue = ScrapeQueue(processor=processor, settings=_settings(max_concurrent=3))
            queue.start()
            assert queue.running
            await asyncio.wait_for(queue.close(), timeout=5)
            return queue.running

        assert asyncio.run(scenario()) is False


# ---------------------------------------------------------------------------
# Cancellation and direct runs
# ---------------------------------------------------------------------------


class TestCancellation:
    def test_close_without_wait_fails_the_running_job(self) -> None:
        async def scenario():
            started = asyncio.Event()

            async def processor(job):
                started.set()
                await asyncio.Event().wait()

            store = FakeStore()
            store.add_kol(1)
            store.add_platform(1, 1)
            queue = ScrapeQueue(processor=processor, store=store, settings=_settings())
            job = queue.enqueue(_target(1), max_attempts=3)
            queue.start()
            await asyncio.wait_for(started.wait(), timeout=5)
            await asyncio.wait_for(queue.close(wait=False), timeout=5)
            return job, queue, store

        job, queue, store = asyncio.run(scenario())
        assert job.state is JobState.FAILED
        assert job.attempts_made == 1
        assert "cancelled" in (job.last_error or "")
        status = queue.status()
        assert (status.active, status.failed, status.waiting) == (0, 1, 0)
        assert store.status_updates == [(1, ScrapeStatus.PENDING), (1, ScrapeStatus.FAILED)]
        assert store.platforms[1].scrape_status is ScrapeStatus.FAILED


class TestRunWithStatus:
    def _store(self) -> FakeStore:
        store = FakeStore()
        store.add_kol(1)
        store.add_platform(1, 1)
        return store

    def test_success_moves_platform_through_pending(self) -> None:
        store = self._store()
        queue = ScrapeQueue(store=store, settings=_settings())

        async def work():
            return "done"

        assert asyncio.run(queue.run_with_status(1, work)) == "done"
        assert store.status_updates == [(1, ScrapeStatus.PENDING), (1, ScrapeStatus.SUCCESS)]
        assert store.platforms[1].last_scraped_at is not None

    def test_failure_is_recorded_and_reraised(self) -> None:
        store = self._store()
        queue = ScrapeQueue(store=store, settings=_settings())

        async def work():
            raise RuntimeError("blocked")

        with pytest.raises(RuntimeError):
            asyncio.run(queue.run_with_status(1, work))
        assert store.status_updates == [(1, ScrapeStatus.PENDING), (1, ScrapeStatus.FAILED)]
