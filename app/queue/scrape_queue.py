"""
app/queue/scrape_queue.py

Priority job queue with delayed eligibility, bounded worker concurrency and
exponential retry backoff.

Dispatch order: lowest priority value first, insertion order within a tier.
A job whose delay has not elapsed, or whose platform already has an active
job, stays waiting at its original priority and position.

Workers are asyncio tasks. An idle worker suspends on an ``asyncio.Event``
(with a timeout equal to the next delayed job's eligibility) rather than
polling. Storage calls are pushed to a thread with ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from app.config import ScrapeSettings, get_scrape_settings
from app.domain.kol_tracking import PlatformType, ScrapeStatus, ScrapeTarget
from app.queue.state import JobState, QueueState, QueueStatus, ScrapeJob
from app.scraping.errors import CancelledScrapeError, InvalidJobError
from app.scraping.logging_utils import log_event
from app.scraping.storage.base import ScrapeStore

logger = logging.getLogger(__name__)

JobProcessor = Callable[[ScrapeJob], Awaitable[Any]]


def build_target(target: ScrapeTarget) -> ScrapeTarget:
    """
    Validate a scrape target and return it with a canonical platform type.
    """

    try:
        platform_type = PlatformType.parse(target.platform_type)
    except ValueError as exc:
        raise InvalidJobError(str(exc)) from exc

    profile_url = (target.profile_url or "").strip()
    username = (target.username or "").strip()
    if not profile_url and not username:
        raise InvalidJobError(
            f"Platform {target.platform_id} has neither a profile URL nor a username."
        )
    return dataclasses.replace(
        target,
        platform_type=platform_type,
        profile_url=profile_url,
        username=username,
    )


class ScrapeQueue:
    def __init__(
        self,
        *,
        processor: JobProcessor | None = None,
        store: ScrapeStore | None = None,
        settings: ScrapeSettings | None = None,
        state: QueueState | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._processor = processor
        self._store = store
        self._settings = settings or get_scrape_settings()
        self._state = state or QueueState()
        self._clock = clock
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._closed = False
        self._workers: list[asyncio.Task[None]] = []

    @property
    def state(self) -> QueueState:
        return self._state

    def set_processor(self, processor: JobProcessor) -> None:
        self._processor = processor

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def enqueue(
        self,
        target: ScrapeTarget,
        *,
        priority: int = 1,
        delay: float = 0.0,
        max_attempts: int | None = None,
        remove_on_complete: bool = True,
    ) -> ScrapeJob:
        """
        Add one job. ``delay`` is in seconds; ``max_attempts`` defaults to the
        configured retry budget.
        """

        validated = build_target(target)
        attempts = max_attempts if max_attempts is not None else self._settings.retry_attempts
        if attempts < 1:
            raise InvalidJobError(f"max_attempts must be at least 1, got {attempts}")

        job = ScrapeJob(
            target=validated,
            priority=int(priority),
            max_attempts=int(attempts),
            available_at=self._clock() + max(0.0, float(delay)),
            sequence=self._state.next_sequence(),
            remove_on_complete=remove_on_complete,
        )
        self._state.add_waiting(job)
        self._idle.clear()
        self._wakeup.set()

        log_event(
            logger,
            logging.INFO,
            "scrape_job_enqueued",
            job_id=job.id,
            platform_id=validated.platform_id,
            platform=validated.platform_type,
            priority=job.priority,
            delay_seconds=round(max(0.0, float(delay)), 3),
            max_attempts=job.max_attempts,
        )
        return job

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    async def dequeue_next(self) -> ScrapeJob | None:
        """
        Wait for and claim the next eligible job. Returns None once the queue
        is closed.
        """

        while not self._closed:
            now = self._clock()
            timeout: float | None = None
            if not self._state.paused:
                job = self._state.pop_eligible(now)
                if job is not None:
                    return job
                timeout = self._state.seconds_until_eligible(now)

            self._wakeup.clear()
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                pass
        return None

    def backoff_delay(self, attempts_made: int) -> float:
        """Seconds before retry number ``attempts_made``: base * 2^(n-1)."""

        exponent = max(0, attempts_made - 1)
        return self._settings.backoff_base_seconds * (2**exponent)

    def report_outcome(
        self,
        job_id: str,
        *,
        result: Any = None,
        error: BaseException | None = None,
    ) -> ScrapeJob:
        """
        Resolve an active job. Errors are retried with backoff while attempts
        remain and the error is retryable; otherwise the job is failed and kept
        for inspection.
        """

        job = self._state.release(job_id)
        finished_at = datetime.now(timezone.utc)

        if error is None:
            self._state.record_completed(job, result=result, finished_at=finished_at)
            log_event(
                logger,
                logging.INFO,
                "scrape_job_completed",
                job_id=job.id,
                platform_id=job.target.platform_id,
                platform=job.target.platform_type,
                attempts=job.attempts_made,
            )
        else:
            job.last_error = str(error) or type(error).__name__
            retryable = getattr(error, "retryable", True)
            if retryable and job.attempts_made < job.max_attempts:
                backoff = self.backoff_delay(job.attempts_made)
                self._state.requeue(job, available_at=self._clock() + backoff)
                log_event(
                    logger,
                    logging.WARNING,
                    "scrape_job_retry_scheduled",
                    job_id=job.id,
                    platform_id=job.target.platform_id,
                    platform=job.target.platform_type,
                    attempts=job.attempts_made,
                    max_attempts=job.max_attempts,
                    backoff_seconds=backoff,
                    error_type=type(error).__name__,
                    error=job.last_error,
                )
            else:
                self._state.record_failed(job, error=job.last_error, finished_at=finished_at)
                log_event(
                    logger,
                    logging.ERROR,
                    "scrape_job_failed",
                    job_id=job.id,
                    platform_id=job.target.platform_id,
                    platform=job.target.platform_type,
                    attempts=job.attempts_made,
                    max_attempts=job.max_attempts,
                    retryable=retryable,
                    error_type=type(error).__name__,
                    error=job.last_error,
                )

        if self._state.is_idle:
            self._idle.set()
        self._wakeup.set()
        return job

    # ------------------------------------------------------------------
    # Control and inspection
    # ------------------------------------------------------------------

    def status(self) -> QueueStatus:
        return self._state.counts()

    def pause(self) -> None:
        if self._state.paused:
            return
        self._state.paused = True
        log_event(logger, logging.INFO, "scrape_queue_paused")

    def resume(self) -> None:
        if not self._state.paused:
            return
        self._state.paused = False
        self._wakeup.set()
        log_event(logger, logging.INFO, "scrape_queue_resumed")

    def clear(self) -> int:
        """Discard every waiting job. Active jobs are left to finish."""

        removed = self._state.clear_waiting()
        if self._state.is_idle:
            self._idle.set()
        if removed:
            log_event(logger, logging.INFO, "scrape_queue_cleared", removed=removed)
        return removed

    def get_job(self, job_id: str) -> ScrapeJob | None:
        return self._state.get(job_id)

    def failed_jobs(self) -> list[ScrapeJob]:
        return self._state.failed_jobs()

    # ------------------------------------------------------------------
    # Worker pool
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._workers)

    def start(self, concurrency: int | None = None) -> None:
        """
        Spawn the worker pool on the running event loop.
        """

        if self._processor is None:
            raise RuntimeError("ScrapeQueue.start() called without a job processor")
        if self.running:
            return

        self._closed = False
        size = max(1, concurrency or self._settings.max_concurrent)
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"scrape-worker-{index}")
            for index in range(size)
        ]
        log_event(logger, logging.INFO, "scrape_queue_started", workers=size)

    async def close(self, *, wait: bool = True) -> None:
        """
        Stop dispatching. With ``wait`` the in-flight jobs run to completion;
        otherwise the workers are cancelled.
        """

        self._closed = True
        self._wakeup.set()
        workers, self._workers = self._workers, []
        if not wait:
            for task in workers:
                task.cancel()
        if workers:
            await asyncio.gather(*workers, return_exceptions=True)
        log_event(logger, logging.INFO, "scrape_queue_closed", waiting=self.status().waiting)

    async def join(self) -> None:
        """Wait until no job is waiting or active."""

        await self._idle.wait()

    async def _worker(self, index: int) -> None:
        while True:
            job = await self.dequeue_next()
            if job is None:
                return
            await self._process(job, worker=index)

    async def _process(self, job: ScrapeJob, *, worker: int = 0) -> None:
        processor = self._processor
        if processor is None:
            raise RuntimeError("ScrapeQueue has no job processor")
        target = job.target
        log_event(
            logger,
            logging.INFO,
            "scrape_job_started",
            job_id=job.id,
            worker=worker,
            platform_id=target.platform_id,
            platform=target.platform_type,
            attempt=job.attempts_made,
            max_attempts=job.max_attempts,
        )
        try:
            result = await self.run_with_status(target.platform_id, lambda: processor(job))
        except asyncio.CancelledError:
            self.report_outcome(
                job.id,
                error=CancelledScrapeError(f"Job {job.id} cancelled while running"),
            )
            raise
        except Exception as exc:
            self.report_outcome(job.id, error=exc)
        else:
            self.report_outcome(job.id, result=result)

    async def run_with_status(
        self,
        platform_id: int,
        work: Callable[[], Awaitable[Any]],
    ) -> Any:
        """
        Await ``work`` between the platform status writes every dispatch makes:
        pending (with last_scraped_at) before, then success or failed.
        Cancellation counts as failed and is re-raised.
        """

        try:
            await self._mark_platform(
                platform_id,
                ScrapeStatus.PENDING,
                scraped_at=datetime.now(timezone.utc),
            )
            result = await work()
        except BaseException:
            await self._mark_platform(platform_id, ScrapeStatus.FAILED)
            raise
        await self._mark_platform(platform_id, ScrapeStatus.SUCCESS)
        return result

    async def _mark_platform(
        self,
        platform_id: int,
        status: ScrapeStatus,
        *,
        scraped_at: datetime | None = None,
    ) -> None:
        if self._store is None:
            return
        try:
            await asyncio.to_thread(
                self._store.update_platform_status,
                platform_id,
                status,
                scraped_at=scraped_at,
            )
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                logging.ERROR,
                "platform_status_update_failed",
                platform_id=platform_id,
                status=status,
                error_type="PersistenceError",
                error=str(exc),
            )


__all__ = ["JobProcessor", "JobState", "ScrapeQueue", "build_target"]
