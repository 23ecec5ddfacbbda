"""
app/services/scrape_service.py

Facade over the scrape orchestration core for the API layer and the CLI.

Wires ScrapeQueue -> ExtractionPipeline (as the queue's job processor),
ScrapeScheduler and MetricsService around one ScrapeStore. No business logic
lives here; storage calls are pushed to a worker thread so the event loop
never blocks on SQL.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from app.config import AppSettings, get_app_settings
from app.domain.kol_tracking import (
    AttemptOutcome,
    AttemptRecord,
    JobPriority,
    KolDetail,
    PlatformType,
    ScrapeTarget,
    SnapshotRecord,
)
from app.queue.scrape_queue import ScrapeQueue
from app.queue.state import QueueStatus, ScrapeJob
from app.scheduler.jobs import ScrapeScheduler, SweepResult
from app.scraping.browser import BrowserFactory, PlaywrightBrowserFactory
from app.scraping.errors import PlatformNotFoundError
from app.scraping.pipeline import ExtractionPipeline
from app.scraping.storage.base import ScrapeStore
from app.scraping.types import ProfileMetrics
from app.services.metrics_service import MetricsService, TrendingKol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptPage:
    items: list[AttemptRecord]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


class ScrapeOrchestrator:
    def __init__(
        self,
        *,
        store: ScrapeStore,
        queue: ScrapeQueue,
        scheduler: ScrapeScheduler,
        pipeline: ExtractionPipeline,
        metrics: MetricsService,
        settings: AppSettings,
    ) -> None:
        self.store = store
        self.queue = queue
        self.scheduler = scheduler
        self.pipeline = pipeline
        self.metrics = metrics
        self.settings = settings

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, *, with_scheduler: bool | None = None) -> None:
        """Start queue workers and, when enabled, the cron scheduler."""

        self.queue.start()
        enabled = self.settings.schedule.enabled if with_scheduler is None else with_scheduler
        if enabled:
            self.scheduler.start()

    async def close(self, *, wait: bool = True) -> None:
        self.scheduler.shutdown()
        await self.queue.close(wait=wait)

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    def enqueue_target(
        self,
        target: ScrapeTarget,
        *,
        priority: int = JobPriority.NORMAL,
        delay: float = 0.0,
        max_attempts: int | None = None,
    ) -> ScrapeJob:
        return self.queue.enqueue(
            target,
            priority=priority,
            delay=delay,
            max_attempts=max_attempts,
        )

    async def enqueue_job(
        self,
        platform_id: int,
        *,
        priority: int = JobPriority.NORMAL,
        delay: float = 0.0,
        max_attempts: int | None = None,
    ) -> ScrapeJob:
        platform = await asyncio.to_thread(self.store.get_platform, platform_id)
        if platform is None:
            raise PlatformNotFoundError(platform_id)
        return self.enqueue_target(
            platform.to_target(),
            priority=priority,
            delay=delay,
            max_attempts=max_attempts,
        )

    def queue_status(self) -> QueueStatus:
        return self.queue.status()

    def pause_queue(self) -> None:
        self.queue.pause()

    def resume_queue(self) -> None:
        self.queue.resume()

    def clear_queue(self) -> int:
        return self.queue.clear()

    def get_job(self, job_id: str) -> ScrapeJob | None:
        return self.queue.get_job(job_id)

    def failed_jobs(self) -> list[ScrapeJob]:
        return self.queue.failed_jobs()

    # ------------------------------------------------------------------
    # Scheduler
    # ------------------------------------------------------------------

    async def trigger_full_sweep(self) -> SweepResult:
        return await self.scheduler.trigger_full_sweep()

    async def trigger_priority_sweep(self) -> SweepResult:
        return await self.scheduler.trigger_priority_sweep()

    async def trigger_health_sweep(self) -> SweepResult:
        return await self.scheduler.run_rule("health_sweep")

    async def trigger_for_kol(self, kol_id: int) -> int:
        return await self.scheduler.trigger_for_kol(kol_id)

    async def retry_failed_since(self, hours: int = 24) -> int:
        return await self.scheduler.retry_failed_since(hours)

    def scheduler_status(self) -> dict[str, dict[str, Any]]:
        return self.scheduler.status()

    # ------------------------------------------------------------------
    # Metrics and audit trail
    # ------------------------------------------------------------------

    async def metrics_for_platform(self, platform_id: int, days: int = 30) -> list[SnapshotRecord]:
        platform = await asyncio.to_thread(self.store.get_platform, platform_id)
        if platform is None:
            raise PlatformNotFoundError(platform_id)
        return await asyncio.to_thread(self.metrics.metrics_for_platform, platform_id, days)

    async def metrics_for_kol(
        self,
        kol_id: int,
        days: int = 30,
        platform_type: PlatformType | str | None = None,
    ) -> list[SnapshotRecord]:
        return await asyncio.to_thread(self.metrics.metrics_for_kol, kol_id, days, platform_type)

    async def kol_detail(self, kol_id: int, latest_n: int = 30) -> KolDetail:
        """KOL with its platforms and each platform's newest snapshots."""

        if latest_n < 1:
            raise ValueError(f"latest_n must be at least 1, got {latest_n}")
        return await asyncio.to_thread(self.store.kol_with_platforms, kol_id, latest_n)

    async def trending_this_week(self, limit: int = 10) -> list[TrendingKol]:
        return await asyncio.to_thread(self.metrics.trending_this_week, limit)

    async def recent_attempts(
        self,
        *,
        page: int = 1,
        limit: int = 50,
        outcome: AttemptOutcome | None = None,
        platform: PlatformType | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> AttemptPage:
        page = max(1, page)
        limit = max(1, limit)
        filters: dict[str, Any] = {
            "outcome": outcome,
            "platform": platform,
            "since": since,
            "until": until,
        }
        items = await asyncio.to_thread(
            lambda: self.store.recent_attempts(limit=limit, offset=(page - 1) * limit, **filters)
        )
        total = await asyncio.to_thread(lambda: self.store.count_attempts(**filters))
        return AttemptPage(items=items, total=total, page=page, limit=limit)

    async def system_stats(self) -> dict[str, Any]:
        since = datetime.now(timezone.utc) - timedelta(hours=24)
        counts = await asyncio.to_thread(self.store.system_counts, since)
        return {**counts, "queue": self.queue_status().as_dict()}

    # ------------------------------------------------------------------
    # Direct runs
    # ------------------------------------------------------------------

    async def scrape_now(self, target: ScrapeTarget) -> ProfileMetrics:
        """
        Run one extraction outside the queue. Used by the CLI. The platform
        status moves through pending to success or failed like a queued job.
        """

        return await self.queue.run_with_status(
            target.platform_id,
            lambda: self.pipeline.run(target),
        )


def build_orchestrator(
    *,
    store: ScrapeStore | None = None,
    browser_factory: BrowserFactory | None = None,
    settings: AppSettings | None = None,
) -> ScrapeOrchestrator:
    """
    Assemble the production object graph. Nothing is started here.
    """

    resolved = settings or get_app_settings()
    if store is None:
        from app.scraping.storage.sqlalchemy_storage import SQLAlchemyScrapeStore

        store = SQLAlchemyScrapeStore()

    pipeline = ExtractionPipeline(
        browser_factory=browser_factory or PlaywrightBrowserFactory(),
        store=store,
        settings=resolved.scrape,
        proxy=resolved.proxy,
    )
    queue = ScrapeQueue(processor=pipeline, store=store, settings=resolved.scrape)
    scheduler = ScrapeScheduler(queue=queue, store=store, settings=resolved.schedule)
    return ScrapeOrchestrator(
        store=store,
        queue=queue,
        scheduler=scheduler,
        pipeline=pipeline,
        metrics=MetricsService(store),
        settings=resolved,
    )
