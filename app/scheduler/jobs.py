"""
app/scheduler/jobs.py

APScheduler-based sweep scheduler for periodic profile scrapes.

Sweeps enumerate target platforms from the store and enqueue one job per
platform with a random delay (jitter) spread over a window so a batch never
hits the networks in one burst.

Schedule (defaults, UTC)
------------------------
  full_sweep      "0 0 * * 0"  every platform of an active KOL, normal priority
  priority_sweep  "0 2 * * *"  top-N priority KOL platforms, high priority
  health_sweep    "0 * * * *"  recently failed (low) + stale (normal) platforms

Lifecycle
---------
Build one ``ScrapeScheduler`` per process, ``start()`` it inside the running
event loop and ``shutdown()`` it on app shutdown. Manual triggers run the same
sweep logic immediately and work whether or not the cron clock is running.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import ScheduleSettings, get_schedule_settings
from app.domain.kol_tracking import JobPriority, PlatformRecord
from app.queue.scrape_queue import ScrapeQueue
from app.scraping.errors import InvalidJobError
from app.scraping.logging_utils import log_event
from app.scraping.storage.base import ScrapeStore

logger = logging.getLogger(__name__)

FULL_SWEEP = "full_sweep"
PRIORITY_SWEEP = "priority_sweep"
HEALTH_SWEEP = "health_sweep"


@dataclass
class SweepResult:
    enqueued: int = 0
    errors: list[str] = field(default_factory=list)

    def merge(self, other: "SweepResult") -> "SweepResult":
        return SweepResult(
            enqueued=self.enqueued + other.enqueued,
            errors=[*self.errors, *other.errors],
        )


@dataclass
class ScheduleRule:
    rule_id: str
    name: str
    cron: str
    handler: Callable[[], Awaitable[SweepResult]]
    running: int = 0
    last_run_at: datetime | None = None
    last_enqueued: int | None = None
    last_error: str | None = None

    @property
    def state(self) -> str:
        return "firing" if self.running else "idle"


class ScrapeScheduler:
    def __init__(
        self,
        *,
        queue: ScrapeQueue,
        store: ScrapeStore,
        settings: ScheduleSettings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._queue = queue
        self._store = store
        self._settings = settings or get_schedule_settings()
        self._rng = rng or random.Random()
        self._scheduler: AsyncIOScheduler | None = None
        self._rules: dict[str, ScheduleRule] = {
            FULL_SWEEP: ScheduleRule(
                rule_id=FULL_SWEEP,
                name="Weekly scrape of every active KOL",
                cron=self._settings.full_sweep_cron,
                handler=self.full_sweep,
            ),
            PRIORITY_SWEEP: ScheduleRule(
                rule_id=PRIORITY_SWEEP,
                name="Daily scrape of priority KOLs",
                cron=self._settings.priority_sweep_cron,
                handler=self.priority_sweep,
            ),
            HEALTH_SWEEP: ScheduleRule(
                rule_id=HEALTH_SWEEP,
                name="Hourly retry of failed and stale platforms",
                cron=self._settings.health_sweep_cron,
                handler=self.health_sweep,
            ),
        }

    @property
    def rules(self) -> dict[str, ScheduleRule]:
        return self._rules

    # ---------------------------------------------------------------------------
    # Enqueue helpers
    # ---------------------------------------------------------------------------

    def _jitter(self, window_seconds: float) -> float:
        if window_seconds <= 0:
            return 0.0
        return self._rng.uniform(0, window_seconds)

    def _enqueue_all(
        self,
        platforms: Iterable[PlatformRecord],
        *,
        priority: JobPriority,
        jitter_seconds: float,
        source: str,
    ) -> int:
        enqueued = 0
        for platform in platforms:
            try:
                self._queue.enqueue(
                    platform.to_target(),
                    priority=priority,
                    delay=self._jitter(jitter_seconds),
                )
            except InvalidJobError as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "sweep_platform_skipped",
                    source=source,
                    platform_id=platform.id,
                    error=str(exc),
                )
                continue
            enqueued += 1
        return enqueued

    async def _sweep(
        self,
        source: str,
        enumerate_platforms: Callable[[], list[PlatformRecord]],
        *,
        priority: JobPriority,
        jitter_seconds: float,
    ) -> SweepResult:
        """
        Enumerate and enqueue. Enumeration errors are logged and returned in
        the result instead of raised.
        """

        try:
            platforms = await asyncio.to_thread(enumerate_platforms)
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                logging.ERROR,
                "sweep_enumeration_failed",
                source=source,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return SweepResult(errors=[f"{source}: {exc}"])

        enqueued = self._enqueue_all(
            platforms,
            priority=priority,
            jitter_seconds=jitter_seconds,
            source=source,
        )
        log_event(
            logger,
            logging.INFO,
            "sweep_enqueued",
            source=source,
            candidates=len(platforms),
            enqueued=enqueued,
            priority=priority,
        )
        return SweepResult(enqueued=enqueued)

    # ---------------------------------------------------------------------------
    # Sweeps
    # ---------------------------------------------------------------------------

    async def full_sweep(self) -> SweepResult:
        return await self._sweep(
            FULL_SWEEP,
            self._store.list_active_platforms,
            priority=JobPriority.NORMAL,
            jitter_seconds=self._settings.full_sweep_jitter_seconds,
        )

    async def priority_sweep(self) -> SweepResult:
        limit = self._settings.priority_sweep_limit
        return await self._sweep(
            PRIORITY_SWEEP,
            lambda: self._store.list_priority_platforms(limit),
            priority=JobPriority.HIGH,
            jitter_seconds=self._settings.priority_sweep_jitter_seconds,
        )

    async def health_sweep(self) -> SweepResult:
        """
        Two independent halves: recently failed platforms at low priority and
        stale platforms at normal priority. One half failing does not stop
        the other.
        """

        now = datetime.now(timezone.utc)
        failed_since = now - timedelta(hours=self._settings.failed_window_hours)
        stale_before = now - timedelta(days=self._settings.stale_after_days)

        failed = await self._sweep(
            f"{HEALTH_SWEEP}.failed",
            lambda: self._store.list_failed_platforms(failed_since),
            priority=JobPriority.LOW,
            jitter_seconds=self._settings.failed_retry_jitter_seconds,
        )
        stale = await self._sweep(
            f"{HEALTH_SWEEP}.stale",
            lambda: self._store.list_stale_platforms(stale_before),
            priority=JobPriority.NORMAL,
            jitter_seconds=self._settings.stale_jitter_seconds,
        )
        return failed.merge(stale)

    async def run_rule(self, rule_id: str) -> SweepResult:
        """
        Fire one registered rule and record its outcome in the registry.
        """

        rule = self._rules[rule_id]
        rule.running += 1
        rule.last_run_at = datetime.now(timezone.utc)
        log_event(logger, logging.INFO, "sweep_started", rule=rule_id)
        try:
            result = await rule.handler()
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                logging.ERROR,
                "sweep_failed",
                rule=rule_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            result = SweepResult(errors=[str(exc)])
        finally:
            rule.running -= 1

        rule.last_enqueued = result.enqueued
        rule.last_error = "; ".join(result.errors) or None
        log_event(
            logger,
            logging.INFO,
            "sweep_completed",
            rule=rule_id,
            enqueued=result.enqueued,
            errors=len(result.errors),
        )
        return result

    # ---------------------------------------------------------------------------
    # Manual triggers
    # ---------------------------------------------------------------------------

    async def trigger_full_sweep(self) -> SweepResult:
        return await self.run_rule(FULL_SWEEP)

    async def trigger_priority_sweep(self) -> SweepResult:
        return await self.run_rule(PRIORITY_SWEEP)

    async def trigger_for_kol(self, kol_id: int) -> int:
        """
        Enqueue every platform of one KOL at high priority with no delay.
        Enumeration errors (including an unknown KOL) propagate to the caller.
        """

        platforms = await asyncio.to_thread(self._store.list_platforms_for_kol, kol_id)
        enqueued = self._enqueue_all(
            platforms,
            priority=JobPriority.HIGH,
            jitter_seconds=0.0,
            source=f"kol:{kol_id}",
        )
        log_event(
            logger,
            logging.INFO,
            "kol_scrape_triggered",
            kol_id=kol_id,
            platforms=len(platforms),
            enqueued=enqueued,
        )
        return enqueued

    async def retry_failed_since(self, hours: int = 24) -> int:
        since = datetime.now(timezone.utc) - timedelta(hours=max(1, int(hours)))
        platforms = await asyncio.to_thread(self._store.list_failed_platforms, since)
        enqueued = self._enqueue_all(
            platforms,
            priority=JobPriority.LOW,
            jitter_seconds=self._settings.manual_retry_jitter_seconds,
            source="retry_failed",
        )
        log_event(
            logger,
            logging.INFO,
            "failed_platforms_requeued",
            hours=hours,
            candidates=len(platforms),
            enqueued=enqueued,
        )
        return enqueued

    # ---------------------------------------------------------------------------
    # Status and lifecycle
    # ---------------------------------------------------------------------------

    def status(self) -> dict[str, dict[str, Any]]:
        report: dict[str, dict[str, Any]] = {}
        for rule_id, rule in self._rules.items():
            job = self._scheduler.get_job(rule_id) if self._scheduler is not None else None
            next_run = getattr(job, "next_run_time", None) if job is not None else None
            report[rule_id] = {
                "name": rule.name,
                "state": rule.state,
                "running": rule.running > 0,
                "cron": rule.cron,
                "scheduled": job is not None,
                "next_run_at": next_run,
                "last_run_at": rule.last_run_at,
                "last_enqueued": rule.last_enqueued,
                "last_error": rule.last_error,
            }
        return report

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """
        Register every rule with an ``AsyncIOScheduler`` and start it. Must be
        called from inside the running event loop.
        """

        if self.running:
            return

        scheduler = AsyncIOScheduler(
            timezone=self._settings.timezone,
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": self._settings.misfire_grace_seconds,
            },
        )
        for rule in self._rules.values():
            scheduler.add_job(
                self.run_rule,
                trigger=CronTrigger.from_crontab(rule.cron, timezone=self._settings.timezone),
                args=[rule.rule_id],
                id=rule.rule_id,
                name=rule.name,
                replace_existing=True,
            )
        scheduler.start()
        self._scheduler = scheduler

        for job in scheduler.get_jobs():
            logger.info("Scheduled sweep: %s next run: %s", job.id, job.next_run_time)

    def shutdown(self) -> None:
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Sweep scheduler shut down")
