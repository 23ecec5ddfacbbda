"""
Extraction pipeline: one profile scrape as the fixed sequence

    init -> navigate -> stabilize -> extract -> persist -> cleanup

The platform variant supplies the URL, headers, settle window, interstitial
selectors and the document reader; everything else is shared. Cleanup runs
on every exit path and one ScrapeAttempt is written per run.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from app.config import ProxySettings, ScrapeSettings, get_proxy_settings, get_scrape_settings
from app.domain.kol_tracking import AttemptOutcome, AttemptRecord, PlatformType, ScrapeTarget
from app.queue.state import ScrapeJob
from app.scraping.browser import BrowserFactory, BrowserSession, SessionConfig
from app.scraping.document import PageDocument
from app.scraping.errors import ExtractionError, InitError, NavigationError
from app.scraping.logging_utils import log_event
from app.scraping.platforms import VARIANTS, PlatformVariant, get_variant
from app.scraping.stealth import (
    Sleep,
    choose_user_agent,
    choose_viewport,
    random_delay,
    simulate_human,
)
from app.scraping.storage.base import ScrapeStore
from app.scraping.types import ProfileMetrics

logger = logging.getLogger(__name__)

INTERSTITIAL_PAUSE_MS = (1000, 2000)
SECONDARY_PAGE_PAUSE_MS = (2000, 3000)


def classify_outcome(error: BaseException | None) -> AttemptOutcome:
    if error is None:
        return AttemptOutcome.SUCCESS
    if isinstance(error, NavigationError) and error.timed_out:
        return AttemptOutcome.TIMEOUT
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return AttemptOutcome.TIMEOUT
    return AttemptOutcome.FAILED


class ExtractionPipeline:
    def __init__(
        self,
        *,
        browser_factory: BrowserFactory,
        store: ScrapeStore | None = None,
        settings: ScrapeSettings | None = None,
        proxy: ProxySettings | None = None,
        variants: Mapping[PlatformType, PlatformVariant] | None = None,
        rng: random.Random | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._browser_factory = browser_factory
        self._store = store
        self._settings = settings or get_scrape_settings()
        self._proxy = proxy if proxy is not None else get_proxy_settings()
        self._variants = dict(variants) if variants is not None else dict(VARIANTS)
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._clock = clock

    async def __call__(self, job: ScrapeJob) -> ProfileMetrics:
        return await self.run(job.target, attempt=job.attempts_made, job_id=job.id)

    def _variant(self, platform_type: PlatformType | str) -> PlatformVariant:
        try:
            return self._variants[PlatformType.parse(platform_type)]
        except (KeyError, ValueError):
            return get_variant(platform_type)

    async def run(
        self,
        target: ScrapeTarget,
        *,
        attempt: int = 1,
        job_id: str | None = None,
    ) -> ProfileMetrics:
        """
        Scrape one profile. Returns the extracted metrics or raises the error
        that ended the run.
        """

        started_at = datetime.now(timezone.utc)
        started = self._clock()
        variant = self._variant(target.platform_type)
        stage = "init"
        url = ""
        session: BrowserSession | None = None
        metrics: ProfileMetrics | None = None
        error: BaseException | None = None
        screenshot_path: str | None = None

        try:
            url = variant.build_url(target)
            log_event(
                logger,
                logging.INFO,
                "scrape_started",
                job_id=job_id,
                platform_id=target.platform_id,
                platform=variant.platform_type,
                url=url,
                attempt=attempt,
            )
            session = await self._open_session(variant)

            stage = "navigate"
            await self._navigate(session, url)

            stage = "stabilize"
            await self._stabilize(session, variant)

            stage = "extract"
            metrics = await self._extract(session, variant, target, url)

            stage = "persist"
            await self._persist_snapshot(target, metrics, captured_at=datetime.now(timezone.utc))
            return metrics
        except BaseException as exc:
            error = exc
            raise
        finally:
            if session is not None:
                if error is not None:
                    screenshot_path = await self._capture_screenshot(
                        session, target, variant, started_at
                    )
                await self._close_session(session)

            duration_ms = int((self._clock() - started) * 1000)
            await self._record_attempt(
                target,
                variant,
                started_at=started_at,
                duration_ms=duration_ms,
                metrics=metrics,
                error=error,
                metadata={
                    "url": url,
                    "stage": stage,
                    "attempt": attempt,
                    "job_id": job_id,
                    "screenshot": screenshot_path,
                },
            )
            log_event(
                logger,
                logging.INFO if error is None else logging.WARNING,
                "scrape_finished",
                job_id=job_id,
                platform_id=target.platform_id,
                platform=variant.platform_type,
                outcome=classify_outcome(error),
                stage=stage,
                duration_ms=duration_ms,
                followers=metrics.followers if metrics is not None else None,
                error_type=type(error).__name__ if error is not None else None,
                error=str(error) if error is not None else None,
            )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _open_session(self, variant: PlatformVariant) -> BrowserSession:
        width, height = choose_viewport(self._settings, self._rng)
        config = SessionConfig(
            user_agent=choose_user_agent(self._settings.user_agents, self._rng),
            viewport_width=width,
            viewport_height=height,
            headless=self._settings.headless,
            extra_headers=dict(variant.extra_headers),
            proxy=self._proxy if self._proxy.enabled else None,
        )
        try:
            return await self._browser_factory.new_session(config)
        except Exception as exc:
            raise InitError(f"Could not start browser session: {exc}") from exc

    async def _navigate(self, session: BrowserSession, url: str) -> None:
        attempts = max(1, self._settings.navigation_attempts)
        timeout_ms = self._settings.navigation_timeout_ms
        last_error: BaseException | None = None
        timed_out = False

        for number in range(1, attempts + 1):
            try:
                await asyncio.wait_for(session.navigate(url, timeout_ms), timeout=timeout_ms / 1000)
                return
            except (asyncio.TimeoutError, TimeoutError) as exc:
                last_error = exc
                timed_out = True
            except Exception as exc:
                last_error = exc
                timed_out = False

            log_event(
                logger,
                logging.WARNING,
                "navigation_attempt_failed",
                url=url,
                attempt=number,
                max_attempts=attempts,
                timed_out=timed_out,
                error=str(last_error) or type(last_error).__name__,
            )
            if number < attempts:
                await random_delay(
                    self._settings.delay_min_ms,
                    self._settings.delay_max_ms,
                    rng=self._rng,
                    sleep=self._sleep,
                )

        reason = "timed out" if timed_out else str(last_error)
        raise NavigationError(
            f"Failed to load {url} after {attempts} attempts: {reason}",
            url=url,
            attempts=attempts,
            timed_out=timed_out,
        ) from last_error

    async def _stabilize(self, session: BrowserSession, variant: PlatformVariant) -> None:
        low, high = variant.settle_ms
        await random_delay(low, high, rng=self._rng, sleep=self._sleep)
        if self._settings.simulate_human:
            await simulate_human(session, rng=self._rng, sleep=self._sleep)
        await self._dismiss_interstitials(session, variant)

    async def _dismiss_interstitials(self, session: BrowserSession, variant: PlatformVariant) -> None:
        for selector in variant.interstitials:
            try:
                if await session.query(selector) and await session.click(selector):
                    await random_delay(*INTERSTITIAL_PAUSE_MS, rng=self._rng, sleep=self._sleep)
            except Exception as exc:  # noqa: BLE001
                logger.debug("Interstitial %r not dismissed: %s", selector, exc)

    async def _read_document(self, session: BrowserSession, url: str) -> PageDocument:
        try:
            html = await session.content()
        except Exception as exc:
            raise ExtractionError(f"Could not read page content for {url}: {exc}") from exc
        document = PageDocument(html, url=url)
        if document.is_blank:
            raise ExtractionError(f"Page {url} rendered no content")
        return document

    async def _extract(
        self,
        session: BrowserSession,
        variant: PlatformVariant,
        target: ScrapeTarget,
        url: str,
    ) -> ProfileMetrics:
        document = await self._read_document(session, url)
        try:
            metrics = variant.extract(document, target)
        except ExtractionError:
            raise
        except Exception as exc:
            raise ExtractionError(f"Could not parse {url}: {exc}") from exc

        if variant.secondary_url is not None and variant.enrich is not None:
            await self._enrich(session, variant, metrics, variant.secondary_url(url))
        return metrics

    async def _enrich(
        self,
        session: BrowserSession,
        variant: PlatformVariant,
        metrics: ProfileMetrics,
        url: str,
    ) -> None:
        enrich = variant.enrich
        if enrich is None:
            return
        timeout_ms = self._settings.navigation_timeout_ms
        try:
            await asyncio.wait_for(session.navigate(url, timeout_ms), timeout=timeout_ms / 1000)
            await random_delay(*SECONDARY_PAGE_PAUSE_MS, rng=self._rng, sleep=self._sleep)
            document = PageDocument(await session.content(), url=url)
            enrich(document, metrics)
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                logging.INFO,
                "secondary_page_skipped",
                platform=variant.platform_type,
                url=url,
                error=str(exc) or type(exc).__name__,
            )

    async def _persist_snapshot(
        self,
        target: ScrapeTarget,
        metrics: ProfileMetrics,
        *,
        captured_at: datetime,
    ) -> None:
        if metrics.followers <= 0:
            log_event(
                logger,
                logging.WARNING,
                "snapshot_skipped_no_followers",
                platform_id=target.platform_id,
                platform=metrics.platform_type,
            )
            return
        if self._store is None:
            return
        snapshot = metrics.to_snapshot(platform_id=target.platform_id, captured_at=captured_at)
        try:
            await asyncio.to_thread(self._store.add_snapshot, snapshot)
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                logging.ERROR,
                "snapshot_write_failed",
                platform_id=target.platform_id,
                error_type="PersistenceError",
                error=str(exc),
            )

    async def _record_attempt(
        self,
        target: ScrapeTarget,
        variant: PlatformVariant,
        *,
        started_at: datetime,
        duration_ms: int,
        metrics: ProfileMetrics | None,
        error: BaseException | None,
        metadata: dict[str, Any],
    ) -> None:
        if self._store is None:
            return
        payload = {key: value for key, value in metadata.items() if value is not None}
        if metrics is not None:
            payload["extracted"] = metrics.to_payload()
        if error is not None:
            payload["error_type"] = type(error).__name__

        attempt = AttemptRecord(
            platform_id=target.platform_id,
            platform=variant.platform_type.value,
            outcome=classify_outcome(error),
            started_at=started_at,
            duration_ms=duration_ms,
            error_message=(str(error) or type(error).__name__) if error is not None else None,
            metadata=payload,
        )
        try:
            await asyncio.to_thread(self._store.add_attempt, attempt)
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                logging.ERROR,
                "attempt_write_failed",
                platform_id=target.platform_id,
                error_type="PersistenceError",
                error=str(exc),
            )

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    async def _capture_screenshot(
        self,
        session: BrowserSession,
        target: ScrapeTarget,
        variant: PlatformVariant,
        started_at: datetime,
    ) -> str | None:
        stamp = started_at.strftime("%Y%m%dT%H%M%S%f")
        path = Path(self._settings.screenshot_dir) / (
            f"{variant.platform_type.value}_{target.platform_id}_{stamp}.png"
        )
        try:
            await session.screenshot(str(path))
        except Exception as exc:  # noqa: BLE001
            logger.debug("Screenshot failed for platform %s: %s", target.platform_id, exc)
            return None
        return str(path)

    async def _close_session(self, session: BrowserSession) -> None:
        try:
            await session.close()
        except Exception as exc:  # noqa: BLE001
            logger.debug("Browser session close failed: %s", exc)
