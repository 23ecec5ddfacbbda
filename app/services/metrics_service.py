"""
app/services/metrics_service.py

Time-window metric reads and follower-growth trend ranking.

Growth is a heuristic: the relative follower change between the oldest and
the latest snapshot inside the window. A platform needs at least two
snapshots and a positive oldest value to contribute; a KOL's growth is the
mean over contributing platforms.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from app.domain.kol_tracking import KolSnapshots, PlatformType, SnapshotRecord
from app.scraping.storage.base import ScrapeStore

logger = logging.getLogger(__name__)

TRENDING_WINDOW_DAYS = 7


@dataclass(frozen=True)
class TrendingKol:
    kol_id: int
    name: str
    category: str | None
    growth: float
    platforms_counted: int


def platform_growth(snapshots: Sequence[SnapshotRecord]) -> float | None:
    """
    Percent follower change oldest -> latest, or None when it cannot be
    computed (fewer than two snapshots, or a non-positive oldest value).
    """

    if len(snapshots) < 2:
        return None
    ordered = sorted(snapshots, key=lambda snapshot: snapshot.captured_at)
    oldest = ordered[0].followers
    latest = ordered[-1].followers
    if oldest <= 0:
        return None
    return round((latest - oldest) / oldest * 100, 2)


def kol_growth(snapshots_by_platform: Mapping[int, Sequence[SnapshotRecord]]) -> tuple[float, int]:
    """
    Mean growth over qualifying platforms and how many qualified. 0.0 if none.
    """

    values = [
        growth
        for growth in (platform_growth(snapshots) for snapshots in snapshots_by_platform.values())
        if growth is not None
    ]
    if not values:
        return 0.0, 0
    return round(sum(values) / len(values), 2), len(values)


def rank_trending(kols: Sequence[KolSnapshots], *, limit: int = 10) -> list[TrendingKol]:
    """
    Rank every KOL by growth, descending. Ties keep input order.
    """

    scored = []
    for kol in kols:
        growth, counted = kol_growth(kol.snapshots_by_platform)
        scored.append(
            TrendingKol(
                kol_id=kol.kol_id,
                name=kol.name,
                category=kol.category,
                growth=growth,
                platforms_counted=counted,
            )
        )
    ranked = sorted(scored, key=lambda item: item.growth, reverse=True)
    return ranked[: max(0, limit)]


class MetricsService:
    def __init__(
        self,
        store: ScrapeStore,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._now = now or (lambda: datetime.now(timezone.utc))

    def _since(self, days: int) -> datetime:
        if days < 1:
            raise ValueError(f"days must be at least 1, got {days}")
        return self._now() - timedelta(days=days)

    def metrics_for_platform(self, platform_id: int, days: int = 30) -> list[SnapshotRecord]:
        snapshots = self._store.snapshots_for_platform(platform_id, self._since(days))
        return sorted(snapshots, key=lambda snapshot: snapshot.captured_at)

    def metrics_for_kol(
        self,
        kol_id: int,
        days: int = 30,
        platform_type: PlatformType | str | None = None,
    ) -> list[SnapshotRecord]:
        parsed = PlatformType.parse(platform_type) if platform_type else None
        snapshots = self._store.snapshots_for_kol(kol_id, self._since(days), parsed)
        return sorted(snapshots, key=lambda snapshot: snapshot.captured_at)

    def trending_this_week(self, limit: int = 10) -> list[TrendingKol]:
        kols = self._store.kols_with_snapshots(self._since(TRENDING_WINDOW_DAYS))
        ranked = rank_trending(kols, limit=limit)
        logger.info("Trending ranking computed kols=%s returned=%s", len(kols), len(ranked))
        return ranked
