"""
tests/test_metrics_service.py

Follower growth, trend ranking and windowed metric reads.

All tests are pure Python over an in-memory store with a pinned clock.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.domain.kol_tracking import KolSnapshots, PlatformType, SnapshotRecord
from app.services.metrics_service import (
    MetricsService,
    kol_growth,
    platform_growth,
    rank_trending,
)
from tests.fakes import FakeStore

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _snap(platform_id: int, followers: int, days_ago: float) -> SnapshotRecord:
    return SnapshotRecord(
        platform_id=platform_id,
        captured_at=NOW - timedelta(days=days_ago),
        followers=followers,
    )


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestPlatformGrowth:
    def test_relative_change_oldest_to_latest(self) -> None:
        assert platform_growth([_snap(1, 1200, 1), _snap(1, 1000, 6)]) == 20.0

    def test_negative_growth(self) -> None:
        assert platform_growth([_snap(1, 1000, 6), _snap(1, 900, 1)]) == -10.0

    def test_needs_two_snapshots(self) -> None:
        assert platform_growth([_snap(1, 1000, 1)]) is None
        assert platform_growth([]) is None

    def test_zero_oldest_is_excluded(self) -> None:
        assert platform_growth([_snap(1, 0, 6), _snap(1, 500, 1)]) is None


class TestKolGrowth:
    def test_mean_over_qualifying_platforms(self) -> None:
        growth, counted = kol_growth(
            {
                1: [_snap(1, 1000, 6), _snap(1, 1200, 1)],
                2: [_snap(2, 100, 6), _snap(2, 110, 1)],
                3: [_snap(3, 0, 6), _snap(3, 50, 1)],
            }
        )
        assert growth == 15.0
        assert counted == 2

    def test_no_qualifying_platforms_is_zero(self) -> None:
        assert kol_growth({1: [_snap(1, 10, 1)]}) == (0.0, 0)
        assert kol_growth({}) == (0.0, 0)


class TestRankTrending:
    def _kol(self, kol_id: int, before: int, after: int) -> KolSnapshots:
        return KolSnapshots(
            kol_id=kol_id,
            name=f"kol-{kol_id}",
            snapshots_by_platform={kol_id: [_snap(kol_id, before, 6), _snap(kol_id, after, 1)]},
        )

    def test_descending_by_growth(self) -> None:
        ranked = rank_trending(
            [self._kol(1, 100, 110), self._kol(2, 100, 150), self._kol(3, 100, 90)],
            limit=10,
        )
        assert [item.kol_id for item in ranked] == [2, 1, 3]
        assert [item.growth for item in ranked] == [50.0, 10.0, -10.0]

    def test_ties_keep_input_order(self) -> None:
        ranked = rank_trending(
            [self._kol(5, 100, 120), self._kol(4, 200, 240), self._kol(6, 50, 60)],
            limit=10,
        )
        assert [item.kol_id for item in ranked] == [5, 4, 6]

    def test_limit_truncates_after_ranking(self) -> None:
        ranked = rank_trending(
            [self._kol(1, 100, 101), self._kol(2, 100, 200), self._kol(3, 100, 150)],
            limit=2,
        )
        assert [item.kol_id for item in ranked] == [2, 3]

    def test_kol_without_snapshots_ranks_at_zero(self) -> None:
        empty = KolSnapshots(kol_id=9, name="quiet")
        ranked = rank_trending([empty, self._kol(1, 100, 90)], limit=10)
        assert [(item.kol_id, item.growth, item.platforms_counted) for item in ranked] == [
            (9, 0.0, 0),
            (1, -10.0, 1),
        ]


# ---------------------------------------------------------------------------
# Service over a store
# ---------------------------------------------------------------------------


@pytest.fixture()
def store() -> FakeStore:
    fake = FakeStore()
    fake.add_kol(1, "Anna", category="food")
    fake.add_kol(2, "Ben")
    fake.add_kol(3, "Dormant", is_active=False)
    fake.add_platform(10, 1, PlatformType.TIKTOK)
    fake.add_platform(11, 1, PlatformType.YOUTUBE)
    fake.add_platform(20, 2, PlatformType.INSTAGRAM)
    fake.add_platform(30, 3, PlatformType.TIKTOK)

    fake.snapshots.extend(
        [
            _snap(10, 1000, 6),
            _snap(10, 1200, 1),
            _snap(11, 500, 40),
            _snap(11, 400, 5),
            _snap(11, 420, 2),
            _snap(20, 2000, 5),
            _snap(20, 2100, 1),
            _snap(30, 10, 6),
            _snap(30, 1000, 1),
        ]
    )
    return fake


@pytest.fixture()
def service(store: FakeStore) -> MetricsService:
    return MetricsService(store, now=lambda: NOW)


class TestMetricsService:
    def test_platform_metrics_respect_window_and_order(self, service: MetricsService) -> None:
        snapshots = service.metrics_for_platform(11, days=30)
        assert [snapshot.followers for snapshot in snapshots] == [400, 420]

    def test_kol_metrics_filter_by_platform_type(self, service: MetricsService) -> None:
        snapshots = service.metrics_for_kol(1, days=30, platform_type="youtube")
        assert {snapshot.platform_id for snapshot in snapshots} == {11}

    def test_kol_metrics_all_platforms_ascending(self, service: MetricsService) -> None:
        snapshots = service.metrics_for_kol(1, days=7)
        captured = [snapshot.captured_at for snapshot in snapshots]
        assert captured == sorted(captured)
        assert len(snapshots) == 4

    def test_days_must_be_positive(self, service: MetricsService) -> None:
        with pytest.raises(ValueError):
            service.metrics_for_platform(10, days=0)

    def test_trending_this_week_ranks_active_kols(self, service: MetricsService) -> None:
        ranked = service.trending_this_week(limit=10)

        assert [item.kol_id for item in ranked] == [1, 2]
        anna = ranked[0]
        # tiktok +20%, youtube +5% inside the week.
        assert anna.growth == 12.5
        assert anna.platforms_counted == 2
        assert anna.category == "food"
        assert ranked[1].growth == 5.0
