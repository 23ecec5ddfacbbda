"""
db/repositories/metric_snapshot_repository.py

Append-only persistence for MetricSnapshot rows plus time-window reads.
Snapshots are never updated or deleted here.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from db.models.metric_snapshot import MetricSnapshot
from db.models.platform import Platform


class MetricSnapshotRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def add(
        self,
        *,
        platform_id: int,
        captured_at: datetime,
        followers: int = 0,
        following: int = 0,
        posts: int = 0,
        likes: int = 0,
        engagement_rate: float = 0.0,
        avg_views: int = 0,
        avg_likes: int = 0,
        avg_comments: int = 0,
        avg_shares: int = 0,
        additional_metrics: dict[str, Any] | None = None,
    ) -> MetricSnapshot:
        snapshot = MetricSnapshot(
            platform_id=platform_id,
            captured_at=captured_at,
            followers=followers,
            following=following,
            posts=posts,
            likes=likes,
            engagement_rate=engagement_rate,
            avg_views=avg_views,
            avg_likes=avg_likes,
            avg_comments=avg_comments,
            avg_shares=avg_shares,
            additional_metrics=additional_metrics or {},
        )
        self._session.add(snapshot)
        self._session.flush()
        return snapshot

    def list_for_platform(self, *, platform_id: int, since: datetime) -> list[MetricSnapshot]:
        stmt = (
            select(MetricSnapshot)
            .where(
                MetricSnapshot.platform_id == platform_id,
                MetricSnapshot.captured_at >= since,
            )
            .order_by(MetricSnapshot.captured_at, MetricSnapshot.id)
        )
        return list(self._session.scalars(stmt).all())

    def list_for_kol(
        self,
        *,
        kol_id: int,
        since: datetime,
        platform_type: str | None = None,
    ) -> list[tuple[str, MetricSnapshot]]:
        stmt = (
            select(Platform.platform_type, MetricSnapshot)
            .join(Platform, Platform.id == MetricSnapshot.platform_id)
            .where(Platform.kol_id == kol_id, MetricSnapshot.captured_at >= since)
        )
        if platform_type:
            stmt = stmt.where(Platform.platform_type == platform_type)
        stmt = stmt.order_by(MetricSnapshot.captured_at, MetricSnapshot.id)
        return [(row[0], row[1]) for row in self._session.execute(stmt).all()]

    def latest_for_kol(self, *, kol_id: int, latest_n: int) -> list[tuple[str, MetricSnapshot]]:
        """
        The ``latest_n`` newest snapshots of every platform of one KOL, as
        ``(platform_type, snapshot)`` rows ordered by platform, newest first.
        """

        ranked = (
            select(
                MetricSnapshot.id.label("snapshot_id"),
                func.row_number()
                .over(
                    partition_by=MetricSnapshot.platform_id,
                    order_by=(MetricSnapshot.captured_at.desc(), MetricSnapshot.id.desc()),
                )
                .label("position"),
            )
            .join(Platform, Platform.id == MetricSnapshot.platform_id)
            .where(Platform.kol_id == kol_id)
            .subquery()
        )
        stmt = (
            select(Platform.platform_type, MetricSnapshot)
            .join(Platform, Platform.id == MetricSnapshot.platform_id)
            .join(ranked, ranked.c.snapshot_id == MetricSnapshot.id)
            .where(ranked.c.position <= latest_n)
            .order_by(
                MetricSnapshot.platform_id,
                MetricSnapshot.captured_at.desc(),
                MetricSnapshot.id.desc(),
            )
        )
        return [(row[0], row[1]) for row in self._session.execute(stmt).all()]
