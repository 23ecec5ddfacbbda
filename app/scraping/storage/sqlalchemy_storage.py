"""
SQLAlchemy-backed implementation of the scrape store.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.kol_tracking import (
    AttemptOutcome,
    AttemptRecord,
    KolDetail,
    KolSnapshots,
    PlatformRecord,
    PlatformSnapshots,
    PlatformType,
    ScrapeStatus,
    SnapshotRecord,
)
from app.scraping.errors import KolNotFoundError, PersistenceError
from app.scraping.storage.base import ScrapeStore
from db.models.metric_snapshot import MetricSnapshot
from db.models.platform import Platform
from db.models.scrape_attempt import ScrapeAttempt
from db.repositories.kol_repository import KolRepository
from db.repositories.metric_snapshot_repository import MetricSnapshotRepository
from db.repositories.platform_repository import PlatformRepository
from db.repositories.scrape_attempt_repository import ScrapeAttemptRepository
from db.session import SessionLocal


def _platform_record(row: Platform) -> PlatformRecord:
    return PlatformRecord(
        id=row.id,
        kol_id=row.kol_id,
        platform_type=PlatformType.parse(row.platform_type),
        username=row.username or "",
        profile_url=row.profile_url or "",
        is_verified=bool(row.is_verified),
        last_scraped_at=row.last_scraped_at,
        scrape_status=ScrapeStatus(row.scrape_status),
    )


def _snapshot_record(row: MetricSnapshot, platform_type: str | None = None) -> SnapshotRecord:
    return SnapshotRecord(
        id=row.id,
        platform_id=row.platform_id,
        captured_at=row.captured_at,
        followers=int(row.followers or 0),
        following=int(row.following or 0),
        posts=int(row.posts or 0),
        likes=int(row.likes or 0),
        engagement_rate=float(row.engagement_rate or 0.0),
        avg_views=int(row.avg_views or 0),
        avg_likes=int(row.avg_likes or 0),
        avg_comments=int(row.avg_comments or 0),
        avg_shares=int(row.avg_shares or 0),
        additional_metrics=dict(row.additional_metrics or {}),
        platform_type=PlatformType.parse(platform_type) if platform_type else None,
    )


def _attempt_record(row: ScrapeAttempt) -> AttemptRecord:
    return AttemptRecord(
        id=row.id,
        platform_id=row.platform_id,
        platform=row.platform,
        outcome=AttemptOutcome(row.outcome),
        started_at=row.started_at,
        duration_ms=row.duration_ms,
        error_message=row.error_message,
        metadata=dict(row.metadata_json or {}),
    )


class SQLAlchemyScrapeStore(ScrapeStore):
    """
    Short-lived session per call. Writes commit on success and roll back on
    failure; database errors surface as PersistenceError.
    """

    def __init__(self, *, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(f"{type(exc).__name__}: {exc}") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Platform enumeration
    # ------------------------------------------------------------------

    def list_active_platforms(self) -> list[PlatformRecord]:
        with self._session() as session:
            rows = PlatformRepository(session).list_for_active_kols()
            return [_platform_record(row) for row in rows]

    def list_priority_platforms(self, limit: int) -> list[PlatformRecord]:
        with self._session() as session:
            rows = PlatformRepository(session).list_priority(limit=limit)
            return [_platform_record(row) for row in rows]

    def list_failed_platforms(self, since: datetime) -> list[PlatformRecord]:
        with self._session() as session:
            rows = PlatformRepository(session).list_failed_since(since=since)
            return [_platform_record(row) for row in rows]

    def list_stale_platforms(self, before: datetime) -> list[PlatformRecord]:
        with self._session() as session:
            rows = PlatformRepository(session).list_stale(before=before)
            return [_platform_record(row) for row in rows]

    def list_platforms_for_kol(self, kol_id: int) -> list[PlatformRecord]:
        with self._session() as session:
            if KolRepository(session).get(kol_id) is None:
                raise KolNotFoundError(kol_id)
            rows = PlatformRepository(session).list_for_kol(kol_id=kol_id)
            return [_platform_record(row) for row in rows]

    def get_platform(self, platform_id: int) -> PlatformRecord | None:
        with self._session() as session:
            row = PlatformRepository(session).get(platform_id)
            return _platform_record(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def update_platform_status(
        self,
        platform_id: int,
        status: ScrapeStatus,
        *,
        scraped_at: datetime | None = None,
    ) -> None:
        with self._session() as session:
            PlatformRepository(session).update_scrape_status(
                platform_id=platform_id,
                status=ScrapeStatus(status).value,
                scraped_at=scraped_at,
            )

    def add_snapshot(self, snapshot: SnapshotRecord) -> SnapshotRecord:
        with self._session() as session:
            row = MetricSnapshotRepository(session).add(
                platform_id=snapshot.platform_id,
                captured_at=snapshot.captured_at,
                followers=snapshot.followers,
                following=snapshot.following,
                posts=snapshot.posts,
                likes=snapshot.likes,
                engagement_rate=snapshot.engagement_rate,
                avg_views=snapshot.avg_views,
                avg_likes=snapshot.avg_likes,
                avg_comments=snapshot.avg_comments,
                avg_shares=snapshot.avg_shares,
                additional_metrics=snapshot.additional_metrics,
            )
            platform_type = snapshot.platform_type.value if snapshot.platform_type else None
            return _snapshot_record(row, platform_type)

    def add_attempt(self, attempt: AttemptRecord) -> AttemptRecord:
        with self._session() as session:
            row = ScrapeAttemptRepository(session).add(
                platform_id=attempt.platform_id,
                platform=attempt.platform,
                outcome=AttemptOutcome(attempt.outcome).value,
                started_at=attempt.started_at,
                duration_ms=attempt.duration_ms,
                error_message=attempt.error_message,
                metadata=attempt.metadata,
            )
            return _attempt_record(row)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshots_for_platform(self, platform_id: int, since: datetime) -> list[SnapshotRecord]:
        with self._session() as session:
            platform = PlatformRepository(session).get(platform_id)
            platform_type = platform.platform_type if platform is not None else None
            rows = MetricSnapshotRepository(session).list_for_platform(
                platform_id=platform_id,
                since=since,
            )
            return [_snapshot_record(row, platform_type) for row in rows]

    def snapshots_for_kol(
        self,
        kol_id: int,
        since: datetime,
        platform_type: PlatformType | None = None,
    ) -> list[SnapshotRecord]:
        with self._session() as session:
            if KolRepository(session).get(kol_id) is None:
                raise KolNotFoundError(kol_id)
            rows = MetricSnapshotRepository(session).list_for_kol(
                kol_id=kol_id,
                since=since,
                platform_type=platform_type.value if platform_type else None,
            )
            return [_snapshot_record(row, row_type) for row_type, row in rows]

    def kols_with_snapshots(self, since: datetime) -> list[KolSnapshots]:
        with self._session() as session:
            repository = KolRepository(session)
            grouped: dict[int, dict[int, list[SnapshotRecord]]] = {}
            for kol_id, platform_type, row in repository.snapshots_for_active_kols(since=since):
                by_platform = grouped.setdefault(kol_id, {})
                by_platform.setdefault(row.platform_id, []).append(
                    _snapshot_record(row, platform_type)
                )
            return [
                KolSnapshots(
                    kol_id=kol.id,
                    name=kol.name,
                    category=kol.category,
                    snapshots_by_platform=grouped.get(kol.id, {}),
                )
                for kol in repository.list_active()
            ]

    def kol_with_platforms(self, kol_id: int, latest_n: int) -> KolDetail:
        with self._session() as session:
            kol = KolRepository(session).get(kol_id)
            if kol is None:
                raise KolNotFoundError(kol_id)
            platforms = PlatformRepository(session).list_for_kol(kol_id=kol_id)
            by_platform: dict[int, list[SnapshotRecord]] = {}
            for platform_type, row in MetricSnapshotRepository(session).latest_for_kol(
                kol_id=kol_id,
                latest_n=latest_n,
            ):
                by_platform.setdefault(row.platform_id, []).append(
                    _snapshot_record(row, platform_type)
                )
            return KolDetail(
                kol_id=kol.id,
                name=kol.name,
                category=kol.category,
                is_active=bool(kol.is_active),
                is_priority=bool(kol.is_priority),
                platforms=[
                    PlatformSnapshots(
                        platform=_platform_record(row),
                        snapshots=by_platform.get(row.id, []),
                    )
                    for row in platforms
                ],
            )

    def recent_attempts(
        self,
        *,
        limit: int = 50,
        offset: int = 0,
        outcome: AttemptOutcome | None = None,
        platform: PlatformType | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[AttemptRecord]:
        with self._session() as session:
            rows = ScrapeAttemptRepository(session).list_recent(
                limit=limit,
                offset=offset,
                outcome=outcome.value if outcome else None,
                platform=platform.value if platform else None,
                since=since,
                until=until,
            )
            return [_attempt_record(row) for row in rows]

    def count_attempts(
        self,
        *,
        outcome: AttemptOutcome | None = None,
        platform: PlatformType | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> int:
        with self._session() as session:
            return ScrapeAttemptRepository(session).count(
                outcome=outcome.value if outcome else None,
                platform=platform.value if platform else None,
                since=since,
                until=until,
            )

    def system_counts(self, since: datetime) -> dict[str, int]:
        with self._session() as session:
            attempts = ScrapeAttemptRepository(session)
            return {
                **KolRepository(session).table_counts(),
                "successful_attempts": attempts.count(
                    outcome=AttemptOutcome.SUCCESS.value, since=since
                ),
                "failed_attempts": attempts.count(outcome=AttemptOutcome.FAILED.value, since=since),
                "timed_out_attempts": attempts.count(
                    outcome=AttemptOutcome.TIMEOUT.value, since=since
                ),
            }
