"""
Storage contract used by the queue, the scheduler, the extraction pipeline and
the metrics service.

Implementations are synchronous; async callers wrap them with
``asyncio.to_thread``. Every method returns frozen domain records, never ORM
instances.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from app.domain.kol_tracking import (
    AttemptOutcome,
    AttemptRecord,
    KolDetail,
    KolSnapshots,
    PlatformRecord,
    PlatformType,
    ScrapeStatus,
    SnapshotRecord,
)


class ScrapeStore(ABC):
    """
    Data-access boundary of the scrape orchestration core.
    """

    # ------------------------------------------------------------------
    # Platform enumeration
    # ------------------------------------------------------------------

    @abstractmethod
    def list_active_platforms(self) -> list[PlatformRecord]:
        """Every platform belonging to an active KOL."""

    @abstractmethod
    def list_priority_platforms(self, limit: int) -> list[PlatformRecord]:
        """
        Platforms of active priority KOLs, most overdue first, at most ``limit``.
        """

    @abstractmethod
    def list_failed_platforms(self, since: datetime) -> list[PlatformRecord]:
        """Platforms in ``failed`` status last scraped at or after ``since``."""

    @abstractmethod
    def list_stale_platforms(self, before: datetime) -> list[PlatformRecord]:
        """
        Platforms of active KOLs never scraped or last scraped before ``before``.
        """

    @abstractmethod
    def list_platforms_for_kol(self, kol_id: int) -> list[PlatformRecord]:
        """Every platform of one KOL. Raises KolNotFoundError for an unknown KOL."""

    @abstractmethod
    def get_platform(self, platform_id: int) -> PlatformRecord | None:
        ...

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @abstractmethod
    def update_platform_status(
        self,
        platform_id: int,
        status: ScrapeStatus,
        *,
        scraped_at: datetime | None = None,
    ) -> None:
        ...

    @abstractmethod
    def add_snapshot(self, snapshot: SnapshotRecord) -> SnapshotRecord:
        """Append one snapshot and return it with its assigned id."""

    @abstractmethod
    def add_attempt(self, attempt: AttemptRecord) -> AttemptRecord:
        """Append one scrape attempt and return it with its assigned id."""

    # ------------------------------------------------------------------
    # Reads for metrics and the admin API
    # ------------------------------------------------------------------

    @abstractmethod
    def snapshots_for_platform(self, platform_id: int, since: datetime) -> list[SnapshotRecord]:
        """Snapshots captured at or after ``since``, ascending by capture time."""

    @abstractmethod
    def snapshots_for_kol(
        self,
        kol_id: int,
        since: datetime,
        platform_type: PlatformType | None = None,
    ) -> list[SnapshotRecord]:
        """Snapshots of one KOL's platforms, ascending by capture time."""

    @abstractmethod
    def kols_with_snapshots(self, since: datetime) -> list[KolSnapshots]:
        """
        Every active KOL with its snapshots since ``since`` grouped by platform.
        KOLs without snapshots are included with an empty mapping.
        """

    @abstractmethod
    def kol_with_platforms(self, kol_id: int, latest_n: int) -> KolDetail:
        """
        One KOL with each of its platforms and that platform's ``latest_n``
        newest snapshots. Raises KolNotFoundError for an unknown KOL.
        """

    @abstractmethod
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
        """Newest attempts first."""

    @abstractmethod
    def count_attempts(
        self,
        *,
        outcome: AttemptOutcome | None = None,
        platform: PlatformType | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> int:
        ...

    @abstractmethod
    def system_counts(self, since: datetime) -> dict[str, int]:
        """
        Row totals (kols, platforms, snapshots) plus attempt counts by outcome
        since ``since``.
        """
