"""
db/repositories/platform_repository.py

Platform lookups used by the sweeps, and the status write-back performed by
the queue workers.

The caller controls commit/rollback; this repository never commits.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Select, or_, select, update
from sqlalchemy.orm import Session

from db.models.kol import Kol
from db.models.platform import Platform


class PlatformRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def _active_platforms(self) -> Select[tuple[Platform]]:
        return select(Platform).join(Kol, Kol.id == Platform.kol_id).where(Kol.is_active.is_(True))

    def get(self, platform_id: int) -> Platform | None:
        return self._session.get(Platform, platform_id)

    def list_for_active_kols(self) -> list[Platform]:
        stmt = self._active_platforms().order_by(Platform.id)
        return list(self._session.scalars(stmt).all())

    def list_priority(self, *, limit: int) -> list[Platform]:
        """
        Platforms of priority KOLs, most overdue first (never-scraped on top).
        """

        stmt = (
            self._active_platforms()
            .where(Kol.is_priority.is_(True))
            .order_by(Platform.last_scraped_at.asc().nulls_first(), Platform.id)
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def list_failed_since(self, *, since: datetime) -> list[Platform]:
        stmt = (
            select(Platform)
            .where(
                Platform.scrape_status == "failed",
                Platform.last_scraped_at >= since,
            )
            .order_by(Platform.last_scraped_at, Platform.id)
        )
        return list(self._session.scalars(stmt).all())

    def list_stale(self, *, before: datetime) -> list[Platform]:
        stmt = (
            self._active_platforms()
            .where(
                or_(
                    Platform.last_scraped_at.is_(None),
                    Platform.last_scraped_at < before,
                )
            )
            .order_by(Platform.last_scraped_at.asc().nulls_first(), Platform.id)
        )
        return list(self._session.scalars(stmt).all())

    def list_for_kol(self, *, kol_id: int) -> list[Platform]:
        stmt = select(Platform).where(Platform.kol_id == kol_id).order_by(Platform.id)
        return list(self._session.scalars(stmt).all())

    def update_scrape_status(
        self,
        *,
        platform_id: int,
        status: str,
        scraped_at: datetime | None = None,
    ) -> int:
        """
        Single-row status update. Returns the number of rows touched.
        """

        values: dict[str, object] = {"scrape_status": status}
        if scraped_at is not None:
            values["last_scraped_at"] = scraped_at
        result = self._session.execute(
            update(Platform).where(Platform.id == platform_id).values(**values)
        )
        return int(result.rowcount or 0)
