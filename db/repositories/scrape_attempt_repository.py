"""
db/repositories/scrape_attempt_repository.py

Append-only scrape attempt audit trail.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from db.models.scrape_attempt import ScrapeAttempt


class ScrapeAttemptRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def add(
        self,
        *,
        platform_id: int | None,
        platform: str,
        outcome: str,
        started_at: datetime,
        duration_ms: int | None = None,
        error_message: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ScrapeAttempt:
        attempt = ScrapeAttempt(
            platform_id=platform_id,
            platform=platform,
            outcome=outcome,
            started_at=started_at,
            duration_ms=duration_ms,
            error_message=error_message,
            metadata_json=metadata or {},
        )
        self._session.add(attempt)
        self._session.flush()
        return attempt

    @staticmethod
    def _filtered(
        stmt: Select[Any],
        *,
        outcome: str | None,
        platform: str | None,
        since: datetime | None,
        until: datetime | None,
    ) -> Select[Any]:
        if outcome:
            stmt = stmt.where(ScrapeAttempt.outcome == outcome)
        if platform:
            stmt = stmt.where(ScrapeAttempt.platform == platform)
        if since is not None:
            stmt = stmt.where(ScrapeAttempt.started_at >= since)
        if until is not None:
            stmt = stmt.where(ScrapeAttempt.started_at <= until)
        return stmt

    def list_recent(
        self,
        *,
        limit: int = 50,
        offset: int = 0,
        outcome: str | None = None,
        platform: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[ScrapeAttempt]:
        stmt = self._filtered(
            select(ScrapeAttempt),
            outcome=outcome,
            platform=platform,
            since=since,
            until=until,
        )
        stmt = (
            stmt.order_by(ScrapeAttempt.started_at.desc(), ScrapeAttempt.id.desc())
            .offset(max(0, offset))
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def count(
        self,
        *,
        outcome: str | None = None,
        platform: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> int:
        stmt = self._filtered(
            select(func.count(ScrapeAttempt.id)),
            outcome=outcome,
            platform=platform,
            since=since,
            until=until,
        )
        return int(self._session.scalar(stmt) or 0)
