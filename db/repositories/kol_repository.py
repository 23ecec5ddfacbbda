"""
db/repositories/kol_repository.py

Read-only KOL queries. KOL CRUD lives outside the scrape core.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from db.models.kol import Kol
from db.models.metric_snapshot import MetricSnapshot
from db.models.platform import Platform


class KolRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, kol_id: int) -> Kol | None:
        return self._session.get(Kol, kol_id)

    def list_active(self) -> list[Kol]:
        stmt = select(Kol).where(Kol.is_active.is_(True)).order_by(Kol.id)
        return list(self._session.scalars(stmt).all())

    def snapshots_for_active_kols(
        self,
        *,
        since: datetime,
    ) -> list[tuple[int, str, MetricSnapshot]]:
        """
        Return ``(kol_id, platform_type, snapshot)`` rows captured since ``since``,
        ordered by capture time.
        """

        stmt = (
            select(Platform.kol_id, Platform.platform_type, MetricSnapshot)
            .join(Platform, Platform.id == MetricSnapshot.platform_id)
            .join(Kol, Kol.id == Platform.kol_id)
            .where(Kol.is_active.is_(True), MetricSnapshot.captured_at >= since)
            .order_by(MetricSnapshot.captured_at, MetricSnapshot.id)
        )
        return [(row[0], row[1], row[2]) for row in self._session.execute(stmt).all()]

    def table_counts(self) -> dict[str, int]:
        """Row totals for the admin stats view."""

        return {
            "kols": int(self._session.scalar(select(func.count(Kol.id))) or 0),
            "platforms": int(self._session.scalar(select(func.count(Platform.id))) or 0),
            "snapshots": int(self._session.scalar(select(func.count(MetricSnapshot.id))) or 0),
        }
