"""
tests/test_repositories.py

SQL shape of the KOL detail query, compiled for PostgreSQL without a database.
"""

from __future__ import annotations

from sqlalchemy.dialects import postgresql

from db.repositories.metric_snapshot_repository import MetricSnapshotRepository


class _Rows:
    def all(self) -> list:
        return []


class CapturingSession:
    def __init__(self) -> None:
        self.statements: list = []

    def execute(self, statement):
        self.statements.append(statement)
        return _Rows()


def _compiled(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


class TestLatestForKol:
    def test_ranks_snapshots_per_platform(self) -> None:
        session = CapturingSession()

        rows = MetricSnapshotRepository(session).latest_for_kol(kol_id=7, latest_n=30)

        assert rows == []
        sql = _compiled(session.statements[0])
        assert "row_number() OVER (PARTITION BY metric_snapshots.platform_id" in sql
        assert "metric_snapshots.captured_at DESC" in sql
        assert "platforms.kol_id = " in sql

    def test_binds_kol_and_limit(self) -> None:
        session = CapturingSession()

        MetricSnapshotRepository(session).latest_for_kol(kol_id=7, latest_n=3)

        params = session.statements[0].compile(dialect=postgresql.dialect()).params
        assert 7 in params.values()
        assert 3 in params.values()
