"""
Repository layer exports.
"""

from db.repositories.kol_repository import KolRepository
from db.repositories.metric_snapshot_repository import MetricSnapshotRepository
from db.repositories.platform_repository import PlatformRepository
from db.repositories.scrape_attempt_repository import ScrapeAttemptRepository

__all__ = [
    "KolRepository",
    "MetricSnapshotRepository",
    "PlatformRepository",
    "ScrapeAttemptRepository",
]
