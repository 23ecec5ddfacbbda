"""
app/domain package marker.
"""

from app.domain.kol_tracking import (
    AttemptOutcome,
    AttemptRecord,
    JobPriority,
    KolDetail,
    KolSnapshots,
    PlatformRecord,
    PlatformSnapshots,
    PlatformType,
    ScrapeStatus,
    ScrapeTarget,
    SnapshotRecord,
)

__all__ = [
    "AttemptOutcome",
    "AttemptRecord",
    "JobPriority",
    "KolDetail",
    "KolSnapshots",
    "PlatformRecord",
    "PlatformSnapshots",
    "PlatformType",
    "ScrapeStatus",
    "ScrapeTarget",
    "SnapshotRecord",
]
