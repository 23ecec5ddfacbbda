"""
app/schemas package marker.
"""

from app.schemas.admin import (
    EnqueuedCountResponse,
    EnqueueJobRequest,
    JobResponse,
    QueueActionResponse,
    QueueStatusResponse,
    RetryFailedRequest,
    RuleStatusResponse,
    SchedulerStatusResponse,
    ScrapeAttemptPageResponse,
    ScrapeAttemptResponse,
    SweepTriggerResponse,
    SystemStatsResponse,
)
from app.schemas.metrics import (
    KolDetailResponse,
    KolMetricsResponse,
    KolScrapeResponse,
    PlatformDetailResponse,
    PlatformMetricsResponse,
    SnapshotResponse,
    TrendingKolResponse,
    TrendingResponse,
)

__all__ = [
    "EnqueuedCountResponse",
    "EnqueueJobRequest",
    "JobResponse",
    "KolDetailResponse",
    "KolMetricsResponse",
    "KolScrapeResponse",
    "PlatformDetailResponse",
    "PlatformMetricsResponse",
    "QueueActionResponse",
    "QueueStatusResponse",
    "RetryFailedRequest",
    "RuleStatusResponse",
    "SchedulerStatusResponse",
    "ScrapeAttemptPageResponse",
    "ScrapeAttemptResponse",
    "SnapshotResponse",
    "SweepTriggerResponse",
    "SystemStatsResponse",
    "TrendingKolResponse",
    "TrendingResponse",
]
