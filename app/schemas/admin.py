"""
Schemas for queue, scheduler and scrape-log admin endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class QueueStatusResponse(BaseModel):
    waiting: int
    active: int
    completed: int
    failed: int
    paused: bool


class QueueActionResponse(BaseModel):
    message: str
    status: QueueStatusResponse
    removed: int | None = None


class EnqueueJobRequest(BaseModel):
    platform_id: int = Field(ge=1)
    priority: int = Field(default=1, ge=0, le=10, description="Lower is dispatched first")
    delay_seconds: float = Field(default=0.0, ge=0.0, le=86400.0)
    max_attempts: int | None = Field(default=None, ge=1, le=10)


class JobResponse(BaseModel):
    id: str
    platform_id: int
    platform_type: str
    profile_url: str = ""
    username: str = ""
    priority: int
    max_attempts: int
    attempts_made: int
    state: str
    last_error: str | None = None
    created_at: datetime
    finished_at: datetime | None = None


class RuleStatusResponse(BaseModel):
    name: str
    state: str
    running: bool
    cron: str
    scheduled: bool
    next_run_at: datetime | None = None
    last_run_at: datetime | None = None
    last_enqueued: int | None = None
    last_error: str | None = None


class SchedulerStatusResponse(BaseModel):
    rules: dict[str, RuleStatusResponse] = Field(default_factory=dict)


class SweepTriggerResponse(BaseModel):
    rule: str
    enqueued: int
    errors: list[str] = Field(default_factory=list)


class RetryFailedRequest(BaseModel):
    hours: int = Field(default=24, ge=1, le=720)


class EnqueuedCountResponse(BaseModel):
    enqueued: int


class ScrapeAttemptResponse(BaseModel):
    id: int | None = None
    platform_id: int | None = None
    platform: str
    outcome: str
    error_message: str | None = None
    duration_ms: int | None = None
    started_at: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class ScrapeAttemptPageResponse(BaseModel):
    items: list[ScrapeAttemptResponse] = Field(default_factory=list)
    total: int
    page: int
    limit: int
    total_pages: int


class SystemStatsResponse(BaseModel):
    kols: int
    platforms: int
    snapshots: int
    successful_attempts: int
    failed_attempts: int
    timed_out_attempts: int
    queue: QueueStatusResponse
