"""
Schemas for metric history, growth and trending endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class SnapshotResponse(BaseModel):
    id: int | None = None
    platform_id: int
    platform_type: str | None = None
    captured_at: datetime
    followers: int
    following: int
    posts: int
    likes: int
    engagement_rate: float
    avg_views: int
    avg_likes: int
    avg_comments: int
    avg_shares: int
    additional_metrics: dict[str, Any] = Field(default_factory=dict)


class PlatformMetricsResponse(BaseModel):
    platform_id: int
    days: int
    growth: float | None = Field(default=None, description="Follower change in percent; null when undefined")
    snapshots: list[SnapshotResponse] = Field(default_factory=list)


class KolMetricsResponse(BaseModel):
    kol_id: int
    days: int
    platform_type: str | None = None
    growth: float
    snapshots: list[SnapshotResponse] = Field(default_factory=list)


class TrendingKolResponse(BaseModel):
    kol_id: int
    name: str
    category: str | None = None
    growth: float
    platforms_counted: int


class TrendingResponse(BaseModel):
    window_days: int
    items: list[TrendingKolResponse] = Field(default_factory=list)


class KolScrapeResponse(BaseModel):
    kol_id: int
    enqueued: int


class PlatformDetailResponse(BaseModel):
    id: int
    platform_type: str
    username: str
    profile_url: str
    is_verified: bool
    scrape_status: str
    last_scraped_at: datetime | None = None
    snapshots: list[SnapshotResponse] = Field(default_factory=list, description="Newest first")


class KolDetailResponse(BaseModel):
    id: int
    name: str
    category: str | None = None
    is_active: bool
    is_priority: bool
    platforms: list[PlatformDetailResponse] = Field(default_factory=list)
