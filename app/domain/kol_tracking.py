"""
app/domain/kol_tracking.py

Domain types shared by the queue, the scheduler, the extraction pipeline and
the metrics service. Storage implementations return these frozen records
instead of ORM instances so they can cross worker threads safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any


class PlatformType(str, Enum):
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"
    YOUTUBE = "youtube"

    @classmethod
    def parse(cls, value: "PlatformType | str") -> "PlatformType":
        """
        Coerce a raw tag into a PlatformType; raises ValueError when unknown.
        """

        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise ValueError(
                f"Unknown platform type {value!r}. Allowed types: {allowed}."
            ) from None


class ScrapeStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class AttemptOutcome(str, Enum):
    STARTED = "started"
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"


class JobPriority(IntEnum):
    """Lower value is dispatched first."""

    HIGH = 0
    NORMAL = 1
    LOW = 2


@dataclass(frozen=True)
class ScrapeTarget:
    """
    What one job scrapes: a platform row plus the handle or URL to visit.
    """

    platform_id: int
    platform_type: PlatformType
    profile_url: str = ""
    username: str = ""

    @property
    def identifier(self) -> str:
        return (self.profile_url or self.username).strip()


@dataclass(frozen=True)
class PlatformRecord:
    id: int
    kol_id: int
    platform_type: PlatformType
    username: str
    profile_url: str
    is_verified: bool = False
    last_scraped_at: datetime | None = None
    scrape_status: ScrapeStatus = ScrapeStatus.PENDING

    def to_target(self) -> ScrapeTarget:
        return ScrapeTarget(
            platform_id=self.id,
            platform_type=self.platform_type,
            profile_url=self.profile_url,
            username=self.username,
        )


@dataclass(frozen=True)
class SnapshotRecord:
    platform_id: int
    captured_at: datetime
    followers: int = 0
    following: int = 0
    posts: int = 0
    likes: int = 0
    engagement_rate: float = 0.0
    avg_views: int = 0
    avg_likes: int = 0
    avg_comments: int = 0
    avg_shares: int = 0
    additional_metrics: dict[str, Any] = field(default_factory=dict)
    platform_type: PlatformType | None = None
    id: int | None = None


@dataclass(frozen=True)
class AttemptRecord:
    platform_id: int | None
    platform: str
    outcome: AttemptOutcome
    started_at: datetime
    duration_ms: int | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    id: int | None = None


@dataclass(frozen=True)
class KolSnapshots:
    """
    One KOL with its snapshots grouped per platform, used for trend ranking.
    """

    kol_id: int
    name: str
    category: str | None = None
    snapshots_by_platform: dict[int, list[SnapshotRecord]] = field(default_factory=dict)


@dataclass(frozen=True)
class PlatformSnapshots:
    """A platform with its most recent snapshots, newest first."""

    platform: PlatformRecord
    snapshots: list[SnapshotRecord] = field(default_factory=list)


@dataclass(frozen=True)
class KolDetail:
    kol_id: int
    name: str
    category: str | None = None
    is_active: bool = True
    is_priority: bool = False
    platforms: list[PlatformSnapshots] = field(default_factory=list)
