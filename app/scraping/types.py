"""
Shared scraping runtime data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from app.domain.kol_tracking import PlatformType, SnapshotRecord


@dataclass
class ProfileMetrics:
    """
    Normalized output of one profile extraction.
    """

    platform_type: PlatformType
    followers: int = 0
    following: int = 0
    posts: int = 0
    likes: int = 0
    engagement_rate: float = 0.0
    avg_views: int = 0
    avg_likes: int = 0
    avg_comments: int = 0
    avg_shares: int = 0
    name: str = ""
    username: str = ""
    bio: str = ""
    avatar_url: str = ""
    category: str = ""
    is_verified: bool = False
    url: str = ""
    additional: dict[str, Any] = field(default_factory=dict)

    def profile_fields(self) -> dict[str, Any]:
        fields = {
            "name": self.name,
            "username": self.username,
            "bio": self.bio,
            "avatar_url": self.avatar_url,
            "category": self.category,
            "is_verified": self.is_verified,
            "url": self.url,
        }
        return {key: value for key, value in fields.items() if value not in ("", None)}

    def to_snapshot(self, *, platform_id: int, captured_at: datetime) -> SnapshotRecord:
        return SnapshotRecord(
            platform_id=platform_id,
            platform_type=self.platform_type,
            captured_at=captured_at,
            followers=self.followers,
            following=self.following,
            posts=self.posts,
            likes=self.likes,
            engagement_rate=self.engagement_rate,
            avg_views=self.avg_views,
            avg_likes=self.avg_likes,
            avg_comments=self.avg_comments,
            avg_shares=self.avg_shares,
            additional_metrics={**self.profile_fields(), **self.additional},
        )

    def to_payload(self) -> dict[str, Any]:
        """Raw extracted fields, stored as attempt metadata and returned by the CLI."""

        return {
            "platform": self.platform_type.value,
            "followers": self.followers,
            "following": self.following,
            "posts": self.posts,
            "likes": self.likes,
            "engagement_rate": self.engagement_rate,
            "avg_views": self.avg_views,
            **self.profile_fields(),
            **self.additional,
        }
