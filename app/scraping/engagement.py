"""
Engagement-rate heuristics.

These are rough estimates derived from whatever the profile page exposes, not
measurements. The method used is recorded next to the value so consumers can
tell them apart.
"""

from __future__ import annotations

INSTAGRAM_BASELINE_RATE = 3.5
FACEBOOK_BASELINE_RATE = 2.0
TIKTOK_RATE_CAP = 20.0
YOUTUBE_RATE_CAP = 100.0


def tiktok_engagement(*, followers: int, likes: int, posts: int) -> float:
    """Total likes per follower per visible post, as a percentage, capped at 20."""

    if followers <= 0 or likes <= 0:
        return 0.0
    rate = likes / (followers * max(posts, 1)) * 100
    return min(TIKTOK_RATE_CAP, round(rate, 2))


def youtube_engagement(*, followers: int, avg_views: int) -> float:
    """Average recent views over subscribers, as a percentage, capped at 100."""

    if followers <= 0 or avg_views <= 0:
        return 0.0
    return min(YOUTUBE_RATE_CAP, round(avg_views / followers * 100, 2))


def instagram_engagement(*, followers: int, posts: int) -> float:
    """Fixed baseline damped for large accounts (floor at half the baseline)."""

    if followers <= 0 or posts <= 0:
        return 0.0
    follower_factor = max(0.5, 1 - followers / 1_000_000)
    return round(INSTAGRAM_BASELINE_RATE * follower_factor, 2)


def facebook_engagement(*, followers: int, posts: int) -> float:
    if followers <= 0 or posts <= 0:
        return 0.0
    return FACEBOOK_BASELINE_RATE
