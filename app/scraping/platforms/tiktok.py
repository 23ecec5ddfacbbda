"""
TikTok profiles. Counters are exposed through ``data-e2e`` test attributes.
"""

from __future__ import annotations

from app.domain.kol_tracking import PlatformType, ScrapeTarget
from app.scraping.document import PageDocument
from app.scraping.engagement import tiktok_engagement
from app.scraping.errors import InvalidJobError
from app.scraping.numbers import average, parse_count
from app.scraping.platforms.base import (
    PlatformVariant,
    count_pattern,
    handle_from_target,
    layered_count,
)
from app.scraping.types import ProfileMetrics

FOLLOWERS_PATTERN = count_pattern("followers")
FOLLOWING_PATTERN = count_pattern("following")
LIKES_PATTERN = count_pattern("likes")

POST_ITEM_SELECTOR = '[data-e2e="user-post-item"]'


def build_url(target: ScrapeTarget) -> str:
    handle = handle_from_target(target)
    if not handle:
        raise InvalidJobError(f"Platform {target.platform_id} has no tiktok handle")
    return f"https://www.tiktok.com/@{handle}"


def extract(document: PageDocument, target: ScrapeTarget) -> ProfileMetrics:
    metrics = ProfileMetrics(
        platform_type=PlatformType.TIKTOK,
        url=document.url,
        username=handle_from_target(target),
        name=document.text('[data-e2e="user-subtitle"], h2[data-e2e="user-title"]'),
        bio=document.text('[data-e2e="user-bio"]'),
        is_verified=document.exists('[data-e2e="verified-badge"]'),
        avatar_url=document.attr('[data-e2e="user-avatar"] img, .avatar img', "src"),
    )

    metrics.followers = layered_count(
        document,
        selectors='[data-e2e="followers-count"], strong[title*="Follower"]',
        pattern=FOLLOWERS_PATTERN,
        title_attr=True,
    )
    metrics.following = layered_count(
        document,
        selectors='[data-e2e="following-count"], strong[title*="Following"]',
        pattern=FOLLOWING_PATTERN,
        title_attr=True,
    )
    metrics.likes = layered_count(
        document,
        selectors='[data-e2e="likes-count"], strong[title*="Likes"]',
        pattern=LIKES_PATTERN,
        title_attr=True,
    )

    # Only the videos rendered on the first screen are visible.
    items = document.select_all(POST_ITEM_SELECTOR)
    metrics.posts = len(items)
    views = []
    for item in items:
        counter = item.select_one("strong")
        if counter is not None and counter.get_text(strip=True):
            views.append(parse_count(counter.get_text(strip=True)))
    metrics.avg_views = average(views)

    metrics.engagement_rate = tiktok_engagement(
        followers=metrics.followers,
        likes=metrics.likes,
        posts=metrics.posts,
    )
    metrics.additional["engagement_method"] = (
        "tiktok_likes_per_post" if metrics.engagement_rate else "unavailable"
    )
    return metrics


VARIANT = PlatformVariant(
    platform_type=PlatformType.TIKTOK,
    build_url=build_url,
    extract=extract,
    settle_ms=(4000, 6000),
    interstitials=(
        '[data-e2e="age-gate-continue"]',
        '[data-e2e="modal-close-inner-button"]',
    ),
    extra_headers={
        "Accept-Language": "en-US,en;q=0.9",
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    },
)
