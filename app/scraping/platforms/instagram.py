"""
Instagram profiles. The og:description meta tag carries all three counts when
the page renders for anonymous visitors.
"""

from __future__ import annotations

import re

from app.domain.kol_tracking import PlatformType, ScrapeTarget
from app.scraping.document import PageDocument
from app.scraping.engagement import instagram_engagement
from app.scraping.errors import InvalidJobError
from app.scraping.numbers import COUNT_TOKEN, parse_count
from app.scraping.platforms.base import PlatformVariant, count_pattern, handle_from_target
from app.scraping.types import ProfileMetrics

OG_COUNTS_PATTERN = re.compile(
    COUNT_TOKEN + r"\s*Followers,\s*" + COUNT_TOKEN + r"\s*Following,\s*" + COUNT_TOKEN + r"\s*Posts",
    flags=re.IGNORECASE,
)
OG_TITLE_NAME_PATTERN = re.compile(r"([^(@]+)")
FOLLOWERS_PATTERN = count_pattern("followers")
FOLLOWING_PATTERN = count_pattern("following")
POSTS_PATTERN = count_pattern("posts")


def build_url(target: ScrapeTarget) -> str:
    handle = handle_from_target(target)
    if not handle:
        raise InvalidJobError(f"Platform {target.platform_id} has no instagram handle")
    return f"https://www.instagram.com/{handle}/"


def extract(document: PageDocument, target: ScrapeTarget) -> ProfileMetrics:
    metrics = ProfileMetrics(
        platform_type=PlatformType.INSTAGRAM,
        url=document.url,
        username=handle_from_target(target),
        avatar_url=document.attr('img[alt*="profile picture"], header img', "src"),
    )

    match = OG_COUNTS_PATTERN.search(document.meta("og:description"))
    if match is not None:
        metrics.followers = parse_count(match.group(1))
        metrics.following = parse_count(match.group(2))
        metrics.posts = parse_count(match.group(3))
        metrics.name = document.search(OG_TITLE_NAME_PATTERN, text=document.meta("og:title"))
    else:
        metrics.followers = parse_count(document.search(FOLLOWERS_PATTERN))
        metrics.following = parse_count(document.search(FOLLOWING_PATTERN))
        metrics.posts = parse_count(document.search(POSTS_PATTERN))
        metrics.bio = document.text("header section h1, section div div span")
        metrics.is_verified = document.exists('[title="Verified"]')

    metrics.engagement_rate = instagram_engagement(
        followers=metrics.followers,
        posts=metrics.posts,
    )
    metrics.additional["engagement_method"] = (
        "instagram_baseline" if metrics.engagement_rate else "unavailable"
    )
    return metrics


VARIANT = PlatformVariant(
    platform_type=PlatformType.INSTAGRAM,
    build_url=build_url,
    extract=extract,
    settle_ms=(3000, 5000),
    interstitials=(
        'button:has-text("Allow all cookies")',
        '[role="dialog"] [aria-label="Close"]',
    ),
)
