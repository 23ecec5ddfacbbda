"""
Facebook pages, read from the mobile site.
"""

from __future__ import annotations

from urllib.parse import urlparse, urlunparse

from app.domain.kol_tracking import PlatformType, ScrapeTarget
from app.scraping.document import PageDocument
from app.scraping.engagement import facebook_engagement
from app.scraping.errors import InvalidJobError
from app.scraping.numbers import parse_count
from app.scraping.platforms.base import PlatformVariant, count_pattern, handle_from_target
from app.scraping.types import ProfileMetrics

MOBILE_HOST = "m.facebook.com"

FOLLOWERS_PATTERN = count_pattern(r"followers|people follow this|people|likes")
POSTS_PATTERN = count_pattern(r"posts|photos")


def build_url(target: ScrapeTarget) -> str:
    if not target.profile_url:
        handle = handle_from_target(target)
        if not handle:
            raise InvalidJobError(f"Platform {target.platform_id} has no facebook handle")
        return f"https://{MOBILE_HOST}/{handle}"

    parsed = urlparse(target.profile_url)
    host = (parsed.hostname or "").lower()
    if host != "facebook.com" and not host.endswith(".facebook.com"):
        raise InvalidJobError(f"Not a facebook URL: {target.profile_url}")
    return urlunparse(parsed._replace(scheme="https", netloc=MOBILE_HOST))


def extract(document: PageDocument, target: ScrapeTarget) -> ProfileMetrics:
    metrics = ProfileMetrics(
        platform_type=PlatformType.FACEBOOK,
        url=document.url,
        username=handle_from_target(target),
        name=document.meta("og:title") or document.text('h1, h2, [role="heading"]'),
        bio=document.text('[data-testid="profile-intro-card"] div, .bio'),
        category=document.text('[href*="/pages/category/"] span, .category'),
        is_verified=document.exists('[aria-label*="Verified"], [title*="Verified"]'),
    )

    followers_raw = document.search(FOLLOWERS_PATTERN, text=document.meta("og:description"))
    if not followers_raw:
        followers_raw = document.search(FOLLOWERS_PATTERN)
    metrics.followers = parse_count(followers_raw)
    # Pages expose likes and followers interchangeably.
    metrics.likes = metrics.followers
    metrics.posts = parse_count(document.search(POSTS_PATTERN))

    metrics.engagement_rate = facebook_engagement(
        followers=metrics.followers,
        posts=metrics.posts,
    )
    metrics.additional["engagement_method"] = (
        "facebook_baseline" if metrics.engagement_rate else "unavailable"
    )
    return metrics


VARIANT = PlatformVariant(
    platform_type=PlatformType.FACEBOOK,
    build_url=build_url,
    extract=extract,
    settle_ms=(2000, 4000),
    interstitials=(
        '[data-cookiebanner="accept_button"]',
        '[aria-label="Close"]',
    ),
)
