"""
YouTube channels. The channel home page gives subscribers and recent videos;
the ``/about`` page adds lifetime views, join date and location.
"""

from __future__ import annotations

import re

from app.domain.kol_tracking import PlatformType, ScrapeTarget
from app.scraping.document import PageDocument
from app.scraping.engagement import youtube_engagement
from app.scraping.errors import InvalidJobError
from app.scraping.numbers import COUNT_TOKEN, average, parse_count
from app.scraping.platforms.base import PlatformVariant, count_pattern, layered_count
from app.scraping.types import ProfileMetrics

BASE_URL = "https://www.youtube.com"

SUBSCRIBERS_PATTERN = count_pattern("subscribers")
VIEWS_PATTERN = re.compile(COUNT_TOKEN + r"\s*view", flags=re.IGNORECASE)
DIGITS_PATTERN = re.compile(r"([0-9][0-9,]*)")

VIDEO_SELECTOR = "ytd-rich-item-renderer, ytd-grid-video-renderer"
AVERAGE_VIEW_SAMPLE = 10


def build_url(target: ScrapeTarget) -> str:
    raw = (target.profile_url or target.username).strip()
    if not raw:
        raise InvalidJobError(f"Platform {target.platform_id} has no youtube channel")
    if raw.startswith("http"):
        return raw.rstrip("/")
    if raw.startswith("@"):
        return f"{BASE_URL}/{raw}"
    if raw.startswith("UC") or raw.startswith("c/"):
        return f"{BASE_URL}/channel/{raw.removeprefix('c/')}"
    return f"{BASE_URL}/@{raw}"


def about_url(channel_url: str) -> str:
    trimmed = channel_url.rstrip("/")
    return trimmed if trimmed.endswith("/about") else f"{trimmed}/about"


def extract(document: PageDocument, target: ScrapeTarget) -> ProfileMetrics:
    metrics = ProfileMetrics(
        platform_type=PlatformType.YOUTUBE,
        url=document.url,
        name=document.text("yt-formatted-string.ytd-channel-name, #channel-title")
        or document.meta("og:title"),
        username=document.text("#channel-handle") or target.username,
        bio=document.text("#description-container yt-formatted-string, .channel-description")
        or document.meta("og:description"),
        is_verified=document.exists('[aria-label*="Verified"], .badge-style-type-verified'),
        avatar_url=document.attr("#channel-header img#img, #avatar img", "src"),
    )

    metrics.followers = layered_count(
        document,
        selectors="#subscriber-count",
        pattern=SUBSCRIBERS_PATTERN,
    )

    videos = document.select_all(VIDEO_SELECTOR)
    metrics.posts = len(videos)
    views = []
    for video in videos[:AVERAGE_VIEW_SAMPLE]:
        raw = document.search(VIEWS_PATTERN, text=video.get_text(" ", strip=True))
        if raw:
            views.append(parse_count(raw))
    metrics.avg_views = average(views)

    metrics.engagement_rate = youtube_engagement(
        followers=metrics.followers,
        avg_views=metrics.avg_views,
    )
    metrics.additional["engagement_method"] = (
        "youtube_views_per_subscriber" if metrics.engagement_rate else "unavailable"
    )
    return metrics


def enrich_from_about(document: PageDocument, metrics: ProfileMetrics) -> None:
    for node in document.select_all("#right-column yt-formatted-string, .about-stats span"):
        text = node.get_text(" ", strip=True)
        if "view" in text.lower() and "total_views" not in metrics.additional:
            digits = document.search(DIGITS_PATTERN, text=text)
            if digits:
                metrics.additional["total_views"] = int(digits.replace(",", ""))
        elif text.startswith("Joined"):
            metrics.additional["join_date"] = text.removeprefix("Joined").strip()

    location = ""
    for node in document.select_all("#details-container yt-formatted-string"):
        text = node.get_text(" ", strip=True)
        if text and "http" not in text and "@" not in text:
            location = text
    if location:
        metrics.additional["location"] = location


VARIANT = PlatformVariant(
    platform_type=PlatformType.YOUTUBE,
    build_url=build_url,
    extract=extract,
    settle_ms=(3000, 5000),
    interstitials=(
        'button[aria-label*="Accept"], button[aria-label*="Agree"], '
        'tp-yt-paper-button[aria-label*="Accept"]',
    ),
    secondary_url=about_url,
    enrich=enrich_from_about,
)
