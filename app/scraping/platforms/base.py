"""
Per-platform extraction variants.

A variant is a plain record of functions and constants; the pipeline looks it
up by platform type and drives the same state machine for every platform.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from urllib.parse import urlparse

from app.domain.kol_tracking import PlatformType, ScrapeTarget
from app.scraping.document import PageDocument
from app.scraping.numbers import COUNT_TOKEN, parse_count
from app.scraping.types import ProfileMetrics

UrlBuilder = Callable[[ScrapeTarget], str]
Extractor = Callable[[PageDocument, ScrapeTarget], ProfileMetrics]
Enricher = Callable[[PageDocument, ProfileMetrics], None]


@dataclass(frozen=True)
class PlatformVariant:
    platform_type: PlatformType
    build_url: UrlBuilder
    extract: Extractor
    settle_ms: tuple[int, int] = (2000, 4000)
    interstitials: tuple[str, ...] = ()
    extra_headers: Mapping[str, str] = field(default_factory=dict)
    # Optional secondary page visited after the profile page (best effort).
    secondary_url: Callable[[str], str] | None = None
    enrich: Enricher | None = None


def count_pattern(label: str) -> re.Pattern[str]:
    """Regex capturing the count token that precedes ``label``."""

    return re.compile(COUNT_TOKEN + r"\s*(?:" + label + r")\b", flags=re.IGNORECASE)


def handle_from_target(target: ScrapeTarget) -> str:
    """
    Bare account handle: the username when present, otherwise the first path
    segment of the profile URL.
    """

    if target.username:
        return target.username.strip().lstrip("@").strip("/")
    path = urlparse(target.profile_url).path if "://" in target.profile_url else target.profile_url
    segments = [segment for segment in path.split("/") if segment]
    return segments[0].lstrip("@") if segments else ""


def first_count(document: PageDocument, selectors: str, *, title_attr: bool = False) -> str:
    """Text of the first match, or its ``title`` attribute when the text is empty."""

    value = document.text(selectors)
    if not value and title_attr:
        value = document.attr(selectors, "title")
    return value


def layered_count(
    document: PageDocument,
    *,
    selectors: str | None = None,
    pattern: re.Pattern[str] | None = None,
    title_attr: bool = False,
) -> int:
    """
    Selector reader first, then a body-text regex. 0 when both miss.
    """

    if selectors:
        raw = first_count(document, selectors, title_attr=title_attr)
        if raw:
            value = parse_count(raw, default=-1)
            if value >= 0:
                return value
    if pattern is not None:
        raw = document.search(pattern)
        if raw:
            return parse_count(raw)
    return 0
