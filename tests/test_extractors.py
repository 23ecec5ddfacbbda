"""
tests/test_extractors.py

Per-platform URL builders and document readers against small HTML fixtures.
"""

from __future__ import annotations

import pytest

from app.domain.kol_tracking import PlatformType, ScrapeTarget
from app.scraping.document import PageDocument
from app.scraping.errors import InvalidJobError
from app.scraping.platforms import VARIANTS, get_variant
from app.scraping.platforms import facebook, instagram, tiktok, youtube
from app.scraping.platforms.base import handle_from_target


def _target(platform_type: PlatformType, *, username: str = "", profile_url: str = "") -> ScrapeTarget:
    return ScrapeTarget(
        platform_id=1,
        platform_type=platform_type,
        username=username,
        profile_url=profile_url,
    )


TIKTOK_HTML = """
<html><body>
  <h1 data-e2e="user-subtitle">Anna Cooks</h1>
  <h2 data-e2e="user-title">annacooks</h2>
  <strong data-e2e="following-count">120</strong>
  <strong data-e2e="followers-count">1.5M</strong>
  <strong data-e2e="likes-count">30M</strong>
  <h2 data-e2e="user-bio">Recipes daily</h2>
  <div data-e2e="user-post-item"><strong>10K</strong></div>
  <div data-e2e="user-post-item"><strong>20K</strong></div>
</body></html>
"""

TIKTOK_TEXT_ONLY_HTML = """
<html><body><div>Anna 2.3K Followers 15 Following 9K Likes</div></body></html>
"""

INSTAGRAM_HTML = """
<html><head>
  <meta property="og:title" content="Anna Cooks (@annacooks) &bull; Instagram photos and videos">
  <meta property="og:description"
        content="1.2M Followers, 350 Following, 1,024 Posts - See Instagram photos and videos from Anna Cooks (@annacooks)">
</head><body><header><img alt="annacooks's profile picture" src="https://cdn.example/a.jpg"></header></body></html>
"""

YOUTUBE_HTML = """
<html><head><meta property="og:title" content="Anna Cooks"></head><body>
  <div id="channel-handle">@annacooks</div>
  <span id="subscriber-count">250K subscribers</span>
  <ytd-rich-item-renderer><span>12K views</span><span>2 days ago</span></ytd-rich-item-renderer>
  <ytd-rich-item-renderer><span>8K views</span><span>1 week ago</span></ytd-rich-item-renderer>
</body></html>
"""

YOUTUBE_ABOUT_HTML = """
<html><body>
  <div id="right-column">
    <yt-formatted-string>Joined Mar 3, 2015</yt-formatted-string>
    <yt-formatted-string>1,234,567 views</yt-formatted-string>
  </div>
  <div id="details-container"><yt-formatted-string>Canada</yt-formatted-string></div>
</body></html>
"""

FACEBOOK_HTML = """
<html><head>
  <meta property="og:title" content="Anna Cooks">
  <meta property="og:description" content="Anna Cooks. 12K likes &middot; 300 talking about this.">
</head><body><div>Home cooking</div><div>45 posts</div></body></html>
"""


class TestRegistry:
    def test_every_platform_type_has_a_variant(self) -> None:
        assert set(VARIANTS) == set(PlatformType)

    def test_lookup_accepts_raw_tags(self) -> None:
        assert get_variant("TikTok").platform_type is PlatformType.TIKTOK

    def test_unknown_platform_raises_invalid_job(self) -> None:
        with pytest.raises(InvalidJobError):
            get_variant("myspace")


class TestHandles:
    def test_username_is_stripped_of_at_and_slashes(self) -> None:
        assert handle_from_target(_target(PlatformType.TIKTOK, username="@anna/")) == "anna"

    def test_first_path_segment_of_url(self) -> None:
        target = _target(PlatformType.INSTAGRAM, profile_url="https://www.instagram.com/anna/")
        assert handle_from_target(target) == "anna"


class TestTikTok:
    def test_url(self) -> None:
        assert tiktok.build_url(_target(PlatformType.TIKTOK, username="anna")) == (
            "https://www.tiktok.com/@anna"
        )

    def test_url_requires_a_handle(self) -> None:
        with pytest.raises(InvalidJobError):
            tiktok.build_url(_target(PlatformType.TIKTOK))

    def test_reads_data_attributes(self) -> None:
        document = PageDocument(TIKTOK_HTML, url="https://www.tiktok.com/@annacooks")
        metrics = tiktok.extract(document, _target(PlatformType.TIKTOK, username="annacooks"))

        assert metrics.name == "Anna Cooks"
        assert metrics.bio == "Recipes daily"
        assert metrics.followers == 1_500_000
        assert metrics.following == 120
        assert metrics.likes == 30_000_000
        assert metrics.posts == 2
        assert metrics.avg_views == 15_000
        assert metrics.engagement_rate == 20.0
        assert metrics.additional["engagement_method"] == "tiktok_likes_per_post"

    def test_falls_back_to_body_text(self) -> None:
        document = PageDocument(TIKTOK_TEXT_ONLY_HTML)
        metrics = tiktok.extract(document, _target(PlatformType.TIKTOK, username="anna"))

        assert metrics.followers == 2_300
        assert metrics.following == 15
        assert metrics.likes == 9_000
        assert metrics.posts == 0


class TestInstagram:
    def test_url(self) -> None:
        assert instagram.build_url(_target(PlatformType.INSTAGRAM, username="anna")) == (
            "https://www.instagram.com/anna/"
        )

    def test_reads_og_description(self) -> None:
        document = PageDocument(INSTAGRAM_HTML, url="https://www.instagram.com/annacooks/")
        metrics = instagram.extract(document, _target(PlatformType.INSTAGRAM, username="annacooks"))

        assert metrics.followers == 1_200_000
        assert metrics.following == 350
        assert metrics.posts == 1_024
        assert metrics.name == "Anna Cooks"
        assert metrics.avatar_url == "https://cdn.example/a.jpg"
        assert metrics.engagement_rate == 1.75
        assert metrics.additional["engagement_method"] == "instagram_baseline"

    def test_missing_counts_default_to_zero(self) -> None:
        document = PageDocument("<html><body><p>Log in to see photos</p></body></html>")
        metrics = instagram.extract(document, _target(PlatformType.INSTAGRAM, username="anna"))

        assert metrics.followers == 0
        assert metrics.engagement_rate == 0.0
        assert metrics.additional["engagement_method"] == "unavailable"


class TestYouTube:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("@anna", "https://www.youtube.com/@anna"),
            ("anna", "https://www.youtube.com/@anna"),
            ("UCabc123", "https://www.youtube.com/channel/UCabc123"),
            ("c/anna", "https://www.youtube.com/channel/anna"),
            ("https://www.youtube.com/@anna/", "https://www.youtube.com/@anna"),
        ],
    )
    def test_url(self, raw: str, expected: str) -> None:
        assert youtube.build_url(_target(PlatformType.YOUTUBE, username=raw)) == expected

    def test_about_url(self) -> None:
        assert youtube.about_url("https://www.youtube.com/@anna/") == (
            "https://www.youtube.com/@anna/about"
        )
        assert youtube.about_url("https://www.youtube.com/@anna/about") == (
            "https://www.youtube.com/@anna/about"
        )

    def test_reads_channel_page(self) -> None:
        document = PageDocument(YOUTUBE_HTML, url="https://www.youtube.com/@annacooks")
        metrics = youtube.extract(document, _target(PlatformType.YOUTUBE, username="annacooks"))

        assert metrics.name == "Anna Cooks"
        assert metrics.username == "@annacooks"
        assert metrics.followers == 250_000
        assert metrics.posts == 2
        assert metrics.avg_views == 10_000
        assert metrics.engagement_rate == 4.0

    def test_about_page_enrichment(self) -> None:
        document = PageDocument(YOUTUBE_HTML)
        metrics = youtube.extract(document, _target(PlatformType.YOUTUBE, username="annacooks"))
        youtube.enrich_from_about(PageDocument(YOUTUBE_ABOUT_HTML), metrics)

        assert metrics.additional["total_views"] == 1_234_567
        assert metrics.additional["join_date"] == "Mar 3, 2015"
        assert metrics.additional["location"] == "Canada"


class TestFacebook:
    def test_url_is_rewritten_to_mobile_host(self) -> None:
        target = _target(PlatformType.FACEBOOK, profile_url="https://www.facebook.com/annacooks")
        assert facebook.build_url(target) == "https://m.facebook.com/annacooks"

    def test_url_from_username(self) -> None:
        assert facebook.build_url(_target(PlatformType.FACEBOOK, username="annacooks")) == (
            "https://m.facebook.com/annacooks"
        )

    def test_foreign_host_is_rejected(self) -> None:
        target = _target(PlatformType.FACEBOOK, profile_url="https://notfacebook.com/annacooks")
        with pytest.raises(InvalidJobError):
            facebook.build_url(target)

    def test_reads_meta_and_body(self) -> None:
        document = PageDocument(FACEBOOK_HTML, url="https://m.facebook.com/annacooks")
        metrics = facebook.extract(document, _target(PlatformType.FACEBOOK, username="annacooks"))

        assert metrics.name == "Anna Cooks"
        assert metrics.followers == 12_000
        assert metrics.likes == 12_000
        assert metrics.posts == 45
        assert metrics.engagement_rate == 2.0


class TestProfileMetrics:
    def test_snapshot_carries_profile_fields_and_method(self) -> None:
        from datetime import datetime, timezone

        document = PageDocument(TIKTOK_HTML)
        metrics = tiktok.extract(document, _target(PlatformType.TIKTOK, username="annacooks"))
        captured_at = datetime(2026, 10, 1, tzinfo=timezone.utc)
        snapshot = metrics.to_snapshot(platform_id=9, captured_at=captured_at)

        assert snapshot.platform_id == 9
        assert snapshot.captured_at == captured_at
        assert snapshot.followers == 1_500_000
        assert snapshot.additional_metrics["name"] == "Anna Cooks"
        assert snapshot.additional_metrics["engagement_method"] == "tiktok_likes_per_post"


class TestPageDocument:
    HTML = """
    <html><head><meta property="og:title" content="Anna"></head><body>
      <script id="profile-data" type="application/json">{"followerCount": 42}</script>
      <style>.bio { color: red; }</style>
      <p class="bio">Home cook</p>
    </body></html>
    """

    def test_body_text_skips_scripts_and_styles(self) -> None:
        document = PageDocument(self.HTML)
        assert document.body_text == "Home cook"

    def test_reading_body_text_keeps_script_payloads(self) -> None:
        document = PageDocument(self.HTML)
        assert not document.is_blank

        assert document.exists("script#profile-data")
        payload = document.first("script#profile-data")
        assert payload is not None
        assert payload.string == '{"followerCount": 42}'
        assert document.exists("style")

    def test_blank_page(self) -> None:
        assert PageDocument("").is_blank
        assert PageDocument("<html><body><script>x()</script></body></html>").is_blank
