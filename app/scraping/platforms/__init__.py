"""
Platform variant registry.
"""

from __future__ import annotations

from app.domain.kol_tracking import PlatformType
from app.scraping.errors import InvalidJobError
from app.scraping.platforms import facebook, instagram, tiktok, youtube
from app.scraping.platforms.base import PlatformVariant

VARIANTS: dict[PlatformType, PlatformVariant] = {
    variant.platform_type: variant
    for variant in (facebook.VARIANT, instagram.VARIANT, tiktok.VARIANT, youtube.VARIANT)
}


def get_variant(platform_type: PlatformType | str) -> PlatformVariant:
    try:
        return VARIANTS[PlatformType.parse(platform_type)]
    except (KeyError, ValueError) as exc:
        raise InvalidJobError(f"No extractor for platform {platform_type!r}") from exc


__all__ = ["PlatformVariant", "VARIANTS", "get_variant"]
