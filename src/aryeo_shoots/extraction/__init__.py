"""Image URL extraction, scoring and dedupe."""

from aryeo_shoots.extraction.images import (
    HERO_IMAGE_KEYS,
    ImageCandidate,
    canonical_image_key,
    collect_image_urls,
    image_quality_score,
    looks_like_image_url,
    pick_image,
    sanitize_shoot_media,
)

__all__ = [
    "HERO_IMAGE_KEYS",
    "ImageCandidate",
    "canonical_image_key",
    "collect_image_urls",
    "image_quality_score",
    "looks_like_image_url",
    "pick_image",
    "sanitize_shoot_media",
]
