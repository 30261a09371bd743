"""
Photo URL extraction from arbitrarily nested Aryeo order payloads.

Aryeo hangs media off listings, items, appointments and more depending on the
account and API version, so instead of reading fixed keys we walk the whole
record and keep anything that looks like an image URL. The same photo often
appears several times as resized/thumbnail variants; those collapse onto one
canonical key and only the best-scoring variant is kept.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import unquote, urlsplit

from aryeo_shoots.models.shoot import MAX_PHOTOS, Shoot

# Nested payloads deeper than this are not worth following.
MAX_DEPTH = 64

HERO_IMAGE_KEYS = (
    "thumbnail_url",
    "cover_photo_url",
    "hero_image_url",
    "image_url",
    "url",
)

_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif", ".avif")
_IMAGE_FORMAT_HINTS = (
    "format=jpg",
    "format=jpeg",
    "format=png",
    "format=webp",
    "fm=jpg",
    "fm=png",
    "fm=webp",
)
_NON_IMAGE_EXTENSIONS = (".mp4", ".mov", ".pdf", ".zip")

_HTTP_RE = re.compile(r"^https?://")
_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}"
)
_FIT_IN_RE = re.compile(r"/fit-in/\d+x\d+/")
_FILTERS_RE = re.compile(r"/filters:[^/]+/")
_SIZE_SUFFIX_RE = re.compile(r"-\d+x\d+(?=\.[a-z0-9]+$)")
_VARIANT_SUFFIX_RE = re.compile(r"_(thumb|thumbnail|small|medium|large|xl)(?=\.[a-z0-9]+$)")
_SLASHES_RE = re.compile(r"/+")


@dataclass(frozen=True)
class ImageCandidate:
    """Image URL found in a record, with its quality score."""

    url: str
    score: int


def looks_like_image_url(value: Any) -> bool:
    """True for absolute http(s) URLs whose path or query names an image format."""
    if not isinstance(value, str) or not _HTTP_RE.match(value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False

    path = parts.path.lower()
    query = parts.query.lower()
    if path.endswith(_NON_IMAGE_EXTENSIONS):
        return False
    if path.endswith(_IMAGE_EXTENSIONS):
        return True
    return any(hint in query for hint in _IMAGE_FORMAT_HINTS)


def canonical_image_key(value: Any) -> str:
    """
    Dedupe key shared by all size/variant renditions of one photo.

    A UUID anywhere in the URL wins (``uuid:<uuid>``). Otherwise the key is
    hostname + path with image-proxy resize and filter segments, ``-WxH``
    size suffixes and ``_thumb``-style variant suffixes removed. Strings that
    do not parse as absolute URLs fall back to their lowercased form.
    """
    if not isinstance(value, str):
        return ""
    trimmed = value.strip()
    if not trimmed:
        return ""

    match = _UUID_RE.search(trimmed.lower())
    if match:
        return f"uuid:{match.group(0)}"

    try:
        parts = urlsplit(trimmed)
        hostname = parts.hostname
    except ValueError:
        return trimmed.lower()
    if not parts.scheme or not hostname:
        return trimmed.lower()

    path = unquote(parts.path or "/").lower()
    path = _FIT_IN_RE.sub("/", path)
    path = _FILTERS_RE.sub("/", path)
    path = _SIZE_SUFFIX_RE.sub("", path)
    path = _VARIANT_SUFFIX_RE.sub("", path)
    path = _SLASHES_RE.sub("/", path)
    return f"{hostname}{path}"


def image_quality_score(url: Any) -> int:
    """Rough size guess from words in the URL: originals high, thumbnails low."""
    lower = str(url or "").lower()
    score = 0
    if "original" in lower or "full" in lower:
        score += 40
    if "large" in lower or "xl" in lower:
        score += 20
    if "medium" in lower:
        score += 10
    if "thumb" in lower or "thumbnail" in lower or "small" in lower:
        score -= 20
    return score


def _add_candidate(results: dict[str, ImageCandidate], url: str) -> None:
    key = canonical_image_key(url)
    if not key:
        return
    candidate = ImageCandidate(url=url, score=image_quality_score(url))
    current = results.get(key)
    # >= so an equally scored later variant replaces the earlier one
    if current is None or candidate.score >= current.score:
        results[key] = candidate


def collect_image_urls(
    item: Any,
    results: Optional[dict[str, ImageCandidate]] = None,
) -> dict[str, ImageCandidate]:
    """
    Walk item (dicts, lists, scalars) and return canonical key -> best candidate.
    Insertion order follows first discovery of each key.
    """
    if results is None:
        results = {}
    _visit(item, results, depth=0, active=set())
    return results


def _visit(node: Any, results: dict[str, ImageCandidate], depth: int, active: set[int]) -> None:
    if isinstance(node, str):
        if looks_like_image_url(node):
            _add_candidate(results, node)
        return
    if not isinstance(node, (dict, list)) or depth > MAX_DEPTH:
        return

    node_id = id(node)
    if node_id in active:
        return
    active.add(node_id)
    try:
        children = node.values() if isinstance(node, dict) else node
        for child in children:
            _visit(child, results, depth + 1, active)
    finally:
        active.discard(node_id)


def pick_image(item: Any) -> str:
    """
    Best-guess hero image: the first http(s) value under one of HERO_IMAGE_KEYS,
    searching the record depth-first. Independent of the scored candidates.
    """
    return _pick(item, depth=0, active=set())


def _pick(item: Any, depth: int, active: set[int]) -> str:
    if not isinstance(item, (dict, list)) or depth > MAX_DEPTH or id(item) in active:
        return ""

    if isinstance(item, dict):
        for key in HERO_IMAGE_KEYS:
            value = item.get(key)
            if isinstance(value, str) and _HTTP_RE.match(value):
                return value

    active.add(id(item))
    try:
        children = item.values() if isinstance(item, dict) else item
        for child in children:
            found = _pick(child, depth + 1, active)
            if found:
                return found
    finally:
        active.discard(id(item))
    return ""


def sanitize_shoot_media(shoot: Shoot) -> Shoot:
    """
    Enforce the media rules on a shoot, including ones loaded from old snapshots:
    photos must be image URLs, unique by canonical key, capped, and never a
    variant of the thumbnail. A missing or non-image thumbnail falls back to
    the first remaining photo.
    """
    raw_thumb = shoot.thumbnail_url if isinstance(shoot.thumbnail_url, str) else ""
    thumb_key = canonical_image_key(raw_thumb)

    unique: dict[str, str] = {}
    for value in shoot.photos or []:
        if not looks_like_image_url(value):
            continue
        key = canonical_image_key(value)
        if not key or key == thumb_key or key in unique:
            continue
        unique[key] = value

    photos = list(unique.values())[:MAX_PHOTOS]
    thumbnail_url = raw_thumb if looks_like_image_url(raw_thumb) else (photos[0] if photos else "")
    if thumbnail_url:
        final_key = canonical_image_key(thumbnail_url)
        photos = [url for url in photos if canonical_image_key(url) != final_key]

    return shoot.model_copy(update={"thumbnail_url": thumbnail_url, "photos": photos[:MAX_PHOTOS]})
