"""Normalization of raw Aryeo orders and webhook payloads."""

import json
from typing import Any, Optional

from aryeo_shoots.extraction.images import (
    ImageCandidate,
    collect_image_urls,
    pick_image,
    sanitize_shoot_media,
)
from aryeo_shoots.models.pipeline import PipelineEvent
from aryeo_shoots.models.shoot import MAX_PHOTOS, Shoot

ADDRESS_UNAVAILABLE = "Address unavailable"
_ADDRESS_JSON_EXCERPT_CHARS = 120

# Joined in this order when present
_ADDRESS_PARTS = ("street_address", "street", "address_1", "city", "state", "postal_code")
_APPOINTMENT_TIME_KEYS = ("start_at", "scheduled_at", "start_time", "starts_at")
_ORDER_TIME_KEYS = ("scheduled_at", "appointment_at", "created_at")


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def normalize_address(raw: Any) -> str:
    """Display address from a structured address object, a plain string, or a JSON excerpt."""
    if not raw:
        return ADDRESS_UNAVAILABLE
    if isinstance(raw, str):
        return raw

    if isinstance(raw, dict):
        pieces = [str(raw[key]) for key in _ADDRESS_PARTS if raw.get(key)]
        if pieces:
            return ", ".join(pieces)

    excerpt = json.dumps(raw, separators=(",", ":"), ensure_ascii=False, default=str)
    return excerpt[:_ADDRESS_JSON_EXCERPT_CHARS]


def _address_source(order: dict, fallback_listing: Any = None) -> Any:
    listing = order.get("listing") or order.get("property") or fallback_listing or {}
    listing_address = listing.get("address") if isinstance(listing, dict) else None
    return listing_address or order.get("address") or listing


def resolve_scheduled_at(order: dict) -> Optional[str]:
    """
    Shoot time: first appointment's start, else the order's own scheduling
    fields, else its creation time.
    """
    appointments = order.get("appointments")
    if isinstance(appointments, list) and appointments:
        appointment = _as_dict(appointments[0])
    else:
        appointment = _as_dict(order.get("appointment"))

    for key in _APPOINTMENT_TIME_KEYS:
        if appointment.get(key):
            return _optional_str(appointment[key])
    for key in _ORDER_TIME_KEYS:
        if order.get(key):
            return _optional_str(order[key])
    return None


def rank_photos(candidates: dict[str, ImageCandidate]) -> list[str]:
    """Candidate URLs best score first (stable on ties), capped."""
    ranked = sorted(candidates.values(), key=lambda c: c.score, reverse=True)
    return [c.url for c in ranked][:MAX_PHOTOS]


def normalize_shoot(order: Any) -> Shoot:
    """Convert one raw Aryeo order into a Shoot. Pure: same input, same output."""
    order = _as_dict(order)
    photos = rank_photos(collect_image_urls(order))

    shoot = Shoot(
        id=order.get("id") or order.get("uuid") or "unknown",
        address=normalize_address(_address_source(order)),
        status=str(order.get("status") or order.get("state") or "Unknown"),
        scheduled_at=resolve_scheduled_at(order),
        created_at=_optional_str(order.get("created_at")),
        updated_at=_optional_str(order.get("updated_at")),
        thumbnail_url=pick_image(order),
        photos=photos,
    )
    return sanitize_shoot_media(shoot)


def pipeline_event_from_webhook(payload: Any) -> PipelineEvent:
    """
    Build a lead pipeline event from an Aryeo webhook body. The order may sit
    under data.order, data, or be the payload itself.
    """
    envelope = _as_dict(payload)
    data = _as_dict(envelope.get("data")) or envelope
    order = _as_dict(data.get("order")) or data

    order_id = order.get("id") or order.get("uuid")
    status = order.get("status") or order.get("state")
    return PipelineEvent(
        event_type=str(envelope.get("type") or envelope.get("event") or "aryeo.event"),
        order_id=_optional_str(order_id),
        status=_optional_str(status),
        address=normalize_address(_address_source(order, fallback_listing=data.get("listing"))),
        raw=payload,
    )
