"""Parsing helpers for Aryeo REST responses."""

from typing import Any

from aryeo_shoots.errors import ShootsError

# Aryeo answers 4xx with one of these when an include is not enabled for the account.
INCLUDE_REJECTION_MARKERS = ("Requested include(s)", "not allowed")


def is_include_rejection(error: BaseException) -> bool:
    """True when the error says the requested include list was refused."""
    if not isinstance(error, ShootsError):
        return False
    message = str(error)
    return any(marker in message for marker in INCLUDE_REJECTION_MARKERS)


def order_items_from_payload(payload: Any) -> list[Any]:
    """Every entry of a list response (data, orders or results envelope), unfiltered."""
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict):
        items = payload.get("data") or payload.get("orders") or payload.get("results") or []
    else:
        items = []
    return items if isinstance(items, list) else []


def orders_from_payload(payload: Any) -> list[dict[str, Any]]:
    """Order records from a list response; entries that are not objects are dropped."""
    return [item for item in order_items_from_payload(payload) if isinstance(item, dict)]


def order_from_payload(payload: Any) -> dict[str, Any]:
    """Single order from a detail response (data or order envelope, or bare)."""
    if not isinstance(payload, dict):
        return {}
    order = payload.get("data") or payload.get("order") or payload
    return order if isinstance(order, dict) else {}
