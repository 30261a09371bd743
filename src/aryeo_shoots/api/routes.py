"""HTTP routes consumed by the portfolio site and Aryeo webhooks."""

import asyncio
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import APIRouter, Header, Request

from aryeo_shoots.api.schemas import (
    CacheInfo,
    HealthResponse,
    OkResponse,
    OrderStatusResponse,
    PipelineLeadsResponse,
    ShootResponse,
    ShootsResponse,
)
from aryeo_shoots.cache import DEFAULT_SHOOTS_LIMIT, ORDER_FALLBACK_INCLUDES, ShootCacheManager
from aryeo_shoots.config import Settings
from aryeo_shoots.connectors.base import BaseConnector
from aryeo_shoots.errors import AuthError, PayloadTooLargeError, ValidationError
from aryeo_shoots.normalize import pipeline_event_from_webhook
from aryeo_shoots.store.pipeline_log import DEFAULT_READ_LIMIT, PipelineLog

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["shoots"])

MAX_WEBHOOK_BODY_BYTES = 2_000_000
ORDER_STATUS_INCLUDE = "listing,appointments"
ORDER_STATUS_FALLBACK_INCLUDES = ["listing,appointments", "listing"]


@dataclass
class AppServices:
    """Per-app collaborators, stored on app.state.services."""

    settings: Settings
    connector: BaseConnector
    shoot_cache: ShootCacheManager
    pipeline_log: PipelineLog


def _services(request: Request) -> AppServices:
    return request.app.state.services


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def _required_order_id(order_id: Optional[str]) -> str:
    order_id = (order_id or "").strip()
    if not order_id:
        raise ValidationError("Missing required query param: order_id")
    return order_id


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    settings = _services(request).settings
    return HealthResponse(ok=True, api_base=settings.ARYEO_API_BASE, has_token=settings.has_token)


@router.get("/shoots", response_model=ShootsResponse)
async def list_shoots(
    request: Request,
    limit: int = DEFAULT_SHOOTS_LIMIT,
    refresh: Optional[str] = None,
):
    """Newest shoots from the cache; refresh=1 forces a background refresh."""
    view = await _services(request).shoot_cache.get_shoots(
        limit=limit,
        force_refresh=_flag(refresh),
    )
    return ShootsResponse(
        shoots=view.shoots,
        source_count=view.source_count,
        cache=CacheInfo(
            updated_at=view.updated_at,
            fresh=view.fresh,
            refreshing=view.refreshing,
            ttl_seconds=view.ttl_seconds,
        ),
    )


@router.get("/order-status", response_model=OrderStatusResponse)
async def order_status(request: Request, order_id: Optional[str] = None):
    """Live status of one order, straight from Aryeo."""
    order_id = _required_order_id(order_id)
    shoot = await _services(request).connector.fetch_shoot(
        order_id,
        include=ORDER_STATUS_INCLUDE,
        fallback_includes=ORDER_STATUS_FALLBACK_INCLUDES,
    )
    return OrderStatusResponse(
        order_id=shoot.id,
        status=shoot.status,
        address=shoot.address,
        scheduled_at=shoot.scheduled_at,
    )


@router.get("/shoot", response_model=ShootResponse)
async def shoot_detail(request: Request, order_id: Optional[str] = None):
    """One normalized shoot with its full photo set, straight from Aryeo."""
    order_id = _required_order_id(order_id)
    services = _services(request)
    shoot = await services.connector.fetch_shoot(
        order_id,
        include=services.settings.ARYEO_ORDER_INCLUDES,
        fallback_includes=ORDER_FALLBACK_INCLUDES,
    )
    return ShootResponse(shoot=shoot)


@router.post("/webhooks/aryeo", response_model=OkResponse)
async def aryeo_webhook(
    request: Request,
    x_webhook_secret: Optional[str] = Header(default=None),
):
    """Record an Aryeo webhook delivery in the lead pipeline log."""
    services = _services(request)
    secret = services.settings.WEBHOOK_SECRET
    if secret and not hmac.compare_digest(
        (x_webhook_secret or "").encode("utf-8"), secret.encode("utf-8")
    ):
        raise AuthError("Invalid webhook secret")

    body = await request.body()
    if len(body) > MAX_WEBHOOK_BODY_BYTES:
        raise PayloadTooLargeError("Request body too large")
    try:
        payload = json.loads(body) if body.strip() else {}
    except ValueError:
        raise ValidationError("Invalid JSON body") from None

    event = pipeline_event_from_webhook(payload)
    await services.pipeline_log.append_async(event)
    logger.info(
        "Recorded webhook %s for order %s (status=%s)",
        event.event_type,
        event.order_id,
        event.status,
    )
    return OkResponse()


@router.get("/pipeline/leads", response_model=PipelineLeadsResponse)
async def pipeline_leads(request: Request, limit: int = DEFAULT_READ_LIMIT):
    """Most recent pipeline events, newest first."""
    events = await asyncio.to_thread(_services(request).pipeline_log.read_recent, limit)
    return PipelineLeadsResponse(events=events, count=len(events))
