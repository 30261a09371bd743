"""Response bodies of the public API."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from aryeo_shoots.models.shoot import Shoot


class CacheInfo(BaseModel):
    updated_at: Optional[datetime] = None
    fresh: bool
    refreshing: bool
    ttl_seconds: int


class ShootsResponse(BaseModel):
    shoots: list[Shoot]
    source_count: int
    cache: CacheInfo


class ShootResponse(BaseModel):
    shoot: Shoot


class OrderStatusResponse(BaseModel):
    order_id: str
    status: str
    address: str
    scheduled_at: Optional[str] = None


class PipelineLeadsResponse(BaseModel):
    # Records are returned as stored, including flagged parse errors.
    events: list[dict[str, Any]]
    count: int


class HealthResponse(BaseModel):
    ok: bool
    api_base: str
    has_token: bool


class OkResponse(BaseModel):
    ok: bool = True
