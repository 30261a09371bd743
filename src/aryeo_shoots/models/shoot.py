"""Canonical shoot record served to the website, and the cache snapshot that holds them."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

MAX_PHOTOS = 24


class Shoot(BaseModel):
    """Normalized order/shoot. Timestamps are passed through as Aryeo sent them."""

    id: str = Field(..., description="Aryeo order id; 'unknown' when absent")
    address: str = "Address unavailable"
    status: str = "Unknown"

    scheduled_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    thumbnail_url: str = ""
    photos: list[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> str:
        return str(value) if value not in (None, "") else "unknown"

    # Older snapshots may carry nulls or mixed lists; sanitize_shoot_media does the rest.
    @field_validator("thumbnail_url", mode="before")
    @classmethod
    def _coerce_thumbnail(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("photos", mode="before")
    @classmethod
    def _coerce_photos(cls, value: object) -> object:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str)]


class ShootsCache(BaseModel):
    """
    Snapshot of every shoot from the last successful refresh.
    Replaced wholesale on refresh; never mutated in place.
    """

    updated_at: Optional[datetime] = None
    shoots: list[Shoot] = Field(default_factory=list)
    source_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.shoots
