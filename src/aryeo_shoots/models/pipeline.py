"""Lead pipeline event recorded for each inbound Aryeo webhook."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field


class PipelineEvent(BaseModel):
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: str = "aryeo.event"
    order_id: Optional[str] = None
    status: Optional[str] = None
    address: str = "Address unavailable"
    raw: Any = None  # original webhook payload, kept for replay
