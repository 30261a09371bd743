"""Raw Aryeo order representation before normalization."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RawOrder(BaseModel):
    """
    One order/shoot record exactly as Aryeo returned it.
    No fixed schema: listing, appointments and media nest under keys that
    differ between accounts and API versions.
    """

    model_config = ConfigDict(extra="allow")

    data: dict[str, Any] = Field(default_factory=dict)


class RawOrderPage(BaseModel):
    """
    One page of the order listing.
    item_count counts every entry Aryeo returned, including ones that were
    not objects and so have no RawOrder; paging decisions use it.
    """

    orders: list[RawOrder] = Field(default_factory=list)
    item_count: int = 0
