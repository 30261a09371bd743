"""Pytest fixtures for aryeo-shoots tests."""

import asyncio
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from aryeo_shoots.config import Settings
from aryeo_shoots.connectors.aryeo import AryeoConnector
from aryeo_shoots.connectors.base import BaseConnector
from aryeo_shoots.models.raw import RawOrder, RawOrderPage

API_BASE = "https://api.aryeo.test/v1"
PHOTO_UUID = "3f2b8c1e-5d4a-4b6c-9e8f-1a2b3c4d5e6f"


def build_order(
    order_id: str,
    *,
    scheduled_at: Optional[str] = None,
    created_at: Optional[str] = None,
    photos: Optional[list[str]] = None,
) -> dict[str, Any]:
    """Aryeo-shaped order with a listing address and optional media."""
    order: dict[str, Any] = {
        "id": order_id,
        "status": "COMPLETED",
        "listing": {
            "address": {
                "street_address": f"{order_id} Main St",
                "city": "Austin",
                "state": "TX",
                "postal_code": "78701",
            },
        },
    }
    if scheduled_at:
        order["appointments"] = [{"start_at": scheduled_at}]
    if created_at:
        order["created_at"] = created_at
    if photos:
        order["listing"]["images"] = [{"original_url": url} for url in photos]
    return order


def make_connector(
    handler: Callable[[httpx.Request], httpx.Response],
    token: str = "test-token",
) -> AryeoConnector:
    """AryeoConnector talking to an httpx.MockTransport."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AryeoConnector(api_base=API_BASE, token=token, client=client)


class FakeConnector(BaseConnector):
    """
    In-memory connector serving fixed pages of orders.
    gate: when set, list_orders waits on it (to hold a refresh in flight).
    """

    source_id = "fake"

    def __init__(
        self,
        pages: Optional[list[list[Any]]] = None,
        *,
        orders: Optional[dict[str, dict[str, Any]]] = None,
        error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.pages = pages or []
        self.orders = orders or {}
        self.error = error
        self.gate = gate
        self.list_calls: list[tuple[int, int]] = []

    async def list_orders(self, page, page_size, include=None, fallback_includes=None):
        self.list_calls.append((page, page_size))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if page > len(self.pages):
            return RawOrderPage()
        items = self.pages[page - 1]
        return RawOrderPage(
            orders=[RawOrder(data=item) for item in items if isinstance(item, dict)],
            item_count=len(items),
        )

    async def fetch_order(self, order_id, include=None, fallback_includes=None):
        if self.error is not None:
            raise self.error
        return RawOrder(data=self.orders.get(order_id, {}))


@pytest.fixture
def data_dir() -> Path:
    """Temporary data directory for snapshot and pipeline log files."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def settings(data_dir: Path) -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        ARYEO_API_BASE=API_BASE,
        ARYEO_API_TOKEN="test-token",
        WEBHOOK_SECRET="",
        DATA_DIR=data_dir,
        SHOOTS_CACHE_FETCH_PAGE_SIZE=2,
    )
