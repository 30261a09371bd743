"""Abstract base class for order/shoot source connectors."""

from abc import ABC, abstractmethod
from typing import Optional

from aryeo_shoots.models.raw import RawOrder, RawOrderPage
from aryeo_shoots.models.shoot import Shoot
from aryeo_shoots.normalize import normalize_shoot


class BaseConnector(ABC):
    """
    Standard interface for a photography provider.
    Connectors list orders page by page, fetch single orders, and normalize.
    """

    source_id: str = ""

    @abstractmethod
    async def list_orders(
        self,
        page: int,
        page_size: int,
        include: Optional[str] = None,
        fallback_includes: Optional[list[str]] = None,
    ) -> RawOrderPage:
        """
        Fetch one page of orders. A page with item_count 0 means there are
        no more pages.
        """

    @abstractmethod
    async def fetch_order(
        self,
        order_id: str,
        include: Optional[str] = None,
        fallback_includes: Optional[list[str]] = None,
    ) -> RawOrder:
        """
        Fetch one order by its provider id.
        """

    def normalize(self, raw: RawOrder) -> Shoot:
        """
        Convert raw record to Shoot.
        Default implementation uses the generic order heuristics.
        """
        return normalize_shoot(raw.data)

    async def fetch_shoot(self, order_id: str, **kwargs) -> Shoot:
        """Fetch one order and return it normalized."""
        return self.normalize(await self.fetch_order(order_id, **kwargs))

    async def aclose(self) -> None:
        """Release network resources. Default: nothing to release."""
