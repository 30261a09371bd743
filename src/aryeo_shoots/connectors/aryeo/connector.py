"""Aryeo connector for real-estate photography orders.

Aryeo (aryeo.com) exposes orders over a bearer-token REST API. Related
resources are pulled in with an ``include`` query parameter, but the set of
includes an account may request differs between accounts and API versions,
and a disallowed include fails the whole request. Requests therefore go out
with the fullest include list first and step down through caller-supplied
fallbacks, ending with no include at all.
"""

import logging
from typing import Any, Optional
from urllib.parse import quote, urlparse

import httpx

from aryeo_shoots.config import Settings
from aryeo_shoots.connectors.base import BaseConnector
from aryeo_shoots.errors import ConfigurationError, ProviderError
from aryeo_shoots.models.raw import RawOrder, RawOrderPage

from .parsers import is_include_rejection, order_from_payload, order_items_from_payload

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.aryeo.com/v1"


def _safe_url(url: str) -> str:
    """Strip query params for logging."""
    parsed = urlparse(str(url))
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"


class AryeoConnector(BaseConnector):
    """
    Connector for the Aryeo REST API.
    Lists orders page by page and fetches single orders, negotiating the
    include parameter down until Aryeo accepts it.
    """

    source_id = "aryeo"

    ORDERS_PATH = "/orders"
    ORDER_PATH_TEMPLATE = "/orders/{order_id}"

    DEFAULT_HEADERS = {
        "User-Agent": "aryeo-shoots/0.1",
        "Accept": "application/json",
    }

    def __init__(
        self,
        api_base: str = DEFAULT_API_BASE,
        token: str = "",
        *,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            api_base: Aryeo API root, e.g. https://api.aryeo.com/v1
            token: Bearer token; calls fail with ConfigurationError when empty
            timeout: Per-request timeout in seconds
            client: Optional httpx client (tests pass one with a mock transport)
        """
        self._api_base = api_base.rstrip("/")
        self._token = token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers=self.DEFAULT_HEADERS,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "AryeoConnector":
        return cls(
            api_base=settings.ARYEO_API_BASE,
            token=settings.ARYEO_API_TOKEN,
            timeout=settings.ARYEO_REQUEST_TIMEOUT_SECONDS,
            client=client,
        )

    @property
    def api_base(self) -> str:
        return self._api_base

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    async def get_json(self, resource: str, params: Optional[dict[str, Any]] = None) -> Any:
        """
        Authenticated GET of one API resource. Empty/None params are dropped.
        Raises ConfigurationError without a token, ProviderError on non-2xx.
        """
        if not self._token:
            raise ConfigurationError(
                "Missing ARYEO_API_TOKEN. Add it to your environment before calling Aryeo."
            )

        query = {
            key: str(value)
            for key, value in (params or {}).items()
            if value is not None and value != ""
        }
        url = f"{self._api_base}{resource}"
        headers = {"Authorization": f"Bearer {self._token}"}

        try:
            resp = await self._client.get(url, params=query, headers=headers)
        except httpx.RequestError as e:
            logger.warning("Aryeo request failed for %s: %s", _safe_url(url), e)
            raise ProviderError(
                None, message=f"Aryeo request failed: {e.__class__.__name__}: {e}"
            ) from e

        if not resp.is_success:
            raise ProviderError(resp.status_code, resp.text)

        try:
            return resp.json()
        except ValueError as e:
            raise ProviderError(
                resp.status_code, resp.text, message="Aryeo returned a non-JSON response"
            ) from e

    async def fetch_with_include_fallback(
        self,
        resource: str,
        params: Optional[dict[str, Any]] = None,
        fallback_includes: Optional[list[str]] = None,
    ) -> Any:
        """
        GET resource with params["include"], then each fallback include list,
        then no include. Only include rejections move on to the next attempt;
        any other error is raised immediately.
        """
        base_params = dict(params or {})
        primary = base_params.pop("include", None)

        candidates: list[str] = []
        if isinstance(primary, str) and primary.strip():
            candidates.append(primary.strip())
        for candidate in fallback_includes or []:
            if isinstance(candidate, str) and candidate.strip():
                candidates.append(candidate.strip())
        candidates.append("")

        last_error: Optional[ProviderError] = None
        for include in candidates:
            attempt = dict(base_params)
            if include:
                attempt["include"] = include
            try:
                return await self.get_json(resource, attempt)
            except ProviderError as e:
                last_error = e
                if not include or not is_include_rejection(e):
                    raise
                logger.warning(
                    "Aryeo rejected include=%s for %s (HTTP %s); retrying with fewer includes",
                    include,
                    resource,
                    e.status_code,
                )

        raise last_error or ProviderError(None, message="Aryeo request failed")

    async def list_orders(
        self,
        page: int,
        page_size: int,
        include: Optional[str] = None,
        fallback_includes: Optional[list[str]] = None,
    ) -> RawOrderPage:
        """Fetch one page of orders."""
        payload = await self.fetch_with_include_fallback(
            self.ORDERS_PATH,
            {"page": page, "page_size": page_size, "include": include},
            fallback_includes,
        )
        items = order_items_from_payload(payload)
        return RawOrderPage(
            orders=[RawOrder(data=item) for item in items if isinstance(item, dict)],
            item_count=len(items),
        )

    async def fetch_order(
        self,
        order_id: str,
        include: Optional[str] = None,
        fallback_includes: Optional[list[str]] = None,
    ) -> RawOrder:
        """Fetch one order by Aryeo id."""
        resource = self.ORDER_PATH_TEMPLATE.format(order_id=quote(str(order_id), safe=""))
        payload = await self.fetch_with_include_fallback(
            resource,
            {"include": include},
            fallback_includes,
        )
        return RawOrder(data=order_from_payload(payload))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
