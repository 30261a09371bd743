"""
Shoots cache: multi-page fetch, dedupe, sort, persistence and single-flight refresh.

The cache is one immutable ShootsCache snapshot that is swapped wholesale when
a refresh completes, so readers never see a half-built page set. At most one
refresh runs at a time; later triggers attach to the running task. Refresh
failures are logged and the previous snapshot keeps being served.
"""

import asyncio
import contextlib
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from aryeo_shoots.config import Settings
from aryeo_shoots.connectors.base import BaseConnector
from aryeo_shoots.errors import CacheRefreshError
from aryeo_shoots.extraction.images import sanitize_shoot_media
from aryeo_shoots.models.shoot import Shoot, ShootsCache
from aryeo_shoots.store.cache_store import ShootsCacheStore
from aryeo_shoots.time_utils import parse_timestamp, utcnow

logger = logging.getLogger(__name__)

ORDER_FALLBACK_INCLUDES = ["listing,appointments,items", "listing,appointments"]
DEFAULT_SHOOTS_LIMIT = 24
MAX_SHOOTS_LIMIT = 100


def shoot_sort_timestamp(shoot: Shoot) -> float:
    """Epoch seconds of the first parseable of scheduled_at, updated_at, created_at; else 0."""
    for value in (shoot.scheduled_at, shoot.updated_at, shoot.created_at):
        parsed = parse_timestamp(value)
        if parsed is not None:
            return parsed.timestamp()
    return 0.0


@dataclass
class ShootsView:
    """What one read of the cache returns."""

    shoots: list[Shoot]
    source_count: int
    updated_at: Optional[datetime]
    fresh: bool
    refreshing: bool
    ttl_seconds: int


class ShootCacheManager:
    """Owns the in-memory shoots snapshot and the in-flight refresh task."""

    def __init__(
        self,
        connector: BaseConnector,
        store: Optional[ShootsCacheStore] = None,
        *,
        ttl_seconds: int = 21600,
        page_size: int = 100,
        max_pages: int = 5,
        include: Optional[str] = "listing,appointments,items,tags",
        fallback_includes: Optional[list[str]] = None,
        refresh_timeout: Optional[float] = 120.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._connector = connector
        self._store = store
        self._ttl_seconds = ttl_seconds
        self._page_size = page_size
        self._max_pages = max_pages
        self._include = include
        self._fallback_includes = (
            list(fallback_includes) if fallback_includes is not None else list(ORDER_FALLBACK_INCLUDES)
        )
        self._refresh_timeout = refresh_timeout
        self._clock = clock

        self._cache = ShootsCache()
        self._refresh_task: Optional[asyncio.Task] = None
        self.last_error: Optional[CacheRefreshError] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        connector: BaseConnector,
        store: Optional[ShootsCacheStore] = None,
    ) -> "ShootCacheManager":
        return cls(
            connector,
            store if store is not None else ShootsCacheStore(settings.shoots_cache_path),
            ttl_seconds=settings.SHOOTS_CACHE_TTL_SECONDS,
            page_size=settings.SHOOTS_CACHE_FETCH_PAGE_SIZE,
            max_pages=settings.SHOOTS_CACHE_MAX_PAGES,
            include=settings.ARYEO_ORDER_INCLUDES,
            refresh_timeout=settings.SHOOTS_REFRESH_TIMEOUT_SECONDS,
        )

    @property
    def cache(self) -> ShootsCache:
        return self._cache

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    @property
    def refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    def load_snapshot(self) -> bool:
        """Replace the in-memory cache with the persisted snapshot, if any."""
        if self._store is None:
            return False
        snapshot = self._store.load()
        if snapshot is None:
            return False
        self._cache = snapshot
        return True

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        updated_at = self._cache.updated_at
        if updated_at is None:
            return math.inf
        now = now or self._clock()
        return (now - updated_at).total_seconds()

    def is_fresh(self, now: Optional[datetime] = None) -> bool:
        return self.age_seconds(now) <= self._ttl_seconds

    async def fetch_latest_shoots(self) -> ShootsCache:
        """
        Page through all orders, normalize, dedupe by id and sort newest first.
        A later page overwrites an earlier one on id collision.
        """
        shoots_by_id: dict[str, Shoot] = {}

        for page in range(1, self._max_pages + 1):
            order_page = await self._connector.list_orders(
                page,
                self._page_size,
                include=self._include,
                fallback_includes=self._fallback_includes,
            )
            logger.debug(
                "Fetched page %d: %d orders (%d entries)",
                page,
                len(order_page.orders),
                order_page.item_count,
            )
            if not order_page.item_count:
                break

            for raw in order_page.orders:
                shoot = self._connector.normalize(raw)
                shoots_by_id[shoot.id] = shoot

            if order_page.item_count < self._page_size:
                break

        shoots = sorted(shoots_by_id.values(), key=shoot_sort_timestamp, reverse=True)
        return ShootsCache(
            updated_at=self._clock(),
            shoots=shoots,
            source_count=len(shoots),
        )

    def trigger_refresh(self) -> asyncio.Task:
        """Start a refresh unless one is running; return the in-flight task either way."""
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(self._run_refresh())
        return self._refresh_task

    async def refresh(self) -> bool:
        """Trigger (or join) a refresh and wait for it. True on success."""
        return await asyncio.shield(self.trigger_refresh())

    async def _run_refresh(self) -> bool:
        try:
            return await self._refresh_once()
        finally:
            self._refresh_task = None

    async def _refresh_once(self) -> bool:
        try:
            next_cache = await asyncio.wait_for(
                self.fetch_latest_shoots(),
                timeout=self._refresh_timeout,
            )
        except Exception as e:
            reason = "timed out" if isinstance(e, asyncio.TimeoutError) else str(e)
            self.last_error = CacheRefreshError(f"Shoots cache refresh failed: {reason}")
            logger.error("%s", self.last_error)
            return False

        self._cache = next_cache
        self.last_error = None
        logger.info("Shoots cache refreshed: %d shoots", next_cache.source_count)

        if self._store is not None:
            try:
                await asyncio.to_thread(self._store.save, next_cache)
            except OSError as e:
                logger.error("Could not persist shoots cache to %s: %s", self._store.path, e)
        return True

    async def get_shoots(
        self,
        limit: int = DEFAULT_SHOOTS_LIMIT,
        force_refresh: bool = False,
    ) -> ShootsView:
        """
        Serve shoots from the cache.
        Never populated: wait for a refresh. Stale or forced: refresh in the
        background and serve what we have. Fresh: serve as-is.
        """
        limit = max(1, min(int(limit), MAX_SHOOTS_LIMIT))

        if self._cache.updated_at is None and self._cache.is_empty:
            await self.refresh()
        elif force_refresh or not self.is_fresh():
            self.trigger_refresh()

        cache = self._cache
        shoots = [sanitize_shoot_media(shoot) for shoot in cache.shoots[:limit]]
        return ShootsView(
            shoots=shoots,
            source_count=cache.source_count or len(shoots),
            updated_at=cache.updated_at,
            fresh=self.is_fresh(),
            refreshing=self.refreshing,
            ttl_seconds=self._ttl_seconds,
        )

    async def aclose(self) -> None:
        """Cancel any in-flight refresh."""
        task = self._refresh_task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
