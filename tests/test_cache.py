"""Tests for ShootCacheManager: paging, ordering, TTL and single-flight refresh."""

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from aryeo_shoots.cache import ShootCacheManager, shoot_sort_timestamp
from aryeo_shoots.errors import CacheRefreshError, ProviderError
from aryeo_shoots.models.shoot import Shoot, ShootsCache
from aryeo_shoots.store import ShootsCacheStore

from tests.conftest import FakeConnector, build_order

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class MutableClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_manager(connector, store=None, clock=None, **kwargs) -> ShootCacheManager:
    kwargs.setdefault("page_size", 2)
    kwargs.setdefault("max_pages", 5)
    kwargs.setdefault("ttl_seconds", 3600)
    return ShootCacheManager(connector, store, clock=clock or MutableClock(), **kwargs)


class TestShootSortTimestamp:
    """Tests for shoot_sort_timestamp."""

    def test_first_parseable_field(self) -> None:
        shoot = Shoot(id="1", scheduled_at="garbage", updated_at="2026-01-01T00:00:00Z")
        assert shoot_sort_timestamp(shoot) == datetime(2026, 1, 1, tzinfo=timezone.utc).timestamp()

    def test_zero_when_no_dates(self) -> None:
        assert shoot_sort_timestamp(Shoot(id="1")) == 0.0


class TestFetchLatestShoots:
    """Tests for the multi-page fetch."""

    @pytest.mark.asyncio
    async def test_stops_on_short_page(self) -> None:
        connector = FakeConnector([[build_order("A"), build_order("B")], [build_order("C")], [build_order("D")]])
        cache = await make_manager(connector).fetch_latest_shoots()
        assert connector.list_calls == [(1, 2), (2, 2)]
        assert {s.id for s in cache.shoots} == {"A", "B", "C"}
        assert cache.source_count == 3
        assert cache.updated_at == NOW

    @pytest.mark.asyncio
    async def test_stops_on_empty_page(self) -> None:
        connector = FakeConnector([[build_order("A"), build_order("B")]])
        await make_manager(connector).fetch_latest_shoots()
        assert [page for page, _ in connector.list_calls] == [1, 2]

    @pytest.mark.asyncio
    async def test_non_object_entry_does_not_shorten_page(self) -> None:
        connector = FakeConnector([[build_order("A"), "junk"], [build_order("B")]])
        cache = await make_manager(connector).fetch_latest_shoots()
        assert [page for page, _ in connector.list_calls] == [1, 2]
        assert {s.id for s in cache.shoots} == {"A", "B"}

    @pytest.mark.asyncio
    async def test_respects_max_pages(self) -> None:
        pages = [[build_order(f"{p}a"), build_order(f"{p}b")] for p in range(5)]
        connector = FakeConnector(pages)
        cache = await make_manager(connector, max_pages=2).fetch_latest_shoots()
        assert len(connector.list_calls) == 2
        assert cache.source_count == 4

    @pytest.mark.asyncio
    async def test_later_page_wins_on_duplicate_id(self) -> None:
        first = build_order("A")
        first["status"] = "SCHEDULED"
        second = build_order("A")
        second["status"] = "DELIVERED"
        connector = FakeConnector([[first, build_order("B")], [second]])
        cache = await make_manager(connector).fetch_latest_shoots()
        assert cache.source_count == 2
        assert next(s for s in cache.shoots if s.id == "A").status == "DELIVERED"

    @pytest.mark.asyncio
    async def test_sorted_newest_first(self) -> None:
        connector = FakeConnector(
            [
                [
                    build_order("A", scheduled_at="2026-01-01T00:00:00Z"),
                    build_order("D"),
                    build_order("B", scheduled_at="2026-03-01T00:00:00Z"),
                    build_order("C", created_at="2026-02-01T00:00:00Z"),
                ]
            ]
        )
        cache = await make_manager(connector, page_size=10).fetch_latest_shoots()
        assert [s.id for s in cache.shoots] == ["B", "C", "A", "D"]


class TestFreshness:
    """Tests for TTL boundaries."""

    @pytest.mark.asyncio
    async def test_ttl_boundary(self) -> None:
        manager = make_manager(FakeConnector([[build_order("A")]]), ttl_seconds=3600)
        assert not manager.is_fresh(NOW)
        assert await manager.refresh() is True
        assert manager.is_fresh(NOW + timedelta(seconds=3600))
        assert not manager.is_fresh(NOW + timedelta(seconds=3601))


class TestRefresh:
    """Tests for refresh, failure handling and single-flight."""

    @pytest.mark.asyncio
    async def test_single_flight(self) -> None:
        gate = asyncio.Event()
        connector = FakeConnector([[build_order("A")]], gate=gate)
        manager = make_manager(connector)

        first = manager.trigger_refresh()
        second = manager.trigger_refresh()
        assert first is second
        assert manager.refreshing

        readers = [asyncio.create_task(manager.get_shoots()) for _ in range(5)]
        for _ in range(5):
            await asyncio.sleep(0)
        gate.set()
        views = await asyncio.gather(*readers)

        assert connector.list_calls == [(1, 2)]
        assert all([s.id for s in view.shoots] == ["A"] for view in views)
        assert not manager.refreshing

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_cache(self) -> None:
        connector = FakeConnector([[build_order("A")]])
        manager = make_manager(connector)
        assert await manager.refresh() is True
        before = manager.cache

        connector.error = ProviderError(500, "boom")
        assert await manager.refresh() is False
        assert manager.cache is before
        assert isinstance(manager.last_error, CacheRefreshError)
        assert "boom" in str(manager.last_error)
        assert not manager.refreshing

    @pytest.mark.asyncio
    async def test_timeout_is_a_failure(self) -> None:
        connector = FakeConnector([[build_order("A")]], gate=asyncio.Event())
        manager = make_manager(connector, refresh_timeout=0.01)
        assert await manager.refresh() is False
        assert "timed out" in str(manager.last_error)
        assert manager.cache.is_empty

    @pytest.mark.asyncio
    async def test_persists_snapshot(self, data_dir: Path) -> None:
        store = ShootsCacheStore(data_dir / "shoots-cache.json")
        manager = make_manager(FakeConnector([[build_order("A"), build_order("B")]]), store=store)
        assert await manager.refresh() is True

        reloaded = make_manager(FakeConnector(), store=store)
        assert reloaded.load_snapshot() is True
        assert {s.id for s in reloaded.cache.shoots} == {"A", "B"}
        assert reloaded.cache.updated_at == NOW

    @pytest.mark.asyncio
    async def test_aclose_cancels_in_flight_refresh(self) -> None:
        connector = FakeConnector([[build_order("A")]], gate=asyncio.Event())
        manager = make_manager(connector)
        manager.trigger_refresh()
        await asyncio.sleep(0)
        await manager.aclose()
        assert not manager.refreshing
        assert manager.cache.is_empty


class TestGetShoots:
    """Tests for the read path."""

    @pytest.mark.asyncio
    async def test_cold_cache_waits_for_refresh(self) -> None:
        connector = FakeConnector([[build_order("A")]])
        view = await make_manager(connector).get_shoots()
        assert [s.id for s in view.shoots] == ["A"]
        assert view.fresh is True
        assert view.refreshing is False
        assert view.updated_at == NOW
        assert view.ttl_seconds == 3600

    @pytest.mark.asyncio
    async def test_cold_cache_failure_returns_empty(self) -> None:
        connector = FakeConnector(error=ProviderError(None, message="Aryeo request failed: ConnectError"))
        view = await make_manager(connector).get_shoots()
        assert view.shoots == []
        assert view.source_count == 0
        assert view.updated_at is None
        assert view.fresh is False

    @pytest.mark.asyncio
    async def test_fresh_cache_does_not_call_provider(self) -> None:
        connector = FakeConnector([[build_order("A")]])
        manager = make_manager(connector)
        await manager.refresh()
        calls = len(connector.list_calls)

        view = await manager.get_shoots()
        assert len(connector.list_calls) == calls
        assert view.refreshing is False

    @pytest.mark.asyncio
    async def test_stale_cache_served_while_refreshing(self) -> None:
        clock = MutableClock()
        connector = FakeConnector([[build_order("A")]])
        manager = make_manager(connector, clock=clock)
        await manager.refresh()

        connector.pages = [[build_order("B")]]
        clock.now = NOW + timedelta(hours=2)
        view = await manager.get_shoots()
        assert [s.id for s in view.shoots] == ["A"]
        assert view.fresh is False
        assert view.refreshing is True

        assert await manager.refresh() is True
        assert [s.id for s in manager.cache.shoots] == ["B"]
        assert manager.is_fresh()

    @pytest.mark.asyncio
    async def test_force_refresh_on_fresh_cache(self) -> None:
        connector = FakeConnector([[build_order("A")]])
        manager = make_manager(connector)
        await manager.refresh()

        view = await manager.get_shoots(force_refresh=True)
        assert view.fresh is True
        assert view.refreshing is True
        await manager.refresh()
        assert len(connector.list_calls) == 2

    @pytest.mark.asyncio
    async def test_limit_is_clamped(self) -> None:
        orders = [build_order(f"o{i}") for i in range(3)]
        manager = make_manager(FakeConnector([orders]), page_size=10)
        assert len((await manager.get_shoots(limit=0)).shoots) == 1
        assert len((await manager.get_shoots(limit=2)).shoots) == 2
        view = await manager.get_shoots(limit=1000)
        assert len(view.shoots) == 3
        assert view.source_count == 3

    @pytest.mark.asyncio
    async def test_legacy_snapshot_is_sanitized_on_read(self, data_dir: Path) -> None:
        """Snapshots written by older builds may hold duplicate or non-image media."""
        store = ShootsCacheStore(data_dir / "shoots-cache.json")
        store.save(
            ShootsCache(
                updated_at=NOW,
                shoots=[
                    Shoot(
                        id="A",
                        thumbnail_url="https://cdn.example.com/house.jpg",
                        photos=[
                            "https://cdn.example.com/house-1024x768.jpg",
                            "https://cdn.example.com/tour.mp4",
                            "https://cdn.example.com/yard.jpg",
                        ],
                    )
                ],
                source_count=1,
            )
        )
        connector = FakeConnector()
        manager = make_manager(connector, store=store)
        assert manager.load_snapshot() is True

        view = await manager.get_shoots()
        assert connector.list_calls == []
        assert view.shoots[0].thumbnail_url == "https://cdn.example.com/house.jpg"
        assert view.shoots[0].photos == ["https://cdn.example.com/yard.jpg"]
