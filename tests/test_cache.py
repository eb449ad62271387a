"""Tests for PermissionCache: TTL, invalidation, generation guard."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from warden_core.rbac.cache import CacheSnapshot, PermissionCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def loader():
    return AsyncMock(side_effect=lambda: CacheSnapshot())


@pytest.mark.asyncio
async def test_first_access_loads(clock, loader):
    cache = PermissionCache(ttl=60, clock=clock)
    assert cache.is_stale()
    await cache.get_snapshot(loader)
    assert loader.await_count == 1
    assert not cache.is_stale()


@pytest.mark.asyncio
async def test_reuses_snapshot_within_ttl(clock, loader):
    cache = PermissionCache(ttl=60, clock=clock)
    first = await cache.get_snapshot(loader)
    clock.now += 60
    second = await cache.get_snapshot(loader)

    assert loader.await_count == 1
    assert first is second


@pytest.mark.asyncio
async def test_reloads_after_ttl(clock, loader):
    cache = PermissionCache(ttl=60, clock=clock)
    await cache.get_snapshot(loader)
    clock.now += 60.5
    await cache.get_snapshot(loader)
    assert loader.await_count == 2


@pytest.mark.asyncio
async def test_disabled_always_reloads(clock, loader):
    cache = PermissionCache(ttl=60, enabled=False, clock=clock)
    await cache.get_snapshot(loader)
    await cache.get_snapshot(loader)
    assert loader.await_count == 2

    cache.set_user_permissions("u", frozenset({"a:b"}), cache.generation)
    assert cache.get_user_permissions("u") is None


@pytest.mark.asyncio
async def test_invalidate_forces_reload_and_clears_memo(clock, loader):
    cache = PermissionCache(ttl=600, clock=clock)
    await cache.get_snapshot(loader)
    cache.set_user_permissions("u", frozenset({"agents:read"}), cache.generation)
    assert cache.get_user_permissions("u") == {"agents:read"}

    cache.invalidate()

    assert cache.get_user_permissions("u") is None
    assert cache.is_stale()
    await cache.get_snapshot(loader)
    assert loader.await_count == 2


def test_memo_write_from_old_generation_is_dropped():
    cache = PermissionCache()
    generation = cache.generation
    cache.invalidate()
    cache.set_user_permissions("u", frozenset({"agents:read"}), generation)
    assert cache.get_user_permissions("u") is None


@pytest.mark.asyncio
async def test_snapshot_loaded_across_invalidation_is_not_installed(clock):
    cache = PermissionCache(ttl=600, clock=clock)
    stale = CacheSnapshot(roles={}, policies=())

    async def racing_loader():
        # A mutation lands while the reload is in flight.
        cache.invalidate()
        return stale

    assert await cache.get_snapshot(racing_loader) is stale
    assert cache.is_stale()


def test_memo_entry_expires_with_assignment():
    cache = PermissionCache()
    cache.set_user_permissions(
        "u",
        frozenset({"agents:read"}),
        cache.generation,
        valid_until=datetime.now(UTC) - timedelta(milliseconds=1),
    )
    assert cache.get_user_permissions("u") is None


@pytest.mark.asyncio
async def test_refresh_clears_memo(clock, loader):
    cache = PermissionCache(ttl=10, clock=clock)
    await cache.get_snapshot(loader)
    cache.set_user_permissions("u", frozenset({"agents:read"}), cache.generation)
    clock.now += 11
    await cache.get_snapshot(loader)
    assert cache.get_user_permissions("u") is None


def test_instances_do_not_share_state():
    one, two = PermissionCache(), PermissionCache()
    one.set_user_permissions("u", frozenset({"x:y"}), one.generation)
    one.invalidate()
    assert two.generation == 0
    assert two.get_user_permissions("u") is None
