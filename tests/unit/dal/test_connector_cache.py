"""Tests for the bounded shared-connector cache."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from common.config.settings import get_settings
from dal import factory
from dal.factory import close_connectors, get_connector


def _raw(host):
    return {"type": "mysql", "host": host, "username": "u", "password": "p"}


@pytest.fixture
def cache_size(monkeypatch):
    monkeypatch.setenv("CONNECTOR_CACHE_SIZE", "2")
    get_settings.cache_clear()
    yield 2


def test_cache_is_bounded(cache_size):
    for host in ("a", "b", "c", "d"):
        get_connector(_raw(host))

    assert len(factory._connectors) == cache_size
    hosts = [c.descriptor.host for c in factory._connectors.values()]
    assert hosts == ["c", "d"]


def test_recent_use_protects_from_eviction(cache_size):
    first = get_connector(_raw("a"))
    get_connector(_raw("b"))
    assert get_connector(_raw("a")) is first

    get_connector(_raw("c"))

    assert get_connector(_raw("a")) is first
    hosts = [c.descriptor.host for c in factory._connectors.values()]
    assert "b" not in hosts


@pytest.mark.asyncio
async def test_eviction_closes_open_pool(cache_size):
    first = get_connector(_raw("a"))
    first._pool = object()
    first.close = AsyncMock()
    idle = get_connector(_raw("b"))
    idle.close = AsyncMock()

    get_connector(_raw("c"))
    get_connector(_raw("d"))
    await asyncio.sleep(0)

    first.close.assert_awaited_once()
    idle.close.assert_not_awaited()


@pytest.mark.asyncio
async def test_close_connectors_waits_for_evictions(cache_size):
    closed = asyncio.Event()

    async def slow_close():
        await asyncio.sleep(0)
        closed.set()

    first = get_connector(_raw("a"))
    first._pool = object()
    first.close = slow_close
    get_connector(_raw("b"))
    get_connector(_raw("c"))

    await close_connectors()

    assert closed.is_set()
    assert not factory._connectors
