import asyncio
from contextlib import asynccontextmanager
from typing import List

import pytest

from common.config.settings import get_settings
from common.errors import DriverError
from dal.connector import DEFAULT_POOL_SIZE, BaseConnector, default_pool_size, driver_message
from dal.models import ConnectionDescriptor, EngineKind, ExecutionResult, SchemaDescriptor


class FakePool:
    """Bounded pool double that records peak concurrent checkouts."""

    def __init__(self, size: int):
        self._slots = asyncio.Semaphore(size)
        self.in_use = 0
        self.peak = 0
        self.acquired = 0
        self.closed = False

    @asynccontextmanager
    async def acquire(self):
        async with self._slots:
            self.in_use += 1
            self.acquired += 1
            self.peak = max(self.peak, self.in_use)
            try:
                yield object()
            finally:
                self.in_use -= 1


class FakeConnector(BaseConnector):
    """Connector double whose driver calls are scripted per test."""

    provider = "fake"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.pools: List[FakePool] = []
        self.closed_pools: List[FakePool] = []
        self.execute_error = None
        self.views_error = None
        self.tables_error = None

    async def _create_pool(self):
        await asyncio.sleep(0)
        pool = FakePool(self.pool_size)
        self.pools.append(pool)
        return pool

    async def _close_pool(self, pool):
        pool.closed = True
        self.closed_pools.append(pool)

    async def test_connection(self) -> bool:
        return True

    async def _execute(self, database: str, statement: str) -> ExecutionResult:
        async with self._acquire():
            await asyncio.sleep(0.01)
            if self.execute_error is not None:
                raise self.execute_error
            return ExecutionResult.row_set([{"db": database, "sql": statement}])

    async def _list_databases(self):
        async with self._acquire():
            return ["shop"]

    async def _list_tables(self, database: str):
        if self.tables_error is not None:
            raise self.tables_error
        return [SchemaDescriptor(name="orders", kind="table", columns=[])]

    async def _list_views(self, database: str):
        if self.views_error is not None:
            raise self.views_error
        return [SchemaDescriptor(name="recent_orders", kind="view")]


def _descriptor() -> ConnectionDescriptor:
    return ConnectionDescriptor(
        engine_kind=EngineKind.MYSQL, host="db", port=3306, username="app", password="pw"
    )


@pytest.mark.asyncio
async def test_concurrent_executes_share_one_bounded_pool():
    """Many concurrent statements never exceed the pool bound."""
    connector = FakeConnector(_descriptor(), pool_size=3)

    results = await asyncio.gather(
        *(connector.execute("shop", f"SELECT {i}") for i in range(20))
    )

    assert len(results) == 20
    assert len(connector.pools) == 1
    pool = connector.pools[0]
    assert pool.acquired == 20
    assert 1 <= pool.peak <= 3
    assert pool.in_use == 0


@pytest.mark.asyncio
async def test_connection_released_after_driver_error():
    """A failing statement still returns its connection to the pool."""
    connector = FakeConnector(_descriptor(), pool_size=1)
    connector.execute_error = RuntimeError("Table 'shop.nope' doesn't exist")

    with pytest.raises(DriverError):
        await connector.execute("shop", "SELECT * FROM nope")

    connector.execute_error = None
    result = await connector.execute("shop", "SELECT 1")
    assert result.rows == [{"db": "shop", "sql": "SELECT 1"}]
    assert connector.pools[0].in_use == 0


@pytest.mark.asyncio
async def test_driver_error_keeps_message_and_cause():
    """Driver failures surface as DriverError with the driver's own message."""
    connector = FakeConnector(_descriptor())
    original = RuntimeError("Unknown column 'x' in 'field list'")
    connector.execute_error = original

    with pytest.raises(DriverError) as exc_info:
        await connector.execute("", "SELECT x FROM t")

    err = exc_info.value
    assert str(err) == "Unknown column 'x' in 'field list'"
    assert err.provider == "fake"
    assert err.__cause__ is original


@pytest.mark.asyncio
async def test_schema_appends_views_after_tables():
    """Tables come first, then views."""
    connector = FakeConnector(_descriptor())

    schemas = await connector.get_schema("shop")

    assert [(s.name, s.kind) for s in schemas] == [
        ("orders", "table"),
        ("recent_orders", "view"),
    ]


@pytest.mark.asyncio
async def test_schema_view_failure_is_tolerated():
    """A failure listing views leaves them out."""
    connector = FakeConnector(_descriptor())
    connector.views_error = RuntimeError("permission denied for information_schema")

    schemas = await connector.get_schema("shop")

    assert [s.name for s in schemas] == ["orders"]


@pytest.mark.asyncio
async def test_schema_table_failure_propagates():
    """A failure listing tables fails the whole call."""
    connector = FakeConnector(_descriptor())
    connector.tables_error = RuntimeError("access denied")

    with pytest.raises(DriverError, match="access denied"):
        await connector.get_schema("shop")


@pytest.mark.asyncio
async def test_close_disposes_pool_and_next_call_recreates():
    """After close, the next statement opens a fresh pool."""
    connector = FakeConnector(_descriptor())
    await connector.list_databases()
    first = connector.pools[0]

    await connector.close()
    assert first.closed is True

    await connector.list_databases()
    assert len(connector.pools) == 2
    assert connector.pools[1] is not first


@pytest.mark.asyncio
async def test_close_without_pool_is_noop():
    """Closing an unused connector does nothing."""
    connector = FakeConnector(_descriptor())
    await connector.close()
    assert connector.closed_pools == []


def test_pool_size_from_env(monkeypatch):
    """CONNECTOR_POOL_SIZE sets the default bound; non-positive values are ignored."""
    assert default_pool_size() == DEFAULT_POOL_SIZE

    monkeypatch.setenv("CONNECTOR_POOL_SIZE", "4")
    get_settings.cache_clear()
    assert default_pool_size() == 4
    assert FakeConnector(_descriptor()).pool_size == 4
    assert FakeConnector(_descriptor(), pool_size=2).pool_size == 2

    monkeypatch.setenv("CONNECTOR_POOL_SIZE", "0")
    get_settings.cache_clear()
    assert default_pool_size() == DEFAULT_POOL_SIZE


def test_driver_message_falls_back_to_type_name():
    """Exceptions without text are described by their type."""
    assert driver_message(TimeoutError()) == "TimeoutError"
    assert driver_message(RuntimeError("  boom ")) == "boom"
