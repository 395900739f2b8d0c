"""Shared pooling, error wrapping and schema-retrieval flow for engine connectors."""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, Awaitable, List, Optional

from common.config.settings import get_settings
from common.errors import DriverError
from dal.models import ConnectionDescriptor, ExecutionResult, SchemaDescriptor

logger = logging.getLogger(__name__)

DEFAULT_POOL_SIZE = 10


def default_pool_size() -> int:
    """Return the pool bound from Settings.CONNECTOR_POOL_SIZE (default 10)."""
    value = get_settings().CONNECTOR_POOL_SIZE
    if value <= 0:
        return DEFAULT_POOL_SIZE
    return value


def driver_message(exc: BaseException) -> str:
    """Return the driver's own message, falling back to the exception type name."""
    message = str(exc).strip()
    return message or type(exc).__name__


class BaseConnector(ABC):
    """Base class for pooled engine connectors.

    Each instance owns exactly one driver pool, created lazily on first use
    and bounded at ``pool_size``. All statements run on connections borrowed
    from that pool with ``async with``, so a connection goes back to the pool
    on success, on error and on cancellation alike.
    """

    provider: str = ""

    def __init__(self, descriptor: ConnectionDescriptor, pool_size: Optional[int] = None) -> None:
        self.descriptor = descriptor
        self.pool_size = pool_size or default_pool_size()
        self._pool: Any = None
        self._pool_lock = asyncio.Lock()

    @abstractmethod
    async def _create_pool(self) -> Any:
        """Create the driver pool."""

    @abstractmethod
    async def _close_pool(self, pool: Any) -> None:
        """Dispose the driver pool."""

    @abstractmethod
    async def test_connection(self) -> bool:
        """Return True when a pooled connection reaches the server. Never raises."""

    @abstractmethod
    async def _execute(self, database: str, statement: str) -> ExecutionResult:
        """Run one statement on a pooled connection."""

    @abstractmethod
    async def _list_databases(self) -> List[str]:
        """List visible databases."""

    @abstractmethod
    async def _list_tables(self, database: str) -> List[SchemaDescriptor]:
        """Describe base tables with their columns."""

    @abstractmethod
    async def _list_views(self, database: str) -> List[SchemaDescriptor]:
        """Describe views without columns."""

    @property
    def is_open(self) -> bool:
        """True while the connector holds a driver pool."""
        return self._pool is not None

    async def _get_pool(self) -> Any:
        if self._pool is None:
            async with self._pool_lock:
                if self._pool is None:
                    self._pool = await self._create_pool()
                    logger.info(
                        f"Created {self.provider} pool for {self.descriptor.host}:"
                        f"{self.descriptor.port} (max {self.pool_size} connections)"
                    )
        return self._pool

    @asynccontextmanager
    async def _acquire(self):
        """Borrow a connection from the pool for the duration of the block."""
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            yield conn

    async def _guarded(self, operation: Awaitable):
        """Await a driver operation, re-raising driver failures as DriverError."""
        try:
            return await operation
        except DriverError:
            raise
        except Exception as exc:
            raise DriverError(driver_message(exc), provider=self.provider) from exc

    async def execute(self, database: str, statement: str) -> ExecutionResult:
        """Run ``statement``, switching to ``database`` first when it is non-empty."""
        return await self._guarded(self._execute(database or "", statement))

    async def list_databases(self) -> List[str]:
        """List databases visible to the configured user."""
        return await self._guarded(self._list_databases())

    async def get_schema(self, database: str) -> List[SchemaDescriptor]:
        """Describe tables, then append views.

        Failures while listing tables or their columns propagate. Failures
        while listing views are logged and the views are left out.
        """
        schemas = list(await self._guarded(self._list_tables(database)))
        try:
            schemas.extend(await self._guarded(self._list_views(database)))
        except DriverError as exc:
            logger.warning(f"Failed to list {self.provider} views for {database!r}: {exc}")
        return schemas

    async def close(self) -> None:
        """Dispose the pool; the next call creates a fresh one."""
        async with self._pool_lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            await self._close_pool(pool)
            logger.info(f"Closed {self.provider} pool for {self.descriptor.host}")
