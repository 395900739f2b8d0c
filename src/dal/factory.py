"""DAL factory: engine-kind to connector resolution and shared singletons.

Connectors are resolved from a loose descriptor in two steps: the engine
alias table in ``dal.util.engines`` picks a canonical ``EngineKind``, then
``CONNECTOR_TYPES`` maps that kind to a connector class. Kinds that resolve
but have no connector are rejected the same way as unknown values.

Example:
    >>> from dal.factory import get_connector
    >>> connector = get_connector({"type": "pg", "host": "db", "username": "app"})
    >>> await connector.test_connection()
"""

import asyncio
import logging
from collections import OrderedDict
from typing import Any, Mapping, Optional, Set, Union

from common.config.settings import get_settings
from common.errors import ErrorCode, PolicyViolationError
from common.interfaces import PanelRegistry
from dal.connector import BaseConnector
from dal.models import ConnectionDescriptor, EngineKind
from dal.mysql import MysqlConnector
from dal.postgres import PostgresConnector
from dal.util.engines import accepted_engine_values

logger = logging.getLogger(__name__)

DescriptorLike = Union[ConnectionDescriptor, Mapping[str, Any]]

# =============================================================================
# Provider Registries
# =============================================================================

CONNECTOR_TYPES: "dict[EngineKind, type[BaseConnector]]" = {
    EngineKind.MYSQL: MysqlConnector,
    EngineKind.POSTGRESQL: PostgresConnector,
}

# =============================================================================
# Singleton Instances
# =============================================================================

_connectors: "OrderedDict[tuple, BaseConnector]" = OrderedDict()
_closing: Set[asyncio.Task] = set()
_panel_registry: Optional[PanelRegistry] = None


def as_descriptor(descriptor: DescriptorLike) -> ConnectionDescriptor:
    """Return ``descriptor`` unchanged or build one from a loose mapping."""
    if isinstance(descriptor, ConnectionDescriptor):
        return descriptor
    return ConnectionDescriptor.from_mapping(descriptor)


def new_connector(descriptor: DescriptorLike, pool_size: Optional[int] = None) -> BaseConnector:
    """Create a fresh connector (with its own pool) for ``descriptor``.

    Raises:
        PolicyViolationError: If the engine kind is unknown or has no connector.
    """
    resolved = as_descriptor(descriptor)
    connector_cls = CONNECTOR_TYPES.get(resolved.engine_kind)
    if connector_cls is None:
        raise PolicyViolationError(
            f"Unsupported engine type: {resolved.engine_kind.value}. "
            f"Expected one of: {accepted_engine_values(CONNECTOR_TYPES)}",
            code=ErrorCode.UNSUPPORTED_ENGINE,
            details={"received": resolved.engine_kind.value},
        )
    return connector_cls(resolved, pool_size=pool_size)


def get_connector(descriptor: DescriptorLike) -> BaseConnector:
    """Get or create the shared connector for ``descriptor``.

    Descriptors with identical connection settings share one connector and
    therefore one pool. At most ``Settings.CONNECTOR_CACHE_SIZE`` connectors
    are kept; the least recently used one is evicted and its pool closed.
    """
    resolved = as_descriptor(descriptor)
    key = resolved.fingerprint()
    connector = _connectors.get(key)
    if connector is not None:
        _connectors.move_to_end(key)
        return connector

    connector = new_connector(resolved)
    _connectors[key] = connector
    logger.info(
        f"Registered {resolved.engine_kind.value} connector for {resolved.host}:{resolved.port}"
    )

    limit = max(get_settings().CONNECTOR_CACHE_SIZE, 1)
    while len(_connectors) > limit:
        _, evicted = _connectors.popitem(last=False)
        _close_evicted(evicted)
    return connector


def _close_evicted(connector: BaseConnector) -> None:
    """Close an evicted connector's pool in the background."""
    logger.info(
        f"Evicting {connector.provider} connector for {connector.descriptor.host} "
        f"(cache size {len(_connectors)})"
    )
    if not connector.is_open:
        return
    task = asyncio.get_running_loop().create_task(connector.close())
    _closing.add(task)
    task.add_done_callback(_on_evicted_closed)


def _on_evicted_closed(task: "asyncio.Task") -> None:
    _closing.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.error(f"Failed to close evicted connector: {task.exception()}")


async def close_connectors() -> None:
    """Close every shared connector and forget them."""
    connectors = list(_connectors.values())
    _connectors.clear()
    for connector in connectors:
        await connector.close()
    if _closing:
        await asyncio.gather(*list(_closing), return_exceptions=True)


def get_panel_registry() -> PanelRegistry:
    """Get or create the singleton panel registry (Postgres control-plane backed)."""
    global _panel_registry
    if _panel_registry is None:
        from dal.postgres import PostgresPanelRegistry

        logger.info("Initializing PanelRegistry with provider: postgres")
        _panel_registry = PostgresPanelRegistry()
    return _panel_registry


def reset_singletons() -> None:
    """Reset singleton instances (for testing only).

    Shared connectors are dropped without closing their pools.
    """
    global _panel_registry

    _connectors.clear()
    _closing.clear()
    _panel_registry = None
