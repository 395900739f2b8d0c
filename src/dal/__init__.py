"""Data Abstraction Layer (DAL).

This package exposes the read-only statement guard, the engine connectors and
the factory that resolves loose connection descriptors to connectors.
"""

from dal.factory import close_connectors, get_connector, new_connector
from dal.util.read_only import enforce_read_only_sql, is_read_only_sql

__all__ = [
    "close_connectors",
    "enforce_read_only_sql",
    "get_connector",
    "is_read_only_sql",
    "new_connector",
]
