"""PostgreSQL DAL Implementations.

This package contains the PostgreSQL connector and the control-plane panel registry.
"""

from .connector import PostgresConnector
from .panel_registry import PostgresPanelRegistry

__all__ = [
    "PostgresConnector",
    "PostgresPanelRegistry",
]
