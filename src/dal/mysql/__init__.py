"""MySQL-backed DAL components."""

from .connector import MysqlConnector
from .quoting import quote_identifier

__all__ = [
    "MysqlConnector",
    "quote_identifier",
]
