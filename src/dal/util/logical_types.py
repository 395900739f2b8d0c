from __future__ import annotations

from typing import Any, Optional

LogicalType = str

_ASYNCPG_OIDS = {
    16: "boolean",
    20: "integer",
    21: "integer",
    23: "integer",
    700: "float",
    701: "float",
    1700: "numeric",
    1082: "date",
    1083: "time",
    1114: "timestamp",
    1184: "timestamp",
    114: "json",
    3802: "json",
    2950: "uuid",
    25: "string",
    1042: "string",
    1043: "string",
}

# aiomysql/pymysql FIELD_TYPE codes
_MYSQL_TYPE_CODES = {
    0: "numeric",  # DECIMAL
    1: "integer",  # TINY
    2: "integer",  # SHORT
    3: "integer",  # LONG
    4: "float",  # FLOAT
    5: "float",  # DOUBLE
    7: "timestamp",  # TIMESTAMP
    8: "integer",  # LONGLONG
    9: "integer",  # INT24
    10: "date",  # DATE
    11: "time",  # TIME
    12: "timestamp",  # DATETIME
    13: "date",  # YEAR
    16: "integer",  # BIT
    245: "json",  # JSON
    246: "numeric",  # NEWDECIMAL
    252: "string",  # BLOB/TEXT
    253: "string",  # VAR_STRING
    254: "string",  # STRING
}


def logical_type_from_db_type(db_type: Optional[str]) -> LogicalType:
    """Map an engine-specific type name to a logical type."""
    if not db_type:
        return "unknown"
    normalized = db_type.strip().lower()
    if "timestamp" in normalized or "datetime" in normalized:
        return "timestamp"
    if normalized == "date" or normalized.endswith(" date"):
        return "date"
    if normalized == "time" or normalized.endswith(" time"):
        return "time"
    if "bool" in normalized:
        return "boolean"
    if "uuid" in normalized:
        return "uuid"
    if "json" in normalized:
        return "json"
    if "numeric" in normalized or "decimal" in normalized:
        return "numeric"
    if any(token in normalized for token in ("double", "float", "real")):
        return "float"
    if "int" in normalized:
        return "integer"
    if any(token in normalized for token in ("char", "text", "string")):
        return "string"
    return "unknown"


def logical_type_from_asyncpg_oid(oid: Any) -> LogicalType:
    """Map asyncpg type OIDs to logical types."""
    try:
        return _ASYNCPG_OIDS.get(int(oid), "unknown")
    except (TypeError, ValueError):
        return "unknown"


def logical_type_from_mysql_type_code(type_code: Any) -> LogicalType:
    """Map MySQL protocol field type codes to logical types."""
    if isinstance(type_code, int):
        return _MYSQL_TYPE_CODES.get(type_code, "unknown")
    if isinstance(type_code, str):
        return logical_type_from_db_type(type_code)
    return "unknown"
