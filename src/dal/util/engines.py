"""Engine kind normalization for loosely-typed connection descriptors.

Canonical engine kinds (``EngineKind`` values, upper-case):
- MYSQL, POSTGRESQL: implemented connectors
- MSSQL, SQLITE, TIDB, OCEANBASE: reserved, no connector yet

User-facing aliases (case-insensitive):
- MySQL: "mysql", "mariadb"
- PostgreSQL: "postgresql", "postgres", "pg"

Example:
    >>> normalize_engine("PG")
    <EngineKind.POSTGRESQL: 'POSTGRESQL'>
    >>> resolve_engine_kind({"type": "postgres"})
    <EngineKind.POSTGRESQL: 'POSTGRESQL'>
"""

from typing import Any, Iterable, Mapping, Optional

from common.errors import ErrorCode, PolicyViolationError
from dal.models import ENGINE_FIELDS, EngineKind

# Alias mappings: user-friendly names -> canonical engine kind
ENGINE_ALIASES: dict[str, EngineKind] = {
    # MySQL aliases
    "mysql": EngineKind.MYSQL,
    "mariadb": EngineKind.MYSQL,
    # PostgreSQL aliases
    "postgresql": EngineKind.POSTGRESQL,
    "postgres": EngineKind.POSTGRESQL,
    "pg": EngineKind.POSTGRESQL,
    # Reserved engines
    "mssql": EngineKind.MSSQL,
    "sqlserver": EngineKind.MSSQL,
    "sqlite": EngineKind.SQLITE,
    "sqlite3": EngineKind.SQLITE,
    "tidb": EngineKind.TIDB,
    "oceanbase": EngineKind.OCEANBASE,
}


def normalize_engine(value: Any) -> Optional[EngineKind]:
    """Map one raw engine value to its canonical kind, or None when unknown."""
    if value is None:
        return None
    if isinstance(value, EngineKind):
        return value
    cleaned = str(value).strip().lower()
    if not cleaned:
        return None
    return ENGINE_ALIASES.get(cleaned)


def accepted_engine_values(kinds: Optional[Iterable[EngineKind]] = None) -> str:
    """Render the accepted canonical values and their aliases for error messages."""
    wanted = set(kinds) if kinds is not None else set(EngineKind)
    parts = []
    for kind in EngineKind:
        if kind not in wanted:
            continue
        aliases = sorted(a for a, k in ENGINE_ALIASES.items() if k is kind and a != kind.lower())
        label = kind.value
        if aliases:
            label += f" (also accepts: {', '.join(aliases)})"
        parts.append(label)
    return ", ".join(parts)


def resolve_engine_kind(
    raw: Mapping[str, Any], allowed: Optional[Iterable[EngineKind]] = None
) -> EngineKind:
    """Resolve the engine kind from any of the aliased descriptor fields.

    Fields are checked in ``ENGINE_FIELDS`` order and the first non-empty
    value that resolves wins.

    Raises:
        PolicyViolationError: If no field resolves, or the resolved kind is
            outside ``allowed``. The message lists the accepted values.
    """
    allowed_set = set(allowed) if allowed is not None else None
    received = {name: raw.get(name) for name in ENGINE_FIELDS if raw.get(name) is not None}

    for name in ENGINE_FIELDS:
        kind = normalize_engine(raw.get(name))
        if kind is None:
            continue
        if allowed_set is not None and kind not in allowed_set:
            raise PolicyViolationError(
                f"Unsupported engine type: {kind.value}. "
                f"Expected one of: {accepted_engine_values(allowed_set)}",
                code=ErrorCode.UNSUPPORTED_ENGINE,
                details={"received": received},
            )
        return kind

    shown = next(iter(received.values()), None)
    raise PolicyViolationError(
        f"Unsupported engine type: {shown!s}. "
        f"Expected one of: {accepted_engine_values(allowed_set)}",
        code=ErrorCode.UNSUPPORTED_ENGINE,
        details={"received": received},
    )
