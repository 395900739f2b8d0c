"""Connection, result, schema and panel models used across the DAL."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EngineKind(str, Enum):
    """Canonical database engine identifiers."""

    MYSQL = "MYSQL"
    POSTGRESQL = "POSTGRESQL"
    MSSQL = "MSSQL"
    SQLITE = "SQLITE"
    TIDB = "TIDB"
    OCEANBASE = "OCEANBASE"


DEFAULT_PORTS: Dict[EngineKind, int] = {
    EngineKind.MYSQL: 3306,
    EngineKind.POSTGRESQL: 5432,
    EngineKind.MSSQL: 1433,
    EngineKind.TIDB: 4000,
    EngineKind.OCEANBASE: 2881,
}

# Fields a loosely-typed descriptor may use to name its engine, in lookup order.
ENGINE_FIELDS = ("engineType", "engine_type", "type", "engine", "engine_name")


class TlsConfig(BaseModel):
    """PEM material for TLS connections."""

    ca: Optional[str] = None
    cert: Optional[str] = None
    key: Optional[str] = None


class ConnectionDescriptor(BaseModel):
    """Caller-supplied database connection settings. Never persisted."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    title: str = ""
    engine_kind: EngineKind
    host: str
    port: int
    username: str
    password: Optional[str] = Field(default=None, repr=False)
    database: Optional[str] = None
    ssl: Union[bool, TlsConfig, None] = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ConnectionDescriptor":
        """Build a descriptor from a loose mapping, resolving engine aliases first."""
        from dal.util.engines import resolve_engine_kind

        engine_kind = resolve_engine_kind(raw)
        port = raw.get("port") or DEFAULT_PORTS.get(engine_kind)
        secret = raw.get("password")
        if secret is None:
            secret = raw.get("secret")
        ssl = raw.get("ssl", raw.get("tls"))
        return cls(
            id=str(raw.get("id") or ""),
            title=str(raw.get("title") or ""),
            engine_kind=engine_kind,
            host=raw.get("host") or "localhost",
            port=int(port) if port is not None else 0,
            username=raw.get("username") or raw.get("user") or "",
            password=secret,
            database=raw.get("database") or None,
            ssl=ssl,
        )

    def fingerprint(self) -> tuple:
        """Return a hashable identity used to share one pool per descriptor."""
        ssl_key: Any = self.ssl
        if isinstance(self.ssl, TlsConfig):
            ssl_key = (self.ssl.ca, self.ssl.cert, self.ssl.key)
        return (
            self.id,
            self.engine_kind.value,
            self.host,
            self.port,
            self.username,
            self.password,
            self.database,
            ssl_key,
        )


class FieldMeta(BaseModel):
    """Column metadata for a row-set."""

    name: str
    type: str = "unknown"
    db_type: Optional[str] = None


class ExecutionResult(BaseModel):
    """Outcome of one statement: either a row-set or a mutation summary."""

    rows: Optional[List[Dict[str, Any]]] = None
    fields: Optional[List[FieldMeta]] = None
    affected_rows: Optional[int] = None
    changed_rows: Optional[int] = None
    insert_id: Optional[Union[int, str]] = None
    message: Optional[str] = None

    @model_validator(mode="after")
    def _one_shape(self) -> "ExecutionResult":
        has_rows = self.rows is not None
        has_summary = self.message is not None
        if has_rows == has_summary:
            raise ValueError("ExecutionResult must be either a row-set or a mutation summary")
        if has_rows and any(
            value is not None for value in (self.affected_rows, self.changed_rows, self.insert_id)
        ):
            raise ValueError("Row-set results cannot carry mutation counters")
        if has_summary and self.fields is not None:
            raise ValueError("Mutation summaries cannot carry field metadata")
        return self

    @classmethod
    def row_set(
        cls, rows: List[Dict[str, Any]], fields: Optional[List[FieldMeta]] = None
    ) -> "ExecutionResult":
        """Build the row-set shape."""
        return cls(rows=rows, fields=fields or [])

    @classmethod
    def mutation(
        cls,
        affected_rows: int,
        changed_rows: Optional[int] = None,
        insert_id: Optional[Union[int, str]] = None,
        message: Optional[str] = None,
    ) -> "ExecutionResult":
        """Build the mutation-summary shape."""
        return cls(
            affected_rows=affected_rows,
            changed_rows=changed_rows,
            insert_id=insert_id,
            message=message or f"Query OK, {affected_rows} row(s) affected",
        )

    @property
    def is_row_set(self) -> bool:
        """Return True for the row-set shape."""
        return self.rows is not None

    def column_names(self) -> List[str]:
        """Column names in driver order."""
        if self.fields:
            return [f.name for f in self.fields]
        if self.rows:
            return list(self.rows[0].keys())
        return []

    def as_lists(self) -> List[List[Any]]:
        """Rows as ordered value lists following ``column_names``."""
        names = self.column_names()
        return [[row.get(name) for name in names] for row in self.rows or []]


class ColumnDescriptor(BaseModel):
    """One column of a table as reported by introspection."""

    name: str
    type: str
    nullable: bool
    default: Optional[Any] = None
    is_primary_key: bool = False
    is_auto_increment: bool = False
    comment: Optional[str] = None


class SchemaDescriptor(BaseModel):
    """A table (with columns) or a view (without)."""

    name: str
    kind: Literal["table", "view"]
    columns: Optional[List[ColumnDescriptor]] = None


class PanelVisibility(str, Enum):
    """Who may open a panel."""

    PRIVATE = "private"
    PUBLIC = "public"


class PanelStatus(str, Enum):
    """Lifecycle status of a panel handle."""

    ACTIVE = "active"
    EXPIRED = "expired"


class PanelHandle(BaseModel):
    """Short addressable handle pointing at a published document."""

    model_config = ConfigDict(frozen=True)

    id: str
    url: str
    target_url: str
    owner_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    visibility: PanelVisibility = PanelVisibility.PRIVATE
    created_at: datetime
    expires_at: Optional[datetime] = None
    status: PanelStatus = PanelStatus.ACTIVE
    visit_count: int = 0


class PanelPage(BaseModel):
    """One page of an owner's panel handles, newest first."""

    panels: List[PanelHandle]
    total: int
    page: int
    limit: int
    has_more: bool
