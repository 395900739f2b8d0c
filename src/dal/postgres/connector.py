import logging
from typing import Any, Dict, List, Optional

import asyncpg

from dal.connector import BaseConnector
from dal.models import ColumnDescriptor, ExecutionResult, SchemaDescriptor
from dal.tracing import trace_query_operation
from dal.util.column_metadata import fields_from_asyncpg_attributes
from dal.util.tls import build_ssl_context

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "postgres"
APPLICATION_NAME = "sqlpanel"

SYSTEM_SCHEMAS = (
    "information_schema",
    "pg_catalog",
    "pg_toast",
    "_timescaledb_cache",
    "_timescaledb_catalog",
    "_timescaledb_internal",
    "_timescaledb_config",
    "timescaledb_information",
    "timescaledb_experimental",
)

SYSTEM_TABLES = ("_prisma_migrations",)

_LIST_DATABASES_SQL = """
    SELECT datname FROM pg_database
    WHERE datistemplate = false
    AND datname NOT IN ('postgres')
    ORDER BY datname
"""

_LIST_RELATIONS_SQL = """
    SELECT table_schema, table_name
    FROM information_schema.tables
    WHERE table_schema <> ALL($1::text[])
    AND table_name <> ALL($2::text[])
    AND table_catalog = current_database()
    AND table_type = $3
    ORDER BY table_schema, table_name
"""

_LIST_COLUMNS_SQL = """
    SELECT
        column_name,
        data_type,
        is_nullable,
        column_default,
        character_maximum_length,
        numeric_precision,
        numeric_scale
    FROM information_schema.columns
    WHERE table_schema = $1 AND table_name = $2
    ORDER BY ordinal_position
"""

_PRIMARY_KEYS_SQL = """
    SELECT a.attname AS column_name
    FROM pg_index i
    JOIN pg_attribute a ON a.attrelid = i.indrelid AND a.attnum = ANY(i.indkey)
    WHERE i.indrelid = $1::regclass
    AND i.indisprimary
"""


class PostgresConnector(BaseConnector):
    """PostgreSQL connector backed by an asyncpg pool.

    A Postgres connection is bound to one database for its lifetime, so the
    pool always connects to the descriptor's database (``postgres`` when
    unset). Requests naming another database run against the configured one.
    """

    provider = "postgres"

    @property
    def configured_database(self) -> str:
        return self.descriptor.database or DEFAULT_DATABASE

    async def _create_pool(self) -> Any:
        d = self.descriptor
        kwargs: Dict[str, Any] = dict(
            host=d.host,
            port=d.port,
            user=d.username,
            password=d.password,
            database=self.configured_database,
            min_size=1,
            max_size=self.pool_size,
            server_settings={"application_name": APPLICATION_NAME},
        )
        ssl_context = build_ssl_context(d.ssl)
        if ssl_context is not None:
            kwargs["ssl"] = ssl_context
        return await asyncpg.create_pool(**kwargs)

    async def _close_pool(self, pool: Any) -> None:
        await pool.close()

    async def test_connection(self) -> bool:
        """Run ``SELECT 1`` on a pooled connection. Never raises."""
        try:
            async with self._acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception as exc:
            logger.error(f"PostgreSQL connection test failed: {exc}")
            return False

    def _check_database(self, database: str) -> None:
        if database and database != self.configured_database:
            logger.warning(
                f"Cannot switch to database {database!r} in PostgreSQL, "
                f"using {self.configured_database!r}"
            )

    async def _execute(self, database: str, statement: str) -> ExecutionResult:
        self._check_database(database)
        async with self._acquire() as conn:

            async def _statement():
                prepared = await conn.prepare(statement)
                attributes = prepared.get_attributes()
                records = await prepared.fetch()
                if attributes:
                    return ExecutionResult.row_set(
                        [dict(record) for record in records],
                        fields_from_asyncpg_attributes(attributes),
                    )
                return _summary_from_status(prepared.get_statusmsg())

            return await trace_query_operation(
                "dal.query.execute", provider=self.provider, sql=statement, operation=_statement()
            )

    async def _fetch(self, conn: Any, sql: str, *params: Any) -> List[Any]:
        return await trace_query_operation(
            "dal.query.introspect",
            provider=self.provider,
            sql=sql,
            operation=conn.fetch(sql, *params),
        )

    async def _list_databases(self) -> List[str]:
        async with self._acquire() as conn:
            rows = await self._fetch(conn, _LIST_DATABASES_SQL)
        return [row["datname"] for row in rows]

    async def _list_relations(self, conn: Any, table_type: str) -> List[Any]:
        return await self._fetch(
            conn, _LIST_RELATIONS_SQL, list(SYSTEM_SCHEMAS), list(SYSTEM_TABLES), table_type
        )

    async def _list_tables(self, database: str) -> List[SchemaDescriptor]:
        self._check_database(database)
        schemas: List[SchemaDescriptor] = []
        async with self._acquire() as conn:
            for relation in await self._list_relations(conn, "BASE TABLE"):
                schema_name = relation["table_schema"]
                table_name = relation["table_name"]
                column_rows = await self._fetch(conn, _LIST_COLUMNS_SQL, schema_name, table_name)
                pk_rows = await self._fetch(
                    conn, _PRIMARY_KEYS_SQL, _regclass_literal(schema_name, table_name)
                )
                primary_keys = {row["column_name"] for row in pk_rows}
                schemas.append(
                    SchemaDescriptor(
                        name=qualified_name(schema_name, table_name),
                        kind="table",
                        columns=[_column_from_row(row, primary_keys) for row in column_rows],
                    )
                )
        return schemas

    async def _list_views(self, database: str) -> List[SchemaDescriptor]:
        async with self._acquire() as conn:
            relations = await self._list_relations(conn, "VIEW")
        return [
            SchemaDescriptor(
                name=qualified_name(row["table_schema"], row["table_name"]), kind="view"
            )
            for row in relations
        ]


def qualified_name(schema_name: str, table_name: str) -> str:
    """Return ``table`` for the public schema and ``schema.table`` otherwise."""
    if schema_name == "public":
        return table_name
    return f"{schema_name}.{table_name}"


def format_column_type(row: Any) -> str:
    """Upper-cased data type with length or precision/scale suffix when known."""
    type_str = str(row["data_type"]).upper()
    if row["character_maximum_length"]:
        return f"{type_str}({row['character_maximum_length']})"
    if row["numeric_precision"] and row["numeric_scale"]:
        return f"{type_str}({row['numeric_precision']},{row['numeric_scale']})"
    if row["numeric_precision"]:
        return f"{type_str}({row['numeric_precision']})"
    return type_str


def _regclass_literal(schema_name: str, table_name: str) -> str:
    def quote(name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    return f"{quote(schema_name)}.{quote(table_name)}"


def _column_from_row(row: Any, primary_keys: set) -> ColumnDescriptor:
    default = row["column_default"]
    return ColumnDescriptor(
        name=row["column_name"],
        type=format_column_type(row),
        nullable=row["is_nullable"] == "YES",
        default=default,
        is_primary_key=row["column_name"] in primary_keys,
        is_auto_increment=bool(default and "nextval" in str(default)),
    )


def _summary_from_status(status: Optional[str]) -> ExecutionResult:
    # Command tags look like "UPDATE 3", "INSERT 0 1" or "CREATE TABLE".
    parts = (status or "").split()
    if parts and parts[-1].isdigit():
        return ExecutionResult.mutation(affected_rows=int(parts[-1]))
    return ExecutionResult(message="Query executed successfully")
