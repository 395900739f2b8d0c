import logging
import re
from typing import Any, Dict, List, Optional

import aiomysql

from dal.connector import BaseConnector
from dal.models import ColumnDescriptor, ExecutionResult, SchemaDescriptor
from dal.mysql.quoting import quote_identifier
from dal.tracing import trace_query_operation
from dal.util.column_metadata import fields_from_cursor_description
from dal.util.tls import build_ssl_context

logger = logging.getLogger(__name__)

_CHANGED_RE = re.compile(r"Changed:\s*(\d+)")


class MysqlConnector(BaseConnector):
    """MySQL connector backed by an aiomysql pool.

    The pool is opened without a default database when the descriptor has
    none; each statement may switch databases with ``USE`` on its borrowed
    connection.
    """

    provider = "mysql"

    async def _create_pool(self) -> Any:
        d = self.descriptor
        kwargs: Dict[str, Any] = dict(
            host=d.host,
            port=d.port,
            user=d.username,
            password=d.password or "",
            minsize=1,
            maxsize=self.pool_size,
            autocommit=True,
            cursorclass=aiomysql.DictCursor,
        )
        if d.database:
            kwargs["db"] = d.database
        ssl_context = build_ssl_context(d.ssl)
        if ssl_context is not None:
            kwargs["ssl"] = ssl_context
        return await aiomysql.create_pool(**kwargs)

    async def _close_pool(self, pool: Any) -> None:
        pool.close()
        await pool.wait_closed()

    async def test_connection(self) -> bool:
        """Ping one pooled connection. Never raises."""
        try:
            async with self._acquire() as conn:
                await conn.ping()
            return True
        except Exception as exc:
            logger.error(f"MySQL connection test failed: {exc}")
            return False

    async def _execute(self, database: str, statement: str) -> ExecutionResult:
        async with self._acquire() as conn:
            if database:
                await self._run(conn, f"USE {quote_identifier(database)}")

            async def _statement():
                async with conn.cursor() as cursor:
                    await cursor.execute(statement)
                    if cursor.description:
                        rows = await cursor.fetchall()
                        return ExecutionResult.row_set(
                            [dict(row) for row in rows],
                            fields_from_cursor_description(cursor.description),
                        )
                    return ExecutionResult.mutation(
                        affected_rows=max(cursor.rowcount or 0, 0),
                        changed_rows=_changed_rows(conn),
                        insert_id=cursor.lastrowid,
                    )

            return await trace_query_operation(
                "dal.query.execute", provider=self.provider, sql=statement, operation=_statement()
            )

    async def _run(self, conn: Any, sql: str, *params: Any) -> List[Dict[str, Any]]:
        """Run a statement on ``conn`` and return its rows (empty for non-queries)."""

        async def _inner():
            async with conn.cursor() as cursor:
                await cursor.execute(sql, params or None)
                if not cursor.description:
                    return []
                return [dict(row) for row in await cursor.fetchall()]

        return await trace_query_operation(
            "dal.query.introspect", provider=self.provider, sql=sql, operation=_inner()
        )

    async def _list_databases(self) -> List[str]:
        async with self._acquire() as conn:
            rows = await self._run(conn, "SHOW DATABASES")
        return [_first_value(row) for row in rows]

    async def _list_tables(self, database: str) -> List[SchemaDescriptor]:
        schemas: List[SchemaDescriptor] = []
        async with self._acquire() as conn:
            if database:
                await self._run(conn, f"USE {quote_identifier(database)}")
            table_rows = await self._run(conn, "SHOW FULL TABLES WHERE Table_type = 'BASE TABLE'")
            for table_name in (_first_value(row) for row in table_rows):
                column_rows = await self._run(
                    conn, f"SHOW FULL COLUMNS FROM {quote_identifier(table_name)}"
                )
                schemas.append(
                    SchemaDescriptor(
                        name=table_name,
                        kind="table",
                        columns=[_column_from_row(row) for row in column_rows],
                    )
                )
        return schemas

    async def _list_views(self, database: str) -> List[SchemaDescriptor]:
        async with self._acquire() as conn:
            if database:
                rows = await self._run(
                    conn,
                    "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.VIEWS "
                    "WHERE TABLE_SCHEMA = %s ORDER BY TABLE_NAME",
                    database,
                )
            else:
                rows = await self._run(
                    conn,
                    "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.VIEWS "
                    "WHERE TABLE_SCHEMA = DATABASE() ORDER BY TABLE_NAME",
                )
        return [SchemaDescriptor(name=row["TABLE_NAME"], kind="view") for row in rows]


def _first_value(row: Dict[str, Any]) -> str:
    return str(next(iter(row.values())))


def _column_from_row(row: Dict[str, Any]) -> ColumnDescriptor:
    comment = row.get("Comment")
    return ColumnDescriptor(
        name=row["Field"],
        type=row["Type"],
        nullable=row.get("Null") == "YES",
        default=row.get("Default"),
        is_primary_key=row.get("Key") == "PRI",
        is_auto_increment="auto_increment" in (row.get("Extra") or ""),
        comment=comment or None,
    )


def _changed_rows(conn: Any) -> Optional[int]:
    # The server reports "Rows matched: N  Changed: M  Warnings: W" for UPDATEs.
    result = getattr(conn, "_result", None)
    message = getattr(result, "message", None)
    if isinstance(message, bytes):
        message = message.decode("utf-8", errors="replace")
    if not message:
        return None
    match = _CHANGED_RE.search(message)
    return int(match.group(1)) if match else None
