from typing import TYPE_CHECKING, List, Protocol, runtime_checkable

if TYPE_CHECKING:
    from dal.models import ExecutionResult, SchemaDescriptor


@runtime_checkable
class Connector(Protocol):
    """Protocol every database engine connector implements."""

    async def test_connection(self) -> bool:
        """Return True when a pooled connection can reach the server. Never raises."""
        ...

    async def execute(self, database: str, statement: str) -> "ExecutionResult":
        """Run one statement, optionally after switching to ``database``."""
        ...

    async def list_databases(self) -> List[str]:
        """List databases visible to the configured user."""
        ...

    async def get_schema(self, database: str) -> List["SchemaDescriptor"]:
        """Describe tables (with columns) and views (without) of ``database``."""
        ...

    async def close(self) -> None:
        """Dispose the connector's pool."""
        ...
