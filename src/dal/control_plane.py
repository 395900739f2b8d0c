"""Control-plane database connection manager.

Manages the connection pool for the control-plane database, which stores
panel handles. This pool is separate from every connector pool so that
caller-supplied statements never reach control-plane data.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import asyncpg

logger = logging.getLogger(__name__)

PANELS_DDL = """
CREATE TABLE IF NOT EXISTS panels (
    id VARCHAR(64) PRIMARY KEY,
    user_id TEXT,
    osspath TEXT NOT NULL,
    title TEXT,
    description TEXT,
    is_public BOOLEAN NOT NULL DEFAULT FALSE,
    expires_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    visit_count INT NOT NULL DEFAULT 0,
    status VARCHAR(16) NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'expired'))
);
CREATE INDEX IF NOT EXISTS idx_panels_user_created ON panels (user_id, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_panels_status_expires ON panels (status, expires_at);
"""


class ControlPlaneDatabase:
    """Manages the connection pool for the control-plane database."""

    _pool: Optional[asyncpg.Pool] = None

    @classmethod
    def is_initialized(cls) -> bool:
        """Return True once the pool exists."""
        return cls._pool is not None

    @classmethod
    async def init(cls, dsn: Optional[str] = None) -> None:
        """Initialize the control-plane connection pool.

        The DSN defaults to ``Settings.CONTROL_DB_URL``.
        """
        if cls._pool is not None:
            return

        if dsn is None:
            from common.config.settings import get_settings

            dsn = get_settings().CONTROL_DB_URL

        try:
            cls._pool = await asyncpg.create_pool(
                dsn,
                min_size=2,
                max_size=10,
                command_timeout=30,
                server_settings={"application_name": "sqlpanel_control_plane"},
            )
        except Exception as e:
            logger.error(f"Failed to connect to control-plane DB: {e}")
            raise ConnectionError(f"Control-plane DB connection failed: {e}") from e

        logger.info("Control-plane pool established")
        await cls._validate_schema()

    @classmethod
    async def close(cls) -> None:
        """Close the control-plane connection pool."""
        if cls._pool:
            await cls._pool.close()
            cls._pool = None
            logger.info("Control-plane connection pool closed")

    @classmethod
    async def _validate_schema(cls) -> None:
        """Warn when the panels table is missing. Does not run DDL."""
        if cls._pool is None:
            return

        async with cls._pool.acquire() as conn:
            exists = await conn.fetchval(
                """
                SELECT EXISTS (
                    SELECT FROM information_schema.tables
                    WHERE table_schema = 'public' AND table_name = $1
                )
                """,
                "panels",
            )

        if not exists:
            logger.warning(
                "Control-plane table missing: panels. "
                "Create it with ControlPlaneDatabase.ensure_panels_schema()"
            )
        else:
            logger.info("Control-plane schema validation passed")

    @classmethod
    async def ensure_panels_schema(cls) -> None:
        """Create the panels table and its indexes when missing."""
        async with cls.get_connection() as conn:
            await conn.execute(PANELS_DDL)
        logger.info("Ensured panels table exists")

    @classmethod
    @asynccontextmanager
    async def get_connection(cls):
        """Yield a pooled control-plane connection."""
        if cls._pool is None:
            raise RuntimeError(
                "Control-plane pool not initialized. Call ControlPlaneDatabase.init() first."
            )

        async with cls._pool.acquire() as conn:
            yield conn
