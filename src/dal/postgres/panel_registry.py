import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, List, Literal, Optional

from common.interfaces.panel_registry import PanelRegistry
from dal.control_plane import ControlPlaneDatabase
from dal.models import PanelHandle, PanelPage, PanelStatus, PanelVisibility
from dal.util.ids import generate_secure_id, is_valid_id

logger = logging.getLogger(__name__)

MAX_ID_ATTEMPTS = 10
MAX_PAGE_SIZE = 100

StatusFilter = Literal["all", "active", "expired"]


class PostgresPanelRegistry(PanelRegistry):
    """PostgreSQL implementation of the panel-handle registry.

    Rows live in the control-plane ``panels`` table. ``osspath`` holds the
    target URL of the published document.
    """

    def __init__(
        self,
        db_client: Any = None,
        *,
        base_url: Optional[str] = None,
        default_ttl_seconds: Optional[int] = None,
        max_ttl_seconds: Optional[int] = None,
        id_length: Optional[int] = None,
    ):
        """Initialize with optional DB client for testing; other values default to Settings."""
        from common.config.settings import get_settings

        settings = get_settings()
        self.db = db_client
        self.base_url = (base_url or settings.PANEL_BASE_URL).rstrip("/")
        self.default_ttl_seconds = default_ttl_seconds or settings.PANEL_DEFAULT_TTL_SECONDS
        self.max_ttl_seconds = max_ttl_seconds or settings.PANEL_MAX_TTL_SECONDS
        self.id_length = id_length or settings.PANEL_ID_LENGTH

    @asynccontextmanager
    async def _get_connection(self):
        """Get connection from injected client or the pool."""
        if self.db:
            yield self.db
        else:
            async with ControlPlaneDatabase.get_connection() as conn:
                yield conn

    def panel_url(self, panel_id: str) -> str:
        """Public short URL of a handle."""
        return f"{self.base_url}/panel/{panel_id}"

    async def create(
        self,
        target_url: str,
        *,
        owner_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        visibility: PanelVisibility = PanelVisibility.PRIVATE,
        ttl_seconds: Optional[int] = None,
    ) -> PanelHandle:
        """Insert a new handle under a fresh random id.

        Raises:
            ValueError: If ``target_url`` is empty or the TTL exceeds the maximum.
            RuntimeError: If no unused id was found after ``MAX_ID_ATTEMPTS`` tries.
        """
        if not target_url or not isinstance(target_url, str):
            raise ValueError("target_url must be a non-empty string")

        ttl = ttl_seconds or self.default_ttl_seconds
        if ttl > self.max_ttl_seconds:
            raise ValueError(f"TTL cannot exceed the maximum of {self.max_ttl_seconds} seconds")

        visibility = PanelVisibility(visibility)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)

        sql = """
            INSERT INTO panels (
                id, user_id, osspath, title, description, is_public, expires_at
            ) VALUES (
                $1, $2, $3, $4, $5, $6, $7
            )
            ON CONFLICT (id) DO NOTHING
            RETURNING created_at
        """
        async with self._get_connection() as conn:
            for _ in range(MAX_ID_ATTEMPTS):
                panel_id = generate_secure_id(self.id_length)
                row = await conn.fetchrow(
                    sql,
                    panel_id,
                    owner_id or None,
                    target_url,
                    title or None,
                    description or None,
                    visibility is PanelVisibility.PUBLIC,
                    expires_at,
                )
                if row is not None:
                    break
                logger.debug(f"Panel id collision on {panel_id}, retrying")
            else:
                raise RuntimeError(
                    f"Could not generate a unique panel id after {MAX_ID_ATTEMPTS} attempts"
                )

        logger.info(f"Registered panel {panel_id} for owner {owner_id}")
        return PanelHandle(
            id=panel_id,
            url=self.panel_url(panel_id),
            target_url=target_url,
            owner_id=owner_id or None,
            title=title or None,
            description=description or None,
            visibility=visibility,
            created_at=row["created_at"],
            expires_at=expires_at,
        )

    async def resolve(self, panel_id: str) -> Optional[str]:
        """Return the target URL of an active, unexpired handle and count the visit.

        Unknown or malformed ids return None. A handle found past its expiry
        is marked expired and also returns None.
        """
        if not is_valid_id(panel_id, self.id_length):
            return None

        async with self._get_connection() as conn:
            row = await conn.fetchrow(
                "SELECT osspath, status, expires_at FROM panels WHERE id = $1", panel_id
            )
            if row is None:
                return None

            if row["status"] == PanelStatus.EXPIRED.value:
                return None

            if _is_expired(row["expires_at"]):
                await conn.execute(
                    "UPDATE panels SET status = 'expired', updated_at = NOW() WHERE id = $1",
                    panel_id,
                )
                logger.info(f"Panel {panel_id} expired")
                return None

            await conn.execute(
                "UPDATE panels SET visit_count = visit_count + 1 WHERE id = $1", panel_id
            )
            return row["osspath"]

    async def get(self, panel_id: str) -> Optional[PanelHandle]:
        """Return the handle without counting a visit.

        Raises:
            ValueError: If ``panel_id`` is not a well-formed id.
        """
        if not is_valid_id(panel_id, self.id_length):
            raise ValueError(f"Invalid panel id: {panel_id!r}")

        async with self._get_connection() as conn:
            row = await conn.fetchrow("SELECT * FROM panels WHERE id = $1", panel_id)
        return self._row_to_handle(row) if row else None

    async def list_for_owner(
        self,
        owner_id: str,
        page: int = 1,
        limit: int = 10,
        status: StatusFilter = "all",
        visibility: Optional[PanelVisibility] = None,
    ) -> PanelPage:
        """Page through an owner's handles, newest first. ``limit`` is capped at 100."""
        if not owner_id:
            raise ValueError("owner_id must be provided")

        safe_page = max(1, int(page or 1))
        safe_limit = min(MAX_PAGE_SIZE, max(1, int(limit or 10)))

        conditions: List[str] = ["user_id = $1"]
        params: List[Any] = [owner_id]
        if status == "active":
            conditions.append("status = 'active' AND (expires_at IS NULL OR expires_at > NOW())")
        elif status == "expired":
            conditions.append("(status = 'expired' OR expires_at <= NOW())")
        if visibility is not None:
            params.append(PanelVisibility(visibility) is PanelVisibility.PUBLIC)
            conditions.append(f"is_public = ${len(params)}")
        where = " AND ".join(conditions)

        offset = (safe_page - 1) * safe_limit
        async with self._get_connection() as conn:
            total = await conn.fetchval(f"SELECT COUNT(*) FROM panels WHERE {where}", *params)
            rows = await conn.fetch(
                f"SELECT * FROM panels WHERE {where} "
                f"ORDER BY created_at DESC LIMIT {safe_limit} OFFSET {offset}",
                *params,
            )

        total = int(total or 0)
        return PanelPage(
            panels=[self._row_to_handle(row) for row in rows],
            total=total,
            page=safe_page,
            limit=safe_limit,
            has_more=total > safe_page * safe_limit,
        )

    async def update(
        self,
        panel_id: str,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        visibility: Optional[PanelVisibility] = None,
    ) -> None:
        """Update display fields of a handle.

        Raises:
            ValueError: If nothing is to be updated or the handle does not exist.
        """
        assignments: List[str] = []
        params: List[Any] = []
        if title is not None:
            params.append(title)
            assignments.append(f"title = ${len(params)}")
        if description is not None:
            params.append(description)
            assignments.append(f"description = ${len(params)}")
        if visibility is not None:
            params.append(PanelVisibility(visibility) is PanelVisibility.PUBLIC)
            assignments.append(f"is_public = ${len(params)}")
        if not assignments:
            raise ValueError("No fields to update")

        params.append(panel_id)
        sql = (
            f"UPDATE panels SET {', '.join(assignments)}, updated_at = NOW() "
            f"WHERE id = ${len(params)}"
        )
        async with self._get_connection() as conn:
            status = await conn.execute(sql, *params)
        if _affected(status) == 0:
            raise ValueError(f"Panel {panel_id} does not exist")

    async def expire_stale(self) -> int:
        """Mark every active handle past its expiry as expired. Returns the count."""
        async with self._get_connection() as conn:
            status = await conn.execute(
                "UPDATE panels SET status = 'expired', updated_at = NOW() "
                "WHERE status = 'active' AND expires_at < NOW()"
            )
        count = _affected(status)
        logger.info(f"Marked {count} panels as expired")
        return count

    async def purge_expired(self, retention_days: int = 30, batch_size: int = 1000) -> int:
        """Delete expired handles older than ``retention_days`` in batches."""
        sql = """
            DELETE FROM panels WHERE id IN (
                SELECT id FROM panels
                WHERE status = 'expired'
                AND created_at < NOW() - make_interval(days => $1)
                LIMIT $2
            )
        """
        total = 0
        async with self._get_connection() as conn:
            while True:
                deleted = _affected(await conn.execute(sql, retention_days, batch_size))
                total += deleted
                if deleted < batch_size:
                    break
        logger.info(f"Deleted {total} expired panels")
        return total

    def _row_to_handle(self, row: Any) -> PanelHandle:
        status = PanelStatus(row["status"])
        if _is_expired(row["expires_at"]):
            status = PanelStatus.EXPIRED
        return PanelHandle(
            id=row["id"],
            url=self.panel_url(row["id"]),
            target_url=row["osspath"],
            owner_id=row["user_id"],
            title=row["title"],
            description=row["description"],
            visibility=PanelVisibility.PUBLIC if row["is_public"] else PanelVisibility.PRIVATE,
            created_at=row["created_at"],
            expires_at=row["expires_at"],
            status=status,
            visit_count=row["visit_count"] or 0,
        )


def _is_expired(expires_at: Optional[datetime]) -> bool:
    if expires_at is None:
        return False
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= datetime.now(timezone.utc)


def _affected(status: Optional[str]) -> int:
    parts = (status or "").split()
    return int(parts[-1]) if parts and parts[-1].isdigit() else 0
