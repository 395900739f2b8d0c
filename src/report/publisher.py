import logging
from dataclasses import dataclass
from typing import Optional

from common.errors import DependencyUnavailableError, PanelRegistrationError, UploadError
from common.interfaces import ContentStore, PanelRegistry
from common.observability import report_metrics
from dal.models import PanelVisibility
from report.chart_config import chart_type_name
from report.models import ChartType

logger = logging.getLogger(__name__)

DEFAULT_PANEL_TITLE = "查询结果可视化"


@dataclass(frozen=True)
class PublishResult:
    """Short panel URL and id for a published document, plus the document URL."""

    url: str
    handle_id: str
    target_url: str


def panel_description(display_name: str, chart_type: ChartType) -> str:
    """Description stored on a panel created from a chart."""
    return f"由 {display_name} 从 SQL Chat 创建的{chart_type_name(chart_type)}"


class Publisher:
    """Uploads rendered documents and registers a panel handle for each."""

    def __init__(
        self,
        content_store: Optional[ContentStore] = None,
        panel_registry: Optional[PanelRegistry] = None,
    ):
        self.content_store = content_store
        self.panel_registry = panel_registry

    async def publish(
        self,
        rendered: bytes,
        suggested_file_name: str,
        *,
        owner_id: str,
        display_name: str,
        chart_type: ChartType,
        title: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ) -> PublishResult:
        """Upload ``rendered`` then register a private panel pointing at it.

        Neither step is retried. A failed registration leaves the uploaded
        object in place.

        Raises:
            DependencyUnavailableError: If the content store or the registry is missing.
            UploadError: If the upload fails.
            PanelRegistrationError: If the registry rejects the handle.
        """
        if self.content_store is None or self.panel_registry is None:
            missing = [
                name
                for name, value in (
                    ("content store", self.content_store),
                    ("panel registry", self.panel_registry),
                )
                if value is None
            ]
            raise DependencyUnavailableError(
                f"Cannot publish report: {' and '.join(missing)} not initialized",
                details={"missing": missing},
            )

        try:
            upload = await self.content_store.upload_document(rendered, suggested_file_name)
        except Exception as exc:
            logger.error(f"Report upload failed: {exc}")
            report_metrics.publish_failed("upload")
            raise UploadError(f"Upload failed: {exc}") from exc

        try:
            handle = await self.panel_registry.create(
                upload.url,
                owner_id=str(owner_id),
                title=title or DEFAULT_PANEL_TITLE,
                description=panel_description(display_name, chart_type),
                visibility=PanelVisibility.PRIVATE,
                ttl_seconds=ttl_seconds,
            )
        except Exception as exc:
            logger.error(f"Panel registration failed for {upload.url}: {exc}")
            report_metrics.publish_failed("register")
            raise PanelRegistrationError(f"Panel registration failed: {exc}") from exc

        logger.info(f"Published report {upload.object_name} as panel {handle.id}")
        report_metrics.published(ChartType(chart_type).value)
        return PublishResult(url=handle.url, handle_id=handle.id, target_url=upload.url)
