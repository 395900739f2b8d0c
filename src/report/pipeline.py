"""Sequential statement-to-panel pipeline.

guard -> connector.execute -> inference -> renderer -> publisher

Each stage either returns its value or raises a typed error; no stage runs
concurrently with another and nothing is retried.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from common.errors import ErrorCode, PolicyViolationError
from dal.factory import DescriptorLike, get_connector
from dal.models import ExecutionResult
from dal.util.read_only import enforce_read_only_sql
from report.inference import infer_schema
from report.models import AxisLabels, ChartType, StyleConfig, VisualizationRequest
from report.publisher import DEFAULT_PANEL_TITLE, Publisher
from report.renderer import generate_file_name, render_report

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VisualizationResult:
    """Outcome of charting and publishing one request."""

    panel_url: str
    panel_id: str
    target_url: str
    chart_type: ChartType
    chart_type_name: str


async def run_query(descriptor: DescriptorLike, database: str, statement: str) -> ExecutionResult:
    """Check ``statement`` against the read-only guard, then execute it.

    Raises:
        PolicyViolationError: If the statement is not read-only or the engine is unsupported.
        DriverError: If the driver fails.
    """
    enforce_read_only_sql(statement)
    connector = get_connector(descriptor)
    return await connector.execute(database, statement)


def request_from_result(
    result: ExecutionResult,
    *,
    chart_type: Union[ChartType, str] = ChartType.AUTO,
    title: Optional[str] = None,
    axis_labels: Optional[AxisLabels] = None,
    style: Optional[StyleConfig] = None,
) -> VisualizationRequest:
    """Turn a row-set into a visualization request with an inferred schema."""
    if not result.is_row_set:
        raise PolicyViolationError(
            "Only statements that return rows can be visualized",
            code=ErrorCode.READONLY_VIOLATION,
        )
    columns = result.column_names()
    rows = result.as_lists()
    return VisualizationRequest(
        rows=rows,
        columns=infer_schema(columns, rows),
        chart_type=ChartType(chart_type),
        title=title,
        axis_labels=axis_labels,
        style=style or StyleConfig(),
    )


async def create_visualization(
    request: VisualizationRequest,
    publisher: Publisher,
    *,
    owner_id: str,
    display_name: str,
    ttl_seconds: Optional[int] = None,
) -> VisualizationResult:
    """Render ``request`` and publish it as a private panel."""
    title = request.title or DEFAULT_PANEL_TITLE
    rendered = render_report(request.model_copy(update={"title": title}))
    logger.info(
        f"Final chart type for {display_name}: {rendered.chart_type.value} "
        f"(requested {request.chart_type.value})"
    )

    published = await publisher.publish(
        rendered.content,
        generate_file_name(rendered.chart_type),
        owner_id=owner_id,
        display_name=display_name,
        chart_type=rendered.chart_type,
        title=title,
        ttl_seconds=ttl_seconds,
    )
    return VisualizationResult(
        panel_url=published.url,
        panel_id=published.handle_id,
        target_url=published.target_url,
        chart_type=rendered.chart_type,
        chart_type_name=rendered.chart_type_name,
    )


async def query_to_panel(
    descriptor: DescriptorLike,
    database: str,
    statement: str,
    publisher: Publisher,
    *,
    owner_id: str,
    display_name: str,
    chart_type: Union[ChartType, str] = ChartType.AUTO,
    title: Optional[str] = None,
    axis_labels: Optional[AxisLabels] = None,
    style: Optional[StyleConfig] = None,
) -> VisualizationResult:
    """Run a read-only statement and publish its rows as a chart."""
    result = await run_query(descriptor, database, statement)
    request = request_from_result(
        result, chart_type=chart_type, title=title, axis_labels=axis_labels, style=style
    )
    return await create_visualization(
        request, publisher, owner_id=owner_id, display_name=display_name
    )


def result_payload(result: VisualizationResult) -> Dict[str, Any]:
    """JSON-friendly view of a visualization result."""
    return {
        "panelUrl": result.panel_url,
        "panelId": result.panel_id,
        "targetUrl": result.target_url,
        "chartType": result.chart_type.value,
        "chartTypeName": result.chart_type_name,
    }
