"""Render visualization requests into self-contained HTML documents."""

import html
import json
import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from importlib import resources
from typing import Any, Dict, Mapping, Optional, Union

from report.chart_config import build_chart_config, chart_type_name
from report.inference import resolve_chart_type
from report.models import ChartType, VisualizationRequest
from report.themes import get_theme

logger = logging.getLogger(__name__)

TEMPLATE_NAME = "chart-template.html"
DEFAULT_REPORT_TITLE = "数据可视化报告"

_TOKEN_RE = re.compile(r"\{\{([A-Z_]+)\}\}")
_CONFIG_SCRIPT_RE = re.compile(
    r'<script type="application/json" id="chart-config">(.*?)</script>', flags=re.DOTALL
)


@dataclass(frozen=True)
class RenderedReport:
    """A rendered document and the chart it contains."""

    content: bytes
    chart_type: ChartType
    chart_type_name: str
    chart_config: Dict[str, Any]


@lru_cache(maxsize=None)
def load_template(name: str = TEMPLATE_NAME) -> str:
    """Read a packaged template."""
    template = resources.files("report").joinpath("templates").joinpath(name)
    return template.read_text(encoding="utf-8")


def substitute_tokens(template: str, values: Mapping[str, str]) -> str:
    """Replace every ``{{TOKEN}}`` in one pass. Unknown tokens are left as they are."""

    def _replace(match: re.Match) -> str:
        return values.get(match.group(1), match.group(0))

    return _TOKEN_RE.sub(_replace, template)


def embed_json(config: Dict[str, Any]) -> str:
    """Serialize ``config`` for a ``<script type="application/json">`` block.

    ``<`` only occurs inside JSON strings, where ``\\u003c`` decodes to the same
    character, so ``</script>`` inside data cannot close the block.
    """
    text = json.dumps(config, ensure_ascii=False, indent=2, allow_nan=False)
    return text.replace("<", "\\u003c")


def extract_chart_config(document: Union[bytes, str]) -> Dict[str, Any]:
    """Parse the embedded chart configuration back out of a rendered document."""
    text = document.decode("utf-8") if isinstance(document, bytes) else document
    match = _CONFIG_SCRIPT_RE.search(text)
    if match is None:
        raise ValueError("Document has no embedded chart configuration")
    return json.loads(match.group(1))


def render_report(
    request: VisualizationRequest,
    *,
    generated_at: Optional[datetime] = None,
    template: Optional[str] = None,
) -> RenderedReport:
    """Render ``request`` into UTF-8 HTML using the packaged template and its theme."""
    chart_type = resolve_chart_type(request.chart_type, request.columns, request.rows)
    resolved = request.model_copy(update={"chart_type": chart_type})
    config = build_chart_config(resolved)
    theme = get_theme(request.style.theme)
    name = chart_type_name(chart_type)

    values = {
        "TITLE": html.escape(request.title or DEFAULT_REPORT_TITLE),
        "GENERATION_TIME": (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S"),
        "CHART_TYPE_NAME": html.escape(name),
        "CHART_CONFIG": embed_json(config),
    }
    values.update(theme.template_tokens())

    document = substitute_tokens(template if template is not None else load_template(), values)
    logger.info(
        f"Rendered {chart_type.value} report ({len(request.rows)} rows, theme {theme.key})"
    )
    return RenderedReport(
        content=document.encode("utf-8"),
        chart_type=chart_type,
        chart_type_name=name,
        chart_config=config,
    )


def generate_file_name(chart_type: ChartType, timestamp_ms: Optional[int] = None) -> str:
    """Return ``sql-chart-<type>-<epoch millis>.html``."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"sql-chart-{ChartType(chart_type).value}-{timestamp_ms}.html"
