"""Chart.js configuration builders.

Every builder is a pure function of its inputs: defaults are deep-copied,
cell values are converted to JSON-native values, and nothing depends on the
clock or on global state. Rendering a configuration and parsing it back
therefore yields the same structure the builder returned.
"""

import copy
import math
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from report.inference import resolve_chart_type, to_number
from report.models import ChartType, SchemaField, SemanticType, VisualizationRequest
from report.themes import apply_style_options, apply_theme_to_chart, get_theme

DEFAULT_CHART_TITLE = "数据可视化图表"
DEFAULT_X_LABEL = "X轴"
DEFAULT_Y_LABEL = "Y轴"
DEFAULT_SERIES_LABEL = "Value"

CHART_TYPE_NAMES: Dict[ChartType, str] = {
    ChartType.LINE: "折线图",
    ChartType.BAR: "柱状图",
    ChartType.PIE: "饼图",
    ChartType.SCATTER: "散点图",
    ChartType.RADAR: "雷达图",
    ChartType.AREA: "面积图",
    ChartType.HEATMAP: "热力图",
    ChartType.BUBBLE: "气泡图",
    ChartType.AUTO: "自动",
}

DEFAULT_CHART_OPTIONS: Dict[str, Any] = {
    "responsive": True,
    "maintainAspectRatio": False,
    "plugins": {
        "legend": {"display": True, "position": "top"},
        "tooltip": {"enabled": True},
    },
    "scales": {},
}

AXIS_CHART_TYPES = frozenset(
    {ChartType.LINE, ChartType.BAR, ChartType.SCATTER, ChartType.AREA, ChartType.BUBBLE}
)

PIE_COLORS = [
    "rgba(255, 99, 132, 0.8)",
    "rgba(54, 162, 235, 0.8)",
    "rgba(255, 206, 86, 0.8)",
    "rgba(75, 192, 192, 0.8)",
    "rgba(153, 102, 255, 0.8)",
    "rgba(255, 159, 64, 0.8)",
]


def chart_type_name(chart_type: ChartType) -> str:
    """Localized display name of a chart type."""
    return CHART_TYPE_NAMES[ChartType(chart_type)]


def json_value(value: Any) -> Any:
    """Convert a cell value to a JSON-native value."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        if value == value.to_integral_value():
            return int(value)
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _measure_values(rows: Sequence[Sequence[Any]], index: int, field: Optional[SchemaField]):
    values = [json_value(row[index]) if index < len(row) else None for row in rows]
    if field is not None and field.type == SemanticType.NUMBER:
        return [to_number(v) if v is not None else None for v in values]
    return values


def _base_options(title: Optional[str]) -> Dict[str, Any]:
    options = copy.deepcopy(DEFAULT_CHART_OPTIONS)
    options["plugins"]["title"] = {
        "display": bool(title),
        "text": title or DEFAULT_CHART_TITLE,
        "font": {"size": 16, "weight": "bold"},
    }
    return options


def _bubble_points(labels: List[Any], values: List[Any]) -> List[Dict[str, Any]]:
    magnitudes = [abs(v) if isinstance(v, (int, float)) else 0 for v in values]
    peak = max(magnitudes, default=0)
    return [
        {"x": x, "y": y, "r": (m / peak * 20) if peak else 0}
        for x, y, m in zip(labels, values, magnitudes)
    ]


def _heatmap_colors(values: List[Any]) -> List[str]:
    magnitudes = [abs(v) if isinstance(v, (int, float)) else 0 for v in values]
    peak = max(magnitudes, default=0)
    return [
        f"rgba(255, 99, 132, {round(0.2 + 0.8 * (m / peak), 3) if peak else 0.2})"
        for m in magnitudes
    ]


def build_chart_config(request: VisualizationRequest) -> Dict[str, Any]:
    """Build the Chart.js configuration for a visualization request.

    ``auto`` is resolved first. The first column provides labels and the
    second the values. Area charts render as filled lines and heatmaps as
    bars shaded by magnitude.
    """
    rows, schema = request.rows, request.columns
    chart_type = resolve_chart_type(request.chart_type, schema, rows)
    x_field = schema[0] if schema else None
    y_field = schema[1] if len(schema) > 1 else None
    series_label = y_field.name if y_field else DEFAULT_SERIES_LABEL

    labels = _measure_values(rows, 0, None)
    values = _measure_values(rows, 1, y_field)

    dataset: Dict[str, Any] = {"label": series_label, "data": values}
    config: Dict[str, Any] = {
        "type": chart_type.value,
        "data": {"labels": labels, "datasets": [dataset]},
        "options": _base_options(request.title),
    }

    if chart_type is ChartType.LINE:
        dataset.update(
            borderColor="rgb(75, 192, 192)",
            backgroundColor="rgba(75, 192, 192, 0.1)",
            tension=0.4,
            fill=False,
            pointBackgroundColor="rgb(75, 192, 192)",
            pointBorderColor="#fff",
            pointBorderWidth=2,
            pointRadius=6,
        )
    elif chart_type is ChartType.BAR:
        dataset.update(
            backgroundColor="rgba(54, 162, 235, 0.8)",
            borderColor="rgb(54, 162, 235)",
            borderWidth=1,
        )
    elif chart_type is ChartType.PIE:
        config["data"]["datasets"] = [
            {"data": values, "backgroundColor": list(PIE_COLORS), "borderWidth": 2}
        ]
    elif chart_type is ChartType.SCATTER:
        config["data"] = {
            "datasets": [
                {
                    "label": series_label,
                    "data": [{"x": x, "y": y} for x, y in zip(labels, values)],
                    "backgroundColor": "rgba(255, 99, 132, 0.8)",
                    "borderColor": "rgb(255, 99, 132)",
                    "pointRadius": 8,
                    "pointHoverRadius": 10,
                }
            ]
        }
    elif chart_type is ChartType.AREA:
        dataset.update(
            borderColor="rgb(54, 162, 235)",
            backgroundColor="rgba(54, 162, 235, 0.3)",
            fill=True,
            tension=0.4,
        )
        config["type"] = ChartType.LINE.value
    elif chart_type is ChartType.RADAR:
        dataset.update(
            borderColor="rgb(255, 99, 132)",
            backgroundColor="rgba(255, 99, 132, 0.2)",
            pointBackgroundColor="rgb(255, 99, 132)",
            pointBorderColor="#fff",
            pointHoverBackgroundColor="#fff",
            pointHoverBorderColor="rgb(255, 99, 132)",
        )
    elif chart_type is ChartType.BUBBLE:
        config["data"] = {
            "datasets": [
                {
                    "label": series_label,
                    "data": _bubble_points(labels, values),
                    "backgroundColor": "rgba(54, 162, 235, 0.5)",
                    "borderColor": "rgb(54, 162, 235)",
                }
            ]
        }
    elif chart_type is ChartType.HEATMAP:
        dataset.update(backgroundColor=_heatmap_colors(values), borderWidth=0)
        config["type"] = ChartType.BAR.value

    axis = request.axis_labels
    if axis is not None and chart_type in AXIS_CHART_TYPES:
        config["options"]["scales"] = {
            "x": {
                "title": {
                    "display": True,
                    "text": axis.x or (x_field.name if x_field else DEFAULT_X_LABEL),
                }
            },
            "y": {
                "title": {
                    "display": True,
                    "text": axis.y or (y_field.name if y_field else DEFAULT_Y_LABEL),
                }
            },
        }

    style = request.style
    if style.theme:
        apply_theme_to_chart(config, get_theme(style.theme))
    apply_style_options(config, style)
    return config


def build_multi_series_config(
    rows: Sequence[Sequence[Any]],
    schema: Sequence[SchemaField],
    chart_type: ChartType,
    options: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """One dataset per measure column, keyed by distinct first-column labels.

    When a label repeats, the first row carrying it wins.
    """
    labels: List[Any] = []
    first_row: Dict[Any, Sequence[Any]] = {}
    for row in rows:
        label = json_value(row[0])
        if label not in first_row:
            first_row[label] = row
            labels.append(label)

    datasets = []
    for index, field in enumerate(schema[1:]):
        column = index + 1
        values = _measure_values([first_row[label] for label in labels], column, field)
        red, green, blue = 50 + index * 30, 100 + index * 20, 200 - index * 25
        datasets.append(
            {
                "label": field.name,
                "data": values,
                "backgroundColor": f"rgba({red}, {green}, {blue}, 0.6)",
                "borderColor": f"rgba({red}, {green}, {blue}, 1)",
            }
        )

    merged_options = copy.deepcopy(DEFAULT_CHART_OPTIONS)
    merged_options.update(copy.deepcopy(options or {}))
    return {
        "type": ChartType(chart_type).value,
        "data": {"labels": labels, "datasets": datasets},
        "options": merged_options,
    }


def build_combo_chart_config(
    rows: Sequence[Sequence[Any]],
    schema: Sequence[SchemaField],
    chart_types: Sequence[str],
    options: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Mixed bar/line chart with one y-axis per measure column (``y0``, ``y1``, ...)."""
    labels = _measure_values(rows, 0, None)
    datasets = []
    scales: Dict[str, Any] = {
        "x": {
            "title": {
                "display": True,
                "text": schema[0].name if schema else DEFAULT_X_LABEL,
            }
        }
    }
    for index, field in enumerate(schema[1:]):
        series_type = chart_types[index] if index < len(chart_types) else ChartType.LINE.value
        red, green, blue = 54 + index * 50, 162 - index * 30, 235 - index * 40
        datasets.append(
            {
                "label": field.name,
                "data": _measure_values(rows, index + 1, field),
                "type": series_type,
                "yAxisID": f"y{index}",
                "backgroundColor": (
                    f"rgba({red}, {green}, {blue}, 0.6)" if series_type == "bar" else "transparent"
                ),
                "borderColor": f"rgba({red}, {green}, {blue}, 1)",
                "borderWidth": 2,
            }
        )
        scales[f"y{index}"] = {
            "type": "linear",
            "display": True,
            "position": "left" if index == 0 else "right",
            "title": {"display": True, "text": field.name},
        }

    merged_options = copy.deepcopy(DEFAULT_CHART_OPTIONS)
    merged_options.update(copy.deepcopy(options or {}))
    merged_options["scales"] = scales
    return {
        "type": ChartType.BAR.value,
        "data": {"labels": labels, "datasets": datasets},
        "options": merged_options,
    }
