"""Chart inference, report rendering and publishing."""

from report.inference import identify_semantic_type, infer_schema, recommend_chart_type
from report.models import ChartType, SchemaField, SemanticType, StyleConfig, VisualizationRequest
from report.renderer import render_report

__all__ = [
    "ChartType",
    "SchemaField",
    "SemanticType",
    "StyleConfig",
    "VisualizationRequest",
    "identify_semantic_type",
    "infer_schema",
    "recommend_chart_type",
    "render_report",
]
