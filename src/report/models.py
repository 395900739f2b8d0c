"""Request and schema models for chart inference and report rendering."""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class SemanticType(str, Enum):
    """Logical type of a column inferred from its values."""

    NUMBER = "number"
    STRING = "string"
    DATE = "date"
    BOOLEAN = "boolean"


class ChartType(str, Enum):
    """Chart vocabulary; AUTO asks the inference engine to pick one."""

    LINE = "line"
    BAR = "bar"
    PIE = "pie"
    SCATTER = "scatter"
    RADAR = "radar"
    AREA = "area"
    HEATMAP = "heatmap"
    BUBBLE = "bubble"
    AUTO = "auto"


class SchemaField(BaseModel):
    """One column of a visualization request."""

    name: str
    type: SemanticType = SemanticType.STRING
    description: Optional[str] = None


class AxisLabels(BaseModel):
    """Optional axis titles."""

    x: Optional[str] = None
    y: Optional[str] = None


class StyleConfig(BaseModel):
    """Presentation options. Accepts camelCase keys as well."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    theme: Optional[str] = None
    custom_colors: Optional[List[str]] = None
    animation: Optional[bool] = None
    responsive: Optional[bool] = None
    show_legend: Optional[bool] = None
    show_grid: Optional[bool] = None
    show_tooltips: Optional[bool] = None


class VisualizationRequest(BaseModel):
    """Rows plus column schema to be charted.

    ``columns`` is also accepted under the key ``schema``. Every row must be
    exactly as wide as ``columns``; row order is preserved into the chart.
    """

    model_config = ConfigDict(populate_by_name=True)

    rows: List[List[Any]] = Field(min_length=1)
    columns: List[SchemaField] = Field(alias="schema", min_length=1)
    chart_type: ChartType = Field(default=ChartType.AUTO, alias="chartType")
    title: Optional[str] = None
    axis_labels: Optional[AxisLabels] = Field(default=None, alias="axisLabels")
    style: StyleConfig = Field(default_factory=StyleConfig)

    @model_validator(mode="after")
    def _rows_match_schema(self) -> "VisualizationRequest":
        width = len(self.columns)
        for index, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(
                    f"Row {index} has {len(row)} values but the schema declares {width} fields"
                )
        return self
