"""Semantic type inference and chart type recommendation.

Types are inferred from values alone. A column is ``number`` when every
non-empty value looks numeric, else ``date`` when every value looks like a
date, else ``boolean`` when every value looks boolean, else ``string``.
Inference never fails; anything unrecognized degrades to ``string``.
"""

import math
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Sequence, Union

from report.models import ChartType, SchemaField, SemanticType

PIE_MAX_CATEGORIES = 8

_NUMBER_RE = re.compile(r"^[+-]?\d*\.?\d+([eE][+-]?\d+)?$")
_PERCENT_RE = re.compile(r"^[+-]?\d*\.?\d+%$")
_CURRENCY_RE = re.compile(r"^[¥$€£]\d+(\.?\d{2})?$")

_DATE_PATTERNS = (
    re.compile(r"^(?P<y>\d{4})-(?P<m>\d{2})-(?P<d>\d{2})$"),
    re.compile(r"^(?P<y>\d{4})/(?P<m>\d{2})/(?P<d>\d{2})$"),
    re.compile(r"^(?P<m>\d{2})/(?P<d>\d{2})/(?P<y>\d{4})$"),
    re.compile(r"^(?P<m>\d{2})-(?P<d>\d{2})-(?P<y>\d{4})$"),
    re.compile(r"^(?P<y>\d{4})-(?P<m>\d{2})-(?P<d>\d{2})T\d{2}:\d{2}:\d{2}"),
    re.compile(r"^(?P<y>\d{4})年(?P<m>\d{1,2})月(?P<d>\d{1,2})日$"),
)

BOOLEAN_WORDS = frozenset({"true", "false", "yes", "no", "y", "n", "是", "否", "1", "0"})

_DECLARED_TYPES = {
    SemanticType.NUMBER: {
        "number",
        "int",
        "integer",
        "bigint",
        "smallint",
        "float",
        "double",
        "real",
        "decimal",
        "numeric",
    },
    SemanticType.DATE: {"date", "datetime", "timestamp", "timestamptz"},
    SemanticType.BOOLEAN: {"boolean", "bool"},
}


def _year_in_range(year: int) -> bool:
    return 1900 < year < 2100


def is_numeric(value: Any) -> bool:
    """Plain, scientific, percentage and currency numbers (native numbers too)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return math.isfinite(value)
    if not isinstance(value, str):
        return False

    trimmed = value.strip()
    if not trimmed:
        return False
    if _NUMBER_RE.match(trimmed):
        return math.isfinite(float(trimmed))
    return bool(_PERCENT_RE.match(trimmed) or _CURRENCY_RE.match(trimmed))


def is_date_like(value: Any) -> bool:
    """Recognized date formats with a valid calendar date and a year in (1900, 2100)."""
    if isinstance(value, (date, datetime)):
        return _year_in_range(value.year)
    if not isinstance(value, str):
        return False

    trimmed = value.strip()
    for pattern in _DATE_PATTERNS:
        match = pattern.match(trimmed)
        if not match:
            continue
        year, month, day = (int(match.group(k)) for k in ("y", "m", "d"))
        try:
            date(year, month, day)
        except ValueError:
            return False
        return _year_in_range(year)
    return False


def is_boolean_like(value: Any) -> bool:
    """Native booleans and the usual yes/no words, case-insensitively."""
    if isinstance(value, bool):
        return True
    if not isinstance(value, str):
        return False
    return value.strip().lower() in BOOLEAN_WORDS


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def identify_semantic_type(values: Iterable[Any]) -> SemanticType:
    """Infer the semantic type of one column's values."""
    present = [v for v in values if not _is_blank(v)]
    if not present:
        return SemanticType.STRING
    if all(is_numeric(v) for v in present):
        return SemanticType.NUMBER
    if all(is_date_like(v) for v in present):
        return SemanticType.DATE
    if all(is_boolean_like(v) for v in present):
        return SemanticType.BOOLEAN
    return SemanticType.STRING


def infer_schema(column_names: Sequence[str], rows: Sequence[Sequence[Any]]) -> List[SchemaField]:
    """Build a schema for ``rows`` by inferring each column independently."""
    return [
        SchemaField(
            name=name,
            type=identify_semantic_type(row[index] for row in rows if index < len(row)),
        )
        for index, name in enumerate(column_names)
    ]


def normalize_declared_type(declared: Optional[str]) -> SemanticType:
    """Map a caller-declared type name (``int``, ``datetime``, ...) to a semantic type."""
    lowered = (declared or "").strip().lower()
    for semantic_type, names in _DECLARED_TYPES.items():
        if lowered in names:
            return semantic_type
    return SemanticType.STRING


def _distinct_count(values: Iterable[Any]) -> int:
    seen = set()
    for value in values:
        try:
            seen.add(value)
        except TypeError:
            seen.add(repr(value))
    return len(seen)


def recommend_chart_type(
    schema: Sequence[SchemaField], rows: Sequence[Sequence[Any]]
) -> ChartType:
    """Pick a chart type from the first two fields.

    number/number gives scatter, date/number gives line, string/number gives
    pie for at most eight distinct categories and bar otherwise. Everything
    else, including fewer than two fields, gives bar.
    """
    if len(schema) < 2:
        return ChartType.BAR

    x_type, y_type = schema[0].type, schema[1].type
    if x_type == SemanticType.NUMBER and y_type == SemanticType.NUMBER:
        return ChartType.SCATTER
    if x_type == SemanticType.DATE and y_type == SemanticType.NUMBER:
        return ChartType.LINE
    if x_type == SemanticType.STRING and y_type == SemanticType.NUMBER:
        categories = _distinct_count(row[0] for row in rows if row)
        return ChartType.PIE if categories <= PIE_MAX_CATEGORIES else ChartType.BAR
    return ChartType.BAR


def resolve_chart_type(
    requested: Union[ChartType, str, None],
    schema: Sequence[SchemaField],
    rows: Sequence[Sequence[Any]],
) -> ChartType:
    """Return the requested chart type, or the recommendation when it is ``auto``."""
    chart_type = ChartType(requested or ChartType.AUTO)
    if chart_type is ChartType.AUTO:
        return recommend_chart_type(schema, rows)
    return chart_type


def to_number(value: Any) -> Optional[float]:
    """Best-effort numeric value of a numeric-looking cell, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if isinstance(value, Decimal):
        return float(value) if value.is_finite() else None
    if not isinstance(value, str) or not is_numeric(value):
        return None

    cleaned = value.strip().rstrip("%").lstrip("¥$€£")
    number = float(cleaned)
    return int(number) if number.is_integer() and "." not in cleaned else number
