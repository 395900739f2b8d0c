"""Counters for guard rejections and report publishing.

Counters are emitted only when SQLPANEL_METRICS_ENABLED is truthy, or when it
is unset and an OTLP exporter endpoint is configured. Every counter the
project emits is declared in ``COUNTERS``.
"""

import logging
import os
from typing import Any, Dict, Optional

from opentelemetry import metrics

from common.config.env import get_env_bool

logger = logging.getLogger(__name__)

METRICS_ENABLED_ENV = "SQLPANEL_METRICS_ENABLED"

GUARD_REJECTIONS = "sqlpanel.guard.rejections"
PUBLISH_SUCCESS = "sqlpanel.publish.success"
PUBLISH_FAILURES = "sqlpanel.publish.failures"

COUNTERS: Dict[str, str] = {
    GUARD_REJECTIONS: "Statements rejected by the read-only guard",
    PUBLISH_SUCCESS: "Reports uploaded and registered as panels",
    PUBLISH_FAILURES: "Publish attempts that failed, by stage",
}


def is_metrics_enabled(enabled_env_var: str) -> bool:
    """Explicit env override first, else whether an OTLP endpoint is configured."""
    raw = os.getenv(enabled_env_var)
    if raw is not None:
        try:
            return get_env_bool(enabled_env_var, False) is True
        except ValueError:
            logger.warning(f"Invalid {enabled_env_var} value '{raw}'; disabled.")
            return False
    if (os.getenv("OTEL_METRICS_EXPORTER") or "").strip().lower() == "none":
        return False
    return bool(
        (os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT") or "").strip()
        or (os.getenv("OTEL_EXPORTER_OTLP_METRICS_ENDPOINT") or "").strip()
    )


class ReportMetrics:
    """Lazily created OTEL counters for the names in ``COUNTERS``."""

    def __init__(self, meter: Any = None, enabled_env_var: str = METRICS_ENABLED_ENV):
        self._meter = meter
        self.enabled_env_var = enabled_env_var
        self._counters: Dict[str, Any] = {}

    def enabled(self) -> bool:
        return is_metrics_enabled(self.enabled_env_var)

    def _counter(self, name: str):
        counter = self._counters.get(name)
        if counter is None:
            if self._meter is None:
                self._meter = metrics.get_meter("sqlpanel")
            counter = self._meter.create_counter(name=name, description=COUNTERS[name], unit="1")
            self._counters[name] = counter
        return counter

    def add(self, name: str, attributes: Optional[Dict[str, str]] = None) -> None:
        """Increment counter ``name`` by one.

        Raises:
            KeyError: If ``name`` is not declared in ``COUNTERS``.
        """
        if name not in COUNTERS:
            raise KeyError(f"Undeclared counter: {name}")
        if not self.enabled():
            return
        clean = {k: v for k, v in (attributes or {}).items() if v is not None}
        self._counter(name).add(1, clean)

    def guard_rejected(self, keyword: Optional[str]) -> None:
        self.add(GUARD_REJECTIONS, {"keyword": keyword.upper() if keyword else None})

    def publish_failed(self, stage: str) -> None:
        self.add(PUBLISH_FAILURES, {"stage": stage})

    def published(self, chart_type: str) -> None:
        self.add(PUBLISH_SUCCESS, {"chart_type": chart_type})


report_metrics = ReportMetrics()
