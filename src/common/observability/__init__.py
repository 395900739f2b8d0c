"""Shared observability helpers."""

from common.observability.metrics import report_metrics

__all__ = ["report_metrics"]
