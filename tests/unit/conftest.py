"""Unit test environment helpers."""

import pytest


@pytest.fixture(autouse=True)
def _minimal_env(monkeypatch):
    """Keep unit tests independent of the caller's environment."""
    for name in (
        "CONNECTOR_POOL_SIZE",
        "CONNECTOR_CACHE_SIZE",
        "DAL_TRACE_QUERIES",
        "SQLPANEL_METRICS_ENABLED",
        "OTEL_EXPORTER_OTLP_ENDPOINT",
        "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT",
        "OTEL_METRICS_EXPORTER",
        "PANEL_BASE_URL",
        "MINIO_PUBLIC_BASE_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_shared_state():
    """Reset cached settings and DAL singletons around each test."""
    from common.config.settings import get_settings
    from dal.factory import reset_singletons

    get_settings.cache_clear()
    reset_singletons()
    yield
    get_settings.cache_clear()
    reset_singletons()
