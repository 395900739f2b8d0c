"""Canonical error codes for connector, rendering and publishing flows."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Bounded canonical error codes for external contracts and logging."""

    READONLY_VIOLATION = "READONLY_VIOLATION"
    UNSUPPORTED_ENGINE = "UNSUPPORTED_ENGINE"
    DB_DRIVER_ERROR = "DB_DRIVER_ERROR"
    DEPENDENCY_UNAVAILABLE = "DEPENDENCY_UNAVAILABLE"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    PANEL_REGISTRATION_FAILED = "PANEL_REGISTRATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


_CODE_GROUPS: dict[ErrorCode, str] = {
    ErrorCode.READONLY_VIOLATION: "POLICY",
    ErrorCode.UNSUPPORTED_ENGINE: "POLICY",
    ErrorCode.DB_DRIVER_ERROR: "DB",
    ErrorCode.DEPENDENCY_UNAVAILABLE: "DEPENDENCY",
    ErrorCode.UPLOAD_FAILED: "PUBLISH",
    ErrorCode.PANEL_REGISTRATION_FAILED: "PUBLISH",
    ErrorCode.INTERNAL_ERROR: "INTERNAL",
}


def parse_error_code(
    value: Any,
    *,
    fallback: ErrorCode = ErrorCode.INTERNAL_ERROR,
) -> ErrorCode:
    """Parse string-like values to `ErrorCode` with safe fallback."""
    if isinstance(value, ErrorCode):
        return value
    if value is None:
        return fallback
    try:
        return ErrorCode(str(value).strip())
    except ValueError:
        return fallback


def error_code_group(value: Any) -> str:
    """Return a stable coarse grouping for log and telemetry dimensions."""
    parsed = parse_error_code(value)
    return _CODE_GROUPS.get(parsed, "INTERNAL")
