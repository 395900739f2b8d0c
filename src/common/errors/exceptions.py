"""Exception taxonomy shared by the DAL and the report pipeline.

Every error keeps the underlying message. Driver and collaborator failures
are chained with ``raise ... from exc`` so the original exception stays
reachable through ``__cause__``.
"""

from __future__ import annotations

from typing import Any, Optional

from common.errors.error_codes import ErrorCode


class SqlPanelError(Exception):
    """Base class carrying a canonical error code."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly payload for callers surfacing the error."""
        payload: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class PolicyViolationError(SqlPanelError, ValueError):
    """Statement rejected by the read-only guard or engine kind not resolvable."""

    code = ErrorCode.READONLY_VIOLATION

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode = ErrorCode.READONLY_VIOLATION,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=details)
        self.code = code


class DriverError(SqlPanelError, RuntimeError):
    """Connection, execution or introspection failure reported by a driver."""

    code = ErrorCode.DB_DRIVER_ERROR

    def __init__(self, message: str, *, provider: Optional[str] = None) -> None:
        super().__init__(message, details={"provider": provider} if provider else None)
        self.provider = provider


class DependencyUnavailableError(SqlPanelError, RuntimeError):
    """A collaborator required by the publisher is not initialized."""

    code = ErrorCode.DEPENDENCY_UNAVAILABLE


class PublishError(SqlPanelError, RuntimeError):
    """Base class for publishing failures."""


class UploadError(PublishError):
    """The content store rejected or failed the upload."""

    code = ErrorCode.UPLOAD_FAILED


class PanelRegistrationError(PublishError):
    """The panel registry failed to record a new handle."""

    code = ErrorCode.PANEL_REGISTRATION_FAILED
