"""Common error taxonomy helpers."""

from common.errors.error_codes import ErrorCode, error_code_group, parse_error_code
from common.errors.exceptions import (
    DependencyUnavailableError,
    DriverError,
    PanelRegistrationError,
    PolicyViolationError,
    PublishError,
    SqlPanelError,
    UploadError,
)

__all__ = [
    "DependencyUnavailableError",
    "DriverError",
    "ErrorCode",
    "PanelRegistrationError",
    "PolicyViolationError",
    "PublishError",
    "SqlPanelError",
    "UploadError",
    "error_code_group",
    "parse_error_code",
]
