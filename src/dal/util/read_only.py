"""Read-only statement guard applied before any statement reaches a connector.

The guard is lexical on purpose: comments are stripped, multi-statement input
is refused, any mutation keyword anywhere is refused, and only statements that
start like a query are accepted. It does not parse SQL, so cleverly
obfuscated DML can slip past it.
"""

import logging
import re

from opentelemetry import trace

from common.errors import ErrorCode, PolicyViolationError
from common.observability import report_metrics

logger = logging.getLogger(__name__)

FORBIDDEN_KEYWORDS = (
    "insert",
    "update",
    "delete",
    "create",
    "alter",
    "drop",
    "truncate",
    "grant",
    "revoke",
    "replace",
    "merge",
    "call",
    "do",
    "use",
    "set",
    "commit",
    "rollback",
)

READ_ONLY_REJECTION_MESSAGE = (
    "Only query statements (SELECT / WITH ... SELECT / EXPLAIN SELECT) are allowed; "
    "the statement was rejected."
)

_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", flags=re.DOTALL)
_LINE_COMMENT_RE = re.compile(r"(--|#)[^\n]*")
_FORBIDDEN_RE = re.compile(r"\b(?:" + "|".join(FORBIDDEN_KEYWORDS) + r")\b")
_ALLOWED_PREFIX_RE = re.compile(
    r"^(?:with\s.*?\bselect\s|select\s|explain\s+(?:analyze\s+)?select\s)", flags=re.DOTALL
)


def strip_sql_comments(sql: str) -> str:
    """Remove block and line comments, then trim and lower-case."""
    without_blocks = _BLOCK_COMMENT_RE.sub(" ", sql or "")
    return _LINE_COMMENT_RE.sub("", without_blocks).strip().lower()


def is_read_only_sql(sql: str) -> bool:
    """Return True only for single query statements free of mutation keywords."""
    if not isinstance(sql, str):
        return False

    cleaned = strip_sql_comments(sql)
    if not cleaned:
        return False

    segments = [segment for segment in cleaned.split(";") if segment.strip()]
    if len(segments) != 1:
        return False

    if _FORBIDDEN_RE.search(cleaned):
        return False

    return bool(_ALLOWED_PREFIX_RE.match(segments[0].strip()))


def find_forbidden_keyword(sql: str) -> str | None:
    """Return the first forbidden keyword present after comment stripping, if any."""
    match = _FORBIDDEN_RE.search(strip_sql_comments(sql if isinstance(sql, str) else ""))
    return match.group(0) if match else None


def enforce_read_only_sql(sql: str) -> None:
    """Raise PolicyViolationError when ``sql`` fails the read-only guard."""
    if is_read_only_sql(sql):
        return

    keyword = find_forbidden_keyword(sql)
    logger.warning(
        "Rejected non read-only statement (keyword=%s)", keyword.upper() if keyword else None
    )
    report_metrics.guard_rejected(keyword)

    span = trace.get_current_span()
    if span and span.is_recording():
        span.add_event(
            "dal.read_only.blocked",
            attributes={"keyword": keyword or "", "code": ErrorCode.READONLY_VIOLATION.value},
        )

    details = {"keyword": keyword.upper()} if keyword else None
    raise PolicyViolationError(
        READ_ONLY_REJECTION_MESSAGE, code=ErrorCode.READONLY_VIOLATION, details=details
    )
