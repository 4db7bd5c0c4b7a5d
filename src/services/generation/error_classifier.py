"""Keyword-driven classification of provider failures

Matching is a case-insensitive substring test against two disjoint
keyword sets. Status-code keywords must stand alone as a number, so
"5000" never matches "500". Permanent wins when a message matches both;
a message that matches neither is UNKNOWN and is not retried.
"""

import re
from enum import Enum

TRANSIENT_ERROR_KEYWORDS = frozenset({
    "rate limit",
    "rate_limit",
    "too many requests",
    "429",
    "timeout",
    "timed out",
    "etimedout",
    "service unavailable",
    "temporarily unavailable",
    "overloaded",
    "503",
    "502",
    "504",
    "500",
    "internal server error",
    "bad gateway",
    "fetch failed",
    "econnreset",
    "connection reset",
    "connection error",
    "connection refused",
})

PERMANENT_ERROR_KEYWORDS = frozenset({
    "invalid api key",
    "invalid x-api-key",
    "incorrect api key",
    "unauthorized",
    "401",
    "api key is required",
    "forbidden",
    "403",
    "invalid credentials",
    "authentication",
    "permission denied",
})


class ErrorCategory(str, Enum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


def _compile(keywords: frozenset) -> "re.Pattern[str]":
    parts = []
    for keyword in sorted(keywords):
        escaped = re.escape(keyword)
        parts.append(rf"(?<!\d){escaped}(?!\d)" if keyword.isdigit() else escaped)
    return re.compile("|".join(parts))


_TRANSIENT_PATTERN = _compile(TRANSIENT_ERROR_KEYWORDS)
_PERMANENT_PATTERN = _compile(PERMANENT_ERROR_KEYWORDS)


def _matches(message: str, pattern: "re.Pattern[str]") -> bool:
    return pattern.search((message or "").lower()) is not None


def is_permanent(message: str) -> bool:
    return _matches(message, _PERMANENT_PATTERN)


def is_transient(message: str) -> bool:
    """True only for messages worth retrying"""
    return not is_permanent(message) and _matches(message, _TRANSIENT_PATTERN)


def classify(message: str) -> ErrorCategory:
    if is_permanent(message):
        return ErrorCategory.PERMANENT
    if _matches(message, _TRANSIENT_PATTERN):
        return ErrorCategory.TRANSIENT
    return ErrorCategory.UNKNOWN


def classify_exception(error: BaseException) -> ErrorCategory:
    return classify(str(error))
