"""Response caching"""

from .cache_service import (
    ResponseCache,
    AIResponseCache,
    fingerprint,
    content_ttl_minutes,
)

__all__ = [
    "ResponseCache",
    "AIResponseCache",
    "fingerprint",
    "content_ttl_minutes",
]
