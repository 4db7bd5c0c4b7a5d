"""Multi-provider text generation"""

from .exceptions import (
    GenerationError,
    ProviderError,
    PermanentProviderError,
    ProviderExhaustedError,
    AllProvidersFailedError,
    GenerationCancelled,
    UnsupportedProviderError,
)
from .error_classifier import ErrorCategory, classify, is_transient, is_permanent
from .retry_policy import RetryPolicy, backoff_delay
from .orchestrator import GenerationOrchestrator

__all__ = [
    "GenerationError",
    "ProviderError",
    "PermanentProviderError",
    "ProviderExhaustedError",
    "AllProvidersFailedError",
    "GenerationCancelled",
    "UnsupportedProviderError",
    "ErrorCategory",
    "classify",
    "is_transient",
    "is_permanent",
    "RetryPolicy",
    "backoff_delay",
    "GenerationOrchestrator",
]
