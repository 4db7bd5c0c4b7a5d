"""Error taxonomy for provider calls and orchestration"""

from typing import List, Optional, Sequence, Tuple


class GenerationError(Exception):
    """Base exception for generation failures"""
    pass


class ProviderError(GenerationError):
    """A single provider call failed

    Raised by transports. The message carries the provider's own error
    text so the classifier can interpret it.
    """

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        self.detail = message or "unknown error"
        super().__init__(f"{provider}: {self.detail}")


class PermanentProviderError(GenerationError):
    """Failure that will recur on retry (bad or missing credentials, rejected request)"""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider} request failed permanently: {message}")


class ProviderExhaustedError(GenerationError):
    """A provider kept failing transiently until the attempt limit"""

    def __init__(self, provider: str, attempts: int, last_error: BaseException):
        self.provider = provider
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{provider} failed after {attempts} attempt(s): {last_error}"
        )


class AllProvidersFailedError(GenerationError):
    """Auto mode found no provider that could serve the request"""

    def __init__(self, failures: Sequence[Tuple[str, str]], permanent: bool = False):
        self.failures: List[Tuple[str, str]] = list(failures)
        self.permanent = permanent
        if self.failures:
            details = "; ".join(f"{provider}: {reason}" for provider, reason in self.failures)
        else:
            details = "no providers available"
        super().__init__(f"Provider selection failed. {details}")


class GenerationCancelled(GenerationError):
    """The caller cancelled the request"""

    def __init__(self, provider: Optional[str] = None):
        self.provider = provider
        message = "Generation cancelled"
        if provider:
            message += f" while calling {provider}"
        super().__init__(message)


class UnsupportedProviderError(GenerationError):
    """No transport is registered for the requested provider"""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unsupported provider: {provider}")
