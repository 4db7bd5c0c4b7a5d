"""Retry and backoff policy for a single provider"""

from dataclasses import dataclass

from ...core.config import OrchestrationConfig


def backoff_delay(attempt: int, base_delay: float = 1.0) -> float:
    """Seconds to wait after failed attempt number ``attempt`` (0-based)"""
    if attempt < 0:
        raise ValueError("attempt must be >= 0")
    return (2 ** attempt) * base_delay


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    timeout: float = 30.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.timeout <= 0:
            raise ValueError("delays and timeouts must be positive")

    def delay_for(self, attempt: int) -> float:
        return backoff_delay(attempt, self.base_delay)

    def has_attempts_left(self, attempts_made: int) -> bool:
        return attempts_made < self.max_attempts

    @classmethod
    def from_config(cls, config: OrchestrationConfig) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay_seconds,
            timeout=config.request_timeout_seconds,
        )
