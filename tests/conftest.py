"""Pytest configuration and shared fixtures"""

import asyncio
from typing import Dict, Iterable, List, Optional, Union

import pytest

from src.models.generation import ProviderId, ProviderResponse
from src.services.cache.cache_service import AIResponseCache
from src.services.credentials.resolvers import StaticCredentialResolver
from src.services.generation.orchestrator import GenerationOrchestrator
from src.services.generation.providers.base_provider import BaseModelProvider
from src.services.generation.retry_policy import RetryPolicy
from src.services.service_factory import ServiceFactory
from src.storage.memory_storage import MemoryStorage
from src.storage.storage_factory import StorageFactory


class FakeClock:
    """Manually advanced clock; ``ms`` for the cache, ``seconds`` for storage"""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now_ms = start_ms

    def ms(self) -> int:
        return self.now_ms

    def seconds(self) -> float:
        return self.now_ms / 1000

    def advance(self, minutes: float = 0, seconds: float = 0):
        self.now_ms += int((minutes * 60 + seconds) * 1000)


Outcome = Union[str, Exception]


class FakeProvider(BaseModelProvider):
    """Transport that plays back scripted outcomes

    A string outcome is returned as content; an exception is raised. The
    last outcome repeats once the script runs out.
    """

    def __init__(self, provider_id: ProviderId, outcomes: Iterable[Outcome] = ("ok",), delay: float = 0):
        super().__init__()
        self.provider_id = provider_id
        self.display_name = provider_id.value.capitalize()
        self.outcomes: List[Outcome] = list(outcomes)
        self.delay = delay
        self.calls: List[Dict] = []

    async def call(self, model, prompt, api_key, max_tokens, temperature) -> ProviderResponse:
        self.calls.append({
            "model": model,
            "prompt": prompt,
            "api_key": api_key,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.delay:
            await asyncio.sleep(self.delay)

        index = min(len(self.calls), len(self.outcomes)) - 1
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return ProviderResponse(content=outcome, tokens_used=len(outcome))

    def fail(self, message: str, status_code: Optional[int] = None):
        return self.error(message, status_code)


@pytest.fixture
def fake_provider():
    """Factory for scripted transports: fake_provider(ProviderId.OPENAI, ["text"])"""
    return FakeProvider


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_storage(fake_clock) -> MemoryStorage:
    return MemoryStorage(clock=fake_clock.seconds)


@pytest.fixture
def response_cache(memory_storage, fake_clock) -> AIResponseCache:
    return AIResponseCache(memory_storage, prefix="test_cache_", clock=fake_clock.ms)


@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Three attempts without real backoff sleeps"""
    return RetryPolicy(max_attempts=3, base_delay=0, timeout=5)


@pytest.fixture
def all_keys() -> Dict[str, str]:
    return {provider.value: f"{provider.value}-test-key" for provider in ProviderId}


@pytest.fixture
def make_orchestrator(response_cache, fast_policy):
    """Build an orchestrator over fake transports and static credentials"""
    def factory(
        transports: Dict[ProviderId, BaseModelProvider],
        keys: Optional[Dict[str, str]] = None,
        policy: Optional[RetryPolicy] = None,
        cache: Optional[AIResponseCache] = response_cache
    ) -> GenerationOrchestrator:
        return GenerationOrchestrator(
            credentials=StaticCredentialResolver(keys or {}),
            cache=cache,
            policy=policy or fast_policy,
            transports=transports,
        )
    return factory


@pytest.fixture(autouse=True)
def reset_factories():
    """Forget factory singletons between tests"""
    yield
    ServiceFactory.clear_instances()
    StorageFactory.clear_instances()


@pytest.fixture
async def redis_test_client():
    """Create a Redis client for testing (if Redis is available)"""
    import redis.asyncio as redis
    from redis.exceptions import ConnectionError as RedisConnectionError

    # Use a different database for testing (db=1)
    client = redis.from_url("redis://localhost:6379/1", encoding="utf-8", decode_responses=True)
    try:
        await client.ping()
    except (RedisConnectionError, OSError):
        await client.aclose()
        pytest.skip("Redis not available for testing")

    yield client
    await client.flushdb()
    await client.aclose()
