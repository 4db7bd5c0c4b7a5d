"""Credential resolution for provider API keys

A resolver answers ``resolve(provider) -> key | None``. Returning None
means "no credential"; only an unexpected transport failure raises
``CredentialStoreError``.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Sequence, Tuple

import httpx

from ...core.config import Settings, LLMConfig, CredentialConfig
from ...core.logger import CentralizedLogger


class CredentialStoreError(Exception):
    """The credential backend could not be reached or answered garbage"""
    pass


def _clean(key: Optional[str]) -> Optional[str]:
    key = (key or "").strip()
    return key or None


class CredentialResolver(ABC):
    """Source of provider API keys"""

    @abstractmethod
    async def resolve(self, provider: str) -> Optional[str]:
        pass

    async def close(self):
        return None


class StaticCredentialResolver(CredentialResolver):
    """Fixed mapping, mostly for tests and single-tenant setups"""

    def __init__(self, keys: Optional[Dict[str, str]] = None):
        self._keys = dict(keys or {})

    async def resolve(self, provider: str) -> Optional[str]:
        return _clean(self._keys.get(provider))


class EnvironmentCredentialResolver(CredentialResolver):
    """Keys from settings (OPENAI_API_KEY and friends)"""

    def __init__(self, llm_config: LLMConfig):
        self.llm_config = llm_config

    async def resolve(self, provider: str) -> Optional[str]:
        return _clean(self.llm_config.api_key_for(provider))


class RemoteCredentialResolver(CredentialResolver):
    """Keys decrypted by the remote secure key store

    Speaks the store's ``{"action": "get", "provider": ...}`` protocol and
    expects ``{"success": true, "data": {"apiKey": ...}}`` back.
    """

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.url = url
        self.token = token
        self.timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None
        self.logger = CentralizedLogger("RemoteCredentialResolver")

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def resolve(self, provider: str) -> Optional[str]:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else None
        try:
            response = await self._client().post(
                self.url,
                json={"action": "get", "provider": provider},
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise CredentialStoreError(f"Key store unreachable: {str(e)}") from e

        if response.status_code == 404:
            return None
        if response.status_code >= 500:
            raise CredentialStoreError(f"Key store returned HTTP {response.status_code}")
        if response.status_code >= 400:
            self.logger.debug(f"Key store refused lookup for {provider}: HTTP {response.status_code}")
            return None

        try:
            body = response.json()
        except ValueError as e:
            raise CredentialStoreError("Key store returned invalid JSON") from e

        if not isinstance(body, dict) or not body.get("success"):
            return None
        data = body.get("data") or {}
        return _clean(data.get("apiKey") or data.get("api_key"))

    async def close(self):
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


class CachingCredentialResolver(CredentialResolver):
    """Remembers answers (including "none") for ``ttl_seconds``"""

    def __init__(
        self,
        inner: CredentialResolver,
        ttl_seconds: float = 300,
        clock: Optional[Callable[[], float]] = None
    ):
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._cache: Dict[str, Tuple[Optional[str], float]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    async def resolve(self, provider: str) -> Optional[str]:
        cached = self._cache.get(provider)
        if cached and self._clock() < cached[1]:
            return cached[0]

        lock = self._locks.setdefault(provider, asyncio.Lock())
        async with lock:
            cached = self._cache.get(provider)
            if cached and self._clock() < cached[1]:
                return cached[0]
            key = await self.inner.resolve(provider)
            self._cache[provider] = (key, self._clock() + self.ttl_seconds)
            return key

    def invalidate(self, provider: Optional[str] = None):
        if provider is None:
            self._cache.clear()
        else:
            self._cache.pop(provider, None)

    async def close(self):
        await self.inner.close()


class ChainedCredentialResolver(CredentialResolver):
    """First non-empty answer wins"""

    def __init__(self, resolvers: Sequence[CredentialResolver]):
        self.resolvers = list(resolvers)

    async def resolve(self, provider: str) -> Optional[str]:
        for resolver in self.resolvers:
            key = await resolver.resolve(provider)
            if key:
                return key
        return None

    async def close(self):
        for resolver in self.resolvers:
            await resolver.close()


def build_default_resolver(settings: Settings) -> CredentialResolver:
    """Environment keys first, then the remote store when one is configured"""
    config: CredentialConfig = settings.credentials
    resolvers = []
    if config.use_env_keys:
        resolvers.append(EnvironmentCredentialResolver(settings.llm))
    if config.remote_store_url:
        resolvers.append(RemoteCredentialResolver(
            config.remote_store_url,
            token=config.remote_store_token,
            timeout=config.remote_timeout_seconds,
        ))
    return CachingCredentialResolver(
        ChainedCredentialResolver(resolvers),
        ttl_seconds=config.cache_ttl_seconds,
    )
