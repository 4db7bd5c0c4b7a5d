"""Namespaced TTL cache for expensive responses

Entries are stored as JSON ``{"data", "timestamp", "ttl"}`` (epoch ms and
ms) under ``{prefix}{namespace}_{fingerprint}``. Expiry is checked on read;
``cleanup`` sweeps proactively.
"""

import hashlib
import json
import re
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple

from ...core.logger import CentralizedLogger
from ...storage.base_storage import StorageAdapter

DEFAULT_PREFIX = "bestseller_cache_"
DEFAULT_TTL_MINUTES = 60
MAX_TTL_MINUTES = 24 * 60

_FINGERPRINT_LENGTH = 32
_FINGERPRINT_RE = re.compile(rf"^[0-9a-f]{{{_FINGERPRINT_LENGTH}}}$")

_MISSING = object()


def fingerprint(params: Dict[str, Any]) -> str:
    """Stable hash of params; key order does not matter"""
    payload = json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:_FINGERPRINT_LENGTH]


def content_ttl_minutes(
    content: str,
    base_minutes: int = DEFAULT_TTL_MINUTES,
    max_minutes: int = MAX_TTL_MINUTES
) -> int:
    """Longer responses are dearer to regenerate, so they live longer"""
    return min(base_minutes + len(content or "") // 1000, max_minutes)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class ResponseCache:
    """TTL cache over any ``StorageAdapter``"""

    def __init__(
        self,
        storage: StorageAdapter,
        prefix: str = DEFAULT_PREFIX,
        clock: Optional[Callable[[], int]] = None
    ):
        self.storage = storage
        self.prefix = prefix
        self._clock = clock or _epoch_ms
        self._hits = 0
        self._misses = 0
        self.logger = CentralizedLogger("ResponseCache")

    def make_key(self, namespace: str, params: Dict[str, Any]) -> str:
        return f"{self.prefix}{namespace}_{fingerprint(params)}"

    def _is_expired(self, entry: Dict[str, Any]) -> bool:
        return self._clock() - entry["timestamp"] > entry["ttl"]

    async def _load(self, key: str) -> Tuple[bool, Any]:
        """Return (found, data), deleting expired or corrupt entries"""
        raw = await self.storage.get(key)
        if raw is None:
            return False, None

        try:
            entry = json.loads(raw)
            expired = self._is_expired(entry)
            data = entry["data"]
        except (ValueError, KeyError, TypeError):
            self.logger.warning(f"Discarding corrupt cache entry {key}")
            await self.storage.delete(key)
            return False, None

        if expired:
            await self.storage.delete(key)
            return False, None
        return True, data

    async def set(
        self,
        namespace: str,
        params: Dict[str, Any],
        data: Any,
        ttl_minutes: int = DEFAULT_TTL_MINUTES
    ) -> str:
        """Store ``data``; returns the storage key"""
        if ttl_minutes <= 0:
            raise ValueError("ttl_minutes must be positive")

        key = self.make_key(namespace, params)
        entry = {
            "data": data,
            "timestamp": self._clock(),
            "ttl": ttl_minutes * 60 * 1000,
        }
        await self.storage.set(key, json.dumps(entry), ttl_seconds=ttl_minutes * 60)
        self.logger.debug(f"Cached {namespace} entry for {ttl_minutes} min", extra={"namespace": namespace})
        return key

    async def get(self, namespace: str, params: Dict[str, Any]) -> Optional[Any]:
        found, data = await self._load(self.make_key(namespace, params))
        if found:
            self._hits += 1
            return data
        self._misses += 1
        return None

    async def has(self, namespace: str, params: Dict[str, Any]) -> bool:
        return await self.get(namespace, params) is not None

    async def delete(self, namespace: str, params: Dict[str, Any]) -> bool:
        return await self.storage.delete(self.make_key(namespace, params))

    async def _delete_matching(self, prefix: str, exact_namespace: bool) -> int:
        removed = 0
        for key in await self.storage.keys(prefix):
            if not key.startswith(prefix):
                continue
            # "ai" must not also clear "ai_response"
            if exact_namespace and not _FINGERPRINT_RE.match(key[len(prefix):]):
                continue
            if await self.storage.delete(key):
                removed += 1
        return removed

    async def clear_namespace(self, namespace: str) -> int:
        removed = await self._delete_matching(f"{self.prefix}{namespace}_", exact_namespace=True)
        self.logger.info(f"Cleared {removed} entries from namespace {namespace}", extra={"namespace": namespace})
        return removed

    async def clear_all(self) -> int:
        removed = await self._delete_matching(self.prefix, exact_namespace=False)
        self._hits = 0
        self._misses = 0
        self.logger.info(f"Cleared {removed} cache entries")
        return removed

    async def cleanup(self) -> int:
        """Delete every expired or unreadable entry; returns how many"""
        removed = 0
        for key in await self.storage.keys(self.prefix):
            raw = await self.storage.get(key)
            if raw is None:
                continue
            try:
                stale = self._is_expired(json.loads(raw))
            except (ValueError, KeyError, TypeError):
                stale = True
            if stale and await self.storage.delete(key):
                removed += 1
        if removed:
            self.logger.info(f"Cache cleanup removed {removed} entries")
        return removed

    async def get_stats(self) -> Dict[str, Any]:
        total = self._hits + self._misses
        hit_rate = (self._hits / total) * 100 if total else 0.0
        return {
            "hits": self._hits,
            "misses": self._misses,
            "size": len(await self.storage.keys(self.prefix)),
            "hit_rate": round(hit_rate, 2),
        }

    async def get_or_set(
        self,
        namespace: str,
        params: Dict[str, Any],
        compute_fn: Callable[[], Awaitable[Any]],
        ttl_minutes: int = DEFAULT_TTL_MINUTES
    ) -> Any:
        """Return the cached value or compute, store and return it

        ``compute_fn`` runs at most once per call. There is no cross-call
        locking: concurrent misses each compute.
        """
        found, data = await self._load(self.make_key(namespace, params))
        if found:
            self._hits += 1
            return data
        self._misses += 1

        result = await compute_fn()
        await self.set(namespace, params, result, ttl_minutes)
        return result

    async def preload(self, requests: Iterable[Dict[str, Any]]) -> int:
        """Warm the cache; failures are logged and skipped

        Each request is a dict with ``namespace``, ``params``,
        ``compute_fn`` and optionally ``ttl_minutes``.
        """
        loaded = 0
        for request in requests:
            try:
                await self.get_or_set(
                    request["namespace"],
                    request["params"],
                    request["compute_fn"],
                    request.get("ttl_minutes") or DEFAULT_TTL_MINUTES,
                )
                loaded += 1
            except Exception as e:
                self.logger.warning(
                    f"Failed to preload cache for {request.get('namespace')}: {str(e)}"
                )
        return loaded


class AIResponseCache(ResponseCache):
    """Cache helpers for generation, brainstorm, chapter and humanization output"""

    AI_RESPONSE = "ai_response"
    BRAINSTORM = "brainstorm"
    CHAPTER = "chapter"
    HUMANIZATION = "humanization"

    BRAINSTORM_TTL_MINUTES = 4 * 60
    CHAPTER_TTL_MINUTES = 8 * 60
    HUMANIZATION_TTL_MINUTES = 2 * 60

    @staticmethod
    def ai_response_params(
        provider: str,
        model: str,
        prompt: str,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        params = {"provider": provider, "model": model, "prompt": prompt}
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        return params

    async def cache_ai_response(
        self,
        provider: str,
        model: str,
        prompt: str,
        content: str,
        tokens_used: Optional[int] = None,
        max_tokens: Optional[int] = None,
        served_by: Optional[Tuple[str, str]] = None
    ) -> str:
        """Cache a generation keyed by the requested provider and model

        ``served_by`` records the concrete (provider, model) when the
        request said ``auto``.
        """
        served_provider, served_model = served_by or (provider, model)
        return await self.set(
            self.AI_RESPONSE,
            self.ai_response_params(provider, model, prompt, max_tokens),
            {
                "content": content,
                "tokens_used": tokens_used,
                "provider": served_provider,
                "model": served_model,
                "cached_at": self._clock(),
            },
            content_ttl_minutes(content),
        )

    async def get_cached_ai_response(
        self,
        provider: str,
        model: str,
        prompt: str,
        max_tokens: Optional[int] = None
    ) -> Optional[Dict[str, Any]]:
        return await self.get(
            self.AI_RESPONSE,
            self.ai_response_params(provider, model, prompt, max_tokens),
        )

    async def cache_brainstorm(self, topic: str, provider: str, result: Dict[str, Any]) -> str:
        return await self.set(
            self.BRAINSTORM, {"topic": topic, "provider": provider},
            result, self.BRAINSTORM_TTL_MINUTES,
        )

    async def get_cached_brainstorm(self, topic: str, provider: str) -> Optional[Dict[str, Any]]:
        return await self.get(self.BRAINSTORM, {"topic": topic, "provider": provider})

    @staticmethod
    def _chapter_params(title: str, number: int, outline: str, provider: str) -> Dict[str, Any]:
        return {
            "chapter_title": title,
            "chapter_number": number,
            "outline": outline,
            "provider": provider,
        }

    async def cache_chapter(
        self, title: str, number: int, outline: str, provider: str, content: str
    ) -> str:
        return await self.set(
            self.CHAPTER, self._chapter_params(title, number, outline, provider),
            content, self.CHAPTER_TTL_MINUTES,
        )

    async def get_cached_chapter(
        self, title: str, number: int, outline: str, provider: str
    ) -> Optional[str]:
        return await self.get(self.CHAPTER, self._chapter_params(title, number, outline, provider))

    @staticmethod
    def _humanization_params(content: str, provider: str) -> Dict[str, Any]:
        # Hash rather than embed large content in the params
        return {
            "content_hash": hashlib.sha256(content.encode("utf-8")).hexdigest(),
            "content_length": len(content),
            "provider": provider,
        }

    async def cache_humanization(self, content: str, provider: str, humanized: str) -> str:
        return await self.set(
            self.HUMANIZATION, self._humanization_params(content, provider),
            humanized, self.HUMANIZATION_TTL_MINUTES,
        )

    async def get_cached_humanization(self, content: str, provider: str) -> Optional[str]:
        return await self.get(self.HUMANIZATION, self._humanization_params(content, provider))
