"""Redis storage adapter implementation"""

import re
from typing import Dict, List, Optional, Any
import redis.asyncio as redis
from redis.exceptions import RedisError, ConnectionError as RedisConnectionError

from .base_storage import StorageAdapter, StorageError, StorageConnectionError
from ..core.config import get_settings

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def escape_glob(text: str) -> str:
    """Escape SCAN MATCH metacharacters so ``text`` matches only itself"""
    return _GLOB_SPECIAL.sub(r"\\\1", text)


class RedisStorage(StorageAdapter):
    """Redis-backed storage shared across worker processes"""

    def __init__(self, redis_url: Optional[str] = None, key_prefix: Optional[str] = None):
        """Initialize Redis storage

        Args:
            redis_url: Redis connection URL
            key_prefix: Namespace prepended to every key
        """
        super().__init__("redis")
        settings = get_settings()
        self.redis_url = redis_url or settings.storage.redis_url
        self.key_prefix = key_prefix or settings.storage.key_prefix
        self.redis_client: Optional[redis.Redis] = None

        self.logger.info(f"Initialized Redis storage with URL: {self.redis_url}")

    async def _ensure_connected(self):
        """Ensure Redis connection is established"""
        if not self.redis_client:
            try:
                self.redis_client = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True
                )
                await self.redis_client.ping()
                self.logger.info("Connected to Redis successfully")
            except (RedisError, RedisConnectionError) as e:
                self.redis_client = None
                self.logger.error(f"Failed to connect to Redis: {str(e)}")
                raise StorageConnectionError(f"Redis connection failed: {str(e)}") from e

    def _full_key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}"

    def _strip_prefix(self, full_key: str) -> str:
        return full_key[len(self.key_prefix) + 1:]

    async def get(self, key: str) -> Optional[str]:
        with self.traced_operation("get", key=key):
            await self._ensure_connected()
            try:
                return await self.redis_client.get(self._full_key(key))
            except RedisError as e:
                raise StorageError(f"Failed to read {key}: {str(e)}") from e

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        with self.traced_operation("set", key=key):
            await self._ensure_connected()
            try:
                if ttl_seconds:
                    await self.redis_client.setex(self._full_key(key), ttl_seconds, value)
                else:
                    await self.redis_client.set(self._full_key(key), value)
                return True
            except RedisError as e:
                raise StorageError(f"Failed to write {key}: {str(e)}") from e

    async def delete(self, key: str) -> bool:
        with self.traced_operation("delete", key=key):
            await self._ensure_connected()
            try:
                return bool(await self.redis_client.delete(self._full_key(key)))
            except RedisError as e:
                raise StorageError(f"Failed to delete {key}: {str(e)}") from e

    async def keys(self, prefix: str = "") -> List[str]:
        with self.traced_operation("keys", prefix=prefix):
            await self._ensure_connected()
            try:
                # SCAN rather than KEYS so large caches do not block the server
                return [
                    self._strip_prefix(full_key)
                    async for full_key in self.redis_client.scan_iter(
                        match=f"{escape_glob(self._full_key(prefix))}*"
                    )
                ]
            except RedisError as e:
                raise StorageError(f"Failed to list keys: {str(e)}") from e

    async def health_check(self) -> Dict[str, Any]:
        """Check Redis storage health"""
        with self.traced_operation("health_check"):
            try:
                await self._ensure_connected()
                ping_response = await self.redis_client.ping()
                info = await self.redis_client.info()

                health_status = {
                    "status": "healthy" if ping_response else "unhealthy",
                    "storage_type": self.storage_type,
                    "redis_url": self.redis_url,
                    "connected": bool(ping_response),
                    "redis_version": info.get("redis_version", "unknown"),
                    "used_memory_human": info.get("used_memory_human", "unknown"),
                }
                self.logger.info(f"Redis health check: {health_status['status']}")
                return health_status

            except (RedisError, StorageConnectionError) as e:
                self.logger.error(f"Redis health check failed: {str(e)}")
                return {
                    "status": "error",
                    "storage_type": self.storage_type,
                    "error": str(e)
                }

    async def close(self):
        """Close Redis connection"""
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
            self.logger.info("Closed Redis connection")
