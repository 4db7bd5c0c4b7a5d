"""Tests for RedisStorage adapter"""

import pytest

from src.storage.redis_storage import RedisStorage, escape_glob
from src.storage.base_storage import StorageConnectionError


def test_initialization():
    """Test storage initialization"""
    storage = RedisStorage(redis_url="redis://localhost:6379/1", key_prefix="test")
    assert storage.storage_type == "redis"
    assert storage.redis_url == "redis://localhost:6379/1"
    assert storage.key_prefix == "test"
    assert storage.redis_client is None


def test_default_prefix():
    assert RedisStorage(redis_url="redis://localhost:6379/1").key_prefix == "bestseller"


@pytest.mark.asyncio
async def test_connection_failure():
    """Test handling of connection failure"""
    storage = RedisStorage(redis_url="redis://127.0.0.1:1/0")

    with pytest.raises(StorageConnectionError):
        await storage._ensure_connected()


@pytest.mark.asyncio
async def test_health_check_reports_connection_failure():
    storage = RedisStorage(redis_url="redis://127.0.0.1:1/0")

    health = await storage.health_check()

    assert health["status"] == "error"
    assert health["storage_type"] == "redis"


@pytest.mark.parametrize("raw, escaped", [
    ("bestseller:cache_ai_respons?_", r"bestseller:cache_ai_respons\?_"),
    ("ns:*", r"ns:\*"),
    ("ns:[ab]", r"ns:\[ab\]"),
    ("plain_prefix", "plain_prefix"),
])
def test_escape_glob(raw, escaped):
    assert escape_glob(raw) == escaped


class RecordingRedis:
    """Stands in for redis.asyncio.Redis, recording SCAN patterns"""

    def __init__(self, keys):
        self.stored = keys
        self.patterns = []

    async def scan_iter(self, match=None):
        self.patterns.append(match)
        for key in self.stored:
            yield key


@pytest.mark.asyncio
async def test_keys_escapes_wildcards_in_prefix():
    storage = RedisStorage(redis_url="redis://localhost:6379/1", key_prefix="test")
    storage.redis_client = RecordingRedis(["test:cache_ai_response_abc"])

    await storage.keys("cache_ai_respons?_")

    assert storage.redis_client.patterns == [r"test:cache_ai_respons\?_*"]


@pytest.mark.redis
@pytest.mark.asyncio
class TestRedisStorageLive:
    """Runs against a local Redis; skipped when none is available"""

    @pytest.fixture
    async def storage(self, redis_test_client):
        storage = RedisStorage(redis_url="redis://localhost:6379/1", key_prefix="test")
        yield storage
        await storage.close()

    async def test_set_and_get(self, storage, redis_test_client):
        await storage.set("greeting", "hello")

        assert await storage.get("greeting") == "hello"
        assert await redis_test_client.get("test:greeting") == "hello"

    async def test_ttl_is_applied(self, storage, redis_test_client):
        await storage.set("temp", "v", ttl_seconds=60)

        ttl = await redis_test_client.ttl("test:temp")
        assert 0 < ttl <= 60

    async def test_delete(self, storage):
        await storage.set("k", "v")
        assert await storage.delete("k") is True
        assert await storage.delete("k") is False
        assert await storage.get("k") is None

    async def test_keys_strip_namespace(self, storage):
        await storage.set("cache_a", "1")
        await storage.set("cache_b", "2")
        await storage.set("other", "3")

        assert sorted(await storage.keys("cache_")) == ["cache_a", "cache_b"]

    async def test_health_check(self, storage):
        health = await storage.health_check()
        assert health["status"] == "healthy"
        assert health["connected"] is True
