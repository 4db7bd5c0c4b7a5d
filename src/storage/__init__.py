"""Key-value storage substrate for the response cache"""

from .base_storage import (
    StorageAdapter,
    StorageError,
    StorageConnectionError,
)
from .memory_storage import MemoryStorage
from .redis_storage import RedisStorage
from .storage_factory import StorageFactory, StorageType

__all__ = [
    "StorageAdapter",
    "StorageError",
    "StorageConnectionError",
    "MemoryStorage",
    "RedisStorage",
    "StorageFactory",
    "StorageType",
]
