"""In-process storage adapter"""

import asyncio
import time
from typing import Dict, List, Optional, Any, Callable, Tuple

from .base_storage import StorageAdapter


class MemoryStorage(StorageAdapter):
    """Dictionary-backed storage for single-process deployments and tests"""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        super().__init__("memory")
        self._clock = clock or time.monotonic
        # key -> (value, expires_at or None)
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = asyncio.Lock()

    def _is_live(self, entry: Tuple[str, Optional[float]]) -> bool:
        expires_at = entry[1]
        return expires_at is None or self._clock() < expires_at

    async def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        if not self._is_live(entry):
            self._data.pop(key, None)
            return None
        return entry[0]

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        async with self._lock:
            self._data[key] = (value, expires_at)
        return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._data.pop(key, None) is not None

    async def keys(self, prefix: str = "") -> List[str]:
        return [
            key for key, entry in list(self._data.items())
            if key.startswith(prefix) and self._is_live(entry)
        ]

    async def health_check(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "storage_type": self.storage_type,
            "keys": len(self._data),
        }
