"""Base storage adapter interface for the key-value cache substrate"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any
from contextlib import contextmanager

from opentelemetry.trace import Status, StatusCode

from ..core.logger import CentralizedLogger
from ..core.telemetry import get_tracer


class StorageAdapter(ABC):
    """Abstract base class for string key-value storage backends

    Values are opaque strings (the cache stores JSON). Adapters never
    interpret them.
    """

    def __init__(self, storage_type: str):
        """Initialize storage adapter

        Args:
            storage_type: Type identifier for the storage backend
        """
        self.storage_type = storage_type
        self.logger = CentralizedLogger(f"Storage-{storage_type}")
        self.tracer = get_tracer(f"storage.{storage_type}")

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value or None when the key is absent"""
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        """Store a value

        Args:
            key: Storage key
            value: Serialized value
            ttl_seconds: Optional backend-level expiry

        Returns:
            True if successful
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key, returning True if it existed"""
        pass

    @abstractmethod
    async def keys(self, prefix: str = "") -> List[str]:
        """List keys beginning with ``prefix``"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Check storage health status"""
        pass

    async def close(self):
        """Release backend resources"""
        return None

    @contextmanager
    def traced_operation(self, operation_name: str, **attributes):
        """Create a traced operation context with error logging"""
        with self.tracer.start_as_current_span(
            f"storage.{self.storage_type}.{operation_name}",
            attributes=attributes
        ) as span:
            try:
                yield span
                span.set_status(Status(StatusCode.OK))
            except Exception as e:
                self.logger.error(
                    f"Error in {operation_name} operation: {str(e)}",
                    exc_info=True
                )
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise


class StorageError(Exception):
    """Base exception for storage operations"""
    pass


class StorageConnectionError(StorageError):
    """Exception raised when storage connection fails"""
    pass
