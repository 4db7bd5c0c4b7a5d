"""Storage factory for creating storage adapter instances"""

from typing import Type, Dict, Optional, List
from enum import Enum

from .base_storage import StorageAdapter, StorageError
from .memory_storage import MemoryStorage
from .redis_storage import RedisStorage
from ..core.logger import CentralizedLogger
from ..core.config import get_settings


class StorageType(str, Enum):
    """Supported storage backend types"""
    MEMORY = "memory"
    REDIS = "redis"


class StorageFactory:
    """Factory for creating storage adapter instances with dependency injection"""

    _storage_classes: Dict[StorageType, Type[StorageAdapter]] = {
        StorageType.MEMORY: MemoryStorage,
        StorageType.REDIS: RedisStorage,
    }

    _instances: Dict[StorageType, StorageAdapter] = {}
    _logger = CentralizedLogger("StorageFactory")

    @classmethod
    def register(cls, storage_type: StorageType, storage_class: Type[StorageAdapter]):
        """Register a custom storage adapter class"""
        cls._storage_classes[storage_type] = storage_class
        cls._logger.info(f"Registered storage adapter: {storage_type}")

    @classmethod
    def create(
        cls,
        storage_type: Optional[StorageType] = None,
        singleton: bool = True,
        **kwargs
    ) -> StorageAdapter:
        """Create or get a storage adapter instance

        Args:
            storage_type: Type of storage to create (uses config default if None)
            singleton: Whether to reuse one instance per type
            **kwargs: Additional arguments to pass to storage constructor

        Raises:
            StorageError: If storage type is unknown or creation fails
        """
        if storage_type is None:
            configured = get_settings().storage.type
            try:
                storage_type = StorageType(configured)
            except ValueError as e:
                raise StorageError(f"Unknown storage type: {configured}") from e
            cls._logger.info(f"Using configured storage type: {storage_type.value}")

        if storage_type not in cls._storage_classes:
            raise StorageError(f"Unknown storage type: {storage_type}")

        if singleton and storage_type in cls._instances:
            return cls._instances[storage_type]

        try:
            instance = cls._storage_classes[storage_type](**kwargs)
        except Exception as e:
            cls._logger.error(f"Failed to create {storage_type.value} storage: {str(e)}")
            raise StorageError(f"Failed to create storage: {str(e)}") from e

        if singleton:
            cls._instances[storage_type] = instance

        cls._logger.info(
            f"Created {storage_type.value} storage instance (singleton: {singleton})"
        )
        return instance

    @classmethod
    def get_default(cls) -> StorageAdapter:
        """Get the default storage adapter based on configuration"""
        return cls.create()

    @classmethod
    async def close_all(cls):
        """Close and forget every singleton instance"""
        for instance in cls._instances.values():
            await instance.close()
        cls._instances.clear()

    @classmethod
    def clear_instances(cls):
        """Forget singleton instances without closing them (tests)"""
        cls._instances.clear()

    @classmethod
    def get_available_types(cls) -> List[StorageType]:
        return list(cls._storage_classes.keys())
