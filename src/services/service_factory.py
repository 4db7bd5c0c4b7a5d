"""Service factory for creating service instances"""

from typing import Type, Dict, Any, Optional, List
from enum import Enum

from .base_service import BaseService
from .cache.cache_service import AIResponseCache
from .credentials.resolvers import CredentialResolver, build_default_resolver
from ..core.config import get_settings
from ..core.logger import CentralizedLogger
from ..storage.storage_factory import StorageFactory


class ServiceType(str, Enum):
    """Supported service types"""
    ORCHESTRATOR = "orchestrator"
    AUTHORING = "authoring"


class ServiceFactory:
    """Factory for creating service instances with dependency injection

    Services share one response cache and one credential resolver, built
    lazily from settings.
    """

    _services: Dict[ServiceType, Type[BaseService]] = {}
    _instances: Dict[ServiceType, BaseService] = {}
    _cache: Optional[AIResponseCache] = None
    _credentials: Optional[CredentialResolver] = None
    _logger = CentralizedLogger("ServiceFactory")

    @classmethod
    def register(cls, service_type: ServiceType, service_class: Type[BaseService]):
        """Register a service class"""
        cls._services[service_type] = service_class
        cls._logger.debug(f"Registered service: {service_type.value}")

    @classmethod
    def get_cache(cls) -> AIResponseCache:
        if cls._cache is None:
            settings = get_settings()
            cls._cache = AIResponseCache(
                StorageFactory.get_default(),
                prefix=settings.cache.prefix,
            )
        return cls._cache

    @classmethod
    def get_credentials(cls) -> CredentialResolver:
        if cls._credentials is None:
            cls._credentials = build_default_resolver(get_settings())
        return cls._credentials

    @classmethod
    def create(
        cls,
        service_type: ServiceType,
        singleton: bool = True,
        **kwargs
    ) -> BaseService:
        """Create or get singleton service instance

        Args:
            service_type: Type of service to create
            singleton: Whether to use singleton pattern (default: True)
            **kwargs: Overrides for injected dependencies

        Raises:
            ValueError: If service type is unknown
        """
        if singleton and service_type in cls._instances:
            return cls._instances[service_type]

        service_class = cls._services.get(service_type)
        if not service_class:
            raise ValueError(f"Unknown service type: {service_type}")

        kwargs.setdefault("cache", cls.get_cache())
        if service_type == ServiceType.ORCHESTRATOR:
            kwargs.setdefault("credentials", cls.get_credentials())
        elif service_type == ServiceType.AUTHORING and "orchestrator" not in kwargs:
            kwargs["orchestrator"] = cls.create(ServiceType.ORCHESTRATOR, cache=kwargs["cache"])

        try:
            instance = service_class(**kwargs)
        except Exception as e:
            cls._logger.error(f"Failed to create {service_type.value} service: {str(e)}")
            raise

        if singleton:
            cls._instances[service_type] = instance

        cls._logger.info(
            f"Created {service_type.value} service instance (singleton: {singleton})"
        )
        return instance

    @classmethod
    def clear_instances(cls):
        """Clear singletons and shared dependencies (mainly for testing)"""
        cls._instances.clear()
        cls._cache = None
        cls._credentials = None

    @classmethod
    async def shutdown(cls):
        if cls._credentials is not None:
            await cls._credentials.close()
        await StorageFactory.close_all()
        cls.clear_instances()

    @classmethod
    def get_available_services(cls) -> List[ServiceType]:
        return list(cls._services.keys())

    @classmethod
    async def health_check_all(cls) -> Dict[str, Any]:
        """Run health checks on all active services"""
        health_status = {}

        for service_type, instance in cls._instances.items():
            try:
                health_status[service_type.value] = await instance.health_check()
            except Exception as e:
                health_status[service_type.value] = {
                    "status": "error",
                    "error": str(e)
                }

        return health_status
