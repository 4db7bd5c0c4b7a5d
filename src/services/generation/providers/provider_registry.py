"""Dispatch table from provider id to transport class"""

from typing import Dict, Type, Optional, List, Any, Union

import httpx

from ....core.logger import CentralizedLogger
from ....models.generation import ProviderId
from ..exceptions import UnsupportedProviderError
from .base_provider import BaseModelProvider


class ModelProviderRegistry:
    """Registry for provider transports

    Transports receive the API key per call, so one instance per provider
    is shared by all requests.
    """

    _providers: Dict[ProviderId, Type[BaseModelProvider]] = {}
    _instances: Dict[ProviderId, BaseModelProvider] = {}
    _logger = CentralizedLogger("ModelProviderRegistry")

    @classmethod
    def register(cls, provider_id: ProviderId, provider_class: Type[BaseModelProvider]):
        """Register a transport class

        Args:
            provider_id: Provider the class serves
            provider_class: Transport class to register
        """
        if not issubclass(provider_class, BaseModelProvider):
            raise ValueError(f"{provider_class} must inherit from BaseModelProvider")

        cls._providers[ProviderId(provider_id)] = provider_class
        cls._logger.debug(f"Registered provider transport: {ProviderId(provider_id).value}")

    @classmethod
    def get_class(cls, provider_id: Union[ProviderId, str]) -> Type[BaseModelProvider]:
        try:
            return cls._providers[ProviderId(provider_id)]
        except (KeyError, ValueError) as e:
            raise UnsupportedProviderError(str(getattr(provider_id, "value", provider_id))) from e

    @classmethod
    def create(
        cls,
        provider_id: Union[ProviderId, str],
        http_client: Optional[httpx.AsyncClient] = None,
        config: Optional[Dict[str, Any]] = None,
        singleton: bool = True
    ) -> BaseModelProvider:
        """Create or get a transport instance

        Raises:
            UnsupportedProviderError: If nothing is registered for the id
        """
        provider_class = cls.get_class(provider_id)
        key = ProviderId(provider_id)

        if singleton and key in cls._instances:
            return cls._instances[key]

        provider = provider_class(http_client=http_client, config=config)
        if singleton:
            cls._instances[key] = provider

        cls._logger.debug(f"Created provider instance: {key.value}")
        return provider

    @classmethod
    def get_available_providers(cls) -> List[ProviderId]:
        return list(cls._providers.keys())

    @classmethod
    def is_registered(cls, provider_id: Union[ProviderId, str]) -> bool:
        try:
            return ProviderId(provider_id) in cls._providers
        except ValueError:
            return False

    @classmethod
    async def close_all(cls):
        for provider in cls._instances.values():
            await provider.close()
        cls._instances.clear()

    @classmethod
    def clear_instances(cls):
        """Drop cached transport instances (tests)"""
        cls._instances.clear()
