"""Provider catalog, transports and dispatch"""

from .base_provider import BaseModelProvider, ModelInfo, ProviderInfo
from .catalog import (
    PROVIDER_CATALOG,
    get_provider,
    list_providers,
    resolve_model,
    is_known_model,
    catalog_as_dict,
)
from .provider_registry import ModelProviderRegistry
from .provider_decorators import register_provider, initialize_providers

__all__ = [
    'BaseModelProvider',
    'ModelInfo',
    'ProviderInfo',
    'PROVIDER_CATALOG',
    'get_provider',
    'list_providers',
    'resolve_model',
    'is_known_model',
    'catalog_as_dict',
    'ModelProviderRegistry',
    'register_provider',
    'initialize_providers',
]
