"""Decorator-based registration for provider transports"""

import importlib
from pathlib import Path
from typing import Type, List, Dict, Any

from ....core.logger import CentralizedLogger
from ....models.generation import ProviderId
from .base_provider import BaseModelProvider
from .provider_registry import ModelProviderRegistry

logger = CentralizedLogger("ProviderDecorators")

# Classes seen by @register_provider, in import order
_decorated_providers: Dict[ProviderId, Type[BaseModelProvider]] = {}


def register_provider(provider_id: ProviderId):
    """Decorator to register a transport for ``provider_id``"""
    def decorator(cls: Type[BaseModelProvider]) -> Type[BaseModelProvider]:
        cls.provider_id = ProviderId(provider_id)
        _decorated_providers[cls.provider_id] = cls
        ModelProviderRegistry.register(cls.provider_id, cls)
        return cls

    return decorator


def auto_register_decorated_providers() -> int:
    """Re-register every decorated transport (after a registry reset)"""
    for provider_id, provider_class in _decorated_providers.items():
        ModelProviderRegistry.register(provider_id, provider_class)
    return len(_decorated_providers)


def scan_and_import_providers(
    package_path: str = "src.services.generation.providers.implementations"
) -> List[str]:
    """Import every ``*_providers.py`` module so its decorators run"""
    imported_modules = []
    base_path = Path(__file__).parent / "implementations"

    for file_path in sorted(base_path.glob("*_providers.py")):
        full_module_path = f"{package_path}.{file_path.stem}"
        importlib.import_module(full_module_path)
        imported_modules.append(full_module_path)

    return imported_modules


def initialize_providers() -> Dict[str, Any]:
    """Import and register all transports; called at application startup"""
    imported_modules = scan_and_import_providers()
    registered_count = auto_register_decorated_providers()

    missing = [
        provider_id.value for provider_id in ProviderId
        if not ModelProviderRegistry.is_registered(provider_id)
    ]
    if missing:
        logger.warning(f"No transport registered for: {', '.join(missing)}")

    return {
        "imported_modules": imported_modules,
        "registered_providers": registered_count,
        "missing_providers": missing,
    }
