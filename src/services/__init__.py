"""Services module for the Bestseller AI backend"""

from .base_service import BaseService
from .service_factory import ServiceFactory, ServiceType
from .generation.orchestrator import GenerationOrchestrator
from .authoring_service import AuthoringService

__all__ = [
    "BaseService",
    "ServiceFactory",
    "ServiceType",
    "GenerationOrchestrator",
    "AuthoringService",
]
