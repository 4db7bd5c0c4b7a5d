"""API Dependencies for dependency injection"""

from ..services.authoring_service import AuthoringService
from ..services.service_factory import ServiceFactory, ServiceType


async def get_authoring_service() -> AuthoringService:
    """Get the shared authoring service"""
    return ServiceFactory.create(ServiceType.AUTHORING)
