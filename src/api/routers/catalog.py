"""Provider catalog and cache administration endpoints"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from ..dependencies import get_authoring_service
from ...services.authoring_service import AuthoringService


router = APIRouter(tags=["catalog"])


@router.get("/providers", response_model=List[Dict[str, Any]])
async def list_providers(service: AuthoringService = Depends(get_authoring_service)):
    """Providers in fallback order, each with its models"""
    return service.list_providers()


@router.get("/cache/stats", response_model=Dict[str, Any])
async def cache_stats(service: AuthoringService = Depends(get_authoring_service)):
    return await service.cache_stats()


@router.delete("/cache/{namespace}", response_model=Dict[str, Any])
async def clear_cache(namespace: str, service: AuthoringService = Depends(get_authoring_service)):
    """Drop one namespace, or everything when namespace is ``all``"""
    removed = await service.clear_cache(None if namespace == "all" else namespace)
    return {"namespace": namespace, "removed": removed}
