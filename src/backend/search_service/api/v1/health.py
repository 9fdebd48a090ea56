"""
Health Check API Endpoint
GET /api/v1/health - Service status, gateway reachability and cache backend
"""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ...database.redis_client import redis_manager
from ...services.llm.base import GenerationGateway
from ...services.search.orchestrator import SearchOrchestrator
from .search import get_orchestrator_dep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/health", tags=["Health"])

SERVICE_VERSION = "2.0.0"


# Dependency injection placeholder (overridden in main.py)
def get_gateway_dep() -> Optional[GenerationGateway]:
    """Dependency injection placeholder for the generation gateway - overridden in main.py"""
    return None


class HealthResponse(BaseModel):
    """Response model for service health"""
    status: str
    version: str
    services: Dict[str, bool]
    cache_backend: Optional[str]
    strategies: List[str]


@router.get("", response_model=HealthResponse)
async def get_health(
    orchestrator: SearchOrchestrator = Depends(get_orchestrator_dep),
    gateway: Optional[GenerationGateway] = Depends(get_gateway_dep)
):
    """
    Service health.

    "healthy" when the generation gateway answers its probe, "degraded"
    otherwise (keyword search still works without it).

    Example:
        GET /api/v1/health

        Response:
        {
            "status": "healthy",
            "version": "2.0.0",
            "services": {"gateway": true, "redis": false, "orchestrator": true},
            "cache_backend": "memory",
            "strategies": ["rag", "semantic", "keyword"]
        }
    """
    gateway_ok = False
    if gateway is not None:
        try:
            gateway_ok = await gateway.health_check()
        except Exception as e:
            logger.error(f"Gateway health check failed: {e}")

    cache = orchestrator.cache
    return HealthResponse(
        status="healthy" if gateway_ok else "degraded",
        version=SERVICE_VERSION,
        services={
            "gateway": gateway_ok,
            "redis": redis_manager.is_initialized,
            "orchestrator": True,
        },
        cache_backend=cache.backend_type if cache else None,
        strategies=[s.get_name() for s in orchestrator.registry.get_enabled()]
    )
