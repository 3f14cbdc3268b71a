"""
Health check endpoints.
"""
import asyncio

from fastapi import APIRouter, Depends

from manos_gateway.core.config import settings
from manos_gateway.core.metrics import update_service_health
from manos_gateway.services.upstream import (
    UpstreamClient,
    get_backend_client,
    get_external_client,
    get_optimizer_client,
)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict:
    """Basic health check."""
    return {"status": "healthy", "version": settings.APP_VERSION}


@router.get("/health/detailed")
async def detailed_health_check(
    backend: UpstreamClient = Depends(get_backend_client),
    external: UpstreamClient = Depends(get_external_client),
    optimizer: UpstreamClient = Depends(get_optimizer_client),
) -> dict:
    """Detailed health check including every upstream service."""
    clients = {
        "backend": backend,
        "external": external,
        "optimizer": optimizer,
    }

    results = await asyncio.gather(*(client.health_check() for client in clients.values()))

    checks = {"api": "healthy"}
    for name, healthy in zip(clients, results):
        update_service_health(name, healthy)
        checks[name] = "healthy" if healthy else "unhealthy"

    checks["google_places"] = "configured" if settings.GOOGLE_MAPS_API else "not configured"

    overall = "healthy" if all(
        v == "healthy" for k, v in checks.items() if k != "google_places"
    ) else "degraded"

    return {
        "status": overall,
        "checks": checks,
    }
