"""
Driver assignment endpoints.
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Request

from manos_gateway.core.rate_limit import RateLimits, limiter
from manos_gateway.core.security import organization_headers, require_bearer, require_organization_id
from manos_gateway.services.upstream import UpstreamClient, get_backend_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/route-drivers", tags=["Route Drivers"])


@router.post("/assign/{route_uuid}/{membership_uuid}")
@limiter.limit(RateLimits.CRUD_WRITE)
async def assign_driver(
    request: Request,
    route_uuid: str,
    membership_uuid: str,
    body: Optional[dict[str, Any]] = Body(default=None),
    authorization: str = Depends(require_bearer),
    organization_id: str = Depends(require_organization_id),
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    """Assign the driver holding ``membership_uuid`` to a route."""
    logger.info(f"Assigning membership {membership_uuid} to route {route_uuid}")
    return await backend.post(
        f"/route-drivers/assign/{route_uuid}/{membership_uuid}",
        json=body or {},
        headers=organization_headers(organization_id, authorization),
    )
