"""
Last known driver positions (REST).

The live feed goes over Socket.IO; these endpoints give the initial picture
when a map is opened.
"""
from typing import Any

from fastapi import APIRouter, Depends, Request

from manos_gateway.core.exceptions import ValidationException
from manos_gateway.core.rate_limit import RateLimits, limiter
from manos_gateway.core.security import organization_headers, require_bearer, require_organization_id
from manos_gateway.schemas.tracking import RouteLastPositionsRequest
from manos_gateway.services.upstream import UpstreamClient, get_backend_client

router = APIRouter(prefix="/driver-positions", tags=["Driver Positions"])


@router.get("/organizations/{organization_uuid}/drivers/last-positions")
@limiter.limit(RateLimits.CRUD_READ)
async def organization_last_positions(
    request: Request,
    organization_uuid: str,
    authorization: str = Depends(require_bearer),
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    return await backend.get(
        f"/driver-positions/organizations/{organization_uuid}/drivers/last-positions",
        headers={"Authorization": authorization},
    )


@router.post("/routes/drivers/last-positions")
@limiter.limit(RateLimits.CRUD_READ)
async def route_last_positions(
    request: Request,
    body: RouteLastPositionsRequest,
    organization_id: str = Depends(require_organization_id),
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    if not body.route_ids:
        raise ValidationException(message="routeIds array is required and must not be empty")

    return await backend.post(
        "/driver-positions/routes/drivers/last-positions",
        json={"routeIds": body.route_ids},
        headers=organization_headers(organization_id),
    )
