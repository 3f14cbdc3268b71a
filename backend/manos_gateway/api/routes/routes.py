"""
Saved route endpoints: creation from an optimization result, listing and
retrieval.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from manos_gateway.core.exceptions import MissingFieldException, RouteNotFoundException, UpstreamHTTPException
from manos_gateway.core.rate_limit import RateLimits, limiter
from manos_gateway.core.security import optional_bearer, organization_headers, require_organization_id
from manos_gateway.schemas.routes import ROUTE_LIST_FILTERS, RouteCreationRequest
from manos_gateway.services import route_creation
from manos_gateway.services.upstream import (
    UpstreamClient,
    forwarded_params,
    get_backend_client,
    get_optimizer_client,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["Routes"])


@router.post("/create", summary="Persist an optimized route")
@limiter.limit(RateLimits.CRUD_WRITE)
async def create_route(
    request: Request,
    body: RouteCreationRequest,
    organization_id: Optional[str] = Header(default=None, alias="organization-id"),
    backend: UpstreamClient = Depends(get_backend_client),
) -> dict:
    """
    Build the persistence payload for the chosen route and submit it.

    ``selectedRouteIndex`` 0 (or absent) picks the primary route, N picks
    alternative N-1. The ``organization-id`` header, when sent, wins over ``organizationId``.
    """
    if organization_id:
        if body.organization_id and body.organization_id != organization_id:
            logger.warning(
                "organizationId in body differs from organization-id header; using the header",
                extra={"body_organization_id": body.organization_id},
            )
        body = body.model_copy(update={"organization_id": organization_id})
    elif not body.organization_id:
        raise MissingFieldException(
            "organization-id",
            message="organization-id header or organizationId is required",
        )

    return await route_creation.create_route(backend, body)


@router.get("", summary="List routes of the organization")
@limiter.limit(RateLimits.CRUD_READ)
async def list_routes(
    request: Request,
    organization_id: str = Depends(require_organization_id),
    backend: UpstreamClient = Depends(get_backend_client),
) -> dict:
    params = forwarded_params(request.query_params, ROUTE_LIST_FILTERS)

    response = await backend.get(
        "/routes",
        params=params,
        headers=organization_headers(organization_id),
    )
    response = response if isinstance(response, dict) else {"data": response}

    return {
        "success": True,
        "data": response.get("data") or [],
        "pagination": response.get("pagination"),
        "message": response.get("message") or "Routes retrieved successfully",
    }


@router.get("/{route_uuid}", summary="Get one saved route")
@limiter.limit(RateLimits.CRUD_READ)
async def get_route(
    request: Request,
    route_uuid: str,
    authorization: Optional[str] = Depends(optional_bearer),
    optimizer: UpstreamClient = Depends(get_optimizer_client),
) -> dict:
    """Fetch a route and normalize every coordinate it embeds."""
    headers = {"Authorization": authorization} if authorization else None

    try:
        response = await optimizer.get(f"/api/v1/routes/{route_uuid}", headers=headers)
    except UpstreamHTTPException as e:
        if e.status_code == 404:
            raise RouteNotFoundException(route_uuid)
        raise

    data = response.get("data") if isinstance(response, dict) else None

    return {
        "success": True,
        "data": route_creation.clean_saved_route(data),
        "message": "Route retrieved successfully",
    }
