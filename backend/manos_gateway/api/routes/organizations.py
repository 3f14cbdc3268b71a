"""
Organization endpoints.

CRUD requires a Bearer token; the public lookups are used by the
organization-branded login and order pages before anyone is signed in.
"""
from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from manos_gateway.core.exceptions import MissingFieldException
from manos_gateway.core.rate_limit import RateLimits, limiter
from manos_gateway.core.security import require_bearer
from manos_gateway.schemas.organizations import OrganizationStatusUpdate
from manos_gateway.services.upstream import UpstreamClient, get_backend_client

router = APIRouter(prefix="/organizations", tags=["Organizations"])

# Legacy alias of /organizations/public/{uuid}
public_router = APIRouter(prefix="/org-public", tags=["Organizations"])


async def _public_organization(backend: UpstreamClient, organization_uuid: str) -> Any:
    return await backend.get(f"/organizations/public/{organization_uuid}")


@router.get("")
@limiter.limit(RateLimits.CRUD_READ)
async def list_organizations(
    request: Request,
    authorization: str = Depends(require_bearer),
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    """List organizations visible to the caller; query string is passed on."""
    return await backend.get(
        "/organizations",
        params=dict(request.query_params),
        headers={"Authorization": authorization},
    )


@router.post("")
@limiter.limit(RateLimits.CRUD_WRITE)
async def create_organization(
    request: Request,
    body: dict[str, Any] = Body(...),
    authorization: str = Depends(require_bearer),
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    return await backend.post("/organizations", json=body, headers={"Authorization": authorization})


@router.get("/public/{organization_uuid}")
@limiter.limit(RateLimits.CRUD_READ)
async def get_public_organization(
    request: Request,
    organization_uuid: str,
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    """Public profile (name, branding) of one organization."""
    return await _public_organization(backend, organization_uuid)


@router.get("/{organization_uuid}")
@limiter.limit(RateLimits.CRUD_READ)
async def get_organization(
    request: Request,
    organization_uuid: str,
    authorization: str = Depends(require_bearer),
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    return await backend.get(
        f"/organizations/{organization_uuid}",
        headers={"Authorization": authorization},
    )


@router.put("/{organization_uuid}")
@limiter.limit(RateLimits.CRUD_WRITE)
async def update_organization(
    request: Request,
    organization_uuid: str,
    body: dict[str, Any] = Body(...),
    authorization: str = Depends(require_bearer),
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    return await backend.put(
        f"/organizations/{organization_uuid}",
        json=body,
        headers={"Authorization": authorization},
    )


@router.delete("/{organization_uuid}")
@limiter.limit(RateLimits.CRUD_WRITE)
async def delete_organization(
    request: Request,
    organization_uuid: str,
    authorization: str = Depends(require_bearer),
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    data = await backend.delete(
        f"/organizations/{organization_uuid}",
        headers={"Authorization": authorization},
    )
    return data if data is not None else {"success": True}


@router.patch("/{org_id}/{organization_uuid}/status")
@limiter.limit(RateLimits.CRUD_WRITE)
async def update_organization_status(
    request: Request,
    org_id: str,
    organization_uuid: str,
    body: OrganizationStatusUpdate,
    authorization: str = Depends(require_bearer),
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    """Activate or suspend an organization (``org_id`` is the caller's own)."""
    if not body.status:
        raise MissingFieldException("status", message="Status is required")

    return await backend.patch(
        f"/organizations/{organization_uuid}/status",
        json={"status": body.status},
        headers={"Authorization": authorization},
    )


@public_router.get("/{organization_uuid}")
@limiter.limit(RateLimits.CRUD_READ)
async def get_public_organization_legacy(
    request: Request,
    organization_uuid: str,
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    return await _public_organization(backend, organization_uuid)
