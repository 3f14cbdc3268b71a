"""
Organization member endpoints.
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request

from manos_gateway.core.exceptions import MissingFieldException
from manos_gateway.core.rate_limit import RateLimits, limiter
from manos_gateway.core.security import optional_bearer
from manos_gateway.schemas.organizations import MemberRegistrationRequest
from manos_gateway.services.upstream import UpstreamClient, get_backend_client

router = APIRouter(prefix="/organization-members", tags=["Organization Members"])


@router.get("/organization/{organization_uuid}/users")
@limiter.limit(RateLimits.CRUD_READ)
async def list_organization_users(
    request: Request,
    organization_uuid: str,
    role: Optional[str] = Query(default=None, description="Only members with this role"),
    authorization: Optional[str] = Depends(optional_bearer),
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    """Members of an organization, optionally filtered by role."""
    return await backend.get(
        f"/organization-members/organization/{organization_uuid}/users",
        params={"role": role} if role else None,
        headers={"Authorization": authorization} if authorization else None,
    )


@router.post("/public-create-with-verification")
@limiter.limit(RateLimits.PUBLIC_WRITE)
async def register_member(
    request: Request,
    body: MemberRegistrationRequest,
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    """Self-registration; the backend e-mails a verification code."""
    missing = [name for name in ("organization_uuid", "email", "name", "title") if not getattr(body, name)]
    if missing:
        raise MissingFieldException(
            *missing,
            message="organization_uuid, email, name, and title are required",
        )

    return await backend.post(
        "/organization-members/public-create-with-verification",
        json=body.model_dump(),
    )
