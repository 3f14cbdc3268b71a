"""
Authentication endpoints.

Proxies the passwordless login flow and session management of the auth
backend. Tokens are passed through untouched.
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, Request

from manos_gateway.core.exceptions import MissingFieldException
from manos_gateway.core.rate_limit import RateLimits, limiter
from manos_gateway.core.security import require_bearer
from manos_gateway.schemas.auth import RefreshTokenRequest, VerifyCodeRequest
from manos_gateway.services.upstream import UpstreamClient, get_backend_client

router = APIRouter(prefix="/auth", tags=["Authentication"])


# ============== Public Endpoints ==============

@router.post("/passwordless/verify-code")
@limiter.limit(RateLimits.AUTH_VERIFY)
async def verify_code(
    request: Request,
    body: VerifyCodeRequest,
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    """
    Exchange an e-mailed code for a session.

    Returns the backend's token pair as is.
    """
    if not body.email or not body.code:
        raise MissingFieldException("email", "code", message="Email and code are required")

    return await backend.post(
        "/auth/passwordless/verify-code",
        json={"email": body.email, "code": body.code},
    )


@router.post("/refresh")
@limiter.limit(RateLimits.AUTH_REFRESH)
async def refresh_token(
    request: Request,
    body: RefreshTokenRequest,
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    """Get a new access token using a refresh token."""
    if not body.refresh_token:
        raise MissingFieldException("refresh_token", message="Refresh token is required")

    return await backend.post("/auth/refresh", json={"refresh_token": body.refresh_token})


# ============== Protected Endpoints ==============

@router.post("/logout")
async def logout(
    authorization: str = Depends(require_bearer),
    refresh_token: Optional[str] = Header(default=None, alias="x-refresh-token"),
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    """End the session; the refresh token is revoked too when sent."""
    headers = {"Authorization": authorization}
    if refresh_token:
        headers["x-refresh-token"] = refresh_token

    return await backend.post("/auth/logout", headers=headers)


@router.get("/profile")
async def get_profile(
    authorization: str = Depends(require_bearer),
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    """Get current user profile."""
    return await backend.get("/auth/profile", headers={"Authorization": authorization})
