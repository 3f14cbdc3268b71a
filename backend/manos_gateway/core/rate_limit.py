"""
Rate limiting configuration for API endpoints.

Uses slowapi for request throttling based on organization or client IP.
"""

import re

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from manos_gateway.core.config import settings


def get_rate_limit_key(request: Request) -> str:
    """
    Get rate limit key from request.

    Uses the organization-id header when present (tenant-wide budget),
    otherwise the client IP.
    """
    organization_id = request.headers.get("organization-id")
    if organization_id:
        return f"org:{organization_id}"

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=["200/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


class RateLimits:
    """Rate limit presets for different endpoint types."""

    # Auth endpoints - strict limits to prevent brute force
    AUTH_VERIFY = "5/minute"
    AUTH_REFRESH = "10/minute"

    # Standard CRUD proxies
    CRUD_READ = "100/minute"
    CRUD_WRITE = "30/minute"

    # Optimization endpoints - expensive upstream operations
    OPTIMIZE_ROUTES = "10/minute"

    # Public (unauthenticated) forms
    PUBLIC_WRITE = "5/minute"

    # Places autocomplete fires on every keystroke
    PLACES = "120/minute"


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Custom handler for rate limit exceeded errors.

    Returns the standard failure envelope with retry information.
    """
    retry_after = 60
    if getattr(exc, "detail", None):
        match = re.search(r"(\d+)\s*second", str(exc.detail))
        if match:
            retry_after = int(match.group(1))

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": "Rate limit exceeded",
            "code": "RATE_LIMIT_EXCEEDED",
            "details": {
                "limit": str(exc.detail) if exc.detail else None,
                "retry_after_seconds": retry_after,
            },
        },
        headers={"Retry-After": str(retry_after)},
    )
