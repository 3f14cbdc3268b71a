"""
Request credential dependencies.

The gateway never validates tokens itself: the auth backend does. These
dependencies only check that the credentials an upstream call needs are
present and hand them on in the form the upstream expects.
"""

from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from manos_gateway.core.exceptions import AuthenticationException, MissingFieldException
from manos_gateway.core.logging import organization_id_var
from manos_gateway.core.sentry import set_tag

bearer_scheme = HTTPBearer(auto_error=False)


async def require_bearer(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Return the ``Authorization`` header value, or fail with 401."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationException()
    return f"Bearer {credentials.credentials}"


async def optional_bearer(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """Return the ``Authorization`` header value when one was sent."""
    if credentials is None or not credentials.credentials:
        return None
    return f"Bearer {credentials.credentials}"


async def require_organization_id(
    organization_id: Optional[str] = Header(default=None, alias="organization-id"),
) -> str:
    """Return the tenant id from the ``organization-id`` header, or fail with 400."""
    if not organization_id:
        raise MissingFieldException(
            "organization-id",
            message="organization-id header is required",
        )
    organization_id_var.set(organization_id)
    set_tag("organization_id", organization_id)
    return organization_id


def organization_headers(organization_id: str, authorization: Optional[str] = None) -> dict[str, str]:
    """Headers for an organization-scoped upstream call."""
    headers = {"organization-id": organization_id}
    if authorization:
        headers["Authorization"] = authorization
    return headers
