"""
HTTP client for the services behind the gateway.

One client per upstream:
- backend: orders, organizations, members and auth (``API_BASE_URL``)
- external: public/external orders API (``EXTERNAL_API_BASE_URL``)
- optimizer: route optimization engine (``FASTAPI_BASE_URL``)
- places: Google Places web service

Calls are never retried here; the dashboard decides whether to try again.
Failures are raised as ``UpstreamException`` subclasses so every endpoint
answers with the same envelope and the same status mapping.
"""
import logging
import socket
import time
from typing import Any, Iterable, Mapping, Optional

import httpx

from manos_gateway.core.config import settings
from manos_gateway.core.exceptions import (
    UpstreamHTTPException,
    UpstreamMisconfiguredException,
    UpstreamTimeoutException,
    UpstreamUnavailableException,
)
from manos_gateway.core.metrics import track_upstream_request

logger = logging.getLogger(__name__)

_DNS_ERROR_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "temporary failure in name resolution",
    "no address associated with hostname",
    "enotfound",
)


def is_dns_failure(exc: BaseException) -> bool:
    """Whether a connection error was caused by an unresolvable host."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, socket.gaierror):
            return True
        message = str(current).lower()
        if any(marker in message for marker in _DNS_ERROR_MARKERS):
            return True
        current = current.__cause__ or current.__context__
    return False


def extract_error_message(response: httpx.Response) -> tuple[str, Any]:
    """
    Pull a human message and the decoded body out of an error response.

    Looks at ``detail``, ``message`` and ``error`` in that order and falls back
    to the raw text.
    """
    try:
        body = response.json()
    except ValueError:
        body = response.text

    if isinstance(body, dict):
        for key in ("detail", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value, body

    text = response.text.strip()
    return (text or response.reason_phrase or f"HTTP {response.status_code}"), body


class UpstreamClient:
    """
    Thin async JSON client for one upstream service.

    A new ``httpx.AsyncClient`` is opened per call; ``transport`` can be
    injected to point the client at a mock in tests.
    """

    def __init__(
        self,
        service: str,
        base_url: str,
        label: Optional[str] = None,
        timeout: Optional[float] = None,
        connect_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.service = service
        self.label = label or service
        self.base_url = base_url.rstrip("/")
        self.timeout = httpx.Timeout(
            timeout or settings.UPSTREAM_TIMEOUT,
            connect=connect_timeout or settings.UPSTREAM_CONNECT_TIMEOUT,
        )
        self.transport = transport

    def url_for(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """
        Send one request and return the decoded JSON body.

        Args:
            method: HTTP method
            path: Path relative to the service base URL
            json: JSON body
            params: Query parameters
            headers: Extra headers (Authorization, organization-id)

        Returns:
            Decoded JSON, the raw text for non-JSON bodies, or None when empty

        Raises:
            UpstreamHTTPException: non-2xx response, status passed through
            UpstreamUnavailableException: connection refused or dropped
            UpstreamMisconfiguredException: host name does not resolve
            UpstreamTimeoutException: no answer within the timeout
        """
        url = self.url_for(path)
        start = time.perf_counter()

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(
                    method,
                    url,
                    json=json,
                    params=params,
                    headers=headers,
                )
        except httpx.TimeoutException as e:
            track_upstream_request(self.service, method, "timeout", time.perf_counter() - start)
            logger.error(f"{self.label} timed out: {method} {url}")
            raise UpstreamTimeoutException(
                self.service,
                message=f"{self.label} did not respond in time",
                details={"url": url, "error": str(e) or type(e).__name__},
            )
        except httpx.ConnectError as e:
            if is_dns_failure(e):
                track_upstream_request(self.service, method, "dns", time.perf_counter() - start)
                logger.error(f"{self.label} host not found: {url} ({e})")
                raise UpstreamMisconfiguredException(
                    self.service,
                    message=f"{self.label} URL not found",
                    details={
                        "url": self.base_url,
                        "error": str(e),
                        "hint": "Check the configured base URL for this service",
                    },
                )
            track_upstream_request(self.service, method, "unavailable", time.perf_counter() - start)
            logger.error(f"Cannot connect to {self.label}: {url} ({e})")
            raise UpstreamUnavailableException(
                self.service,
                message=f"Cannot connect to {self.label}",
                details={"url": url, "error": str(e)},
            )
        except httpx.RequestError as e:
            track_upstream_request(self.service, method, "unavailable", time.perf_counter() - start)
            logger.error(f"{self.label} request failed: {method} {url} ({e})")
            raise UpstreamUnavailableException(
                self.service,
                message=f"Cannot connect to {self.label}",
                details={"url": url, "error": str(e) or type(e).__name__},
            )

        if response.is_error:
            message, body = extract_error_message(response)
            track_upstream_request(self.service, method, "http_error", time.perf_counter() - start)
            logger.warning(
                f"{self.label} answered {response.status_code} for {method} {url}: {message}",
                extra={"upstream_status": response.status_code},
            )
            raise UpstreamHTTPException(
                self.service,
                response.status_code,
                message=message,
                details=body,
            )

        track_upstream_request(self.service, method, "success", time.perf_counter() - start)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs) -> Any:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def health_check(self, path: str = "/") -> bool:
        """
        Check that the service answers at all.

        Any response below 500 counts as reachable; the probe is a plain GET
        with a short timeout.
        """
        try:
            async with httpx.AsyncClient(timeout=5.0, transport=self.transport) as client:
                response = await client.get(self.url_for(path))
                return response.status_code < 500
        except httpx.HTTPError as e:
            logger.warning(f"{self.label} health check failed: {e}")
            return False


# =============================================================================
# FastAPI dependencies
# =============================================================================

def get_backend_client() -> UpstreamClient:
    return UpstreamClient("backend", settings.API_BASE_URL, label="backend API")


def get_external_client() -> UpstreamClient:
    return UpstreamClient("external", settings.EXTERNAL_API_BASE_URL, label="external orders API")


def get_optimizer_client() -> UpstreamClient:
    return UpstreamClient(
        "optimizer",
        settings.FASTAPI_BASE_URL,
        label="optimization service",
        timeout=settings.OPTIMIZATION_TIMEOUT,
    )


def get_places_client() -> UpstreamClient:
    return UpstreamClient("places", settings.GOOGLE_PLACES_BASE_URL, label="Google Places")


def forwarded_params(query: Mapping[str, str], allowed: Iterable[str]) -> dict[str, str]:
    """Keep the whitelisted, non-empty query parameters."""
    allowed = set(allowed)
    return {key: value for key, value in query.items() if key in allowed and value != ""}
