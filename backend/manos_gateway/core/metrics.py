"""
Prometheus metrics for observability.

Exposes metrics for:
- HTTP request latency and counts
- Upstream (proxied) request latency and failure kinds
- Driver tracking feed activity
- External service health
"""

import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from manos_gateway.core.config import settings

# ============================================================
# HTTP Metrics
# ============================================================

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

HTTP_REQUEST_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

HTTP_REQUEST_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "HTTP requests currently in progress",
    ["method", "endpoint"],
)


# ============================================================
# Upstream Service Metrics
# ============================================================

UPSTREAM_REQUEST_DURATION = Histogram(
    "upstream_request_duration_seconds",
    "Upstream service request duration",
    ["service", "method"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)

UPSTREAM_REQUEST_TOTAL = Counter(
    "upstream_requests_total",
    "Total upstream service requests",
    ["service", "method", "outcome"],  # outcome: success, http_error, unavailable, dns, timeout
)

SERVICE_HEALTH = Gauge(
    "service_health",
    "External service health (1=healthy, 0=unhealthy)",
    ["service"],
)


# ============================================================
# Business Metrics
# ============================================================

OPTIMIZATION_REQUESTS = Counter(
    "route_optimization_requests_total",
    "Route optimization requests by kind and result",
    ["kind", "result"],  # result: forwarded, rejected, failed
)

ROUTES_CREATED = Counter(
    "routes_created_total",
    "Routes submitted to the persistence backend",
    ["route_choice"],  # primary, alternative
)

DRIVER_TRANSMISSIONS = Counter(
    "driver_transmissions_total",
    "Driver position messages received over the tracking socket",
)


# ============================================================
# Application Info
# ============================================================

APP_INFO = Info(
    "app",
    "Application information",
)
APP_INFO.info(
    {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }
)


# ============================================================
# Middleware
# ============================================================


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect HTTP request metrics.

    Tracks:
    - Request duration
    - Request count by endpoint and status
    - In-progress requests
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == settings.METRICS_PATH:
            return await call_next(request)

        method = request.method
        endpoint = self._normalize_path(request.url.path)

        HTTP_REQUEST_IN_PROGRESS.labels(method=method, endpoint=endpoint).inc()

        start_time = time.perf_counter()
        status_code = "500"
        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        finally:
            duration = time.perf_counter() - start_time

            HTTP_REQUEST_DURATION.labels(
                method=method,
                endpoint=endpoint,
                status_code=status_code,
            ).observe(duration)

            HTTP_REQUEST_TOTAL.labels(
                method=method,
                endpoint=endpoint,
                status_code=status_code,
            ).inc()

            HTTP_REQUEST_IN_PROGRESS.labels(method=method, endpoint=endpoint).dec()

        return response

    def _normalize_path(self, path: str) -> str:
        """
        Normalize path by replacing dynamic segments with placeholders.

        /api/routes/0b6f...-... -> /api/routes/{id}
        """
        normalized = [
            "{id}" if self._is_id(part) else part
            for part in path.split("/")
            if part
        ]
        return "/" + "/".join(normalized) if normalized else "/"

    def _is_id(self, part: str) -> bool:
        """Check if path part is likely an ID."""
        if len(part) == 36 and part.count("-") == 4:
            return True
        if part.isdigit():
            return True
        if len(part) >= 20 and all(c.isalnum() or c == "-" for c in part):
            return True
        return False


# ============================================================
# Helper Functions
# ============================================================


def track_upstream_request(service: str, method: str, outcome: str, duration: float) -> None:
    """Record one upstream call."""
    UPSTREAM_REQUEST_TOTAL.labels(service=service, method=method, outcome=outcome).inc()
    UPSTREAM_REQUEST_DURATION.labels(service=service, method=method).observe(duration)


def update_service_health(service: str, healthy: bool):
    """Update external service health status."""
    SERVICE_HEALTH.labels(service=service).set(1 if healthy else 0)


# ============================================================
# Metrics Endpoint
# ============================================================


async def metrics_endpoint(request: Request) -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format.
    """
    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST,
    )
