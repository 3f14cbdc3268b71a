"""
Pytest configuration and fixtures.

Upstream services are replaced by an in-process recorder behind
``httpx.MockTransport``; nothing leaves the test process.
"""
import os

# Settings are read once at import time.
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "testing"

from typing import AsyncGenerator, Callable  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from manos_gateway.main import app  # noqa: E402
from manos_gateway.services.upstream import (  # noqa: E402
    UpstreamClient,
    get_backend_client,
    get_external_client,
    get_optimizer_client,
    get_places_client,
)

BACKEND_URL = "http://backend.test/api"
EXTERNAL_URL = "http://external.test"
OPTIMIZER_URL = "http://optimizer.test"
PLACES_URL = "http://places.test/maps/api/place"


class UpstreamRecorder:
    """
    Records every upstream request and answers through ``handler``.

    ``handler`` receives the ``httpx.Request`` and returns an
    ``httpx.Response`` or raises an ``httpx`` transport error.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json={"success": True})
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client(self, service: str, base_url: str, label: str = None) -> UpstreamClient:
        return UpstreamClient(service, base_url, label=label, transport=httpx.MockTransport(self))

    def respond(self, status_code: int = 200, json=None, text: str = None) -> None:
        if text is not None:
            self.handler = lambda request: httpx.Response(status_code, text=text)
        else:
            self.handler = lambda request: httpx.Response(status_code, json=json)

    def fail(self, exc: Exception) -> None:
        def handler(request):
            raise exc

        self.handler = handler

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def upstream() -> UpstreamRecorder:
    return UpstreamRecorder()


@pytest_asyncio.fixture(scope="function")
async def client(upstream: UpstreamRecorder) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with every upstream routed to the recorder."""
    app.dependency_overrides[get_backend_client] = lambda: upstream.client(
        "backend", BACKEND_URL, label="backend API"
    )
    app.dependency_overrides[get_external_client] = lambda: upstream.client(
        "external", EXTERNAL_URL, label="external orders API"
    )
    app.dependency_overrides[get_optimizer_client] = lambda: upstream.client(
        "optimizer", OPTIMIZER_URL, label="optimization service"
    )
    app.dependency_overrides[get_places_client] = lambda: upstream.client("places", PLACES_URL)

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": "Bearer test-token"}


# Sample data fixtures
@pytest.fixture
def sample_traffic_request() -> dict:
    """Traffic optimization request with two waypoints in Guatemala City."""
    return {
        "origin": {"lat": 14.6349, "lng": -90.5069, "name": "Warehouse"},
        "destination": {"lat": "14.5890123456", "lng": "-90.5513", "name": "Depot"},
        "waypoints": [
            {"lat": 14.6100, "lng": -90.5200, "name": "Store A"},
            {"lat": 14.6211, "lng": -90.5302, "address": "Zona 4"},
        ],
    }


@pytest.fixture
def sample_multi_delivery_request() -> dict:
    return {
        "driver_start_location": {"lat": 14.6349, "lng": -90.5069, "name": "Start"},
        "driver_end_location": {"lat": 14.6349, "lng": -90.5069, "name": "End"},
        "delivery_orders": [
            {
                "id": "order-1",
                "order_number": "A-100",
                "origin": {"lat": 14.61, "lng": -90.52},
                "destination": {"lat": 14.62, "lng": -90.53},
            },
        ],
    }


@pytest.fixture
def sample_route_data() -> dict:
    """``data`` of a traffic optimization response with one alternative."""
    return {
        "primary_route": {
            "route_id": "primary-1",
            "summary": {"total_time": 1800, "total_distance": 12000, "traffic_delay": 120},
            "points": [
                {"lat": 14.6349, "lon": -90.5069, "name": "Warehouse", "speed": 30},
                {"lat": 14.6100, "lon": -90.5200},
            ],
            "visit_order": [{"waypoint_index": 1}, {"waypoint_index": 0}],
        },
        "alternative_routes": [
            {
                "route_id": "alternative-1",
                "summary": {"total_time": 2000, "total_distance": 11000},
                "points": [{"lat": 14.6349, "lon": -90.5069}],
                "visit_order": [{"waypoint_index": 0}, {"waypoint_index": 1}],
            },
        ],
        "route_info": {
            "origin": {"lat": 14.6349, "lng": -90.5069},
            "destination": {"lat": 14.589012, "lng": -90.5513},
            "waypoints": [],
        },
        "traffic_conditions": {"level": "moderate"},
    }
