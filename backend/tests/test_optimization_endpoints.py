"""
Tests for the route optimization endpoints.
"""
import json
import socket

import httpx
import pytest


def _body(request: httpx.Request) -> dict:
    return json.loads(request.content)


class TestTrafficOptimizationEndpoint:
    """Tests for /api/route-optimization-trafic."""

    @pytest.mark.asyncio
    async def test_success(self, client, upstream, sample_traffic_request):
        """Coordinates are cleaned and the engine answer is wrapped."""
        upstream.respond(200, json={"primary_route": {"route_id": "r1"}})

        response = await client.post("/api/route-optimization-trafic", json=sample_traffic_request)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["data"] == {"primary_route": {"route_id": "r1"}}
        assert data["message"] == "Route optimized successfully with live traffic"

        sent = upstream.last
        assert str(sent.url) == "http://optimizer.test/api/v1/routes/optimize-tomtom"
        payload = _body(sent)
        assert payload["destination"]["lat"] == 14.589012
        assert payload["alternatives"] is True
        assert len(payload["waypoints"]) == 2

    @pytest.mark.asyncio
    async def test_missing_waypoints(self, client, upstream, sample_traffic_request):
        """Rejected before any network call."""
        del sample_traffic_request["waypoints"]

        response = await client.post("/api/route-optimization-trafic", json=sample_traffic_request)

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert "waypoints" in data["error"]
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_invalid_waypoint_latitude(self, client, upstream, sample_traffic_request):
        sample_traffic_request["waypoints"][0]["lat"] = 200

        response = await client.post("/api/route-optimization-trafic", json=sample_traffic_request)

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "INVALID_COORDINATES"
        assert "waypoint 1 (Store A)" in data["error"]
        assert "Latitude 200.0" in data["error"]
        assert "request_id" in data
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_engine_unreachable(self, client, upstream, sample_traffic_request):
        upstream.fail(httpx.ConnectError("[Errno 111] Connection refused"))

        response = await client.post("/api/route-optimization-trafic", json=sample_traffic_request)

        assert response.status_code == 503
        data = response.json()
        assert data["code"] == "UPSTREAM_UNAVAILABLE"
        assert data["error"] == "Cannot connect to optimization service"

    @pytest.mark.asyncio
    async def test_engine_host_not_found(self, client, upstream, sample_traffic_request):
        exc = httpx.ConnectError("[Errno -2] Name or service not known")
        exc.__cause__ = socket.gaierror(-2, "Name or service not known")
        upstream.fail(exc)

        response = await client.post("/api/route-optimization-trafic", json=sample_traffic_request)

        assert response.status_code == 503
        data = response.json()
        assert data["code"] == "UPSTREAM_NOT_FOUND"
        assert data["error"] == "optimization service URL not found"

    @pytest.mark.asyncio
    async def test_engine_timeout(self, client, upstream, sample_traffic_request):
        upstream.fail(httpx.ReadTimeout("timed out"))

        response = await client.post("/api/route-optimization-trafic", json=sample_traffic_request)

        assert response.status_code == 504
        assert response.json()["code"] == "UPSTREAM_TIMEOUT"

    @pytest.mark.asyncio
    async def test_engine_error_status_is_passed_through(self, client, upstream, sample_traffic_request):
        upstream.respond(422, json={"detail": "Too many waypoints for live traffic"})

        response = await client.post("/api/route-optimization-trafic", json=sample_traffic_request)

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "Too many waypoints for live traffic"
        assert data["details"] == {"detail": "Too many waypoints for live traffic"}


class TestMultiDeliveryEndpoint:
    """Tests for /api/route-optimization-multi-delivery."""

    @pytest.mark.asyncio
    async def test_success_returns_engine_body_flat(self, client, upstream, sample_multi_delivery_request):
        upstream.respond(200, json={"trips": [{"orders": ["order-1"]}]})

        response = await client.post(
            "/api/route-optimization-multi-delivery",
            json=sample_multi_delivery_request,
        )

        assert response.status_code == 200
        data = response.json()
        assert data == {"trips": [{"orders": ["order-1"]}], "success": True}

        payload = _body(upstream.last)
        assert str(upstream.last.url).endswith("/api/v1/routes/optimize-multi-delivery")
        assert payload["max_orders_per_trip"] == 10
        assert payload["delivery_orders"][0]["estimated_pickup_time"] == 5

    @pytest.mark.asyncio
    async def test_invalid_max_orders_per_trip(self, client, upstream, sample_multi_delivery_request):
        sample_multi_delivery_request["max_orders_per_trip"] = 0

        response = await client.post(
            "/api/route-optimization-multi-delivery",
            json=sample_multi_delivery_request,
        )

        assert response.status_code == 400
        assert "max_orders_per_trip" in response.json()["error"]
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_order_missing_field(self, client, upstream, sample_multi_delivery_request):
        del sample_multi_delivery_request["delivery_orders"][0]["id"]

        response = await client.post(
            "/api/route-optimization-multi-delivery",
            json=sample_multi_delivery_request,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Order 1 is missing required fields: id"


class TestSimpleRouteEndpoint:
    """Tests for /api/route-optimization-simple."""

    @pytest.mark.asyncio
    async def test_success(self, client, upstream):
        route_points = [{"lat": 14.6349, "lon": -90.5069}, {"lat": 14.64, "lon": -90.5}]
        upstream.respond(200, json={"route_points": route_points, "total_distance": 1100})

        response = await client.post(
            "/api/route-optimization-simple",
            json={
                "pickup": {"lat": 14.6349, "lng": -90.5069, "name": "A"},
                "delivery": {"lat": 14.6400, "lng": -90.5000, "name": "B"},
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["route_points"][0] == {"lat": 14.6349, "lon": -90.5069}
        assert data["route_points"][-1] == {"lat": 14.64, "lon": -90.5}
        assert _body(upstream.last)["pickup"] == {"lat": 14.6349, "lng": -90.5069, "name": "A"}

    @pytest.mark.asyncio
    async def test_default_point_names(self, client, upstream):
        upstream.respond(200, json={})

        await client.post(
            "/api/route-optimization-simple",
            json={"pickup": {"lat": 14.6, "lng": -90.5}, "delivery": {"lat": 14.7, "lng": -90.6}},
        )

        payload = _body(upstream.last)
        assert payload["pickup"]["name"] == "Pickup point"
        assert payload["delivery"]["name"] == "Delivery point"


class TestLegacyOptimizationEndpoint:
    """Tests for /api/route-optimization."""

    @pytest.mark.asyncio
    async def test_body_forwarded_unchanged(self, client, upstream):
        upstream.respond(200, json={"routes": []})
        body = {"vehicles": [{"id": 1}], "jobs": [{"id": 7, "location": [-90.5, 14.6]}]}

        response = await client.post("/api/route-optimization", json=body)

        assert response.status_code == 200
        assert response.json() == {"routes": []}
        assert _body(upstream.last) == body
        assert str(upstream.last.url).endswith("/api/v1/routes/optimize")
