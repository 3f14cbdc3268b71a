"""
Tests for the upstream HTTP client and its error mapping.
"""
import socket

import httpx
import pytest

from manos_gateway.core.exceptions import (
    UpstreamHTTPException,
    UpstreamMisconfiguredException,
    UpstreamTimeoutException,
    UpstreamUnavailableException,
)
from manos_gateway.services.upstream import UpstreamClient, forwarded_params, is_dns_failure


@pytest.fixture
def backend(upstream):
    return upstream.client("backend", "http://backend.test/api/", label="backend API")


class TestRequest:
    """Tests for successful requests."""

    @pytest.mark.asyncio
    async def test_json_body(self, backend, upstream):
        upstream.respond(200, json={"data": [1, 2]})

        result = await backend.get("/orders", params={"page": "2"}, headers={"organization-id": "org-1"})

        assert result == {"data": [1, 2]}
        assert str(upstream.last.url) == "http://backend.test/api/orders?page=2"
        assert upstream.last.headers["organization-id"] == "org-1"

    @pytest.mark.asyncio
    async def test_text_body(self, backend, upstream):
        upstream.respond(200, text="OK")
        assert await backend.get("/ping") == "OK"

    @pytest.mark.asyncio
    async def test_empty_body(self, backend, upstream):
        upstream.handler = lambda request: httpx.Response(204)
        assert await backend.delete("/orders/1") is None

    def test_url_for(self):
        client = UpstreamClient("backend", "http://backend.test/api/")
        assert client.url_for("orders") == "http://backend.test/api/orders"
        assert client.url_for("/orders") == "http://backend.test/api/orders"


class TestErrorMapping:
    """Tests for mapping upstream failures onto gateway exceptions."""

    @pytest.mark.asyncio
    async def test_http_error_keeps_status_and_message(self, backend, upstream):
        upstream.respond(409, json={"message": "Order already assigned"})

        with pytest.raises(UpstreamHTTPException) as exc:
            await backend.post("/orders/bulk", json={"orders": []})

        assert exc.value.status_code == 409
        assert exc.value.message == "Order already assigned"
        assert exc.value.details == {"message": "Order already assigned"}
        assert exc.value.service == "backend"

    @pytest.mark.asyncio
    async def test_http_error_with_plain_text(self, backend, upstream):
        upstream.respond(500, text="Internal failure")

        with pytest.raises(UpstreamHTTPException) as exc:
            await backend.get("/orders")

        assert exc.value.status_code == 500
        assert exc.value.message == "Internal failure"

    @pytest.mark.asyncio
    async def test_connection_refused(self, backend, upstream):
        upstream.fail(httpx.ConnectError("[Errno 111] Connection refused"))

        with pytest.raises(UpstreamUnavailableException) as exc:
            await backend.get("/orders")

        assert exc.value.status_code == 503
        assert exc.value.message == "Cannot connect to backend API"

    @pytest.mark.asyncio
    async def test_unresolvable_host(self, backend, upstream):
        upstream.fail(httpx.ConnectError("[Errno -2] Name or service not known"))

        with pytest.raises(UpstreamMisconfiguredException) as exc:
            await backend.get("/orders")

        assert exc.value.status_code == 503
        assert exc.value.message == "backend API URL not found"
        assert exc.value.details["url"] == "http://backend.test/api"

    @pytest.mark.asyncio
    async def test_timeout(self, backend, upstream):
        upstream.fail(httpx.ReadTimeout("timed out"))

        with pytest.raises(UpstreamTimeoutException) as exc:
            await backend.get("/orders")

        assert exc.value.status_code == 504

    @pytest.mark.asyncio
    async def test_other_transport_error(self, backend, upstream):
        upstream.fail(httpx.RemoteProtocolError("peer closed connection"))

        with pytest.raises(UpstreamUnavailableException):
            await backend.get("/orders")


class TestHealthCheck:
    """Tests for upstream health probing."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code,healthy", [(200, True), (404, True), (502, False)])
    async def test_status(self, backend, upstream, status_code, healthy):
        upstream.respond(status_code, json={})
        assert await backend.health_check() is healthy

    @pytest.mark.asyncio
    async def test_unreachable(self, backend, upstream):
        upstream.fail(httpx.ConnectError("refused"))
        assert await backend.health_check() is False


class TestHelpers:
    """Tests for module helpers."""

    def test_dns_failure_in_cause_chain(self):
        exc = httpx.ConnectError("connection failed")
        exc.__cause__ = socket.gaierror(-3, "Temporary failure in name resolution")
        assert is_dns_failure(exc)

    def test_refused_is_not_dns(self):
        assert not is_dns_failure(httpx.ConnectError("[Errno 111] Connection refused"))

    def test_forwarded_params(self):
        query = {"status": "active", "page": "", "debug": "1", "limit": "20"}
        assert forwarded_params(query, ("status", "page", "limit")) == {"status": "active", "limit": "20"}
