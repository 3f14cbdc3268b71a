"""
Tests for the live driver position client.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from socketio.exceptions import ConnectionError as SocketIOConnectionError

from manos_gateway.services.realtime import (
    ConnectionState,
    DriverPositionClient,
    ErrorKind,
    get_real_status,
    is_driver_offline,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeSocket:
    """Stands in for ``socketio.AsyncClient``; handlers are fired by hand."""

    def __init__(self):
        self.handlers = {}
        self.connect = AsyncMock()
        self.emit = AsyncMock()
        self.disconnect = AsyncMock()

    def on(self, event, handler):
        self.handlers[event] = handler

    async def fire(self, event, *args):
        await self.handlers[event](*args)


def transmission(driver_id="driver-1", minutes_ago=1, status="DRIVING", lat=14.6, lng=-90.5):
    return {
        "driverId": driver_id,
        "location": {"latitude": lat, "longitude": lng},
        "status": status,
        "timestamp": (NOW - timedelta(minutes=minutes_ago)).isoformat(),
    }


@pytest.fixture
def sio():
    return FakeSocket()


@pytest.fixture
def tracker(sio):
    return DriverPositionClient("user-1", "org-1", url="http://tracking.test", sio=sio)


async def authenticate(tracker, sio):
    await tracker.connect()
    await sio.fire("connect")
    await sio.fire("authenticated", {"ok": True})


class TestOfflineStatus:
    """Tests for the derived driver status."""

    def test_stale_transmission_is_offline(self):
        assert get_real_status(transmission(minutes_ago=75), now=NOW) == "OFFLINE"

    def test_recent_transmission_keeps_status(self):
        assert get_real_status(transmission(minutes_ago=65), now=NOW) == "DRIVING"

    def test_recent_transmission_without_status_is_idle(self):
        assert get_real_status(transmission(status=None), now=NOW) == "IDLE"

    def test_transmission_timestamp_wins(self):
        data = transmission(minutes_ago=200)
        data["transmission_timestamp"] = (NOW - timedelta(minutes=5)).isoformat()
        assert get_real_status(data, now=NOW) == "DRIVING"

    def test_no_timestamp_is_offline(self):
        assert is_driver_offline(None, now=NOW)

    def test_custom_threshold(self):
        assert is_driver_offline(NOW - timedelta(minutes=11), now=NOW, threshold_minutes=10)
        assert not is_driver_offline(NOW - timedelta(minutes=9), now=NOW, threshold_minutes=10)


class TestConnectionLifecycle:
    """Tests for connecting and authenticating."""

    @pytest.mark.asyncio
    async def test_connect_uses_websocket_transport(self, tracker, sio):
        assert await tracker.connect() is True

        sio.connect.assert_awaited_once()
        args, kwargs = sio.connect.call_args
        assert args == ("http://tracking.test",)
        assert kwargs["transports"] == ["websocket"]
        assert tracker.state == ConnectionState.CONNECTING

    @pytest.mark.asyncio
    async def test_connect_is_idempotent(self, tracker, sio):
        await tracker.connect()
        assert await tracker.connect() is False
        sio.connect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_authenticates_on_connect(self, tracker, sio):
        await tracker.connect()
        await sio.fire("connect")

        sio.emit.assert_awaited_once_with("authenticate", {"userId": "user-1", "organizationId": "org-1"})
        assert tracker.state == ConnectionState.AUTHENTICATING

        await sio.fire("authenticated", {"ok": True})
        assert tracker.is_authenticated

    @pytest.mark.asyncio
    async def test_connect_failure_is_a_connect_error(self, tracker, sio):
        sio.connect.side_effect = SocketIOConnectionError("Connection refused by the server")

        assert await tracker.connect() is False

        assert tracker.state == ConnectionState.DISCONNECTED
        assert tracker.last_error == ErrorKind.CONNECT
        assert "refused" in tracker.last_error_message

    @pytest.mark.asyncio
    async def test_auth_error_disconnects_without_retry(self, tracker, sio):
        await tracker.connect()
        await sio.fire("connect")
        await sio.fire("auth_error", {"message": "Invalid user"})

        assert tracker.last_error == ErrorKind.AUTH
        assert tracker.last_error_message == "Invalid user"
        assert tracker.state == ConnectionState.DISCONNECTED
        sio.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disconnect_clears_joined_routes(self, tracker, sio):
        await authenticate(tracker, sio)
        await sio.fire("joined_route", {"routeId": "route-1"})

        await sio.fire("disconnect", "transport close")

        assert tracker.state == ConnectionState.DISCONNECTED
        assert tracker.joined_routes == set()


class TestRouteChannels:
    """Tests for joining and leaving route channels."""

    @pytest.mark.asyncio
    async def test_join_before_authentication_is_ignored(self, tracker, sio):
        assert await tracker.join_route("route-1") is False
        sio.emit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_join_and_leave(self, tracker, sio):
        await authenticate(tracker, sio)

        assert await tracker.join_route("route-1") is True
        sio.emit.assert_awaited_with("join_route", {"routeId": "route-1"})
        await sio.fire("joined_route", {"routeId": "route-1"})
        assert tracker.joined_routes == {"route-1"}

        assert await tracker.leave_route("route-1") is True
        sio.emit.assert_awaited_with("leave_route", {"routeId": "route-1"})
        await sio.fire("left_route", {"routeId": "route-1"})
        assert tracker.joined_routes == set()


class TestTransmissions:
    """Tests for driver transmission handling."""

    @pytest.mark.asyncio
    async def test_latest_transmission_replaces_previous(self, tracker, sio):
        await sio.fire("driver_transmission", transmission(lat=14.1, minutes_ago=3))
        await sio.fire("driver_transmission", transmission(lat=14.2, minutes_ago=1))
        await sio.fire("driver_transmission", transmission(driver_id="driver-2"))

        assert len(tracker.positions) == 2
        assert tracker.get_position("driver-1").location.lat == 14.2

    @pytest.mark.asyncio
    async def test_malformed_transmission_is_dropped(self, tracker, sio):
        await sio.fire("driver_transmission", {"driverId": "driver-1"})
        await sio.fire("driver_transmission", transmission(lat=300))

        assert tracker.positions == {}

    @pytest.mark.asyncio
    async def test_driver_status(self, tracker, sio):
        await sio.fire("driver_transmission", transmission(minutes_ago=90))

        assert tracker.get_driver_status("driver-1", now=NOW) == "OFFLINE"
        assert tracker.get_driver_status("unknown", now=NOW) == "OFFLINE"

    @pytest.mark.asyncio
    async def test_listeners_are_notified(self, tracker, sio):
        sync_listener = MagicMock()
        async_listener = AsyncMock()
        failing_listener = MagicMock(side_effect=RuntimeError("boom"))
        tracker.on("driver_transmission", failing_listener)
        tracker.on("driver_transmission", sync_listener)
        tracker.on("driver_transmission", async_listener)

        await sio.fire("driver_transmission", transmission())

        sync_listener.assert_called_once()
        async_listener.assert_awaited_once()
        assert sync_listener.call_args.args[0].driver_id == "driver-1"

        tracker.off("driver_transmission", sync_listener)
        await sio.fire("driver_transmission", transmission())
        sync_listener.assert_called_once()

    @pytest.mark.asyncio
    async def test_forwarded_events(self, tracker, sio):
        listener = MagicMock()
        tracker.on("route_driver_update", listener)

        await sio.fire("route_driver_update", {"routeId": "route-1"})

        listener.assert_called_once_with({"routeId": "route-1"})

    def test_unknown_event(self, tracker):
        with pytest.raises(ValueError):
            tracker.on("not_an_event", lambda data: None)
