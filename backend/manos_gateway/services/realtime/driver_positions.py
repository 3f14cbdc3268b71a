"""
Live driver position feed over Socket.IO.

Connection lifecycle:

    disconnected -> connecting -> connected -> authenticating -> authenticated

Once authenticated the client may join and leave per-route channels. Any
transport close or error returns it to ``disconnected``. Transport drops are
retried by the Socket.IO client (bounded attempts); an authentication failure
is not retried.

Only the latest transmission per driver is kept: each ``driver_transmission``
replaces the previous entry for that driver.
"""

import inspect
import logging
from collections import defaultdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional, Union

import socketio
from pydantic import ValidationError
from socketio.exceptions import ConnectionError as SocketIOConnectionError

from manos_gateway.core.config import settings
from manos_gateway.core.metrics import DRIVER_TRANSMISSIONS
from manos_gateway.schemas.tracking import DriverStatus, DriverTransmission

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class ErrorKind(str, Enum):
    """Failure kinds surfaced separately: bad credentials vs unreachable server."""

    AUTH = "auth_error"
    CONNECT = "connect_error"


# Events forwarded to listeners registered with ``on``.
LISTENER_EVENTS = (
    "connection_status",
    "authenticated",
    "auth_error",
    "joined_route",
    "left_route",
    "driver_transmission",
    "route_driver_update",
    "organization_driver_update",
    "driver_status_update",
)

Listener = Callable[[Any], Any]


def _parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning(f"Unparseable transmission timestamp: {value!r}")
            return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def is_driver_offline(
    last_seen: Union[str, datetime, None],
    now: Optional[datetime] = None,
    threshold_minutes: Optional[int] = None,
) -> bool:
    """A driver with no transmission, or none for too long, is offline."""
    last_seen = _parse_timestamp(last_seen)
    if last_seen is None:
        return True

    now = _parse_timestamp(now) or datetime.now(timezone.utc)
    threshold = threshold_minutes or settings.DRIVER_OFFLINE_THRESHOLD_MINUTES
    elapsed_minutes = (now - last_seen).total_seconds() / 60
    return elapsed_minutes > threshold


def get_real_status(
    transmission: Union[DriverTransmission, dict],
    now: Optional[datetime] = None,
) -> str:
    """
    Status to display for a driver.

    ``OFFLINE`` when the last transmission is older than the offline
    threshold, whatever status it carried; otherwise that status, or ``IDLE``
    when it carried none. ``transmission_timestamp`` wins over ``timestamp``.
    """
    if isinstance(transmission, DriverTransmission):
        last_seen = transmission.last_seen
        status = transmission.status
    else:
        last_seen = transmission.get("transmission_timestamp") or transmission.get("timestamp")
        status = transmission.get("status")

    if is_driver_offline(last_seen, now=now):
        return DriverStatus.OFFLINE.value
    return status or DriverStatus.IDLE.value


class DriverPositionClient:
    """
    Socket.IO client keeping the latest position of every tracked driver.

    Each instance owns its own socket and position map. ``sio`` may be
    injected; by default a ``socketio.AsyncClient`` is created with the
    configured reconnection policy.
    """

    def __init__(
        self,
        user_id: str,
        organization_id: str,
        url: Optional[str] = None,
        sio: Optional[Any] = None,
    ):
        self.user_id = user_id
        self.organization_id = organization_id
        self.url = url or settings.WS_URL
        self.sio = sio or socketio.AsyncClient(
            reconnection=True,
            reconnection_attempts=settings.WS_RECONNECTION_ATTEMPTS,
            reconnection_delay=settings.WS_RECONNECTION_DELAY,
            reconnection_delay_max=settings.WS_RECONNECTION_DELAY_MAX,
        )

        self.state = ConnectionState.DISCONNECTED
        self.joined_routes: set[str] = set()
        self.positions: dict[str, DriverTransmission] = {}
        self.last_error: Optional[ErrorKind] = None
        self.last_error_message: Optional[str] = None
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

        self._register_handlers()

    def _register_handlers(self) -> None:
        self.sio.on("connect", self._on_connect)
        self.sio.on("disconnect", self._on_disconnect)
        self.sio.on("connect_error", self._on_connect_error)
        self.sio.on("authenticated", self._on_authenticated)
        self.sio.on("auth_error", self._on_auth_error)
        self.sio.on("joined_route", self._on_joined_route)
        self.sio.on("left_route", self._on_left_route)
        self.sio.on("driver_transmission", self._on_driver_transmission)
        for event in ("route_driver_update", "organization_driver_update", "driver_status_update"):
            self.sio.on(event, self._forwarder(event))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self.state == ConnectionState.AUTHENTICATED

    async def connect(self) -> bool:
        """
        Open the socket unless one is already open or opening.

        Returns:
            True if a connection was established by this call
        """
        if self.state != ConnectionState.DISCONNECTED:
            logger.debug(f"connect() ignored, socket is {self.state.value}")
            return False

        self.state = ConnectionState.CONNECTING
        logger.info(f"Connecting to driver tracking at {self.url}")

        try:
            await self.sio.connect(
                self.url,
                transports=["websocket"],
                wait_timeout=settings.WS_CONNECT_TIMEOUT,
            )
        except SocketIOConnectionError as e:
            await self._fail_connection(str(e))
            return False

        return True

    async def disconnect(self) -> None:
        """Close the socket; no reconnection follows a client-side close."""
        if self.state == ConnectionState.DISCONNECTED:
            return
        await self.sio.disconnect()
        self._reset()

    async def join_route(self, route_id: str) -> bool:
        """Subscribe to one route's channel. Only valid once authenticated."""
        if not self.is_authenticated:
            logger.warning(f"join_route({route_id}) ignored: socket is {self.state.value}, not authenticated")
            return False
        await self.sio.emit("join_route", {"routeId": route_id})
        return True

    async def leave_route(self, route_id: str) -> bool:
        """Unsubscribe from one route's channel. Only valid once authenticated."""
        if not self.is_authenticated:
            logger.warning(f"leave_route({route_id}) ignored: socket is {self.state.value}, not authenticated")
            return False
        await self.sio.emit("leave_route", {"routeId": route_id})
        return True

    def get_position(self, driver_id: str) -> Optional[DriverTransmission]:
        return self.positions.get(driver_id)

    def get_driver_status(self, driver_id: str, now: Optional[datetime] = None) -> str:
        transmission = self.positions.get(driver_id)
        if transmission is None:
            return DriverStatus.OFFLINE.value
        return get_real_status(transmission, now=now)

    def on(self, event: str, callback: Listener) -> None:
        """Register a listener; callbacks may be plain functions or coroutines."""
        if event not in LISTENER_EVENTS:
            raise ValueError(f"Unknown event: {event}")
        if callback not in self._listeners[event]:
            self._listeners[event].append(callback)

    def off(self, event: str, callback: Listener) -> None:
        if callback in self._listeners.get(event, []):
            self._listeners[event].remove(callback)

    # ------------------------------------------------------------------
    # Socket handlers
    # ------------------------------------------------------------------

    async def _on_connect(self) -> None:
        self.state = ConnectionState.CONNECTED
        self.last_error = None
        self.last_error_message = None
        logger.info("Driver tracking socket connected")
        await self._notify("connection_status", {"connected": True})

        await self.sio.emit(
            "authenticate",
            {"userId": self.user_id, "organizationId": self.organization_id},
        )
        self.state = ConnectionState.AUTHENTICATING

    async def _on_disconnect(self, reason: Any = None) -> None:
        logger.info(f"Driver tracking socket disconnected ({reason or 'no reason given'})")
        self._reset()
        await self._notify("connection_status", {"connected": False})

    async def _on_connect_error(self, data: Any = None) -> None:
        await self._fail_connection(str(data) if data is not None else "connection refused")

    async def _on_authenticated(self, data: Any = None) -> None:
        self.state = ConnectionState.AUTHENTICATED
        logger.info(f"Driver tracking authenticated for organization {self.organization_id}")
        await self._notify("authenticated", data)

    async def _on_auth_error(self, data: Any = None) -> None:
        self.last_error = ErrorKind.AUTH
        self.last_error_message = _error_message(data, "authentication rejected")
        logger.error(f"Driver tracking authentication failed: {self.last_error_message}")
        await self._notify("auth_error", data)

        # Retrying with the same credentials cannot succeed.
        await self.sio.disconnect()
        self._reset()

    async def _on_joined_route(self, data: Any = None) -> None:
        route_id = _route_id(data)
        if route_id:
            self.joined_routes.add(route_id)
        await self._notify("joined_route", data)

    async def _on_left_route(self, data: Any = None) -> None:
        route_id = _route_id(data)
        if route_id:
            self.joined_routes.discard(route_id)
        await self._notify("left_route", data)

    async def _on_driver_transmission(self, data: Any = None) -> None:
        try:
            transmission = DriverTransmission.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Dropping malformed driver_transmission: {e.error_count()} error(s)")
            return

        self.positions[transmission.driver_id] = transmission
        DRIVER_TRANSMISSIONS.inc()
        await self._notify("driver_transmission", transmission)

    def _forwarder(self, event: str) -> Callable[[Any], Any]:
        async def forward(data: Any = None) -> None:
            await self._notify(event, data)

        return forward

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _fail_connection(self, message: str) -> None:
        self.last_error = ErrorKind.CONNECT
        self.last_error_message = message
        self.state = ConnectionState.DISCONNECTED
        self.joined_routes.clear()
        logger.error(f"Driver tracking connection failed: {message}")
        await self._notify("connection_status", {"connected": False, "error": message})

    def _reset(self) -> None:
        self.state = ConnectionState.DISCONNECTED
        self.joined_routes.clear()

    async def _notify(self, event: str, data: Any) -> None:
        for callback in list(self._listeners.get(event, [])):
            try:
                result = callback(data)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Listener for {event} failed")


def _route_id(data: Any) -> Optional[str]:
    if isinstance(data, dict):
        return data.get("routeId") or data.get("route_id")
    if isinstance(data, str):
        return data
    return None


def _error_message(data: Any, default: str) -> str:
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error") or default)
    if data:
        return str(data)
    return default
