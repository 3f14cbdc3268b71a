"""
Route optimization request building and forwarding.

Every request is validated completely before anything is sent: required
fields first, then every embedded coordinate. The first invalid coordinate
aborts the whole request with an error naming the waypoint or order it
belongs to. Defaults are filled in only once validation has passed.
"""
import logging
from typing import Any, Optional

from manos_gateway.core.config import settings
from manos_gateway.core.exceptions import (
    InvalidCoordinateException,
    MissingFieldException,
    UpstreamException,
)
from manos_gateway.core.metrics import OPTIMIZATION_REQUESTS
from manos_gateway.schemas.optimization import (
    CleanLocation,
    DeliveryOrderInput,
    DeliveryOrderPayload,
    LocationInput,
    MultiDeliveryOptimizationRequest,
    MultiDeliveryPayload,
    SimpleRoutePayload,
    SimpleRouteRequest,
    TrafficOptimizationPayload,
    TrafficOptimizationRequest,
)
from manos_gateway.schemas.validators import validate_and_clean_coordinate
from manos_gateway.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)

OPTIMIZE_TOMTOM_PATH = "/api/v1/routes/optimize-tomtom"
OPTIMIZE_MULTI_DELIVERY_PATH = "/api/v1/routes/optimize-multi-delivery"
SIMPLE_ROUTE_PATH = "/api/v1/routes/simple-route"
OPTIMIZE_PATH = "/api/v1/routes/optimize"

DEFAULT_PICKUP_NAME = "Pickup point"
DEFAULT_DELIVERY_NAME = "Delivery point"


def clean_location(
    location: LocationInput,
    entity: str,
    default_name: Optional[str] = None,
) -> CleanLocation:
    """
    Validate one location and return it with rounded coordinates.

    Raises:
        InvalidCoordinateException: naming ``entity``
    """
    result = validate_and_clean_coordinate(location.lat, location.lng)
    if not result.is_valid:
        raise InvalidCoordinateException(entity, result.error, location.lat, location.lng)

    return CleanLocation(
        lat=result.cleaned_coordinate.lat,
        lng=result.cleaned_coordinate.lng,
        name=location.name or default_name,
        address=location.address,
    )


def _waypoint_entity(index: int, waypoint: LocationInput) -> str:
    entity = f"waypoint {index + 1}"
    if waypoint.label:
        entity += f" ({waypoint.label})"
    return entity


def build_traffic_payload(request: TrafficOptimizationRequest) -> TrafficOptimizationPayload:
    """Validate a traffic optimization request and apply defaults."""
    missing = [name for name in ("origin", "destination") if getattr(request, name) is None]
    if missing:
        raise MissingFieldException(*missing)
    if not request.waypoints:
        raise MissingFieldException(
            "waypoints",
            message="At least one waypoint is required (waypoints)",
        )

    origin = clean_location(request.origin, "origin")
    destination = clean_location(request.destination, "destination")
    waypoints = [
        clean_location(waypoint, _waypoint_entity(i, waypoint))
        for i, waypoint in enumerate(request.waypoints)
    ]

    return TrafficOptimizationPayload(
        origin=origin,
        destination=destination,
        waypoints=waypoints,
        alternatives=True if request.alternatives is None else request.alternatives,
        queue_mode=bool(request.queue_mode),
    )


def _build_order(index: int, order: DeliveryOrderInput) -> DeliveryOrderPayload:
    missing = [
        name
        for name in ("id", "order_number", "origin", "destination")
        if getattr(order, name) in (None, "")
    ]
    if missing:
        raise MissingFieldException(
            *(f"delivery_orders[{index}].{name}" for name in missing),
            message=f"Order {index + 1} is missing required fields: {', '.join(missing)}",
        )

    order_number = str(order.order_number)
    return DeliveryOrderPayload(
        id=str(order.id),
        order_number=order_number,
        origin=clean_location(order.origin, f"origin of order {order_number}"),
        destination=clean_location(order.destination, f"destination of order {order_number}"),
        description=order.description or "",
        total_amount=order.total_amount or 0,
        priority=order.priority or 1,
        estimated_pickup_time=order.estimated_pickup_time or 5,
        estimated_delivery_time=order.estimated_delivery_time or 3,
    )


def build_multi_delivery_payload(request: MultiDeliveryOptimizationRequest) -> MultiDeliveryPayload:
    """Validate a multi-delivery optimization request and apply defaults."""
    missing = [
        name
        for name in ("driver_start_location", "driver_end_location", "delivery_orders")
        if getattr(request, name) is None
    ]
    if missing:
        raise MissingFieldException(*missing)
    if not request.delivery_orders:
        raise MissingFieldException(
            "delivery_orders",
            message="At least one delivery order is required (delivery_orders)",
        )

    start = clean_location(request.driver_start_location, "driver_start_location")
    end = clean_location(request.driver_end_location, "driver_end_location")
    orders = [_build_order(i, order) for i, order in enumerate(request.delivery_orders)]

    def pick(value: Any, default: Any) -> Any:
        return default if value is None else value

    return MultiDeliveryPayload(
        driver_start_location=start,
        driver_end_location=end,
        delivery_orders=orders,
        include_traffic=pick(request.include_traffic, True),
        departure_time=pick(request.departure_time, settings.DEFAULT_DEPARTURE_TIME),
        travel_mode=pick(request.travel_mode, settings.DEFAULT_TRAVEL_MODE),
        route_type=pick(request.route_type, settings.DEFAULT_ROUTE_TYPE),
        max_orders_per_trip=pick(request.max_orders_per_trip, settings.DEFAULT_MAX_ORDERS_PER_TRIP),
        force_return_to_end=pick(request.force_return_to_end, False),
        max_return_distance=pick(request.max_return_distance, settings.DEFAULT_MAX_RETURN_DISTANCE),
    )


def build_simple_route_payload(request: SimpleRouteRequest) -> SimpleRoutePayload:
    """Validate a two-point route request."""
    missing = [name for name in ("pickup", "delivery") if getattr(request, name) is None]
    if missing:
        raise MissingFieldException(*missing)

    return SimpleRoutePayload(
        pickup=clean_location(request.pickup, "pickup", default_name=DEFAULT_PICKUP_NAME),
        delivery=clean_location(request.delivery, "delivery", default_name=DEFAULT_DELIVERY_NAME),
    )


def _as_dict(result: Any) -> dict:
    if isinstance(result, dict):
        return result
    return {"data": result}


class RouteOptimizationService:
    """
    Forwards validated optimization requests to the optimization engine.

    Builders raise before any network call, so an invalid request never
    reaches the engine.
    """

    def __init__(self, client: UpstreamClient):
        self.client = client

    async def _forward(self, kind: str, path: str, payload: dict) -> Any:
        logger.info(f"Forwarding {kind} optimization to {self.client.url_for(path)}")
        try:
            result = await self.client.post(path, json=payload)
        except UpstreamException:
            OPTIMIZATION_REQUESTS.labels(kind=kind, result="failed").inc()
            raise
        OPTIMIZATION_REQUESTS.labels(kind=kind, result="forwarded").inc()
        return result

    def _reject(self, kind: str) -> None:
        OPTIMIZATION_REQUESTS.labels(kind=kind, result="rejected").inc()

    async def optimize_traffic(self, request: TrafficOptimizationRequest) -> dict:
        """Traffic-aware optimization; returns ``{success, data, message}``."""
        try:
            payload = build_traffic_payload(request)
        except (MissingFieldException, InvalidCoordinateException):
            self._reject("traffic")
            raise

        logger.info(
            f"Traffic optimization with {len(payload.waypoints)} waypoints "
            f"(alternatives={payload.alternatives}, queue_mode={payload.queue_mode})"
        )
        result = await self._forward("traffic", OPTIMIZE_TOMTOM_PATH, payload.model_dump(exclude_none=True))

        return {
            "success": True,
            "data": result,
            "message": "Route optimized successfully with live traffic",
        }

    async def optimize_multi_delivery(self, request: MultiDeliveryOptimizationRequest) -> dict:
        """Multi-order optimization; the engine's body is returned flat."""
        try:
            payload = build_multi_delivery_payload(request)
        except (MissingFieldException, InvalidCoordinateException):
            self._reject("multi_delivery")
            raise

        logger.info(
            f"Multi-delivery optimization with {len(payload.delivery_orders)} orders "
            f"(max {payload.max_orders_per_trip} per trip, traffic={payload.include_traffic})"
        )
        result = await self._forward(
            "multi_delivery",
            OPTIMIZE_MULTI_DELIVERY_PATH,
            payload.model_dump(exclude_none=True),
        )
        return {**_as_dict(result), "success": True}

    async def simple_route(self, request: SimpleRouteRequest) -> dict:
        """Two-point route; the engine's body is returned flat."""
        try:
            payload = build_simple_route_payload(request)
        except (MissingFieldException, InvalidCoordinateException):
            self._reject("simple")
            raise

        result = await self._forward("simple", SIMPLE_ROUTE_PATH, payload.model_dump(exclude_none=True))
        return {**_as_dict(result), "success": True}

    async def optimize_passthrough(self, body: Any) -> Any:
        """Legacy optimization endpoint; the body is forwarded as received."""
        return await self._forward("legacy", OPTIMIZE_PATH, body)
