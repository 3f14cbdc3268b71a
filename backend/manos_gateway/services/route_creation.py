"""
Route creation pipeline.

Turns an optimization result plus the user's choices (which route, which
orders) into the payload the persistence backend stores, submits it and
normalizes the answer.

Route selection: index 0 or no index selects the primary route; index N
selects ``alternative_routes[N - 1]``.
"""
import logging
from datetime import date
from typing import Any, Optional

from manos_gateway.core.exceptions import ValidationException
from manos_gateway.core.metrics import ROUTES_CREATED
from manos_gateway.core.security import organization_headers
from manos_gateway.schemas.routes import (
    OrderedWaypoint,
    PersistedRoutePoint,
    Route,
    RouteCreationPayload,
    RouteCreationRequest,
    RoutePoint,
    TrafficOptimizationData,
    VisitOrderItem,
)
from manos_gateway.schemas.validators import validate_and_clean_coordinate
from manos_gateway.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Route optimized with live traffic"
DEFAULT_CONGESTION_LEVEL = "unknown"

_ROUTE_ID_FIELDS = ("route_id", "id", "uuid")


def select_route(route_data: TrafficOptimizationData, selected_index: Optional[int]) -> Route:
    """
    Pick the route the user chose.

    Raises:
        ValidationException: index points past the last alternative
    """
    if not selected_index:
        return route_data.primary_route

    alternatives = route_data.alternative_routes
    if selected_index < 0 or selected_index > len(alternatives):
        raise ValidationException(
            message=(
                f"selectedRouteIndex {selected_index} is out of range: "
                f"{len(alternatives)} alternative route(s) available"
            ),
            details={"selectedRouteIndex": selected_index, "alternatives": len(alternatives)},
        )
    return alternatives[selected_index - 1]


def build_ordered_waypoints(
    selected_orders: list[str],
    visit_order: list[VisitOrderItem],
) -> list[OrderedWaypoint]:
    """
    Pair each selected order with its 1-based visiting position.

    Position i of ``selected_orders`` is paired with position i of
    ``visit_order``. The caller guarantees both lists line up.
    """
    if len(selected_orders) != len(visit_order):
        logger.warning(
            f"selectedOrders has {len(selected_orders)} entries but visit_order has "
            f"{len(visit_order)}; extra entries are ignored"
        )

    return [
        OrderedWaypoint(order_id=order_id, order=item.waypoint_index + 1)
        for order_id, item in zip(selected_orders, visit_order)
    ]


def sanitize_route_points(points: list[RoutePoint]) -> list[PersistedRoutePoint]:
    """Fill in every field the persistence backend requires; order is kept."""
    return [
        PersistedRoutePoint(
            lat=point.lat if point.lat is not None else 0,
            lon=point.lon if point.lon is not None else 0,
            name=point.name or f"Route point {i + 1}",
            traffic_delay=point.traffic_delay if point.traffic_delay is not None else 0,
            speed=point.speed if point.speed is not None else 0,
            congestion_level=point.congestion_level or DEFAULT_CONGESTION_LEVEL,
            waypoint_index=point.waypoint_index,
        )
        for i, point in enumerate(points)
    ]


def default_route_name(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"Optimized route {today.isoformat()}"


def build_route_payload(request: RouteCreationRequest) -> RouteCreationPayload:
    """Assemble the creation payload for the chosen route."""
    route_data = request.route_data
    route = select_route(route_data, request.selected_route_index)
    summary = route.summary

    return RouteCreationPayload(
        route_name=request.route_name or default_route_name(),
        description=request.description or DEFAULT_DESCRIPTION,
        route_id=route.route_id,
        origin=route_data.route_info.origin,
        destination=route_data.route_info.destination,
        waypoints=route_data.route_info.waypoints,
        route=sanitize_route_points(route.points),
        ordered_waypoints=build_ordered_waypoints(request.selected_orders, route.visit_order),
        traffic_condition=route_data.traffic_conditions,
        traffic_delay=summary.traffic_delay or 0,
        total_distance=summary.total_distance,
        total_time=summary.total_time,
        orders=list(request.selected_orders),
    )


def extract_route_id(response: Any) -> Optional[Any]:
    """
    Find the new route's identifier in the backend's answer.

    Tried in order: ``data.uuid``, ``data.id``, ``route_id``, ``id``, ``uuid``.
    """
    if not isinstance(response, dict):
        return None

    data = response.get("data")
    if isinstance(data, dict):
        for key in ("uuid", "id"):
            if data.get(key) is not None:
                return data[key]

    for key in _ROUTE_ID_FIELDS:
        if response.get(key) is not None:
            return response[key]

    return None


async def create_route(client: UpstreamClient, request: RouteCreationRequest) -> dict:
    """Build, submit and normalize one route creation."""
    payload = build_route_payload(request)
    choice = "alternative" if request.selected_route_index else "primary"

    logger.info(
        f"Creating {choice} route '{payload.route_name}' with "
        f"{len(payload.route)} points and {len(payload.ordered_waypoints)} orders",
        extra={"selected_route_index": request.selected_route_index or 0},
    )

    response = await client.post(
        "/routes",
        json=payload.model_dump(mode="json"),
        headers=organization_headers(request.organization_id),
    )
    ROUTES_CREATED.labels(route_choice=choice).inc()

    route_id = extract_route_id(response)
    if route_id is None:
        logger.warning("Route created but the backend answer carries no identifier")

    saved = response.get("data", response) if isinstance(response, dict) else response
    return {
        "success": True,
        "data": {
            "route_id": route_id,
            "message": "Route created successfully",
            "route": saved,
        },
    }


def _clean_pair(item: dict, lat_key: str, lng_key: str) -> None:
    lat, lng = item.get(lat_key), item.get(lng_key)
    if lat is None or lng is None:
        return
    result = validate_and_clean_coordinate(lat, lng)
    if result.is_valid:
        item[lat_key] = result.cleaned_coordinate.lat
        item[lng_key] = result.cleaned_coordinate.lng


def clean_saved_route(route: Any) -> Any:
    """
    Normalize every coordinate embedded in a saved route.

    Invalid coordinates are left as they are; the route is still returned.
    """
    if not isinstance(route, dict):
        return route

    _clean_pair(route, "origin_lat", "origin_lon")
    _clean_pair(route, "destination_lat", "destination_lon")

    for key in ("waypoints", "route_points"):
        for item in route.get(key) or []:
            if isinstance(item, dict):
                _clean_pair(item, "lat", "lon")

    for order in route.get("orders") or []:
        if isinstance(order, dict):
            _clean_pair(order, "pickup_lat", "pickup_lng")
            _clean_pair(order, "delivery_lat", "delivery_lng")

    return route
