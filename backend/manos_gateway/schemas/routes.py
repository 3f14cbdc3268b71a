"""
Schemas for saved routes.

The optimization engine's response shape is not guaranteed field-complete, so
every field of the inbound route structures is optional; defaults are filled
in when the persistence payload is built.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class RouteSummary(BaseModel):
    model_config = ConfigDict(extra="allow")

    total_time: Optional[float] = None
    total_distance: Optional[float] = None
    traffic_delay: Optional[float] = None


class RoutePoint(BaseModel):
    """One sample along a route polyline."""

    model_config = ConfigDict(extra="allow")

    lat: Optional[float] = None
    lon: Optional[float] = None
    name: Optional[str] = None
    traffic_delay: Optional[float] = None
    speed: Optional[float] = None
    congestion_level: Optional[str] = None
    waypoint_index: Optional[int] = None


class VisitOrderItem(BaseModel):
    """Position of one waypoint in the engine's visiting sequence."""

    model_config = ConfigDict(extra="allow")

    waypoint_index: int
    name: Optional[str] = None


class Route(BaseModel):
    """Primary route or one alternative returned by the optimizer."""

    model_config = ConfigDict(extra="allow")

    route_id: Optional[Any] = None
    summary: RouteSummary = Field(default_factory=RouteSummary)
    points: list[RoutePoint] = Field(default_factory=list)
    visit_order: list[VisitOrderItem] = Field(default_factory=list)


class RouteInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    origin: Optional[Any] = None
    destination: Optional[Any] = None
    waypoints: list[Any] = Field(default_factory=list)


class TrafficOptimizationData(BaseModel):
    """The ``data`` member of a traffic optimization response."""

    model_config = ConfigDict(extra="allow")

    primary_route: Route
    alternative_routes: list[Route] = Field(default_factory=list)
    route_info: RouteInfo = Field(default_factory=RouteInfo)
    traffic_conditions: Optional[dict[str, Any]] = None


class RouteCreationRequest(BaseModel):
    """Body of ``POST /api/routes/create``."""

    model_config = ConfigDict(populate_by_name=True)

    route_data: TrafficOptimizationData = Field(..., alias="routeData")
    selected_orders: list[str] = Field(..., alias="selectedOrders")
    organization_id: Optional[str] = Field(default=None, alias="organizationId")
    route_name: Optional[str] = Field(default=None, alias="routeName")
    description: Optional[str] = None
    selected_route_index: Optional[int] = Field(default=None, ge=0, alias="selectedRouteIndex")


class OrderedWaypoint(BaseModel):
    order_id: str
    order: int = Field(..., description="1-based visiting position")


class PersistedRoutePoint(BaseModel):
    """Route point as stored by the persistence backend; no field is missing."""

    lat: float
    lon: float
    name: str
    traffic_delay: float
    speed: float
    congestion_level: str
    waypoint_index: Optional[int] = None


class RouteCreationPayload(BaseModel):
    """Body sent to ``API_BASE_URL/routes``. The tenant travels in a header."""

    route_name: str
    description: str
    route_id: Optional[Any] = None
    origin: Optional[Any] = None
    destination: Optional[Any] = None
    waypoints: list[Any] = Field(default_factory=list)
    route: list[PersistedRoutePoint]
    ordered_waypoints: list[OrderedWaypoint]
    traffic_condition: Optional[dict[str, Any]] = None
    traffic_delay: float = 0
    total_distance: Optional[float] = None
    total_time: Optional[float] = None
    status: str = "active"
    orders: list[str] = Field(default_factory=list)


# Query parameters forwarded by ``GET /api/routes``; anything else is dropped.
ROUTE_LIST_FILTERS = (
    "status",
    "priority",
    "search",
    "created_after",
    "created_before",
    "updated_after",
    "updated_before",
    "min_traffic_delay",
    "max_traffic_delay",
    "origin_lat",
    "origin_lon",
    "destination_lat",
    "destination_lon",
    "radius",
    "page",
    "limit",
    "sort_by",
    "sort_order",
)
