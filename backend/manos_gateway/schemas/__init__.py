"""
Pydantic schemas for API request/response models.
"""

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
from manos_gateway.schemas.routes import (
    ROUTE_LIST_FILTERS,
    OrderedWaypoint,
    PersistedRoutePoint,
    Route,
    RouteCreationPayload,
    RouteCreationRequest,
    RoutePoint,
    TrafficOptimizationData,
    VisitOrderItem,
)
from manos_gateway.schemas.tracking import DriverLocation, DriverStatus, DriverTransmission
from manos_gateway.schemas.validators import (
    Coordinate,
    CoordinateValidationResult,
    validate_and_clean_coordinate,
)

__all__ = [
    # Optimization
    "CleanLocation",
    "DeliveryOrderInput",
    "DeliveryOrderPayload",
    "LocationInput",
    "MultiDeliveryOptimizationRequest",
    "MultiDeliveryPayload",
    "SimpleRoutePayload",
    "SimpleRouteRequest",
    "TrafficOptimizationPayload",
    "TrafficOptimizationRequest",
    # Routes
    "ROUTE_LIST_FILTERS",
    "OrderedWaypoint",
    "PersistedRoutePoint",
    "Route",
    "RouteCreationPayload",
    "RouteCreationRequest",
    "RoutePoint",
    "TrafficOptimizationData",
    "VisitOrderItem",
    # Tracking
    "DriverLocation",
    "DriverStatus",
    "DriverTransmission",
    # Validators
    "Coordinate",
    "CoordinateValidationResult",
    "validate_and_clean_coordinate",
]
