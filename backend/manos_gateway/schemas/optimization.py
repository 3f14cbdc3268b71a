"""
Schemas for the route optimization proxy endpoints.

Inbound models are loose about coordinates: a latitude may
arrive as a number or a numeric string, and presence/range checks are made by
the request builder so that the error can name the offending waypoint or
order. Outbound models carry only cleaned values.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Inbound (dashboard -> gateway)
# =============================================================================

class LocationInput(BaseModel):
    """A named point as sent by the dashboard."""

    model_config = ConfigDict(extra="allow")

    lat: Any = Field(default=None, description="Latitude (number or numeric string)", examples=[14.6349])
    lng: Any = Field(default=None, description="Longitude (number or numeric string)", examples=[-90.5069])
    name: Optional[str] = Field(default=None, examples=["Warehouse"])
    address: Optional[str] = Field(default=None, examples=["6a Avenida 10-20, Zona 1"])

    @property
    def label(self) -> Optional[str]:
        return self.name or self.address


class TrafficOptimizationRequest(BaseModel):
    """Traffic-aware optimization of an origin, a destination and waypoints."""

    origin: Optional[LocationInput] = None
    destination: Optional[LocationInput] = None
    waypoints: Optional[list[LocationInput]] = None
    alternatives: Optional[bool] = Field(default=None, description="Request alternative routes")
    queue_mode: Optional[bool] = Field(default=None, description="Queue the job on the optimizer")


class DeliveryOrderInput(BaseModel):
    """One pickup/delivery order inside a multi-delivery request."""

    model_config = ConfigDict(extra="allow")

    id: Optional[Union[str, int]] = None
    order_number: Optional[Union[str, int]] = None
    origin: Optional[LocationInput] = None
    destination: Optional[LocationInput] = None
    description: Optional[str] = None
    total_amount: Optional[float] = None
    priority: Optional[int] = None
    estimated_pickup_time: Optional[int] = Field(default=None, description="Minutes spent at pickup")
    estimated_delivery_time: Optional[int] = Field(default=None, description="Minutes spent at delivery")


class MultiDeliveryOptimizationRequest(BaseModel):
    """Multi-order optimization with a custom start and end for the driver."""

    driver_start_location: Optional[LocationInput] = None
    driver_end_location: Optional[LocationInput] = None
    delivery_orders: Optional[list[DeliveryOrderInput]] = None
    include_traffic: Optional[bool] = None
    departure_time: Optional[str] = None
    travel_mode: Optional[str] = None
    route_type: Optional[str] = None
    max_orders_per_trip: Optional[int] = Field(default=None, ge=1)
    force_return_to_end: Optional[bool] = None
    max_return_distance: Optional[float] = Field(default=None, ge=0)


class SimpleRouteRequest(BaseModel):
    """Two-point route calculation."""

    pickup: Optional[LocationInput] = None
    delivery: Optional[LocationInput] = None


# =============================================================================
# Outbound (gateway -> optimization engine)
# =============================================================================

class CleanLocation(BaseModel):
    """A validated point with coordinates rounded to 6 decimals."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    name: Optional[str] = None
    address: Optional[str] = None


class TrafficOptimizationPayload(BaseModel):
    origin: CleanLocation
    destination: CleanLocation
    waypoints: list[CleanLocation]
    alternatives: bool = True
    queue_mode: bool = False


class DeliveryOrderPayload(BaseModel):
    id: str
    order_number: str
    origin: CleanLocation
    destination: CleanLocation
    description: str = ""
    total_amount: float = 0
    priority: int = 1
    estimated_pickup_time: int = 5
    estimated_delivery_time: int = 3


class MultiDeliveryPayload(BaseModel):
    driver_start_location: CleanLocation
    driver_end_location: CleanLocation
    delivery_orders: list[DeliveryOrderPayload]
    include_traffic: bool = True
    departure_time: str = "now"
    travel_mode: str = "car"
    route_type: str = "fastest"
    max_orders_per_trip: int = 10
    force_return_to_end: bool = False
    max_return_distance: float = 600.0


class SimpleRoutePayload(BaseModel):
    pickup: CleanLocation
    delivery: CleanLocation
