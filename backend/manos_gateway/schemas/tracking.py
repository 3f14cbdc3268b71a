"""
Schemas for the live driver tracking feed.

Drivers' mobile apps send ``latitude``/``longitude``; the last-position REST
endpoints answer with ``lat``/``lng``. Both spellings are accepted.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from manos_gateway.schemas.validators import Latitude, Longitude


class DriverStatus(str, Enum):
    """Driver status as reported by the tracking backend."""

    DRIVING = "DRIVING"
    IDLE = "IDLE"
    BREAK = "BREAK"
    STOPPED = "STOPPED"
    OFFLINE = "OFFLINE"


class DriverLocation(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    lat: Latitude = Field(..., validation_alias=AliasChoices("lat", "latitude"))
    lng: Longitude = Field(..., validation_alias=AliasChoices("lng", "longitude"))
    speed: Optional[float] = None
    heading: Optional[float] = None
    accuracy: Optional[float] = None


class DriverTransmission(BaseModel):
    """Latest known position of one driver."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    driver_id: str = Field(..., validation_alias=AliasChoices("driverId", "driver_id"))
    location: DriverLocation
    status: Optional[str] = None
    timestamp: Optional[datetime] = None
    transmission_timestamp: Optional[datetime] = None
    route_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("routeId", "route_id"))
    organization_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("organizationId", "organization_id"),
    )
    battery_level: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("batteryLevel", "battery_level"),
    )
    metadata: Optional[dict[str, Any]] = None

    @property
    def last_seen(self) -> Optional[datetime]:
        return self.transmission_timestamp or self.timestamp


class RouteLastPositionsRequest(BaseModel):
    """Routes whose drivers' last positions are wanted."""

    route_ids: Optional[list[str]] = Field(default=None, alias="routeIds")
