"""
Shared validators for geographic coordinates.

Every coordinate is run through ``validate_and_clean_coordinate`` before it is
forwarded to a routing or geocoding service: those services fail in
unpredictable ways on malformed input.
"""

import math
import re
from dataclasses import dataclass
from numbers import Real
from typing import Annotated, Any, Optional, Sequence, TypeVar

from pydantic import BeforeValidator, Field

COORDINATE_PRECISION = 6
_SCALE = 10 ** COORDINATE_PRECISION

EARTH_RADIUS_METERS = 6371e3

# Leading float literal, the way a browser's parseFloat reads it.
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))")


@dataclass(frozen=True)
class Coordinate:
    """A cleaned latitude/longitude pair."""
    lat: float
    lng: float


@dataclass(frozen=True)
class CoordinateValidationResult:
    """Outcome of validating one coordinate pair."""
    is_valid: bool
    error: Optional[str] = None
    cleaned_coordinate: Optional[Coordinate] = None


def parse_float(value: str) -> float:
    """Parse the leading float literal of ``value``; NaN when there is none."""
    match = _FLOAT_PREFIX.match(value)
    if not match:
        return math.nan
    return float(match.group(1).replace("Infinity", "inf"))


def round_coordinate(value: float) -> float:
    """Round to 6 decimal places, halves rounding up."""
    return math.floor(value * _SCALE + 0.5) / _SCALE


def _coerce(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return parse_float(value)
    if isinstance(value, Real):
        return float(value)
    return None


def is_valid_coordinate(lat: Any, lng: Any) -> bool:
    """Strict check: both values are real numbers, finite and within range."""
    if isinstance(lat, bool) or isinstance(lng, bool):
        return False
    if not isinstance(lat, Real) or not isinstance(lng, Real):
        return False
    if not math.isfinite(lat) or not math.isfinite(lng):
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


def validate_and_clean_coordinate(lat: Any, lng: Any) -> CoordinateValidationResult:
    """
    Validate a latitude/longitude pair and round it to 6 decimals.

    Strings are parsed as floats; numbers are taken as they are; anything else
    is rejected. The function is pure and applying it to its own output
    returns the same coordinate.
    """
    if lat is None or lng is None:
        return CoordinateValidationResult(is_valid=False, error="Coordinates not defined")

    num_lat = _coerce(lat)
    if num_lat is None:
        return CoordinateValidationResult(
            is_valid=False,
            error="Latitude must be a number or a numeric string",
        )

    num_lng = _coerce(lng)
    if num_lng is None:
        return CoordinateValidationResult(
            is_valid=False,
            error="Longitude must be a number or a numeric string",
        )

    if math.isnan(num_lat) or math.isnan(num_lng):
        return CoordinateValidationResult(
            is_valid=False,
            error="Coordinates are not valid numbers",
        )

    if not -90 <= num_lat <= 90:
        return CoordinateValidationResult(
            is_valid=False,
            error=f"Latitude {num_lat} is outside the valid range (-90 to 90)",
        )

    if not -180 <= num_lng <= 180:
        return CoordinateValidationResult(
            is_valid=False,
            error=f"Longitude {num_lng} is outside the valid range (-180 to 180)",
        )

    return CoordinateValidationResult(
        is_valid=True,
        cleaned_coordinate=Coordinate(
            lat=round_coordinate(num_lat),
            lng=round_coordinate(num_lng),
        ),
    )


T = TypeVar("T", bound=dict)


def filter_orders_with_valid_coordinates(
    orders: Sequence[T],
    location_key: str = "delivery_location",
) -> tuple[list[T], list[tuple[T, str]]]:
    """
    Split orders into those with a valid location and those without.

    Valid orders have their coordinates replaced by the cleaned values.
    """
    valid_orders: list[T] = []
    invalid_orders: list[tuple[T, str]] = []

    for order in orders:
        location = order.get(location_key) or {}
        result = validate_and_clean_coordinate(location.get("lat"), location.get("lng"))

        if result.is_valid:
            location["lat"] = result.cleaned_coordinate.lat
            location["lng"] = result.cleaned_coordinate.lng
            valid_orders.append(order)
        else:
            invalid_orders.append((order, result.error or "Invalid coordinate"))

    return valid_orders, invalid_orders


def format_coordinate(lat: float, lng: float) -> str:
    """Format a coordinate for display."""
    return f"{lat:.6f}, {lng:.6f}"


def calculate_distance(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in metres (haversine)."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lng - a.lng)

    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def _latitude(v: Any) -> float:
    result = validate_and_clean_coordinate(v, 0)
    if not result.is_valid:
        raise ValueError(result.error)
    return result.cleaned_coordinate.lat


def _longitude(v: Any) -> float:
    result = validate_and_clean_coordinate(0, v)
    if not result.is_valid:
        raise ValueError(result.error)
    return result.cleaned_coordinate.lng


# Annotated types for use in Pydantic models
Latitude = Annotated[
    float,
    BeforeValidator(_latitude),
    Field(ge=-90, le=90, description="Latitude in degrees (-90 to 90)"),
]

Longitude = Annotated[
    float,
    BeforeValidator(_longitude),
    Field(ge=-180, le=180, description="Longitude in degrees (-180 to 180)"),
]
