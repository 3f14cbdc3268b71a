"""
Google Places endpoints (address search for order forms).
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request

from manos_gateway.core.exceptions import MissingFieldException
from manos_gateway.core.rate_limit import RateLimits, limiter
from manos_gateway.services.places import GooglePlacesService
from manos_gateway.services.upstream import UpstreamClient, get_places_client

router = APIRouter(prefix="/google-places", tags=["Google Places"])


def get_places_service(client: UpstreamClient = Depends(get_places_client)) -> GooglePlacesService:
    """Dependency injection for the places service."""
    return GooglePlacesService(client)


@router.get("/autocomplete")
@limiter.limit(RateLimits.PLACES)
async def autocomplete(
    request: Request,
    input: Optional[str] = Query(default=None, description="Text typed so far"),
    service: GooglePlacesService = Depends(get_places_service),
) -> Any:
    if not input:
        raise MissingFieldException("input", message="Input parameter is required")
    return await service.autocomplete(input)


@router.get("/details")
@limiter.limit(RateLimits.PLACES)
async def place_details(
    request: Request,
    place_id: Optional[str] = Query(default=None),
    service: GooglePlacesService = Depends(get_places_service),
) -> Any:
    if not place_id:
        raise MissingFieldException("place_id", message="place_id parameter is required")
    return await service.details(place_id)
