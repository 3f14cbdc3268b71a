"""
Route optimization endpoints.

Requests are validated here (required fields, every coordinate) and only
then forwarded to the optimization engine. Failures leave as the standard
envelope:

- 400: missing field or invalid coordinate, naming the waypoint/order
- upstream status: the engine rejected the request
- 503: engine unreachable, or its URL does not resolve
- 504: engine timed out
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from manos_gateway.core.rate_limit import RateLimits, limiter
from manos_gateway.schemas.optimization import (
    MultiDeliveryOptimizationRequest,
    SimpleRouteRequest,
    TrafficOptimizationRequest,
)
from manos_gateway.services.optimization import RouteOptimizationService
from manos_gateway.services.upstream import UpstreamClient, get_optimizer_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Route Optimization"])


def get_optimization_service(
    client: UpstreamClient = Depends(get_optimizer_client),
) -> RouteOptimizationService:
    """Dependency injection for the optimization service."""
    return RouteOptimizationService(client)


@router.post(
    "/route-optimization-trafic",
    summary="Traffic-aware route optimization",
    description="""
    Optimizes the visiting order of the waypoints between an origin and a
    destination using live traffic, optionally with alternative routes.

    Every coordinate is validated and rounded to 6 decimals before the
    request is forwarded; the first invalid one rejects the whole request.
    """,
)
@limiter.limit(RateLimits.OPTIMIZE_ROUTES)
async def optimize_with_traffic(
    request: Request,
    body: TrafficOptimizationRequest,
    service: RouteOptimizationService = Depends(get_optimization_service),
) -> dict:
    return await service.optimize_traffic(body)


@router.post(
    "/route-optimization-multi-delivery",
    summary="Multi-delivery route optimization",
    description="""
    Plans pickups and deliveries for several orders between a custom driver
    start and end location. Optional settings default to: traffic on,
    departure now, car, fastest route, 10 orders per trip.
    """,
)
@limiter.limit(RateLimits.OPTIMIZE_ROUTES)
async def optimize_multi_delivery(
    request: Request,
    body: MultiDeliveryOptimizationRequest,
    service: RouteOptimizationService = Depends(get_optimization_service),
) -> dict:
    return await service.optimize_multi_delivery(body)


@router.post("/route-optimization-simple", summary="Two-point route")
@limiter.limit(RateLimits.OPTIMIZE_ROUTES)
async def simple_route(
    request: Request,
    body: SimpleRouteRequest,
    service: RouteOptimizationService = Depends(get_optimization_service),
) -> dict:
    return await service.simple_route(body)


@router.post("/route-optimization", summary="Legacy optimization passthrough")
@limiter.limit(RateLimits.OPTIMIZE_ROUTES)
async def optimize_legacy(
    request: Request,
    body: Any = Body(...),
    service: RouteOptimizationService = Depends(get_optimization_service),
) -> Any:
    return await service.optimize_passthrough(body)
