"""
API routes module.
"""

from fastapi import APIRouter

from manos_gateway.api.routes import (
    auth,
    driver_positions,
    google_places,
    health,
    optimization,
    orders,
    organization_members,
    organizations,
    route_drivers,
    routes,
)

# Main API router (mounted at /api)
api_router = APIRouter()

api_router.include_router(health.router)

# Optimization endpoints live at the API root (/api/route-optimization-*)
api_router.include_router(optimization.router)

api_router.include_router(routes.router)
api_router.include_router(orders.router)
api_router.include_router(organizations.router)
api_router.include_router(organizations.public_router)
api_router.include_router(organization_members.router)
api_router.include_router(route_drivers.router)
api_router.include_router(driver_positions.router)
api_router.include_router(google_places.router)
api_router.include_router(auth.router)
