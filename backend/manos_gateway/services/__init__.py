"""
Services module.

Provides the gateway's business logic:
- Upstream HTTP client with error mapping
- Route optimization request building
- Route creation from an optimization result
- Google Places lookups
- Live driver positions over Socket.IO (see ``services.realtime``)
"""
from manos_gateway.services.optimization import RouteOptimizationService
from manos_gateway.services.places import GooglePlacesService
from manos_gateway.services.upstream import (
    UpstreamClient,
    get_backend_client,
    get_external_client,
    get_optimizer_client,
    get_places_client,
)

__all__ = [
    "UpstreamClient",
    "get_backend_client",
    "get_external_client",
    "get_optimizer_client",
    "get_places_client",
    "RouteOptimizationService",
    "GooglePlacesService",
]
