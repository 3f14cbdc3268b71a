"""
Google Places proxy.

The API key stays on the server; the dashboard only sends the search text or
the place id.
"""
import logging
from typing import Any, Optional

from manos_gateway.core.config import settings
from manos_gateway.core.exceptions import ConfigurationException
from manos_gateway.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)

DETAILS_FIELDS = "geometry,formatted_address,name"


class GooglePlacesService:
    """Address autocomplete and place details, restricted to one country."""

    def __init__(self, client: UpstreamClient, api_key: Optional[str] = None, country: Optional[str] = None):
        self.client = client
        self.api_key = api_key if api_key is not None else settings.GOOGLE_MAPS_API
        self.country = country or settings.GOOGLE_PLACES_COUNTRY

    def _require_key(self) -> str:
        if not self.api_key:
            raise ConfigurationException(message="Google Maps API key not configured")
        return self.api_key

    async def autocomplete(self, text: str) -> Any:
        key = self._require_key()
        logger.debug(f"Places autocomplete for {len(text)} characters")
        return await self.client.get(
            "/autocomplete/json",
            params={
                "input": text,
                "components": f"country:{self.country}",
                "types": "address",
                "key": key,
            },
            headers={"Accept": "application/json"},
        )

    async def details(self, place_id: str) -> Any:
        key = self._require_key()
        return await self.client.get(
            "/details/json",
            params={"place_id": place_id, "fields": DETAILS_FIELDS, "key": key},
            headers={"Accept": "application/json"},
        )
