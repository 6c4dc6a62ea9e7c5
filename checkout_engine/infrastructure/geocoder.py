"""Best-effort geocoding of delivery addresses via OpenStreetMap Nominatim.

Coordinates help the shipping service compute distance-based fees. When
geocoding fails the address is still created, just without coordinates,
and the shipping service falls back to its default distance.
"""

import math
from dataclasses import dataclass, replace

import httpx
import structlog

from checkout_engine.domain.value_objects import Address
from checkout_engine.infrastructure.config import settings

logger = structlog.get_logger()


@dataclass(frozen=True)
class GeocodeResult:
    """Coordinates for an address."""

    latitude: float
    longitude: float


class NominatimGeocoder:
    """Looks up coordinates for an address.

    ``geocode`` never raises; every failure is logged and returns None.
    """

    def __init__(
        self,
        url: str | None = None,
        user_agent: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url or settings.geocoder_url
        self.user_agent = user_agent or settings.geocoder_user_agent
        self.timeout = timeout or settings.geocoder_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={
                    "Accept": "application/json",
                    "User-Agent": self.user_agent,
                },
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def geocode(self, address: Address) -> GeocodeResult | None:
        """Geocode an address.

        Args:
            address: Address to look up. An empty country falls back to
                the configured default country.

        Returns:
            Coordinates of the best match, or None.
        """
        if not address.country.strip():
            address = replace(address, country=settings.default_country)
        query = address.geocode_query()
        if not query:
            return None

        params = {"q": query, "format": "json", "limit": "1", "addressdetails": "0"}
        try:
            client = await self._get_client()
            response = await client.get(self.url, params=params)
            if response.status_code != 200:
                logger.warning(
                    "Geocoding request rejected",
                    status_code=response.status_code,
                )
                return None
            results = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Geocoding failed", error=str(e))
            return None

        if not isinstance(results, list) or not results:
            logger.info("Geocoding found no match", query=query)
            return None

        first = results[0]
        try:
            latitude = float(first["lat"])
            longitude = float(first["lon"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Geocoding returned malformed coordinates", query=query)
            return None
        if not (math.isfinite(latitude) and math.isfinite(longitude)):
            return None

        return GeocodeResult(latitude=latitude, longitude=longitude)
