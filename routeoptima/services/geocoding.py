"""
Geocoding collaborator client.

Resolves a free-text address to a coordinate using a Nominatim-compatible
search endpoint. The upstream is treated as unreliable: callers get either a
Coordinate, None (no match), or UpstreamUnavailable (transport/HTTP/payload
failure). resolve_drop_location() folds the failure case into None so that
order creation never blocks on geocoding.
"""

import logging
from typing import Optional

import httpx

from routeoptima.config import Settings, get_settings
from routeoptima.core.errors import UpstreamUnavailable
from routeoptima.services.geo import Coordinate

logger = logging.getLogger(__name__)


class GeocodingClient:
    """Async client for a Nominatim-style /search endpoint."""

    def __init__(
        self,
        base_url: str,
        country_suffix: str = "",
        timeout: float = 5.0,
        user_agent: str = "routeoptima-dispatch",
        enabled: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.country_suffix = country_suffix
        self.timeout = timeout
        self.user_agent = user_agent
        self.enabled = enabled
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeocodingClient":
        return cls(
            base_url=settings.geocoding_url,
            country_suffix=settings.geocoding_country_suffix,
            timeout=settings.geocoding_timeout_seconds,
            user_agent=settings.geocoding_user_agent,
            enabled=settings.geocoding_enabled,
        )

    async def geocode(self, address: str) -> Optional[Coordinate]:
        """
        Look up an address.

        Returns:
            Coordinate of the best match, or None if nothing matched or
            geocoding is disabled.

        Raises:
            UpstreamUnavailable: the service could not be reached or answered
            with something unusable.
        """
        if not self.enabled or not address.strip():
            return None

        params = {
            "format": "json",
            "q": f"{address}{self.country_suffix}",
            "limit": 1,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
                transport=self._transport,
            ) as client:
                response = await client.get(self.base_url, params=params)
                response.raise_for_status()
                results = response.json()
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Geocoding request failed: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailable(f"Geocoding returned invalid JSON: {e}") from e

        if not isinstance(results, list):
            raise UpstreamUnavailable("Geocoding returned an unexpected payload")
        if not results:
            return None

        try:
            return Coordinate(float(results[0]["lat"]), float(results[0]["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamUnavailable(f"Geocoding result is malformed: {e}") from e


async def resolve_drop_location(geocoder: GeocodingClient, address: str) -> Optional[Coordinate]:
    """Geocode an address, degrading to None when the collaborator fails."""
    try:
        coordinate = await geocoder.geocode(address)
    except UpstreamUnavailable as e:
        logger.warning(f"Drop location left unresolved for '{address}': {e.message}")
        return None

    if coordinate is None:
        logger.warning(f"No geocoding match for '{address}'; drop location left unresolved")
    return coordinate


def get_geocoder() -> GeocodingClient:
    """FastAPI dependency returning a client configured from settings."""
    return GeocodingClient.from_settings(get_settings())
