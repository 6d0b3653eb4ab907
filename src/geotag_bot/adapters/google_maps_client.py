"""Google Maps Geocoding and Static Maps API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from geotag_bot.domain.errors import ExternalServiceError

_OK_STATUSES = {"OK", "ZERO_RESULTS"}


class GeocodingClient(Protocol):
    """Interface for geocoding lookups."""

    async def geocode(self, address: str, language: str) -> dict[str, object]:
        """Forward-geocode an address and return raw API data."""

    async def reverse_geocode(
        self, latitude: float, longitude: float, language: str
    ) -> dict[str, object]:
        """Reverse-geocode a point and return raw API data."""


class StaticMapClient(Protocol):
    """Interface for static map rasters."""

    async def static_map(  # noqa: PLR0913
        self,
        latitude: float,
        longitude: float,
        zoom: int,
        width: int,
        height: int,
    ) -> bytes:
        """Return an encoded map image centred on the point with a marker."""


@dataclass
class HttpxGoogleMapsClient(GeocodingClient, StaticMapClient):
    """HTTPX-backed client for the Google Maps web services."""

    api_key: str | None
    base_url: str
    http_client: httpx.AsyncClient
    geocode_timeout: float = 10.0
    map_timeout: float = 15.0

    @classmethod
    def create(
        cls,
        api_key: str | None,
        base_url: str,
        geocode_timeout: float = 10.0,
        map_timeout: float = 15.0,
    ) -> "HttpxGoogleMapsClient":
        """Create a Maps client with a managed httpx session."""
        return cls(
            api_key=api_key,
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            geocode_timeout=geocode_timeout,
            map_timeout=map_timeout,
        )

    async def geocode(self, address: str, language: str) -> dict[str, object]:
        """Call the Geocoding API with an address query."""
        return await self._geocode_request({"address": address, "language": language})

    async def reverse_geocode(
        self, latitude: float, longitude: float, language: str
    ) -> dict[str, object]:
        """Call the Geocoding API with a latlng query."""
        return await self._geocode_request(
            {"latlng": f"{latitude},{longitude}", "language": language}
        )

    async def static_map(  # noqa: PLR0913
        self,
        latitude: float,
        longitude: float,
        zoom: int,
        width: int,
        height: int,
    ) -> bytes:
        """Fetch a roadmap raster with a red marker at the point."""
        key = self._require_key()
        response = await self.http_client.get(
            f"{self.base_url}/staticmap",
            params={
                "center": f"{latitude},{longitude}",
                "zoom": zoom,
                "size": f"{width}x{height}",
                "markers": f"color:red|{latitude},{longitude}",
                "maptype": "roadmap",
                "key": key,
            },
            timeout=self.map_timeout,
        )
        response.raise_for_status()
        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("image"):
            raise ExternalServiceError(
                f"Static map returned non-image content: {content_type or 'unknown'}"
            )
        return response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _geocode_request(self, params: dict[str, str]) -> dict[str, object]:
        key = self._require_key()
        response = await self.http_client.get(
            f"{self.base_url}/geocode/json",
            params={**params, "key": key},
            timeout=self.geocode_timeout,
        )
        response.raise_for_status()
        payload = response.json()
        status = payload.get("status", "OK")
        if status not in _OK_STATUSES:
            message = payload.get("error_message") or status
            raise ExternalServiceError(f"Geocoding failed: {message}")
        return payload

    def _require_key(self) -> str:
        if not self.api_key:
            raise ExternalServiceError("MAPS_API_KEY is not configured")
        return self.api_key
