"""Forward and reverse geocoding with fallbacks."""

import logging
from dataclasses import dataclass

from geotag_bot.adapters.google_maps_client import GeocodingClient
from geotag_bot.domain.errors import ValidationError
from geotag_bot.domain.geo import GeoPoint
from geotag_bot.services.cache import Cache

_logger = logging.getLogger(__name__)


@dataclass
class LocationResolver:
    """Resolves addresses and points through a geocoding client.

    Failures never propagate: ``geocode`` returns ``None`` and
    ``reverse_geocode`` returns a label built from the raw coordinates.
    Only successful lookups are cached, and only for ``cache_ttl_seconds``.
    """

    client: GeocodingClient
    cache: Cache
    language: str = "id"
    cache_ttl_seconds: int = 3600

    async def geocode(self, address: str) -> GeoPoint | None:
        """Return the point for an address, or None when it can't be found."""
        query = address.strip()
        if not query:
            return None
        cache_key = f"geo:forward:{self.language}:{query.lower()}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, GeoPoint):
            return cached

        try:
            payload = await self.client.geocode(query, self.language)
        except Exception as exc:
            _logger.warning("Forward geocoding failed for %r: %s", query, exc)
            return None

        point = _first_point(payload)
        if point is None:
            _logger.info("No geocoding result for %r", query)
            return None
        self.cache.set(cache_key, point, ttl_seconds=self.cache_ttl_seconds)
        return point

    async def reverse_geocode(self, point: GeoPoint) -> str:
        """Return a formatted address for the point, or a coordinate fallback."""
        cache_key = (
            f"geo:reverse:{self.language}:{point.latitude:.6f},{point.longitude:.6f}"
        )
        cached = self.cache.get(cache_key)
        if isinstance(cached, str):
            return cached

        try:
            payload = await self.client.reverse_geocode(
                point.latitude, point.longitude, self.language
            )
        except Exception as exc:
            _logger.warning(
                "Reverse geocoding failed, using coordinates: %s",
                exc,
                extra={"latitude": point.latitude, "longitude": point.longitude},
            )
            return fallback_address(point)

        address = _first_address(payload)
        if address is None:
            return fallback_address(point)
        self.cache.set(cache_key, address, ttl_seconds=self.cache_ttl_seconds)
        return address


def fallback_address(point: GeoPoint) -> str:
    """Address label used when reverse geocoding is unavailable."""
    return f"Location: {point.latitude:.6f}, {point.longitude:.6f}"


def _results(payload: dict[str, object]) -> list[dict[str, object]]:
    results = payload.get("results")
    if not isinstance(results, list):
        return []
    return [result for result in results if isinstance(result, dict)]


def _first_address(payload: dict[str, object]) -> str | None:
    for result in _results(payload):
        address = result.get("formatted_address")
        if isinstance(address, str) and address.strip():
            return address.strip()
    return None


def _first_point(payload: dict[str, object]) -> GeoPoint | None:
    for result in _results(payload):
        geometry = result.get("geometry") or {}
        location = geometry.get("location") if isinstance(geometry, dict) else None
        if not isinstance(location, dict):
            continue
        lat = location.get("lat")
        lng = location.get("lng")
        if not isinstance(lat, int | float) or not isinstance(lng, int | float):
            continue
        try:
            return GeoPoint(float(lat), float(lng))
        except ValidationError:
            continue
    return None
