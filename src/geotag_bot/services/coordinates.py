"""Parsing of coordinates typed as free text."""

import logging
import re

from geotag_bot.config import CoordinateFilter
from geotag_bot.domain.errors import ValidationError
from geotag_bot.domain.geo import GeoPoint

_logger = logging.getLogger(__name__)

_NUMBER = r"[-+]?\d{1,3}(?:[.,]\d+)?"

# "7.2 S 112.7 E", "7.2°S, 112.7°E"
_HEMISPHERE_PATTERN = re.compile(
    rf"(?P<lat>{_NUMBER})\s*°?\s*(?P<lat_dir>[NS])[\s,;]+"
    rf"(?P<lon>{_NUMBER})\s*°?\s*(?P<lon_dir>[EW])",
    re.IGNORECASE,
)

# "-7.2, 112.7", "-7.2 112.7"
_DECIMAL_PATTERN = re.compile(
    r"(?P<lat>[-+]?\d{1,2}\.\d+)\s*[,;\s]\s*(?P<lon>[-+]?\d{1,3}\.\d+)"
)


def parse_coordinates(
    text: str, thresholds: CoordinateFilter | None = None
) -> GeoPoint | None:
    """Return the first realistic coordinate pair found in ``text``."""
    limits = thresholds or CoordinateFilter()
    for latitude, longitude in _candidates(text):
        try:
            point = GeoPoint(latitude, longitude)
        except ValidationError:
            continue
        if is_realistic(point, limits):
            return point
        _logger.info(
            "Coordinates rejected as unrealistic",
            extra={"latitude": latitude, "longitude": longitude},
        )
    return None


def is_realistic(point: GeoPoint, limits: CoordinateFilter) -> bool:
    """Apply the heuristic filters from ``limits`` to a point."""
    lat = point.latitude
    lon = point.longitude
    if abs(lat) <= limits.min_abs_value or abs(lon) <= limits.min_abs_value:
        return False
    if abs(lat) < limits.small_pair_limit and abs(lon) < limits.small_pair_limit:
        return False
    if abs(lat) > limits.max_abs_latitude:
        return False
    return not (
        limits.reject_integer_pairs
        and 0 < lat < 100  # noqa: PLR2004
        and 0 < lon < 100  # noqa: PLR2004
        and lat.is_integer()
        and lon.is_integer()
    )


def _candidates(text: str) -> list[tuple[float, float]]:
    found: list[tuple[float, float]] = []
    for match in _HEMISPHERE_PATTERN.finditer(text):
        lat = _to_float(match.group("lat"))
        lon = _to_float(match.group("lon"))
        if match.group("lat_dir").upper() == "S":
            lat = -abs(lat)
        if match.group("lon_dir").upper() == "W":
            lon = -abs(lon)
        found.append((lat, lon))
    found.extend(
        (_to_float(match.group("lat")), _to_float(match.group("lon")))
        for match in _DECIMAL_PATTERN.finditer(text)
    )
    return found


def _to_float(raw: str) -> float:
    return float(raw.replace(",", "."))
