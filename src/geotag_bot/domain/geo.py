"""Geographic value types and coordinate conversions."""

import math
from dataclasses import dataclass
from enum import Enum

from geotag_bot.domain.errors import ValidationError

MINUTES_PER_DEGREE = 60
SECONDS_PER_MINUTE = 60
ARC_SECOND = 1 / 3600


class Axis(Enum):
    """Coordinate axis, used to pick the hemisphere letters."""

    LATITUDE = ("N", "S", 90.0)
    LONGITUDE = ("E", "W", 180.0)

    @property
    def positive(self) -> str:
        return self.value[0]

    @property
    def negative(self) -> str:
        return self.value[1]

    @property
    def limit(self) -> float:
        return self.value[2]


@dataclass(frozen=True)
class GeoPoint:
    """A WGS84 point in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not _within(self.latitude, Axis.LATITUDE.limit):
            raise ValidationError(f"Latitude out of range: {self.latitude}")
        if not _within(self.longitude, Axis.LONGITUDE.limit):
            raise ValidationError(f"Longitude out of range: {self.longitude}")

    def short_label(self, digits: int = 5) -> str:
        """Return a ``lat, lon`` label rounded to the given digits."""
        return f"{self.latitude:.{digits}f}, {self.longitude:.{digits}f}"


@dataclass(frozen=True)
class Dms:
    """Degrees-minutes-seconds representation with a hemisphere letter."""

    degrees: int
    minutes: int
    seconds: int
    hemisphere: str

    def __str__(self) -> str:
        return f"{self.degrees}°{self.minutes}'{self.seconds}\" {self.hemisphere}"


def decimal_to_dms(value: float, axis: Axis) -> Dms:
    """Convert signed decimal degrees to whole-second DMS.

    Seconds are rounded, so a value of 60 carries into the minutes (and
    minutes into degrees); the result is accurate to half an arc-second.
    """
    absolute = abs(value)
    degrees = math.floor(absolute)
    minutes_exact = (absolute - degrees) * MINUTES_PER_DEGREE
    minutes = math.floor(minutes_exact)
    seconds = round((minutes_exact - minutes) * SECONDS_PER_MINUTE)
    if seconds == SECONDS_PER_MINUTE:
        seconds = 0
        minutes += 1
    if minutes == MINUTES_PER_DEGREE:
        minutes = 0
        degrees += 1
    hemisphere = axis.positive if value >= 0 else axis.negative
    return Dms(degrees=degrees, minutes=minutes, seconds=seconds, hemisphere=hemisphere)


def dms_to_decimal(dms: Dms) -> float:
    """Convert DMS back to signed decimal degrees."""
    magnitude = (
        dms.degrees
        + dms.minutes / MINUTES_PER_DEGREE
        + dms.seconds / (MINUTES_PER_DEGREE * SECONDS_PER_MINUTE)
    )
    if dms.hemisphere in {Axis.LATITUDE.negative, Axis.LONGITUDE.negative}:
        return -magnitude
    return magnitude


def point_to_dms(point: GeoPoint) -> tuple[Dms, Dms]:
    """Return the latitude and longitude of a point as DMS."""
    return (
        decimal_to_dms(point.latitude, Axis.LATITUDE),
        decimal_to_dms(point.longitude, Axis.LONGITUDE),
    )


def _within(value: float, limit: float) -> bool:
    return not math.isnan(value) and -limit <= value <= limit
