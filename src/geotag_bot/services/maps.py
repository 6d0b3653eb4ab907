"""Static map rasters with a placeholder fallback."""

import logging
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageDraw

from geotag_bot.adapters.google_maps_client import StaticMapClient
from geotag_bot.domain.geo import GeoPoint
from geotag_bot.services.fonts import draw_centered, load_font

_logger = logging.getLogger(__name__)

PLACEHOLDER_BACKGROUND = (221, 221, 221)
PLACEHOLDER_TITLE_COLOR = (85, 85, 85)
PLACEHOLDER_NOTE_COLOR = (119, 119, 119)


@dataclass
class MapImageProvider:
    """Fetches the map shown in the annotation panel."""

    client: StaticMapClient
    default_size: int = 200
    default_zoom: int = 15

    async def fetch_static_map(
        self,
        point: GeoPoint,
        size: tuple[int, int] | None = None,
        zoom: int | None = None,
    ) -> Image.Image:
        """Return a map raster for the point, or a same-sized placeholder."""
        width, height = size or (self.default_size, self.default_size)
        try:
            data = await self.client.static_map(
                point.latitude,
                point.longitude,
                zoom if zoom is not None else self.default_zoom,
                width,
                height,
            )
            image = Image.open(BytesIO(data))
            image.load()
        except Exception as exc:
            _logger.warning(
                "Static map unavailable, using placeholder: %s",
                exc,
                extra={"latitude": point.latitude, "longitude": point.longitude},
            )
            return placeholder_map(width, height)
        return image.convert("RGB")


def placeholder_map(width: int, height: int) -> Image.Image:
    """Neutral raster labelled as an unavailable map."""
    image = Image.new("RGB", (width, height), PLACEHOLDER_BACKGROUND)
    draw = ImageDraw.Draw(image)
    draw_centered(
        draw,
        (width / 2, height * 0.45),
        "Map Error",
        load_font(16),
        PLACEHOLDER_TITLE_COLOR,
    )
    draw_centered(
        draw,
        (width / 2, height * 0.6),
        "(map unavailable)",
        load_font(10),
        PLACEHOLDER_NOTE_COLOR,
    )
    return image
