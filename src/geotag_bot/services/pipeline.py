"""Photo to composite geotag pipeline."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from geotag_bot.adapters.telegram_file_client import TelegramFileClient
from geotag_bot.domain.geo import GeoPoint
from geotag_bot.domain.sessions import PhotoRef
from geotag_bot.services.compositor import Compositor
from geotag_bot.services.geocoding import LocationResolver
from geotag_bot.services.maps import MapImageProvider

_logger = logging.getLogger(__name__)


@dataclass
class GeotagPipeline:
    """Downloads a photo, resolves its context and renders the composite."""

    file_client: TelegramFileClient
    resolver: LocationResolver
    map_provider: MapImageProvider
    compositor: Compositor
    map_size: int = 200
    map_zoom: int = 15

    async def process(
        self,
        photo: PhotoRef,
        point: GeoPoint,
        custom_timestamp: datetime | None = None,
    ) -> bytes:
        """Return the JPEG composite for one photo tagged with ``point``."""
        photo_bytes = await self.file_client.download_file_bytes(photo.file_id)
        address, map_image = await asyncio.gather(
            self.resolver.reverse_geocode(point),
            self.map_provider.fetch_static_map(
                point, size=(self.map_size, self.map_size), zoom=self.map_zoom
            ),
        )
        timestamp = custom_timestamp or datetime.now(tz=UTC)
        _logger.info(
            "Rendering geotag",
            extra={"file_id": photo.file_id, "address": address},
        )
        return await asyncio.to_thread(
            self.compositor.render,
            photo_bytes,
            point,
            address,
            map_image,
            timestamp,
        )
