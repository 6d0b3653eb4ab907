"""Rendering of the annotation panel and its overlay onto the photo."""

from dataclasses import dataclass, field
from datetime import datetime
from io import BytesIO
from zoneinfo import ZoneInfo

from PIL import Image, ImageDraw, ImageOps

from geotag_bot.domain.errors import RenderError
from geotag_bot.domain.geo import GeoPoint, point_to_dms
from geotag_bot.domain.layout import Box, PanelLayout
from geotag_bot.services.fonts import draw_centered, load_font
from geotag_bot.services.layout import LayoutEngine

PANEL_BACKGROUND = (140, 138, 141)
TEXT_COLOR = (255, 255, 255)
GRID_COLOR = (235, 235, 235)
JPEG_QUALITY = 90
TABLE_SIZE = 3

# Monday first, matching datetime.weekday().
WEEKDAY_ABBREVIATIONS = ("Sen", "Sel", "Rab", "Kam", "Jum", "Sab", "Min")


@dataclass
class Compositor:
    """Draws the geotag panel and stamps it onto the bottom of a photo."""

    layout_engine: LayoutEngine = field(default_factory=LayoutEngine)
    timezone: ZoneInfo = field(default_factory=lambda: ZoneInfo("Asia/Jakarta"))

    def render(  # noqa: PLR0913
        self,
        photo: bytes,
        point: GeoPoint,
        address: str,
        map_image: Image.Image,
        timestamp: datetime,
    ) -> bytes:
        """Return the photo with the panel overlaid, encoded as JPEG."""
        try:
            panel = self.render_panel(point, address, map_image, timestamp)
            return self.overlay(photo, panel)
        except RenderError:
            raise
        except Exception as exc:
            raise RenderError(f"Could not render geotag: {exc}") from exc

    def render_panel(
        self,
        point: GeoPoint,
        address: str,
        map_image: Image.Image,
        timestamp: datetime,
    ) -> Image.Image:
        """Draw the map, address, coordinate table and datetime footer."""
        layout = self.layout_engine.layout(address, map_image.width, map_image.height)
        spec = layout.panel
        panel = Image.new("RGB", (spec.width, spec.height), PANEL_BACKGROUND)
        panel.paste(
            map_image.convert("RGB"),
            (int(spec.map_region.x), int(spec.map_region.y)),
        )
        draw = ImageDraw.Draw(panel)
        self._draw_address(draw, layout)
        self._draw_table(draw, spec.table_region, point)
        self._draw_datetime(draw, spec.datetime_region, timestamp)
        return panel

    def overlay(self, photo: bytes, panel: Image.Image) -> bytes:
        """Scale the panel to the photo width and paste it along the bottom edge.

        When the scaled panel is taller than the photo, it is placed below the
        photo instead of over it.
        """
        with Image.open(BytesIO(photo)) as source:
            base = ImageOps.exif_transpose(source).convert("RGB")
        if base.width == 0 or base.height == 0:
            raise RenderError("Photo has no pixels")
        scaled_height = max(1, round(panel.height * base.width / panel.width))
        scaled = panel.resize((base.width, scaled_height), Image.Resampling.LANCZOS)
        if scaled_height > base.height:
            # Panel taller than the photo: grow the canvas so neither is clipped.
            canvas = Image.new("RGB", (base.width, base.height + scaled_height))
            canvas.paste(base, (0, 0))
            base = canvas
        base.paste(scaled, (0, base.height - scaled_height))
        output = BytesIO()
        base.save(output, format="JPEG", quality=JPEG_QUALITY)
        return output.getvalue()

    def format_timestamp(self, timestamp: datetime) -> str:
        """Format as ``2025-06-07(Sab) 06:16 PM`` in the display timezone."""
        local = timestamp.astimezone(self.timezone)
        weekday = WEEKDAY_ABBREVIATIONS[local.weekday()]
        meridiem = "AM" if local.hour < 12 else "PM"  # noqa: PLR2004
        return f"{local:%Y-%m-%d}({weekday}) {local:%I:%M} {meridiem}"

    def _draw_address(self, draw: ImageDraw.ImageDraw, layout: PanelLayout) -> None:
        engine = self.layout_engine
        region = layout.panel.address_region
        font_size = layout.address.font_size
        font = load_font(round(font_size))
        for index, line in enumerate(layout.address.lines):
            center_y = (
                region.y
                + engine.text_padding
                + index * (font_size + engine.line_spacing)
                + font_size / 2
            )
            draw_centered(draw, (region.center_x, center_y), line, font, TEXT_COLOR)

    def _draw_table(
        self, draw: ImageDraw.ImageDraw, region: Box, point: GeoPoint
    ) -> None:
        col_width = region.width / TABLE_SIZE
        row_height = region.height / TABLE_SIZE
        for index in range(TABLE_SIZE + 1):
            y = region.y + index * row_height
            draw.line([(region.x, y), (region.right, y)], fill=GRID_COLOR, width=1)
            x = region.x + index * col_width
            draw.line([(x, region.y), (x, region.bottom)], fill=GRID_COLOR, width=1)

        lat_dms, lon_dms = point_to_dms(point)
        rows = (
            ("", "Decimal", "DMS"),
            ("Latitude", f"{point.latitude:.6f}", str(lat_dms)),
            ("Longitude", f"{point.longitude:.6f}", str(lon_dms)),
        )
        font = load_font(self.layout_engine.table_font_size)
        for row_index, row in enumerate(rows):
            center_y = region.y + row_index * row_height + row_height / 2
            for col_index, text in enumerate(row):
                if not text:
                    continue
                center_x = region.x + col_index * col_width + col_width / 2
                draw_centered(draw, (center_x, center_y), text, font, TEXT_COLOR)

    def _draw_datetime(
        self, draw: ImageDraw.ImageDraw, region: Box, timestamp: datetime
    ) -> None:
        font = load_font(self.layout_engine.datetime_font_size)
        center = (region.center_x, region.y + region.height / 2)
        draw_centered(draw, center, self.format_timestamp(timestamp), font, TEXT_COLOR)
