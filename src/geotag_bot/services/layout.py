"""Layout of the annotation panel drawn under a geotagged photo.

The panel has a fixed width. The static map sits flush left; the text column
to its right stacks three regions: the address (one or two lines), a 3x3
coordinate table and a datetime footer. Text sizes are estimated from an
average character width instead of measured glyphs so the layout stays a
pure function of the address and the map size.
"""

import math
from dataclasses import dataclass

from geotag_bot.domain.layout import AddressLayout, Box, CompositePanelSpec, PanelLayout

ADDRESS_SEPARATORS = frozenset(" ,")
ELLIPSIS = "..."


@dataclass(frozen=True)
class LayoutEngine:
    """Computes address wrapping, font scale and panel regions."""

    panel_width: int = 600
    text_padding: int = 15
    line_spacing: int = 4
    section_spacing: int = 5
    optimal_font_size: float = 10.0
    min_font_size: float = 8.0
    max_font_size: float = 14.0
    char_width_ratio: float = 0.6
    width_fill_ratio: float = 0.95
    table_font_size: int = 17
    datetime_font_size: int = 17
    min_table_height: int = 80
    split_window: int = 10

    def text_column_width(self, map_width: int) -> int:
        return self.panel_width - map_width

    def available_text_width(self, map_width: int) -> float:
        return self.text_column_width(map_width) - 2 * self.text_padding

    def max_chars_per_line(self, map_width: int) -> int:
        usable = self.available_text_width(map_width) * self.width_fill_ratio
        char_width = self.optimal_font_size * self.char_width_ratio
        return max(1, math.floor(usable / char_width))

    def layout_address(self, address: str, map_width: int) -> AddressLayout:
        """Fit the address on one line when possible, otherwise split it in two."""
        text = address.strip()
        max_chars = self.max_chars_per_line(map_width)
        if len(text) <= max_chars:
            return AddressLayout(
                lines=(text,),
                font_size=self._single_line_font_size(text, map_width),
                max_chars_per_line=max_chars,
            )

        split = find_split_index(text, self.split_window)
        if split is None:
            first, second = text[:max_chars], text[max_chars:]
        else:
            first, second = text[:split], text[split + 1 :]
        lines = tuple(_ellipsize(line.strip(), max_chars) for line in (first, second))
        return AddressLayout(
            lines=lines,
            font_size=self.optimal_font_size,
            max_chars_per_line=max_chars,
        )

    def layout(self, address: str, map_width: int, map_height: int) -> PanelLayout:
        """Compute the complete panel layout for an address and map size."""
        address_layout = self.layout_address(address, map_width)
        text_width = self.text_column_width(map_width)

        address_height = (
            len(address_layout.lines) * (address_layout.font_size + self.line_spacing)
            + self.text_padding * 2
        )
        datetime_height = self.datetime_font_size + self.text_padding * 2
        table_height = max(
            self.min_table_height, map_height - address_height - datetime_height
        )
        panel_height = math.ceil(
            max(map_height, address_height + table_height + datetime_height)
        )

        panel = CompositePanelSpec(
            width=self.panel_width,
            height=panel_height,
            map_region=Box(
                x=0,
                y=(panel_height - map_height) // 2,
                width=map_width,
                height=map_height,
            ),
            address_region=Box(
                x=map_width, y=0, width=text_width, height=address_height
            ),
            table_region=Box(
                x=map_width + self.text_padding,
                y=address_height + self.section_spacing,
                width=text_width - 2 * self.text_padding,
                height=table_height,
            ),
            datetime_region=Box(
                x=map_width,
                y=panel_height - datetime_height,
                width=text_width,
                height=datetime_height,
            ),
        )
        return PanelLayout(address=address_layout, panel=panel)

    def _single_line_font_size(self, text: str, map_width: int) -> float:
        if not text:
            return self.max_font_size
        usable = self.available_text_width(map_width) * self.width_fill_ratio
        scaled = usable / (len(text) * self.char_width_ratio)
        return min(self.max_font_size, max(self.min_font_size, scaled))


def find_split_index(text: str, window: int) -> int | None:
    """Return the separator index nearest the midpoint, within ``window`` chars.

    Ties resolve to the earlier position.
    """
    midpoint = len(text) // 2
    for offset in range(window + 1):
        for index in (midpoint - offset, midpoint + offset):
            if 0 < index < len(text) - 1 and text[index] in ADDRESS_SEPARATORS:
                return index
    return None


def _ellipsize(line: str, max_chars: int) -> str:
    if len(line) <= max_chars:
        return line
    return line[: max(0, max_chars - len(ELLIPSIS))].rstrip() + ELLIPSIS
