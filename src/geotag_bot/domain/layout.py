"""Derived layout models for the annotation panel."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Box:
    """Axis-aligned rectangle in panel pixels."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2


@dataclass(frozen=True)
class AddressLayout:
    """Wrapped address lines and the font size to draw them with."""

    lines: tuple[str, ...]
    font_size: float
    max_chars_per_line: int


@dataclass(frozen=True)
class CompositePanelSpec:
    """Panel dimensions and the regions drawn inside it."""

    width: int
    height: int
    map_region: Box
    address_region: Box
    table_region: Box
    datetime_region: Box


@dataclass(frozen=True)
class PanelLayout:
    """Complete layout: address text plus panel geometry."""

    address: AddressLayout
    panel: CompositePanelSpec
