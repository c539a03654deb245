from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Region:
    """Visible map region: centre plus full latitude/longitude span."""

    latitude: float
    longitude: float
    latitude_delta: float
    longitude_delta: float


@dataclass(frozen=True)
class BBox:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def as_param(self) -> str:
        """Render as ``lonMin,latMin,lonMax,latMax`` for the geo service."""
        return f"{_fmt(self.min_lon)},{_fmt(self.min_lat)},{_fmt(self.max_lon)},{_fmt(self.max_lat)}"


def _fmt(value: float) -> str:
    # 15 significant digits drops float noise such as 0.010000000000000002
    text = f"{value:.15g}"
    if "e" in text:
        text = format(Decimal(text), "f")
    return "0" if text == "-0" else text
