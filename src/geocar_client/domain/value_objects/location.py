from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float


@dataclass(frozen=True)
class ResolvedLocation:
    """Terminal output of text resolution. Both coordinates are always set."""

    lat: float
    lng: float
    description: str | None = None


@dataclass(frozen=True)
class ByText:
    raw: str


@dataclass(frozen=True)
class ByCoordinate:
    lat: float
    lng: float
    description: str | None = None


LocationQuery = Union[ByText, ByCoordinate]
