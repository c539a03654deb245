from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from geocar_client.domain.value_objects.location import LatLng


@dataclass(frozen=True)
class SpatialFeature:
    """A property polygon loaded for the current viewport. Never persisted."""

    id: str
    exterior_ring: list[tuple[float, float]]  # (lon, lat)
    attributes: dict[str, Any] = field(default_factory=dict)
    center: LatLng | None = None
