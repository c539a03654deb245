from __future__ import annotations

from typing import Any, Literal, Protocol

ViewportMode = Literal["intersects", "within"]


class GeoApiPort(Protocol):
    """Property polygons from the geodata service."""

    async def fetch_viewport(self, bbox: str, *, limit: int = 200, mode: ViewportMode = "intersects") -> Any: ...

    async def fetch_near(self, lat: float, lng: float, *, radius_km: float = 1, limit: int = 10) -> Any: ...
