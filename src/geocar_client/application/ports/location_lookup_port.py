from __future__ import annotations

from typing import Protocol

from geocar_client.domain.value_objects.location import LatLng, ResolvedLocation


class GeocodingPort(Protocol):
    """Address/grid-reference text -> coordinates. Strong on Plus Codes."""

    async def geocode(self, text: str, *, region: str | None = None) -> ResolvedLocation | None: ...


class PlaceSearchPort(Protocol):
    """Named place text -> coordinates. Strong on natural-language names."""

    async def find_place(
        self,
        text: str,
        *,
        region: str | None = None,
        bias: LatLng | None = None,
    ) -> ResolvedLocation | None: ...
