from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from geocar_client.application.ports.location_lookup_port import GeocodingPort, PlaceSearchPort
from geocar_client.domain.errors import GeoCarError, ResolutionNotFound
from geocar_client.domain.value_objects.location import (
    ByCoordinate,
    ByText,
    LatLng,
    LocationQuery,
    ResolvedLocation,
)
from geocar_client.infrastructure.metrics import RESOLUTIONS

logger = logging.getLogger(__name__)

# Open Location Code alphabet: no 0, 1, A, B, D, E, I, K, L, N, O, S, T, U, Y, Z
PLUS_CODE_ALPHABET = "23456789CFGHJMPQRVWX"
_CODE = rf"[{PLUS_CODE_ALPHABET}]{{2,8}}\+[{PLUS_CODE_ALPHABET}]{{2,3}}"
GLOBAL_PLUS_CODE = re.compile(rf"^{_CODE}$", re.IGNORECASE)
COMPOUND_PLUS_CODE = re.compile(rf"^{_CODE}\b", re.IGNORECASE)

MIN_QUERY_LENGTH = 3


def is_plus_code(text: str) -> bool:
    """True for ``7WF8+MJG`` style codes, alone or followed by a locality."""
    t = text.strip()
    return bool(GLOBAL_PLUS_CODE.match(t) or COMPOUND_PLUS_CODE.match(t))


def should_search(text: str | None) -> bool:
    """Guard for callers: skip lookups for inputs shorter than 3 characters."""
    return bool(text) and len(text.strip()) >= MIN_QUERY_LENGTH


Lookup = Callable[[str], Awaitable["ResolvedLocation | None"]]


@dataclass(frozen=True)
class ResolverStrategy:
    name: str
    lookup: Lookup


class LocationResolver:
    """Resolves free-form text into coordinates through an ordered cascade.

    Plus Codes go to geocoding first (it parses grid references reliably) and
    fall back to place search; anything else goes to place search first and
    falls back to geocoding. The first strategy with a hit wins.
    """

    def __init__(
        self,
        geocoder: GeocodingPort,
        places: PlaceSearchPort,
        *,
        default_region: str = "br",
    ) -> None:
        self.geocoder = geocoder
        self.places = places
        self.default_region = default_region

    def strategies_for(
        self,
        text: str,
        *,
        region: str | None = None,
        bias: LatLng | None = None,
    ) -> list[ResolverStrategy]:
        async def geocode_plus_code(t: str) -> ResolvedLocation | None:
            return await self.geocoder.geocode(t, region=region or self.default_region)

        async def geocode(t: str) -> ResolvedLocation | None:
            return await self.geocoder.geocode(t, region=region)

        async def find_place(t: str) -> ResolvedLocation | None:
            return await self.places.find_place(t, region=region, bias=bias)

        if is_plus_code(text):
            return [ResolverStrategy("geocoding", geocode_plus_code), ResolverStrategy("place_search", find_place)]
        return [ResolverStrategy("place_search", find_place), ResolverStrategy("geocoding", geocode)]

    async def resolve(
        self,
        text: str,
        *,
        region: str | None = None,
        bias: LatLng | None = None,
    ) -> ResolvedLocation | None:
        """Returns the first hit of the cascade, or None when nothing matched.

        A strategy that raises counts as a miss; if every strategy raised, the
        last error is re-raised so transport failures are not mistaken for
        "not found".
        """
        text = text.strip()
        if not text:
            return None
        last_error: GeoCarError | None = None
        misses = 0
        for strategy in self.strategies_for(text, region=region, bias=bias):
            try:
                found = await strategy.lookup(text)
            except GeoCarError as e:
                logger.warning("[LocationResolver] %s failed for %r: %s", strategy.name, text, e)
                last_error = e
                continue
            if found is not None:
                RESOLUTIONS.labels(strategy=strategy.name).inc()
                return found
            misses += 1
        if misses == 0 and last_error is not None:
            raise last_error
        RESOLUTIONS.labels(strategy="none").inc()
        return None

    async def resolve_or_raise(
        self,
        text: str,
        *,
        region: str | None = None,
        bias: LatLng | None = None,
    ) -> ResolvedLocation:
        found = await self.resolve(text, region=region, bias=bias)
        if found is None:
            raise ResolutionNotFound(f"Could not locate {text!r}")
        return found

    async def resolve_query(
        self,
        query: LocationQuery,
        *,
        region: str | None = None,
        bias: LatLng | None = None,
    ) -> ResolvedLocation | None:
        if isinstance(query, ByCoordinate):
            return ResolvedLocation(lat=query.lat, lng=query.lng, description=query.description)
        if isinstance(query, ByText):
            found = await self.resolve(query.raw, region=region, bias=bias)
            if found is not None and found.description is None:
                return ResolvedLocation(lat=found.lat, lng=found.lng, description=query.raw)
            return found
        raise TypeError(f"Unsupported location query: {query!r}")
