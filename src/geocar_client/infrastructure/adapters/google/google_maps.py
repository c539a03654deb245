from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Mapping

from geocar_client.application.ports.http_client_port import HttpClientPort
from geocar_client.application.ports.location_lookup_port import GeocodingPort, PlaceSearchPort
from geocar_client.domain.errors import HttpError, ValidationError
from geocar_client.domain.services.geometry import decode_polyline
from geocar_client.domain.value_objects.location import LatLng, ResolvedLocation

logger = logging.getLogger(__name__)

GOOGLE_BASE = "https://maps.googleapis.com/maps/api"
EMPTY_STATUSES = ("OK", "ZERO_RESULTS")


@dataclass(frozen=True)
class PlacePrediction:
    place_id: str
    description: str


@dataclass(frozen=True)
class PlaceDetails:
    lat: float
    lng: float
    name: str | None = None
    address: str | None = None


@dataclass(frozen=True)
class Route:
    distance_m: int
    duration_s: int
    points: list[LatLng]
    summary: str = ""


def new_session_token() -> str:
    """Groups autocomplete keystrokes and the final details call into one billing session."""
    return uuid.uuid4().hex


class GoogleMapsClient(GeocodingPort, PlaceSearchPort):
    """Geocoding, Places and Directions web services. Key sent as ``key`` query param."""

    def __init__(self, http: HttpClientPort, api_key: str, *, base_url: str = GOOGLE_BASE) -> None:
        self.http = http
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    def _log(self, msg: str) -> None:
        logger.info("[GoogleMapsClient] %s", msg)

    async def _get(self, path: str, params: Mapping[str, Any]) -> dict[str, Any]:
        if not self.api_key:
            raise ValidationError("GOOGLE_MAPS_API_KEY is not configured")
        query = {k: v for k, v in params.items() if v is not None}
        query["key"] = self.api_key
        resp = await self.http.request("GET", f"{self.base_url}{path}", params=query)
        if not resp.ok:
            raise HttpError(resp.status_code, resp.text.strip()[:200])
        try:
            data = resp.json()
        except ValueError as e:
            raise HttpError(resp.status_code, f"Malformed response from {path}") from e
        if not isinstance(data, dict):
            raise HttpError(resp.status_code, f"Unexpected response body from {path}")
        status = data.get("status", "")
        if status not in EMPTY_STATUSES:
            raise HttpError(resp.status_code, data.get("error_message") or status or "Unknown Google status")
        return data

    # ---------- Geocoding ----------
    async def geocode(self, text: str, *, region: str | None = None) -> ResolvedLocation | None:
        data = await self._get("/geocode/json", {"address": text, "region": region})
        for result in data.get("results") or []:
            loc = (result.get("geometry") or {}).get("location")
            if loc:
                return ResolvedLocation(lat=loc["lat"], lng=loc["lng"], description=result.get("formatted_address"))
        return None

    # ---------- Places ----------
    async def find_place(
        self,
        text: str,
        *,
        region: str | None = None,
        bias: LatLng | None = None,
    ) -> ResolvedLocation | None:
        params: dict[str, Any] = {
            "input": text,
            "inputtype": "textquery",
            "fields": "geometry,name",
            "region": region,
        }
        if bias is not None:
            params["locationbias"] = f"point:{bias.lat},{bias.lng}"
        data = await self._get("/place/findplacefromtext/json", params)
        for candidate in data.get("candidates") or []:
            loc = (candidate.get("geometry") or {}).get("location")
            if loc:
                return ResolvedLocation(lat=loc["lat"], lng=loc["lng"], description=candidate.get("name"))
        return None

    async def autocomplete(
        self, text: str, session_token: str, *, country: str | None = None
    ) -> list[PlacePrediction]:
        params = {
            "input": text,
            "sessiontoken": session_token,
            "components": f"country:{country.lower()}" if country else None,
        }
        data = await self._get("/place/autocomplete/json", params)
        return [
            PlacePrediction(place_id=p["place_id"], description=p.get("description", ""))
            for p in data.get("predictions") or []
            if p.get("place_id")
        ]

    async def place_details(self, place_id: str, session_token: str) -> PlaceDetails:
        data = await self._get(
            "/place/details/json",
            {
                "place_id": place_id,
                "fields": "geometry,name,formatted_address",
                "sessiontoken": session_token,
            },
        )
        if data.get("status") != "OK":
            raise HttpError(404, f"Place {place_id} not found")
        result = data["result"]
        loc = result["geometry"]["location"]
        return PlaceDetails(
            lat=loc["lat"],
            lng=loc["lng"],
            name=result.get("name"),
            address=result.get("formatted_address"),
        )

    # ---------- Directions ----------
    async def directions(self, origin: LatLng, destination: LatLng, *, mode: str = "driving") -> Route | None:
        data = await self._get(
            "/directions/json",
            {
                "origin": f"{origin.lat},{origin.lng}",
                "destination": f"{destination.lat},{destination.lng}",
                "mode": mode,
            },
        )
        routes = data.get("routes") or []
        if not routes:
            return None
        route = routes[0]
        legs = route.get("legs") or []
        return Route(
            distance_m=sum((leg.get("distance") or {}).get("value", 0) for leg in legs),
            duration_s=sum((leg.get("duration") or {}).get("value", 0) for leg in legs),
            points=decode_polyline((route.get("overview_polyline") or {}).get("points", "")),
            summary=route.get("summary", ""),
        )
