from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from geocar_client.application.use_cases.resolve_location import should_search
from geocar_client.domain.errors import ValidationError
from geocar_client.domain.value_objects.location import LatLng
from geocar_client.domain.value_objects.region import Region
from geocar_client.infrastructure.container import Container
from geocar_client.presentation.api.deps import get_container

router = APIRouter(prefix="/v1", tags=["geo"])


@router.get("/locations/resolve")
async def resolve_location(  # type: ignore[misc]
    q: str,
    region: str | None = None,
    bias_lat: float | None = None,
    bias_lng: float | None = None,
    c: Container = Depends(get_container),
) -> dict[str, Any]:
    if not should_search(q):
        raise ValidationError("Query must have at least 3 characters")
    bias = LatLng(bias_lat, bias_lng) if bias_lat is not None and bias_lng is not None else None
    found = await c.resolver.resolve_or_raise(q, region=region, bias=bias)
    return {"lat": found.lat, "lng": found.lng, "description": found.description}


@router.get("/viewport")
async def viewport(  # type: ignore[misc]
    lat: float,
    lng: float,
    lat_delta: float = Query(0.01, gt=0),
    lng_delta: float = Query(0.01, gt=0),
    c: Container = Depends(get_container),
) -> dict[str, Any]:
    features = await c.viewport.load(Region(lat, lng, lat_delta, lng_delta))
    if features is None:
        return {"status": "busy", "items": [], "count": 0}
    items = [
        {
            "id": f.id,
            "attributes": f.attributes,
            "center": {"lat": f.center.lat, "lng": f.center.lng} if f.center else None,
            "ring": f.exterior_ring,
        }
        for f in features
    ]
    return {"status": "ok", "items": items, "count": len(items)}
