from __future__ import annotations

import uuid
from typing import Any, Mapping

from geocar_client.domain.entities.spatial_feature import SpatialFeature
from geocar_client.domain.services.geometry import polygon_centroid
from geocar_client.domain.value_objects.location import LatLng


def exterior_ring(geometry: Any) -> list[tuple[float, float]]:
    """First ring of a GeoJSON Polygon (or of the first MultiPolygon part).

    Malformed geometry yields an empty ring.
    """
    if not isinstance(geometry, Mapping):
        return []
    coords = geometry.get("coordinates") or []
    try:
        if geometry.get("type") == "MultiPolygon":
            coords = coords[0] if coords else []
        if not coords or not coords[0]:
            return []
        return [(float(p[0]), float(p[1])) for p in coords[0]]
    except (TypeError, ValueError, IndexError, KeyError):
        return []


def _center(raw: Any) -> LatLng | None:
    if not isinstance(raw, Mapping):
        return None
    try:
        return LatLng(lat=float(raw["lat"]), lng=float(raw["lng"]))
    except (TypeError, ValueError, KeyError):
        return None


def placeholder_id() -> str:
    return f"feature-{uuid.uuid4().hex[:12]}"


def feature_from_geojson(item: Mapping[str, Any], *, fallback_id: str | None = None) -> SpatialFeature:
    ring = exterior_ring(item.get("geometry"))
    center = _center(item.get("center")) or polygon_centroid(ring)
    props = item.get("properties")
    return SpatialFeature(
        id=str(item.get("_id") or item.get("id") or fallback_id or placeholder_id()),
        exterior_ring=ring,
        attributes=dict(props) if isinstance(props, Mapping) else {},
        center=center,
    )


def normalize_paged(payload: Any) -> list[SpatialFeature]:
    """``{items: [...], total, ...}`` envelope -> features. Anything else -> []."""
    if isinstance(payload, Mapping):
        items = payload.get("items")
    elif isinstance(payload, list):
        items = payload
    else:
        items = None
    if not isinstance(items, list):
        return []
    return [feature_from_geojson(item) for item in items if isinstance(item, Mapping)]
