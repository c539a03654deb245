from __future__ import annotations

from collections.abc import Sequence

from geocar_client.domain.value_objects.location import LatLng
from geocar_client.domain.value_objects.region import BBox, Region

DEGENERATE_AREA = 1e-12


def polygon_centroid(ring: Sequence[Sequence[float]]) -> LatLng | None:
    """Centroid of a polygon exterior ring given as ``(lon, lat)`` pairs.

    Uses the shoelace formula, so either winding order works. Rings with fewer
    than 3 vertices yield None; collinear or zero-area rings fall back to the
    arithmetic mean of the vertices.
    """
    if ring is None or len(ring) < 3:
        return None
    area = 0.0
    cx = 0.0
    cy = 0.0
    j = len(ring) - 1
    for i in range(len(ring)):
        x0, y0 = float(ring[j][0]), float(ring[j][1])
        x1, y1 = float(ring[i][0]), float(ring[i][1])
        f = x0 * y1 - x1 * y0
        area += f
        cx += (x0 + x1) * f
        cy += (y0 + y1) * f
        j = i
    area *= 0.5
    if abs(area) < DEGENERATE_AREA:
        n = len(ring)
        return LatLng(
            lat=sum(float(p[1]) for p in ring) / n,
            lng=sum(float(p[0]) for p in ring) / n,
        )
    return LatLng(lat=cy / (6 * area), lng=cx / (6 * area))


def region_to_bbox(region: Region) -> BBox:
    half_lat = region.latitude_delta / 2
    half_lon = region.longitude_delta / 2
    return BBox(
        min_lat=region.latitude - half_lat,
        max_lat=region.latitude + half_lat,
        min_lon=region.longitude - half_lon,
        max_lon=region.longitude + half_lon,
    )


def centered_region(lat: float, lng: float, delta: float = 0.01) -> Region:
    return Region(latitude=lat, longitude=lng, latitude_delta=delta, longitude_delta=delta)


def decode_polyline(encoded: str, precision: int = 5) -> list[LatLng]:
    """Decode a Google encoded polyline (Directions ``overview_polyline``)."""
    points: list[LatLng] = []
    factor = 10 ** precision
    index = lat = lng = 0
    length = len(encoded)
    while index < length:
        deltas = []
        for _ in range(2):
            shift = result = 0
            while True:
                b = ord(encoded[index]) - 63
                index += 1
                result |= (b & 0x1F) << shift
                shift += 5
                if b < 0x20:
                    break
            deltas.append(~(result >> 1) if result & 1 else result >> 1)
        lat += deltas[0]
        lng += deltas[1]
        points.append(LatLng(lat=lat / factor, lng=lng / factor))
    return points
