"""
GeoJSON geometry helpers.

Coordinates are ``[lng, lat]`` pairs as in GeoJSON. Areas and lengths are
flat-earth approximations that are good enough at farm scale.
"""
import math
from typing import Any, Dict, List, Optional, Tuple

FEET_PER_DEGREE = 364000
EARTH_RADIUS_FEET = 20902231
SQFT_PER_ACRE = 43560
HECTARES_PER_ACRE = 0.404686


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _outer_ring(geometry: Dict[str, Any]) -> List[List[float]]:
    coordinates = geometry.get("coordinates") or []
    return coordinates[0] if coordinates else []


def is_polygon(geometry: Optional[Dict[str, Any]]) -> bool:
    return bool(geometry) and geometry.get("type") == "Polygon" and bool(_outer_ring(geometry))


def polygon_area_sqft(geometry: Optional[Dict[str, Any]]) -> int:
    """Shoelace area of the outer ring, scaled from square degrees to square feet."""
    if not geometry or geometry.get("type") != "Polygon" or not geometry.get("coordinates"):
        return 0
    coords = _outer_ring(geometry)
    area = 0.0
    for (x1, y1), (x2, y2) in zip(coords, coords[1:]):
        area += x1 * y2 - x2 * y1
    area = abs(area / 2)
    return round_half_up(area * FEET_PER_DEGREE * FEET_PER_DEGREE)


def line_length_feet(geometry: Optional[Dict[str, Any]]) -> int:
    """Haversine length of a LineString in feet."""
    if not geometry or geometry.get("type") != "LineString" or not geometry.get("coordinates"):
        return 0
    coords = geometry["coordinates"]
    total = 0.0
    for (lon1, lat1), (lon2, lat2) in zip(coords, coords[1:]):
        d_lat = math.radians(lat2 - lat1)
        d_lon = math.radians(lon2 - lon1)
        a = (
            math.sin(d_lat / 2) ** 2
            + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
        )
        total += EARTH_RADIUS_FEET * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round_half_up(total)


def polygon_to_line(geometry: Dict[str, Any]) -> Dict[str, Any]:
    """Use a polygon's outer ring as a LineString; other geometries pass through."""
    if geometry.get("type") == "Polygon":
        return {"type": "LineString", "coordinates": _outer_ring(geometry)}
    return geometry


def polygon_center(geometry: Dict[str, Any]) -> Tuple[float, float]:
    """Vertex centroid of the outer ring as ``(lat, lng)``.

    The closing vertex is ignored when it repeats the first one.
    """
    ring = _outer_ring(geometry)
    if len(ring) > 1 and ring[0] == ring[-1]:
        ring = ring[:-1]
    if not ring:
        raise ValueError("Polygon has no coordinates")
    lng = sum(point[0] for point in ring) / len(ring)
    lat = sum(point[1] for point in ring) / len(ring)
    return lat, lng


def zoom_for_polygon(geometry: Dict[str, Any]) -> int:
    """Pick a map zoom level (10-18) that fits the polygon's extent."""
    ring = _outer_ring(geometry)
    lngs = [point[0] for point in ring]
    lats = [point[1] for point in ring]
    max_span = max(max(lats) - min(lats), max(lngs) - min(lngs))
    if max_span <= 0:
        return 18
    return min(18, max(10, math.floor(14 - math.log2(max_span * 100))))


def acres_from_sqft(area_sqft: float) -> float:
    return round(area_sqft / SQFT_PER_ACRE, 2)
