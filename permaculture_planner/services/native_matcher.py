"""
Native species matching for a farm's location and hardiness zone.

Species carry ``is_native``, a hardiness range (``min_hardiness_zone`` /
``max_hardiness_zone`` such as "4" or "6b") and ``broad_regions``, a list of
US region names as produced by ``get_region_from_coordinates``.
"""
import re
from typing import Any, Dict, Iterable, List, Optional

from permaculture_planner.services.db_operations import decode_json

REGIONS = [
    "Northeast",
    "Southeast",
    "Midwest",
    "South Central",
    "Mountain West",
    "Southwest",
    "Pacific Northwest",
    "California",
    "Alaska",
    "Hawaii",
]

_LEADING_INT = re.compile(r"^\s*(\d+)")


def parse_zone(value: Any, default: Optional[int] = None) -> Optional[int]:
    """Numeric part of a hardiness zone ("6b" -> 6)."""
    if value is None:
        return default
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else default


def get_region_from_coordinates(lat: Optional[float], lng: Optional[float]) -> Optional[str]:
    """Map a point to a broad US region, or None outside the US."""
    if lat is None or lng is None:
        return None
    if lat >= 51 and lng <= -129:
        return "Alaska"
    if 18 <= lat <= 23 and -161 <= lng <= -154:
        return "Hawaii"
    if not (24.5 <= lat <= 49.5 and -125 <= lng <= -66.9):
        return None

    if lat >= 42 and lng <= -116.5:
        return "Pacific Northwest"
    if lat < 42 and (lng <= -120 or (lat < 35.8 and lng <= -114.6)):
        return "California"
    if lat < 37 and lng <= -103:
        return "Southwest"
    if lng <= -102:
        return "Mountain West"
    if lat < 37 and lng <= -89:
        return "South Central"
    if lng <= -80.5:
        return "Midwest" if lat >= 37 else "Southeast"
    return "Northeast" if lat >= 38.8 else "Southeast"


def is_in_hardiness_range(species: Dict[str, Any], farm_zone: Optional[int]) -> bool:
    if farm_zone is None:
        return False
    low = parse_zone(species.get("min_hardiness_zone") or "0")
    high = parse_zone(species.get("max_hardiness_zone") or "13")
    if low is None or high is None:
        return False
    return low <= farm_zone <= high


def includes_region(species_regions: Any, region: Optional[str]) -> bool:
    if not region:
        return False
    regions = decode_json(species_regions, default=[]) if isinstance(species_regions, str) else species_regions
    return isinstance(regions, list) and region in regions


def match_species(species: Dict[str, Any], farm_zone: Optional[int], region: Optional[str]) -> Optional[str]:
    """Classify one species as "perfect", "good", "possible" or None."""
    in_zone = is_in_hardiness_range(species, farm_zone)
    in_region = includes_region(species.get("broad_regions"), region)
    if species.get("is_native"):
        if in_zone and in_region:
            return "perfect"
        if in_zone or in_region:
            return "good"
        return None
    return "possible" if in_zone else None


def match_native_species(farm: Dict[str, Any], all_species: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    farm_zone = parse_zone(farm.get("climate_zone") or "0")
    region = get_region_from_coordinates(farm.get("center_lat"), farm.get("center_lng"))

    matched: Dict[str, List[Dict[str, Any]]] = {"perfect_match": [], "good_match": [], "possible": []}
    buckets = {"perfect": "perfect_match", "good": "good_match", "possible": "possible"}
    for species in all_species:
        verdict = match_species(species, farm_zone, region)
        if verdict:
            matched[buckets[verdict]].append(species)
    matched["region"] = region
    return matched
