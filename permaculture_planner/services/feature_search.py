"""
Search and grouping over a farm's map features.

``features`` is a dict with the keys zones, plantings, lines, guilds and phases,
each a list of row dicts.
"""
from typing import Any, Dict, List, Optional

FEATURE_KEYS = ("zones", "plantings", "lines", "guilds", "phases")

PLANT_LAYER_GROUPS = [
    "Canopy",
    "Understory",
    "Shrub",
    "Herbaceous",
    "Groundcover",
    "Vine",
    "Root",
]

_SEARCH_FIELDS = {
    "zones": ("name", "zone_type"),
    "plantings": ("common_name", "scientific_name", "layer"),
    "lines": ("label", "line_type"),
    "guilds": ("name",),
    "phases": ("name", "description"),
}


def _contains(value: Any, query: str) -> bool:
    return isinstance(value, str) and query in value.lower()


def _matches(kind: str, feature: Dict[str, Any], query: str) -> bool:
    if any(_contains(feature.get(field), query) for field in _SEARCH_FIELDS[kind]):
        return True
    if kind == "plantings":
        functions = feature.get("permaculture_functions") or []
        return any(_contains(fn, query) for fn in functions)
    return False


def search_features(features: Dict[str, List[Dict[str, Any]]], query: Optional[str]) -> Dict[str, List[Dict[str, Any]]]:
    """Case-insensitive substring search. An empty query returns everything."""
    normalized = (query or "").strip().lower()
    if not normalized:
        return {kind: list(features.get(kind, [])) for kind in FEATURE_KEYS}
    return {
        kind: [f for f in features.get(kind, []) if _matches(kind, f, normalized)]
        for kind in FEATURE_KEYS
    }


def _name_key(field: str):
    return lambda item: (item.get(field) or "").lower()


def group_by_type(features: Dict[str, List[Dict[str, Any]]]) -> Dict[str, List[Dict[str, Any]]]:
    return {
        "Zones": sorted(features.get("zones", []), key=_name_key("name")),
        "Plantings": sorted(features.get("plantings", []), key=_name_key("common_name")),
        "Lines": sorted(features.get("lines", []), key=_name_key("label")),
        "Guilds": sorted(features.get("guilds", []), key=_name_key("name")),
        "Phases": sorted(features.get("phases", []), key=lambda p: p.get("start_year") or 0),
    }


def group_by_layer(features: Dict[str, List[Dict[str, Any]]]) -> Dict[str, List[Dict[str, Any]]]:
    groups: Dict[str, List[Dict[str, Any]]] = {name: [] for name in PLANT_LAYER_GROUPS}
    groups["Unassigned"] = []

    for planting in features.get("plantings", []):
        layer = planting.get("layer")
        group_name = layer[:1].upper() + layer[1:] if layer else "Unassigned"
        groups.get(group_name, groups["Unassigned"]).append(planting)

    groups["Other Features"] = [
        *features.get("zones", []),
        *features.get("lines", []),
        *features.get("guilds", []),
        *features.get("phases", []),
    ]
    return {name: items for name, items in groups.items() if items}


def find_phase_for_year(phases: List[Dict[str, Any]], year: Optional[int]) -> Optional[Dict[str, Any]]:
    if not year:
        return None
    for phase in phases:
        start = phase.get("start_year") or 0
        end = phase.get("end_year") or 9999
        if start <= year <= end:
            return phase
    return None


def group_by_phase(
    features: Dict[str, List[Dict[str, Any]]], phases: List[Dict[str, Any]]
) -> Dict[str, List[Dict[str, Any]]]:
    groups: Dict[str, List[Dict[str, Any]]] = {phase["name"]: [] for phase in phases}
    groups["Unscheduled"] = []

    for planting in features.get("plantings", []):
        phase = find_phase_for_year(phases, planting.get("planted_year"))
        groups[phase["name"] if phase else "Unscheduled"].append(planting)

    # zones, lines and guilds carry no schedule of their own
    groups["Unscheduled"].extend(features.get("zones", []))
    groups["Unscheduled"].extend(features.get("lines", []))
    groups["Unscheduled"].extend(features.get("guilds", []))
    return groups


GROUPERS = {
    "type": lambda features, phases: group_by_type(features),
    "layer": lambda features, phases: group_by_layer(features),
    "phase": group_by_phase,
}
