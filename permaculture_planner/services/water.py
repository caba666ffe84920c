"""
Water harvesting calculations.

Catchment capture: gallons = area (sq ft) x rainfall (in) x 0.623 x runoff.
Swale capacity: trapezoidal cross-section x length, converted to gallons.
"""
from typing import Any, Dict, List, Optional

from permaculture_planner.services.geometry import round_half_up

GALLONS_PER_SQFT_INCH = 0.623
GALLONS_PER_CUBIC_FOOT = 7.48052
DEFAULT_RUNOFF_COEFFICIENT = 0.9
DEFAULT_SIDE_SLOPE = 2
DEFAULT_RAINFALL_INCHES = 30


def calculate_catchment_gallons(
    area_sqft: float,
    rainfall_inches: float,
    runoff_coefficient: float = DEFAULT_RUNOFF_COEFFICIENT,
) -> int:
    """Annual capture from a catchment surface, in gallons."""
    if not 0 <= runoff_coefficient <= 1:
        raise ValueError("runoff_coefficient must be between 0 and 1")
    return round_half_up(area_sqft * GALLONS_PER_SQFT_INCH * rainfall_inches * runoff_coefficient)


def calculate_swale_capacity(
    length_feet: float,
    width_feet: float,
    depth_feet: float,
    side_slope: float = DEFAULT_SIDE_SLOPE,
) -> int:
    """Holding capacity of a trapezoidal swale, in gallons.

    ``width_feet`` is the bottom width; ``side_slope`` is horizontal run per unit of depth.
    """
    top_width = width_feet + 2 * depth_feet * side_slope
    avg_width = (width_feet + top_width) / 2
    volume_cubic_feet = avg_width * depth_feet * length_feet
    return round_half_up(volume_cubic_feet * GALLONS_PER_CUBIC_FOOT)


def build_catchment_properties(
    area_sqft: int,
    rainfall_inches: float,
    runoff_coefficient: float,
    destination_feature_id: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "is_catchment": True,
        "area_sqft": area_sqft,
        "rainfall_inches_per_year": rainfall_inches,
        "runoff_coefficient": runoff_coefficient,
        "estimated_capture_gallons": calculate_catchment_gallons(
            area_sqft, rainfall_inches, runoff_coefficient
        ),
        "destination_feature_id": destination_feature_id,
    }


def build_swale_properties(
    length_feet: int,
    width_feet: float,
    depth_feet: float,
    overflow_destination_id: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "is_swale": True,
        "length_feet": length_feet,
        "cross_section_width_feet": width_feet,
        "cross_section_depth_feet": depth_feet,
        "estimated_volume_gallons": calculate_swale_capacity(length_feet, width_feet, depth_feet),
        "overflow_destination_id": overflow_destination_id,
    }


def summarize_water(
    catchments: List[Dict[str, Any]], swales: List[Dict[str, Any]]
) -> Dict[str, Any]:
    """Totals over zone rows whose catchment/swale properties are already decoded."""
    total_capture = sum(c["catchment_properties"].get("estimated_capture_gallons", 0) for c in catchments)
    total_storage = sum(s["swale_properties"].get("estimated_volume_gallons", 0) for s in swales)
    return {
        "catchments": catchments,
        "swales": swales,
        "total_capture_gallons": total_capture,
        "total_storage_gallons": total_storage,
    }
