"""
Farm service layer.

This module provides:
1. Ownership and visibility checks used by every farm-scoped route
2. Farm creation (boundary zone and default design layers)
3. Row formatting for zones, plantings, lines and the other map features
4. Farm deletion with all dependent rows
"""
import json
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from permaculture_planner.logging_config import get_logger
from permaculture_planner.services import geometry
from permaculture_planner.services.db_operations import (
    decode_json,
    encode_json,
    execute_sql_query,
    fetch_all,
    fetch_one,
    new_id,
    now_ts,
    transaction,
)
from permaculture_planner.services.schema import FARM_DEPENDENT_TABLES

logger = get_logger(__name__)

DEFAULT_LAYERS = [
    ("Water Systems", "#0ea5e980"),
    ("Plantings", "#22c55e80"),
    ("Structures", "#ef444480"),
    ("Zones", "#eab30880"),
    ("Annotations", "#a855f780"),
]

BOOLEAN_FARM_FIELDS = (
    "is_public",
    "is_shop_enabled",
    "accepts_pickup",
    "accepts_shipping",
    "accepts_delivery",
)


def format_farm(row: Dict[str, Any]) -> Dict[str, Any]:
    farm = dict(row)
    for field in BOOLEAN_FARM_FIELDS:
        if field in farm:
            farm[field] = bool(farm[field])
    return farm


def format_zone(row: Dict[str, Any]) -> Dict[str, Any]:
    zone = dict(row)
    zone["geometry"] = decode_json(zone.get("geometry"), {})
    zone["properties"] = decode_json(zone.get("properties"), {})
    zone["catchment_properties"] = decode_json(zone.get("catchment_properties"))
    zone["swale_properties"] = decode_json(zone.get("swale_properties"))
    return zone


def format_planting(row: Dict[str, Any]) -> Dict[str, Any]:
    planting = dict(row)
    if "permaculture_functions" in planting:
        planting["permaculture_functions"] = decode_json(planting["permaculture_functions"], [])
    return planting


def format_line(row: Dict[str, Any]) -> Dict[str, Any]:
    line = dict(row)
    line["geometry"] = decode_json(line.get("geometry"), {})
    line["style"] = decode_json(line.get("style"), {})
    return line


def format_layer(row: Dict[str, Any]) -> Dict[str, Any]:
    layer = dict(row)
    layer["visible"] = bool(layer.get("visible"))
    layer["locked"] = bool(layer.get("locked"))
    return layer


def format_guild(row: Dict[str, Any]) -> Dict[str, Any]:
    guild = dict(row)
    guild["planting_ids"] = decode_json(guild.get("planting_ids"), [])
    return guild


def format_goal(row: Dict[str, Any]) -> Dict[str, Any]:
    goal = dict(row)
    goal["targets"] = decode_json(goal.get("targets"), [])
    return goal


def parse_geometry(value: Any) -> Dict[str, Any]:
    """Accept a GeoJSON geometry as a dict or a JSON string."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            raise ValueError("Geometry is not valid JSON")
    if not isinstance(value, dict) or "type" not in value or "coordinates" not in value:
        raise ValueError("Geometry must be a GeoJSON object with type and coordinates")
    return value


async def get_farm_or_404(farm_id: str) -> Dict[str, Any]:
    farm = await fetch_one("SELECT * FROM farms WHERE id = :id", {"id": farm_id})
    if farm is None:
        raise HTTPException(status_code=404, detail="Farm not found")
    return format_farm(farm)


async def require_farm_owner(farm_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    """Return the farm when the user owns it; 404 when missing and 403 otherwise."""
    farm = await get_farm_or_404(farm_id)
    if farm["user_id"] != user["id"]:
        raise HTTPException(status_code=403, detail="Forbidden")
    return farm


async def require_farm_viewer(farm_id: str, user: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return the farm when it is public or owned by the user."""
    farm = await get_farm_or_404(farm_id)
    if farm["is_public"] or (user is not None and farm["user_id"] == user["id"]):
        return farm
    raise HTTPException(status_code=403, detail="Forbidden")


async def list_user_farms(user_id: str) -> List[Dict[str, Any]]:
    rows = await fetch_all(
        "SELECT * FROM farms WHERE user_id = :user_id ORDER BY created_at DESC, id DESC",
        {"user_id": user_id},
    )
    return [format_farm(row) for row in rows]


async def create_farm(user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create a farm from its boundary polygon.

    The map center is the vertex centroid of the boundary and the zoom level
    fits its extent. When acres are not given they are computed from the
    boundary area.

    Raises:
        ValueError: If the boundary is not a usable polygon
    """
    boundary = parse_geometry(data["boundary_geometry"])
    if not geometry.is_polygon(boundary):
        raise ValueError("Boundary must be a Polygon")

    center_lat, center_lng = geometry.polygon_center(boundary)
    zoom_level = geometry.zoom_for_polygon(boundary)
    acres = data.get("acres")
    if acres is None:
        acres = geometry.acres_from_sqft(geometry.polygon_area_sqft(boundary))

    farm_id = new_id()
    ts = now_ts()
    async with transaction() as conn:
        await execute_sql_query(conn, """
            INSERT INTO farms (
                id, user_id, name, description, center_lat, center_lng, zoom_level, acres,
                climate_zone, rainfall_inches, soil_type, is_public, created_at, updated_at
            ) VALUES (
                :id, :user_id, :name, :description, :center_lat, :center_lng, :zoom_level, :acres,
                :climate_zone, :rainfall_inches, :soil_type, :is_public, :ts, :ts
            )
        """, {
            "id": farm_id,
            "user_id": user_id,
            "name": data["name"],
            "description": data.get("description"),
            "center_lat": center_lat,
            "center_lng": center_lng,
            "zoom_level": zoom_level,
            "acres": acres,
            "climate_zone": data.get("climate_zone"),
            "rainfall_inches": data.get("rainfall_inches"),
            "soil_type": data.get("soil_type"),
            "is_public": 1 if data.get("is_public") else 0,
            "ts": ts,
        })

        await execute_sql_query(conn, """
            INSERT INTO zones (id, farm_id, name, zone_type, geometry, properties, created_at, updated_at)
            VALUES (:id, :farm_id, :name, 'farm_boundary', :geometry, :properties, :ts, :ts)
        """, {
            "id": new_id(),
            "farm_id": farm_id,
            "name": "Farm Boundary",
            "geometry": encode_json(boundary),
            "properties": encode_json({
                "name": "Farm Boundary",
                "area_acres": acres,
                "area_hectares": acres * geometry.HECTARES_PER_ACRE,
            }),
            "ts": ts,
        })

        for order, (name, color) in enumerate(DEFAULT_LAYERS):
            await execute_sql_query(conn, """
                INSERT INTO design_layers (id, farm_id, name, color, display_order, created_at)
                VALUES (:id, :farm_id, :name, :color, :display_order, :ts)
            """, {"id": new_id(), "farm_id": farm_id, "name": name, "color": color, "display_order": order, "ts": ts})

    logger.info("Created farm %s for user %s (%.2f acres)", farm_id, user_id, acres)
    return await get_farm_or_404(farm_id)


async def list_zones(farm_id: str) -> List[Dict[str, Any]]:
    rows = await fetch_all(
        "SELECT * FROM zones WHERE farm_id = :farm_id ORDER BY created_at, id", {"farm_id": farm_id}
    )
    return [format_zone(row) for row in rows]


async def list_plantings(farm_id: str) -> List[Dict[str, Any]]:
    rows = await fetch_all("""
        SELECT p.*, s.common_name, s.scientific_name, s.layer, s.permaculture_functions
        FROM plantings p
        JOIN species s ON s.id = p.species_id
        WHERE p.farm_id = :farm_id
        ORDER BY p.created_at, p.id
    """, {"farm_id": farm_id})
    return [format_planting(row) for row in rows]


async def list_lines(farm_id: str) -> List[Dict[str, Any]]:
    rows = await fetch_all(
        "SELECT * FROM lines WHERE farm_id = :farm_id ORDER BY created_at, id", {"farm_id": farm_id}
    )
    return [format_line(row) for row in rows]


async def list_layers(farm_id: str) -> List[Dict[str, Any]]:
    rows = await fetch_all(
        "SELECT * FROM design_layers WHERE farm_id = :farm_id ORDER BY display_order, created_at",
        {"farm_id": farm_id},
    )
    return [format_layer(row) for row in rows]


async def list_phases(farm_id: str) -> List[Dict[str, Any]]:
    return await fetch_all(
        "SELECT * FROM phases WHERE farm_id = :farm_id ORDER BY display_order, created_at",
        {"farm_id": farm_id},
    )


async def list_guilds(farm_id: str) -> List[Dict[str, Any]]:
    rows = await fetch_all(
        "SELECT * FROM guilds WHERE farm_id = :farm_id ORDER BY created_at, id", {"farm_id": farm_id}
    )
    return [format_guild(row) for row in rows]


async def list_goals(farm_id: str) -> List[Dict[str, Any]]:
    rows = await fetch_all(
        "SELECT * FROM farmer_goals WHERE farm_id = :farm_id ORDER BY priority DESC, created_at",
        {"farm_id": farm_id},
    )
    return [format_goal(row) for row in rows]


async def load_farm_details(farm: Dict[str, Any]) -> Dict[str, Any]:
    farm_id = farm["id"]
    return {
        **farm,
        "zones": await list_zones(farm_id),
        "plantings": await list_plantings(farm_id),
        "lines": await list_lines(farm_id),
        "layers": await list_layers(farm_id),
        "phases": await list_phases(farm_id),
        "goals": await list_goals(farm_id),
    }


async def load_farm_features(farm_id: str) -> Dict[str, List[Dict[str, Any]]]:
    """Everything the feature search and grouping work on."""
    zones = [
        {**zone, "name": zone.get("name") or zone["properties"].get("name")}
        for zone in await list_zones(farm_id)
    ]
    return {
        "zones": zones,
        "plantings": await list_plantings(farm_id),
        "lines": await list_lines(farm_id),
        "guilds": await list_guilds(farm_id),
        "phases": await list_phases(farm_id),
    }


async def delete_farm(farm_id: str) -> None:
    """Delete a farm together with its features, posts and conversations."""
    params = {"farm_id": farm_id}
    async with transaction() as conn:
        post_ids = "SELECT id FROM farm_posts WHERE farm_id = :farm_id"
        for table in ("post_comments", "post_reactions", "post_saves"):
            await execute_sql_query(conn, f"DELETE FROM {table} WHERE post_id IN ({post_ids})", params)
        await execute_sql_query(conn, "DELETE FROM notifications WHERE farm_id = :farm_id", params)
        await execute_sql_query(conn, "DELETE FROM farm_posts WHERE farm_id = :farm_id", params)
        await execute_sql_query(conn, """
            DELETE FROM ai_analyses
            WHERE farm_id = :farm_id
               OR conversation_id IN (SELECT id FROM ai_conversations WHERE farm_id = :farm_id)
        """, params)
        await execute_sql_query(conn, "DELETE FROM ai_conversations WHERE farm_id = :farm_id", params)
        for table in FARM_DEPENDENT_TABLES:
            await execute_sql_query(conn, f"DELETE FROM {table} WHERE farm_id = :farm_id", params)
        await execute_sql_query(conn, "DELETE FROM farms WHERE id = :farm_id", params)
    logger.info("Deleted farm %s", farm_id)


async def next_display_order(table: str, farm_id: str) -> int:
    row = await fetch_one(
        f"SELECT COALESCE(MAX(display_order), -1) + 1 AS next_order FROM {table} WHERE farm_id = :farm_id",
        {"farm_id": farm_id},
    )
    return row["next_order"]
