"""
Farm routes: the farm itself and every map feature that hangs off it.

Reads are allowed for the owner and, on public farms, for anyone; writes
are owner only.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from permaculture_planner.auth import get_current_user, get_optional_user
from permaculture_planner.logging_config import get_logger
from permaculture_planner.schemas.farms import (
    CatchmentRequest,
    FarmCreate,
    FarmUpdate,
    GoalCreate,
    GuildCreate,
    LayerCreate,
    LayerUpdate,
    LineCreate,
    LineUpdate,
    PhaseCreate,
    PhaseUpdate,
    PlantingCreate,
    PlantingUpdate,
    SwaleRequest,
    ZonesUpsert,
)
from permaculture_planner.services import farms, feed, geometry, water
from permaculture_planner.services.db_operations import (
    build_update,
    encode_json,
    execute,
    execute_sql_query,
    fetch_all,
    fetch_one,
    new_id,
    now_ts,
    transaction,
)
from permaculture_planner.services.feature_search import GROUPERS, search_features
from permaculture_planner.services.line_styles import resolve_style
from permaculture_planner.services.native_matcher import match_native_species
from permaculture_planner.services.species import format_species

logger = get_logger(__name__)

router = APIRouter(prefix="/api/farms", tags=["farms"])

FARM_UPDATE_FIELDS = ("name", "description", "climate_zone", "rainfall_inches", "soil_type", "is_public", "acres")


def _bool_to_int(updates: Dict[str, Any], *fields: str) -> Dict[str, Any]:
    for field in fields:
        if field in updates and updates[field] is not None:
            updates[field] = 1 if updates[field] else 0
    return updates


# --- farms ---

@router.get("")
async def list_farms(user: Dict[str, Any] = Depends(get_current_user)):
    return await farms.list_user_farms(user["id"])


@router.post("", status_code=201)
async def create_farm(body: FarmCreate, user: Dict[str, Any] = Depends(get_current_user)):
    try:
        return await farms.create_farm(user["id"], body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{farm_id}")
async def get_farm(farm_id: str, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    farm = await farms.require_farm_viewer(farm_id, user)
    return await farms.load_farm_details(farm)


@router.patch("/{farm_id}")
async def update_farm(farm_id: str, body: FarmUpdate, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    updates = {k: v for k, v in body.model_dump(exclude_unset=True).items() if k in FARM_UPDATE_FIELDS}
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    sql, params = build_update("farms", _bool_to_int(updates, "is_public"), "id = :id", {"id": farm_id})
    await execute(sql, params)
    return await farms.get_farm_or_404(farm_id)


@router.delete("/{farm_id}")
async def delete_farm(farm_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    try:
        await farms.delete_farm(farm_id)
    except Exception as e:
        logger.error("Failed to delete farm %s: %s", farm_id, e)
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True}


# --- zones ---

@router.get("/{farm_id}/zones")
async def list_zones(farm_id: str, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    await farms.require_farm_viewer(farm_id, user)
    return await farms.list_zones(farm_id)


@router.post("/{farm_id}/zones")
async def upsert_zones(farm_id: str, body: ZonesUpsert, user: Dict[str, Any] = Depends(get_current_user)):
    """
    Save drawn zones in bulk.

    Features whose id already belongs to this farm are updated; everything
    else is inserted as a new zone.
    """
    await farms.require_farm_owner(farm_id, user)
    existing_ids = {
        row["id"] for row in await fetch_all("SELECT id FROM zones WHERE farm_id = :farm_id", {"farm_id": farm_id})
    }
    created = updated = 0
    ts = now_ts()
    async with transaction() as conn:
        for feature in body.zones:
            properties = feature.properties or {}
            params = {
                "farm_id": farm_id,
                "name": properties.get("name"),
                "zone_type": properties.get("zone_type") or "other",
                "geometry": encode_json(feature.geometry),
                "properties": encode_json(properties),
                "layer_id": properties.get("layer_id"),
                "ts": ts,
            }
            if feature.id and feature.id in existing_ids:
                await execute_sql_query(conn, """
                    UPDATE zones
                    SET name = :name, zone_type = :zone_type, geometry = :geometry,
                        properties = :properties, layer_id = :layer_id, updated_at = :ts
                    WHERE id = :id AND farm_id = :farm_id
                """, {**params, "id": feature.id})
                updated += 1
            else:
                await execute_sql_query(conn, """
                    INSERT INTO zones (id, farm_id, name, zone_type, geometry, properties, layer_id, created_at, updated_at)
                    VALUES (:id, :farm_id, :name, :zone_type, :geometry, :properties, :layer_id, :ts, :ts)
                """, {**params, "id": new_id()})
                created += 1
    logger.info("Saved zones for farm %s: %d created, %d updated", farm_id, created, updated)
    return {"created": created, "updated": updated, "zones": await farms.list_zones(farm_id)}


@router.delete("/{farm_id}/zones/{zone_id}")
async def delete_zone(farm_id: str, zone_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    deleted = await execute(
        "DELETE FROM zones WHERE id = :id AND farm_id = :farm_id", {"id": zone_id, "farm_id": farm_id}
    )
    if not deleted:
        raise HTTPException(status_code=404, detail="Zone not found")
    return {"success": True}


# --- plantings ---

@router.get("/{farm_id}/plantings")
async def list_plantings(farm_id: str, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    await farms.require_farm_viewer(farm_id, user)
    return await farms.list_plantings(farm_id)


async def _get_planting(farm_id: str, planting_id: str) -> Dict[str, Any]:
    row = await fetch_one("""
        SELECT p.*, s.common_name, s.scientific_name, s.layer, s.permaculture_functions
        FROM plantings p JOIN species s ON s.id = p.species_id
        WHERE p.id = :id AND p.farm_id = :farm_id
    """, {"id": planting_id, "farm_id": farm_id})
    if row is None:
        raise HTTPException(status_code=404, detail="Planting not found")
    return farms.format_planting(row)


@router.post("/{farm_id}/plantings", status_code=201)
async def create_planting(farm_id: str, body: PlantingCreate, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    species = await fetch_one("SELECT id FROM species WHERE id = :id", {"id": body.species_id})
    if species is None:
        raise HTTPException(status_code=404, detail="Species not found")

    planting_id = new_id()
    ts = now_ts()
    await execute("""
        INSERT INTO plantings (
            id, farm_id, user_id, species_id, zone_id, layer_id, lat, lng,
            planted_year, current_year, name, notes, created_at, updated_at
        ) VALUES (
            :id, :farm_id, :user_id, :species_id, :zone_id, :layer_id, :lat, :lng,
            :planted_year, :current_year, :name, :notes, :ts, :ts
        )
    """, {
        **body.model_dump(),
        "id": planting_id,
        "farm_id": farm_id,
        "user_id": user["id"],
        "planted_year": body.planted_year or datetime.now().year,
        "ts": ts,
    })
    return await _get_planting(farm_id, planting_id)


@router.patch("/{farm_id}/plantings/{planting_id}")
async def update_planting(
    farm_id: str, planting_id: str, body: PlantingUpdate, user: Dict[str, Any] = Depends(get_current_user)
):
    await farms.require_farm_owner(farm_id, user)
    await _get_planting(farm_id, planting_id)
    updates = body.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    sql, params = build_update("plantings", updates, "id = :id AND farm_id = :farm_id", {"id": planting_id, "farm_id": farm_id})
    await execute(sql, params)
    return await _get_planting(farm_id, planting_id)


@router.delete("/{farm_id}/plantings/{planting_id}")
async def delete_planting(farm_id: str, planting_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    deleted = await execute(
        "DELETE FROM plantings WHERE id = :id AND farm_id = :farm_id", {"id": planting_id, "farm_id": farm_id}
    )
    if not deleted:
        raise HTTPException(status_code=404, detail="Planting not found")
    return {"success": True}


# --- lines ---

async def _get_line(farm_id: str, line_id: str) -> Dict[str, Any]:
    row = await fetch_one(
        "SELECT * FROM lines WHERE id = :id AND farm_id = :farm_id", {"id": line_id, "farm_id": farm_id}
    )
    if row is None:
        raise HTTPException(status_code=404, detail="Line not found")
    return farms.format_line(row)


@router.get("/{farm_id}/lines")
async def list_lines(farm_id: str, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    await farms.require_farm_viewer(farm_id, user)
    return await farms.list_lines(farm_id)


@router.post("/{farm_id}/lines", status_code=201)
async def create_line(farm_id: str, body: LineCreate, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    line_id = new_id()
    ts = now_ts()
    await execute("""
        INSERT INTO lines (id, farm_id, user_id, line_type, label, geometry, style, layer_id, created_at, updated_at)
        VALUES (:id, :farm_id, :user_id, :line_type, :label, :geometry, :style, :layer_id, :ts, :ts)
    """, {
        "id": line_id,
        "farm_id": farm_id,
        "user_id": user["id"],
        "line_type": body.line_type,
        "label": body.label,
        "geometry": encode_json(body.geometry),
        "style": encode_json(resolve_style(body.line_type, body.style)),
        "layer_id": body.layer_id,
        "ts": ts,
    })
    return await _get_line(farm_id, line_id)


@router.patch("/{farm_id}/lines/{line_id}")
async def update_line(farm_id: str, line_id: str, body: LineUpdate, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    await _get_line(farm_id, line_id)
    updates = body.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    for field in ("geometry", "style"):
        if field in updates:
            updates[field] = encode_json(updates[field])
    sql, params = build_update("lines", updates, "id = :id AND farm_id = :farm_id", {"id": line_id, "farm_id": farm_id})
    await execute(sql, params)
    return await _get_line(farm_id, line_id)


@router.delete("/{farm_id}/lines/{line_id}")
async def delete_line(farm_id: str, line_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    deleted = await execute(
        "DELETE FROM lines WHERE id = :id AND farm_id = :farm_id", {"id": line_id, "farm_id": farm_id}
    )
    if not deleted:
        raise HTTPException(status_code=404, detail="Line not found")
    return {"success": True}


# --- design layers ---

@router.get("/{farm_id}/layers")
async def list_layers(farm_id: str, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    await farms.require_farm_viewer(farm_id, user)
    return await farms.list_layers(farm_id)


@router.post("/{farm_id}/layers", status_code=201)
async def create_layer(farm_id: str, body: LayerCreate, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    layer_id = new_id()
    await execute("""
        INSERT INTO design_layers (id, farm_id, name, color, description, visible, locked, display_order, created_at)
        VALUES (:id, :farm_id, :name, :color, :description, :visible, :locked, :display_order, :ts)
    """, {
        "id": layer_id,
        "farm_id": farm_id,
        "name": body.name,
        "color": body.color,
        "description": body.description,
        "visible": 1 if body.visible else 0,
        "locked": 1 if body.locked else 0,
        "display_order": await farms.next_display_order("design_layers", farm_id),
        "ts": now_ts(),
    })
    row = await fetch_one("SELECT * FROM design_layers WHERE id = :id", {"id": layer_id})
    return farms.format_layer(row)


@router.patch("/{farm_id}/layers/{layer_id}")
async def update_layer(farm_id: str, layer_id: str, body: LayerUpdate, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    updates = _bool_to_int(body.model_dump(exclude_unset=True), "visible", "locked")
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    sql, params = build_update(
        "design_layers", updates, "id = :id AND farm_id = :farm_id", {"id": layer_id, "farm_id": farm_id}, touch=False
    )
    if not await execute(sql, params):
        raise HTTPException(status_code=404, detail="Layer not found")
    row = await fetch_one("SELECT * FROM design_layers WHERE id = :id", {"id": layer_id})
    return farms.format_layer(row)


@router.delete("/{farm_id}/layers/{layer_id}")
async def delete_layer(farm_id: str, layer_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    params = {"id": layer_id, "farm_id": farm_id}
    async with transaction() as conn:
        result = await execute_sql_query(conn, "DELETE FROM design_layers WHERE id = :id AND farm_id = :farm_id", params)
        if not result.rowcount:
            raise HTTPException(status_code=404, detail="Layer not found")
        for table in ("zones", "plantings", "lines"):
            await execute_sql_query(
                conn, f"UPDATE {table} SET layer_id = NULL WHERE layer_id = :id AND farm_id = :farm_id", params
            )
    return {"success": True}


# --- phases ---

@router.get("/{farm_id}/phases")
async def list_phases(farm_id: str, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    await farms.require_farm_viewer(farm_id, user)
    return await farms.list_phases(farm_id)


@router.post("/{farm_id}/phases", status_code=201)
async def create_phase(farm_id: str, body: PhaseCreate, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    phase_id = new_id()
    await execute("""
        INSERT INTO phases (id, farm_id, name, description, start_year, end_year, color, display_order, created_at)
        VALUES (:id, :farm_id, :name, :description, :start_year, :end_year, :color, :display_order, :ts)
    """, {
        **body.model_dump(),
        "id": phase_id,
        "farm_id": farm_id,
        "display_order": await farms.next_display_order("phases", farm_id),
        "ts": now_ts(),
    })
    return await fetch_one("SELECT * FROM phases WHERE id = :id", {"id": phase_id})


@router.patch("/{farm_id}/phases/{phase_id}")
async def update_phase(farm_id: str, phase_id: str, body: PhaseUpdate, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    phase = await fetch_one(
        "SELECT * FROM phases WHERE id = :id AND farm_id = :farm_id", {"id": phase_id, "farm_id": farm_id}
    )
    if phase is None:
        raise HTTPException(status_code=404, detail="Phase not found")
    updates = body.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    start = updates.get("start_year", phase["start_year"])
    end = updates.get("end_year", phase["end_year"])
    if start is not None and end is not None and start > end:
        raise HTTPException(status_code=400, detail="start_year must not be after end_year")

    sql, params = build_update("phases", updates, "id = :id", {"id": phase_id}, touch=False)
    await execute(sql, params)
    return await fetch_one("SELECT * FROM phases WHERE id = :id", {"id": phase_id})


@router.delete("/{farm_id}/phases/{phase_id}")
async def delete_phase(farm_id: str, phase_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    deleted = await execute(
        "DELETE FROM phases WHERE id = :id AND farm_id = :farm_id", {"id": phase_id, "farm_id": farm_id}
    )
    if not deleted:
        raise HTTPException(status_code=404, detail="Phase not found")
    return {"success": True}


# --- guilds ---

@router.get("/{farm_id}/guilds")
async def list_guilds(farm_id: str, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    await farms.require_farm_viewer(farm_id, user)
    return await farms.list_guilds(farm_id)


@router.post("/{farm_id}/guilds", status_code=201)
async def create_guild(farm_id: str, body: GuildCreate, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    planting_ids = list(dict.fromkeys(body.planting_ids))
    if planting_ids:
        found = await fetch_all(
            "SELECT id FROM plantings WHERE farm_id = :farm_id AND id IN :ids",
            {"farm_id": farm_id, "ids": planting_ids},
        )
        missing = set(planting_ids) - {row["id"] for row in found}
        if missing:
            raise HTTPException(status_code=400, detail=f"Unknown plantings: {', '.join(sorted(missing))}")

    guild_id = new_id()
    await execute("""
        INSERT INTO guilds (id, farm_id, name, description, planting_ids, created_at)
        VALUES (:id, :farm_id, :name, :description, :planting_ids, :ts)
    """, {
        "id": guild_id,
        "farm_id": farm_id,
        "name": body.name,
        "description": body.description,
        "planting_ids": encode_json(planting_ids),
        "ts": now_ts(),
    })
    row = await fetch_one("SELECT * FROM guilds WHERE id = :id", {"id": guild_id})
    return farms.format_guild(row)


@router.delete("/{farm_id}/guilds/{guild_id}")
async def delete_guild(farm_id: str, guild_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    deleted = await execute(
        "DELETE FROM guilds WHERE id = :id AND farm_id = :farm_id", {"id": guild_id, "farm_id": farm_id}
    )
    if not deleted:
        raise HTTPException(status_code=404, detail="Guild not found")
    return {"success": True}


# --- goals ---

@router.get("/{farm_id}/goals")
async def list_goals(farm_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    return await farms.list_goals(farm_id)


@router.post("/{farm_id}/goals", status_code=201)
async def create_goal(farm_id: str, body: GoalCreate, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    goal_id = new_id()
    await execute("""
        INSERT INTO farmer_goals (id, farm_id, user_id, goal_category, description, priority, targets, timeline, created_at)
        VALUES (:id, :farm_id, :user_id, :goal_category, :description, :priority, :targets, :timeline, :ts)
    """, {
        **body.model_dump(),
        "id": goal_id,
        "farm_id": farm_id,
        "user_id": user["id"],
        "targets": encode_json(body.targets),
        "ts": now_ts(),
    })
    row = await fetch_one("SELECT * FROM farmer_goals WHERE id = :id", {"id": goal_id})
    return farms.format_goal(row)


@router.delete("/{farm_id}/goals/{goal_id}")
async def delete_goal(farm_id: str, goal_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    deleted = await execute(
        "DELETE FROM farmer_goals WHERE id = :id AND farm_id = :farm_id", {"id": goal_id, "farm_id": farm_id}
    )
    if not deleted:
        raise HTTPException(status_code=404, detail="Goal not found")
    return {"success": True}


# --- feature search ---

@router.get("/{farm_id}/features")
async def search_farm_features(
    farm_id: str,
    q: Optional[str] = Query(None, description="Case-insensitive search text"),
    group_by: str = Query("type", description="type, layer or phase"),
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
):
    await farms.require_farm_viewer(farm_id, user)
    if group_by not in GROUPERS:
        raise HTTPException(status_code=400, detail="group_by must be type, layer or phase")

    features = await farms.load_farm_features(farm_id)
    matched = search_features(features, q)
    groups = GROUPERS[group_by](matched, features["phases"])
    return {
        "query": q or "",
        "group_by": group_by,
        "total": sum(len(items) for items in matched.values()),
        "groups": groups,
    }


# --- water ---

async def _get_zone(farm_id: str, zone_id: str) -> Dict[str, Any]:
    row = await fetch_one(
        "SELECT * FROM zones WHERE id = :id AND farm_id = :farm_id", {"id": zone_id, "farm_id": farm_id}
    )
    if row is None:
        raise HTTPException(status_code=404, detail="Zone not found")
    return farms.format_zone(row)


@router.post("/{farm_id}/water/catchments")
async def set_catchment(farm_id: str, body: CatchmentRequest, user: Dict[str, Any] = Depends(get_current_user)):
    """Mark a polygon zone as a rain catchment and estimate its annual capture."""
    farm = await farms.require_farm_owner(farm_id, user)
    zone = await _get_zone(farm_id, body.zone_id)
    if not geometry.is_polygon(zone["geometry"]):
        raise HTTPException(status_code=400, detail="Catchments must be polygons")

    rainfall = body.rainfall_inches
    if rainfall is None:
        rainfall = farm.get("rainfall_inches") or water.DEFAULT_RAINFALL_INCHES
    runoff = body.runoff_coefficient if body.runoff_coefficient is not None else water.DEFAULT_RUNOFF_COEFFICIENT

    properties = water.build_catchment_properties(
        geometry.polygon_area_sqft(zone["geometry"]), rainfall, runoff, body.destination_feature_id
    )
    await execute(
        "UPDATE zones SET catchment_properties = :props, updated_at = :ts WHERE id = :id",
        {"id": zone["id"], "props": encode_json(properties), "ts": now_ts()},
    )
    return {"zone_id": zone["id"], "catchment_properties": properties}


@router.post("/{farm_id}/water/swales")
async def set_swale(farm_id: str, body: SwaleRequest, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    zone = await _get_zone(farm_id, body.zone_id)
    line = geometry.polygon_to_line(zone["geometry"])
    if line.get("type") != "LineString":
        raise HTTPException(status_code=400, detail="Swales must be lines or polygons")

    properties = water.build_swale_properties(
        geometry.line_length_feet(line),
        body.cross_section_width_feet,
        body.cross_section_depth_feet,
        body.overflow_destination_id,
    )
    await execute(
        "UPDATE zones SET swale_properties = :props, updated_at = :ts WHERE id = :id",
        {"id": zone["id"], "props": encode_json(properties), "ts": now_ts()},
    )
    return {"zone_id": zone["id"], "swale_properties": properties}


@router.get("/{farm_id}/water/summary")
async def water_summary(farm_id: str, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    await farms.require_farm_viewer(farm_id, user)
    zones = await farms.list_zones(farm_id)
    catchments = [
        {"zone_id": z["id"], "name": z.get("name"), "catchment_properties": z["catchment_properties"]}
        for z in zones if z.get("catchment_properties")
    ]
    swales = [
        {"zone_id": z["id"], "name": z.get("name"), "swale_properties": z["swale_properties"]}
        for z in zones if z.get("swale_properties")
    ]
    return water.summarize_water(catchments, swales)


# --- native species ---

@router.get("/{farm_id}/native-species")
async def native_species(farm_id: str, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    farm = await farms.require_farm_viewer(farm_id, user)
    rows = await fetch_all("SELECT * FROM species ORDER BY common_name")
    return match_native_species(farm, [format_species(row) for row in rows])


@router.post("/{farm_id}/follow")
async def follow_farm(farm_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    farm = await farms.require_farm_viewer(farm_id, user)
    return await feed.toggle_farm_follow(farm, user["id"])
