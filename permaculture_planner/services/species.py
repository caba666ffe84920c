"""
Species catalog queries.
"""
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from permaculture_planner.services.db_operations import (
    decode_json,
    encode_json,
    escape_like,
    execute,
    fetch_all,
    fetch_one,
    new_id,
    now_ts,
)


def format_species(row: Dict[str, Any]) -> Dict[str, Any]:
    species = dict(row)
    species["is_native"] = bool(species.get("is_native"))
    species["broad_regions"] = decode_json(species.get("broad_regions"), [])
    species["permaculture_functions"] = decode_json(species.get("permaculture_functions"), [])
    return species


async def list_species(
    query: Optional[str] = None,
    layer: Optional[str] = None,
    native_region: Optional[str] = None,
) -> List[Dict[str, Any]]:
    where = ["1 = 1"]
    params: Dict[str, Any] = {}
    if query:
        where.append("(common_name LIKE :pattern ESCAPE '\\' OR scientific_name LIKE :pattern ESCAPE '\\')")
        params["pattern"] = f"%{escape_like(query.strip())}%"
    if layer:
        where.append("layer = :layer")
        params["layer"] = layer
    rows = await fetch_all(
        f"SELECT * FROM species WHERE {' AND '.join(where)} ORDER BY common_name", params
    )
    species = [format_species(row) for row in rows]
    if native_region:
        species = [s for s in species if s["is_native"] and native_region in s["broad_regions"]]
    return species


async def get_species(species_id: str) -> Dict[str, Any]:
    row = await fetch_one("SELECT * FROM species WHERE id = :id", {"id": species_id})
    if row is None:
        raise HTTPException(status_code=404, detail="Species not found")
    return format_species(row)


async def create_species(data: Dict[str, Any]) -> Dict[str, Any]:
    species_id = new_id()
    await execute("""
        INSERT INTO species (
            id, common_name, scientific_name, layer, is_native, broad_regions,
            min_hardiness_zone, max_hardiness_zone, mature_height_ft, mature_width_ft,
            sun_requirements, water_requirements, permaculture_functions, description, created_at
        ) VALUES (
            :id, :common_name, :scientific_name, :layer, :is_native, :broad_regions,
            :min_hardiness_zone, :max_hardiness_zone, :mature_height_ft, :mature_width_ft,
            :sun_requirements, :water_requirements, :permaculture_functions, :description, :ts
        )
    """, {
        **data,
        "id": species_id,
        "is_native": 1 if data.get("is_native") else 0,
        "broad_regions": encode_json(data.get("broad_regions") or []),
        "permaculture_functions": encode_json(data.get("permaculture_functions") or []),
        "ts": now_ts(),
    })
    return await get_species(species_id)
