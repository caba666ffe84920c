"""
Integration tests for farms and their design features: zones, plantings,
lines, layers, phases, guilds, goals, feature search, water planning and
native species matching.
"""
import pytest

from permaculture_planner.services import geometry, water
from permaculture_planner.services.line_styles import resolve_style


def square(lng, lat, size):
    return {
        "type": "Polygon",
        "coordinates": [[
            [lng, lat], [lng + size, lat], [lng + size, lat + size], [lng, lat + size], [lng, lat],
        ]],
    }


@pytest.fixture
def farm(auth_headers, make_farm):
    return make_farm(auth_headers)


@pytest.fixture
def species_ids(client):
    """Seeded species ids keyed by common name."""
    return {s["common_name"]: s["id"] for s in client.get("/api/species").json()}


def add_zone(client, headers, farm_id, geometry_, name, zone_type="other", **properties):
    response = client.post(f"/api/farms/{farm_id}/zones", headers=headers, json={
        "zones": [{"geometry": geometry_, "properties": {"name": name, "zone_type": zone_type, **properties}}],
    })
    assert response.status_code == 200, response.text
    return next(z for z in response.json()["zones"] if z["name"] == name)


def test_create_farm_derives_map_view_and_defaults(client, auth_headers, farm):
    assert farm["name"] == "Hilltop Homestead"
    assert farm["center_lat"] == pytest.approx(42.305)
    assert farm["center_lng"] == pytest.approx(-72.595)
    assert farm["acres"] == pytest.approx(304.17, abs=0.01)
    assert farm["is_public"] is False

    details = client.get(f"/api/farms/{farm['id']}", headers=auth_headers).json()
    assert len(details["layers"]) == 5
    assert [layer["display_order"] for layer in details["layers"]] == [0, 1, 2, 3, 4]
    boundary = [z for z in details["zones"] if z["zone_type"] == "farm_boundary"]
    assert len(boundary) == 1
    assert boundary[0]["name"] == "Farm Boundary"

    listed = client.get("/api/farms", headers=auth_headers).json()
    assert [f["id"] for f in listed] == [farm["id"]]


def test_create_farm_accepts_given_acres_and_rejects_bad_boundaries(client, auth_headers, make_farm):
    assert make_farm(auth_headers, acres=12.5)["acres"] == 12.5

    line = {"type": "LineString", "coordinates": [[-72.6, 42.3], [-72.5, 42.4]]}
    response = client.post("/api/farms", headers=auth_headers, json={"name": "Bad", "boundary_geometry": line})
    assert response.status_code == 400

    missing = client.post("/api/farms", headers=auth_headers, json={"boundary_geometry": square(0, 0, 1)})
    assert missing.status_code == 400
    assert missing.json()["detail"].startswith("name")


def test_farm_visibility_and_ownership(client, register, make_farm):
    owner_headers, _ = register(email="owner@example.com")
    other_headers, _ = register(email="other@example.com")
    farm = make_farm(owner_headers)
    url = f"/api/farms/{farm['id']}"

    assert client.get(url, headers=other_headers).status_code == 403
    assert client.get(url).status_code == 403
    assert client.get("/api/farms/missing", headers=owner_headers).status_code == 404

    denied = client.patch(url, headers=other_headers, json={"name": "Mine now"})
    assert denied.status_code == 403

    updated = client.patch(url, headers=owner_headers, json={"name": "Valley Farm", "is_public": True})
    assert updated.status_code == 200
    assert updated.json()["name"] == "Valley Farm"
    assert updated.json()["is_public"] is True

    assert client.get(url).status_code == 200
    assert client.patch(url, headers=owner_headers, json={}).status_code == 400


def test_delete_farm_removes_it(client, auth_headers, farm, species_ids):
    farm_id = farm["id"]
    client.post(f"/api/farms/{farm_id}/plantings", headers=auth_headers, json={
        "species_id": species_ids["Apple"], "lat": 42.305, "lng": -72.595,
    })
    assert client.delete(f"/api/farms/{farm_id}", headers=auth_headers).json() == {"success": True}
    assert client.get(f"/api/farms/{farm_id}", headers=auth_headers).status_code == 404
    assert client.get("/api/farms", headers=auth_headers).json() == []


def test_zone_bulk_upsert(client, auth_headers, farm):
    farm_id = farm["id"]
    url = f"/api/farms/{farm_id}/zones"
    created = client.post(url, headers=auth_headers, json={"zones": [
        {"geometry": square(-72.599, 42.301, 0.001), "properties": {"name": "Kitchen Garden", "zone_type": "zone_1"}},
        {"geometry": square(-72.597, 42.301, 0.002), "properties": {"name": "Orchard"}},
    ]}).json()
    assert (created["created"], created["updated"]) == (2, 0)

    orchard = next(z for z in created["zones"] if z["name"] == "Orchard")
    assert orchard["zone_type"] == "other"

    renamed = client.post(url, headers=auth_headers, json={"zones": [
        {"id": orchard["id"], "geometry": orchard["geometry"], "properties": {"name": "Food Forest", "zone_type": "zone_2"}},
    ]}).json()
    assert (renamed["created"], renamed["updated"]) == (0, 1)
    assert {z["name"] for z in renamed["zones"]} == {"Farm Boundary", "Kitchen Garden", "Food Forest"}

    assert client.delete(f"{url}/{orchard['id']}", headers=auth_headers).json() == {"success": True}
    assert client.delete(f"{url}/{orchard['id']}", headers=auth_headers).status_code == 404
    assert len(client.get(url, headers=auth_headers).json()) == 2


def test_plantings(client, auth_headers, farm, species_ids):
    url = f"/api/farms/{farm['id']}/plantings"
    response = client.post(url, headers=auth_headers, json={
        "species_id": species_ids["Pawpaw"], "lat": 42.3051, "lng": -72.5951, "planted_year": 2024,
    })
    assert response.status_code == 201
    planting = response.json()
    assert planting["common_name"] == "Pawpaw"
    assert planting["layer"] == "understory"
    assert planting["planted_year"] == 2024

    patched = client.patch(f"{url}/{planting['id']}", headers=auth_headers, json={"notes": "Needs shade cloth"})
    assert patched.json()["notes"] == "Needs shade cloth"

    unknown = client.post(url, headers=auth_headers, json={"species_id": "nope", "lat": 42.3, "lng": -72.6})
    assert unknown.status_code == 404

    assert client.delete(f"{url}/{planting['id']}", headers=auth_headers).json() == {"success": True}
    assert client.get(url, headers=auth_headers).json() == []


def test_lines_get_their_type_style(client, auth_headers, farm):
    url = f"/api/farms/{farm['id']}/lines"
    geometry_ = {"type": "LineString", "coordinates": [[-72.599, 42.302], [-72.591, 42.302]]}

    swale = client.post(url, headers=auth_headers, json={"geometry": geometry_, "line_type": "swale", "label": "Upper"})
    assert swale.status_code == 201
    assert swale.json()["style"] == resolve_style("swale")

    custom = client.post(url, headers=auth_headers, json={"geometry": geometry_, "style": {"width": 5}}).json()
    assert custom["line_type"] == "custom"
    assert custom["style"]["width"] == 5

    polygon = client.post(url, headers=auth_headers, json={"geometry": square(0, 0, 1)})
    assert polygon.status_code == 400

    relabeled = client.patch(f"{url}/{custom['id']}", headers=auth_headers, json={"label": "Path"})
    assert relabeled.json()["label"] == "Path"
    assert len(client.get(url, headers=auth_headers).json()) == 2


def test_deleting_a_layer_unassigns_its_features(client, auth_headers, farm):
    farm_id = farm["id"]
    layer = client.post(f"/api/farms/{farm_id}/layers", headers=auth_headers, json={
        "name": "Irrigation", "color": "#0ea5e9",
    }).json()
    assert layer["display_order"] == 5

    zone = add_zone(client, auth_headers, farm_id, square(-72.599, 42.301, 0.001), "Drip Bed", layer_id=layer["id"])
    assert zone["layer_id"] == layer["id"]

    hidden = client.patch(f"/api/farms/{farm_id}/layers/{layer['id']}", headers=auth_headers, json={"visible": False})
    assert hidden.json()["visible"] is False

    assert client.delete(f"/api/farms/{farm_id}/layers/{layer['id']}", headers=auth_headers).json() == {"success": True}
    zones = client.get(f"/api/farms/{farm_id}/zones", headers=auth_headers).json()
    assert next(z for z in zones if z["id"] == zone["id"])["layer_id"] is None
    assert client.delete(f"/api/farms/{farm_id}/layers/{layer['id']}", headers=auth_headers).status_code == 404


def test_phases_keep_start_before_end(client, auth_headers, farm):
    url = f"/api/farms/{farm['id']}/phases"
    backwards = client.post(url, headers=auth_headers, json={"name": "Oops", "start_year": 2030, "end_year": 2025})
    assert backwards.status_code == 400

    phase = client.post(url, headers=auth_headers, json={"name": "Establishment", "start_year": 2025, "end_year": 2027})
    assert phase.status_code == 201
    phase_id = phase.json()["id"]

    moved = client.patch(f"{url}/{phase_id}", headers=auth_headers, json={"start_year": 2028})
    assert moved.status_code == 400
    extended = client.patch(f"{url}/{phase_id}", headers=auth_headers, json={"end_year": 2029})
    assert extended.json()["end_year"] == 2029

    assert client.delete(f"{url}/{phase_id}", headers=auth_headers).json() == {"success": True}


def test_guilds_only_reference_farm_plantings(client, auth_headers, farm, species_ids):
    farm_id = farm["id"]
    apple = client.post(f"/api/farms/{farm_id}/plantings", headers=auth_headers, json={
        "species_id": species_ids["Apple"], "lat": 42.305, "lng": -72.595,
    }).json()
    comfrey = client.post(f"/api/farms/{farm_id}/plantings", headers=auth_headers, json={
        "species_id": species_ids["Comfrey"], "lat": 42.3051, "lng": -72.5951,
    }).json()

    url = f"/api/farms/{farm_id}/guilds"
    guild = client.post(url, headers=auth_headers, json={
        "name": "Apple Guild", "planting_ids": [apple["id"], comfrey["id"], apple["id"]],
    })
    assert guild.status_code == 201
    assert guild.json()["planting_ids"] == [apple["id"], comfrey["id"]]

    unknown = client.post(url, headers=auth_headers, json={"name": "Ghost", "planting_ids": ["nope"]})
    assert unknown.status_code == 400
    assert "nope" in unknown.json()["detail"]


def test_goals_are_private_to_the_owner(client, register, make_farm):
    owner_headers, _ = register(email="owner@example.com")
    other_headers, _ = register(email="other@example.com")
    farm = make_farm(owner_headers, is_public=True)
    url = f"/api/farms/{farm['id']}/goals"

    low = client.post(url, headers=owner_headers, json={
        "goal_category": "income", "description": "Sell at market", "priority": 2,
    })
    high = client.post(url, headers=owner_headers, json={
        "goal_category": "food", "description": "Feed the family", "priority": 5, "targets": ["eggs", "greens"],
        "timeline": "short",
    })
    assert low.status_code == high.status_code == 201
    assert high.json()["targets"] == ["eggs", "greens"]

    goals = client.get(url, headers=owner_headers).json()
    assert [g["description"] for g in goals] == ["Feed the family", "Sell at market"]
    assert client.get(url, headers=other_headers).status_code == 403

    too_high = client.post(url, headers=owner_headers, json={"goal_category": "food", "description": "x", "priority": 9})
    assert too_high.status_code == 400


def test_feature_search_and_grouping(client, auth_headers, farm, species_ids):
    farm_id = farm["id"]
    add_zone(client, auth_headers, farm_id, square(-72.599, 42.301, 0.001), "Apple Orchard", "zone_2")
    client.post(f"/api/farms/{farm_id}/plantings", headers=auth_headers, json={
        "species_id": species_ids["Apple"], "lat": 42.305, "lng": -72.595, "planted_year": 2024,
    })
    client.post(f"/api/farms/{farm_id}/plantings", headers=auth_headers, json={
        "species_id": species_ids["Elderberry"], "lat": 42.306, "lng": -72.596, "planted_year": 2024,
    })

    url = f"/api/farms/{farm_id}/features"
    found = client.get(url, headers=auth_headers, params={"q": "apple"}).json()
    assert found["query"] == "apple"
    assert found["total"] == 2

    everything = client.get(url, headers=auth_headers).json()
    assert everything["group_by"] == "type"
    assert everything["total"] == 4

    by_layer = client.get(url, headers=auth_headers, params={"group_by": "layer"})
    assert by_layer.status_code == 200

    by_phase = client.get(url, headers=auth_headers, params={"group_by": "phase"})
    assert by_phase.status_code == 200

    assert client.get(url, headers=auth_headers, params={"group_by": "colour"}).status_code == 400


def test_catchment_swale_and_water_summary(client, auth_headers, farm):
    farm_id = farm["id"]
    roof_shape = square(-72.599, 42.301, 0.001)
    roof = add_zone(client, auth_headers, farm_id, roof_shape, "Barn Roof", "structure")
    ditch = add_zone(client, auth_headers, farm_id, {
        "type": "LineString", "coordinates": [[-72.598, 42.303], [-72.592, 42.303]],
    }, "Contour Swale")

    catchment = client.post(f"/api/farms/{farm_id}/water/catchments", headers=auth_headers, json={
        "zone_id": roof["id"], "runoff_coefficient": 0.9,
    })
    assert catchment.status_code == 200
    properties = catchment.json()["catchment_properties"]
    area = geometry.polygon_area_sqft(roof_shape)
    assert properties["area_sqft"] == area
    assert properties["rainfall_inches_per_year"] == 42
    assert properties["estimated_capture_gallons"] == water.calculate_catchment_gallons(area, 42, 0.9)

    swale = client.post(f"/api/farms/{farm_id}/water/swales", headers=auth_headers, json={
        "zone_id": ditch["id"], "cross_section_width_feet": 4, "cross_section_depth_feet": 2,
    })
    assert swale.status_code == 200
    swale_properties = swale.json()["swale_properties"]
    assert swale_properties["length_feet"] > 0
    assert swale_properties["estimated_volume_gallons"] == water.calculate_swale_capacity(
        swale_properties["length_feet"], 4, 2
    )

    line_catchment = client.post(f"/api/farms/{farm_id}/water/catchments", headers=auth_headers, json={
        "zone_id": ditch["id"],
    })
    assert line_catchment.status_code == 400
    flat_swale = client.post(f"/api/farms/{farm_id}/water/swales", headers=auth_headers, json={
        "zone_id": ditch["id"], "cross_section_width_feet": 0, "cross_section_depth_feet": 2,
    })
    assert flat_swale.status_code == 400

    summary = client.get(f"/api/farms/{farm_id}/water/summary", headers=auth_headers).json()
    assert [c["zone_id"] for c in summary["catchments"]] == [roof["id"]]
    assert [s["zone_id"] for s in summary["swales"]] == [ditch["id"]]
    assert summary["total_capture_gallons"] == properties["estimated_capture_gallons"]
    assert summary["total_storage_gallons"] == swale_properties["estimated_volume_gallons"]


def test_native_species_for_the_farm_region(client, auth_headers, farm):
    matches = client.get(f"/api/farms/{farm['id']}/native-species", headers=auth_headers).json()
    assert matches["region"] == "Northeast"

    perfect = {s["common_name"] for s in matches["perfect_match"]}
    possible = {s["common_name"] for s in matches["possible"]}
    assert {"Sugar Maple", "Pawpaw", "Elderberry"} <= perfect
    assert "Apple" in possible
    assert "Apple" not in perfect


def test_follow_public_farm(client, register, make_farm):
    owner_headers, _ = register(email="owner@example.com")
    fan_headers, _ = register(email="fan@example.com")
    private = make_farm(owner_headers)
    public = make_farm(owner_headers, name="Open Acres", is_public=True)

    assert client.post(f"/api/farms/{private['id']}/follow", headers=fan_headers).status_code == 403
    followed = client.post(f"/api/farms/{public['id']}/follow", headers=fan_headers).json()
    assert followed == {"following": True, "follower_count": 1}

    notifications = client.get("/api/notifications", headers=owner_headers).json()
    assert notifications["unread_count"] == 1
    assert notifications["notifications"][0]["type"] == "follow"
