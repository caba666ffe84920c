"""
Integration tests for the admin API: users, roles, stats, model settings,
lesson and blog authoring and the knowledge base controls.
"""
from permaculture_planner.config import Config


def test_admin_routes_reject_regular_users(client, auth_headers):
    for path in ("/api/admin/users", "/api/admin/stats", "/api/admin/model-settings", "/api/admin/knowledge/sources"):
        assert client.get(path, headers=auth_headers).status_code == 403


def test_users_roles_and_stats(client, admin_headers, register, make_farm):
    grower_headers, grower = register(email="grower@example.com")
    make_farm(grower_headers)

    users = client.get("/api/admin/users", headers=admin_headers).json()
    assert {u["email"] for u in users} == {"admin@example.com", "grower@example.com"}
    assert all("password_hash" not in u for u in users)

    promoted = client.patch(f"/api/admin/users/{grower['id']}/role", headers=admin_headers, json={"role": "admin"})
    assert promoted.json()["role"] == "admin"
    assert client.get("/api/admin/stats", headers=grower_headers).status_code == 200

    assert client.patch(f"/api/admin/users/{grower['id']}/role", headers=admin_headers, json={
        "role": "overlord",
    }).status_code == 400
    assert client.patch("/api/admin/users/missing/role", headers=admin_headers, json={
        "role": "user",
    }).status_code == 404

    stats = client.get("/api/admin/stats", headers=admin_headers).json()
    assert stats == {"users": 2, "farms": 1, "posts": 0, "lessons": 6, "knowledge_chunks": 0}


def test_model_settings(client, admin_headers):
    settings = client.get("/api/admin/model-settings", headers=admin_headers).json()
    keys = [s["key"] for s in settings]
    assert "ai_tutor_model" in keys
    assert keys == sorted(keys)

    updated = client.patch("/api/admin/model-settings/ai_tutor_model", headers=admin_headers, json={
        "value": "  anthropic/claude-sonnet  ",
    })
    assert updated.status_code == 200
    assert updated.json()["value"] == "anthropic/claude-sonnet"
    assert updated.json()["updated_by"] is not None

    unknown = client.patch("/api/admin/model-settings/nope", headers=admin_headers, json={"value": "x"})
    assert unknown.status_code == 404
    assert client.patch("/api/admin/model-settings/ai_tutor_model", headers=admin_headers, json={
        "value": "",
    }).status_code == 400


def test_lesson_authoring(client, admin_headers):
    created = client.post("/api/admin/lessons", headers=admin_headers, json={
        "topic_slug": "food-forests",
        "title": "Nitrogen Fixers",
        "content": {"core": "Legumes and actinorhizal shrubs feed the guild."},
        "xp_reward": 20,
    })
    assert created.status_code == 201
    lesson = created.json()
    assert lesson["slug"] == "nitrogen-fixers"
    assert lesson["topic_slug"] == "food-forests"
    assert lesson["display_order"] == 6

    duplicate = client.post("/api/admin/lessons", headers=admin_headers, json={
        "topic_slug": "food-forests", "title": "Nitrogen Fixers",
    })
    assert duplicate.status_code == 400
    missing_topic = client.post("/api/admin/lessons", headers=admin_headers, json={
        "topic_slug": "mushrooms", "title": "Spawn",
    })
    assert missing_topic.status_code == 404

    edited = client.patch("/api/admin/lessons/nitrogen-fixers", headers=admin_headers, json={"estimated_minutes": 9})
    assert edited.json()["estimated_minutes"] == 9
    assert client.get("/api/learning/lessons/nitrogen-fixers").json()["xp_reward"] == 20


def test_blog_authoring(client, admin_headers):
    first = client.post("/api/admin/blog", headers=admin_headers, json={
        "title": "Spring Planting", "content": "Get bare-root trees in early.", "is_published": True,
    }).json()
    assert first["is_published"] is True
    assert first["published_at"] is not None

    clash = client.post("/api/admin/blog", headers=admin_headers, json={
        "title": "Spring Planting", "content": "Again",
    }).json()
    assert clash["slug"] != first["slug"]

    renamed = client.patch(f"/api/admin/blog/{clash['id']}", headers=admin_headers, json={
        "title": "Autumn Planting", "tags": ["seasons"],
    }).json()
    assert renamed["slug"] == "autumn-planting"
    assert renamed["tags"] == ["seasons"]

    assert len(client.get("/api/admin/blog", headers=admin_headers).json()) == 2
    assert client.patch(f"/api/admin/blog/{clash['id']}", headers=admin_headers, json={}).status_code == 400
    assert client.delete(f"/api/admin/blog/{clash['id']}", headers=admin_headers).json() == {"success": True}
    assert client.delete(f"/api/admin/blog/{clash['id']}", headers=admin_headers).status_code == 404


def test_blog_posts_with_the_same_title(client, admin_headers):
    slugs = [
        client.post("/api/admin/blog", headers=admin_headers, json={
            "title": "Winter Pruning", "content": "Cut on a dry day.",
        }).json()["slug"]
        for _ in range(3)
    ]
    assert slugs == ["winter-pruning", "winter-pruning-2", "winter-pruning-3"]


def test_knowledge_scan_process_and_sources(client, admin_headers, tmp_path, monkeypatch):
    folder = tmp_path / "knowledge"
    folder.mkdir()
    (folder / "earth-user-guide.pdf").write_bytes(b"not really a pdf")
    monkeypatch.setattr(Config, "KNOWLEDGE_FOLDER", str(folder))
    monkeypatch.setattr(Config, "OPENAI_API_KEY", None)

    scan = client.post("/api/admin/knowledge/scan", headers=admin_headers).json()
    assert scan["new"] == ["earth-user-guide.pdf"]

    sources = client.get("/api/admin/knowledge/sources", headers=admin_headers).json()
    assert [s["title"] for s in sources] == ["Earth User Guide"]
    assert sources[0]["chunk_count"] == 0

    processed = client.post("/api/admin/knowledge/process", headers=admin_headers).json()
    assert processed["failed"] == 1
    assert processed["embedded"] == 0

    failed = client.get("/api/admin/knowledge/sources", headers=admin_headers).json()[0]
    assert failed["status"] == "failed"
    assert failed["error_message"]
