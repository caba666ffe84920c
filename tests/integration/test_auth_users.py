"""
Integration tests for registration, login and user profiles.
"""
DEFAULT_PASSWORD = "password123"


def test_ping(client):
    assert client.get("/ping").json() == {"status": "ok"}
    assert client.head("/ping").status_code == 200


def test_register_login_and_me(client):
    response = client.post("/api/auth/register", json={
        "name": "  Ada Grower ",
        "email": "Ada@Example.com",
        "password": DEFAULT_PASSWORD,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "ada@example.com"
    assert data["user"]["name"] == "Ada Grower"
    assert data["user"]["role"] == "user"
    assert "password_hash" not in data["user"]

    login = client.post("/api/auth/login", json={"email": "ADA@example.com", "password": DEFAULT_PASSWORD})
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

    me = client.get("/api/users/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["id"] == data["user"]["id"]
    assert client.get("/api/auth/me", headers=headers).json()["email"] == "ada@example.com"


def test_bad_credentials_and_invalid_registrations(client, register):
    register(email="grower@example.com")

    wrong = client.post("/api/auth/login", json={"email": "grower@example.com", "password": "not-the-password"})
    assert wrong.status_code == 401

    duplicate = client.post("/api/auth/register", json={
        "name": "Again", "email": "grower@example.com", "password": DEFAULT_PASSWORD,
    })
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "Email already registered"

    short = client.post("/api/auth/register", json={"name": "Shorty", "email": "s@example.com", "password": "abc"})
    assert short.status_code == 400
    assert "at least 8 characters" in short.json()["detail"]


def test_protected_routes_need_a_valid_token(client):
    assert client.get("/api/users/me").status_code in (401, 403)
    bad = client.get("/api/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401


def test_admin_emails_register_as_admins(admin_headers, client):
    assert client.get("/api/users/me", headers=admin_headers).json()["role"] == "admin"


def test_update_profile(client, auth_headers):
    response = client.patch("/api/users/me", headers=auth_headers, json={
        "bio": "Growing food forests in zone 6",
        "interests": ["swales", "guilds"],
        "social_links": {"site": "https://example.com"},
        "experience_level": "intermediate",
    })
    assert response.status_code == 200
    user = response.json()
    assert user["bio"] == "Growing food forests in zone 6"
    assert user["interests"] == ["swales", "guilds"]
    assert user["social_links"] == {"site": "https://example.com"}

    empty = client.patch("/api/users/me", headers=auth_headers, json={})
    assert empty.status_code == 400

    invalid = client.patch("/api/users/me", headers=auth_headers, json={"experience_level": "wizard"})
    assert invalid.status_code == 400


def test_public_profile_visibility(client, register):
    owner_headers, owner = register(email="owner@example.com", name="Owner")
    viewer_headers, _ = register(email="viewer@example.com", name="Viewer")
    url = f"/api/users/{owner['id']}"

    public = client.get(url)
    assert public.status_code == 200
    assert "email" not in public.json()
    assert public.json()["follower_count"] == 0
    assert client.get(url, headers=owner_headers).json()["email"] == "owner@example.com"

    client.patch("/api/users/me", headers=owner_headers, json={"profile_visibility": "registered"})
    assert client.get(url).status_code == 401
    assert client.get(url, headers=viewer_headers).status_code == 200

    client.patch("/api/users/me", headers=owner_headers, json={"profile_visibility": "private"})
    assert client.get(url, headers=viewer_headers).status_code == 404
    assert client.get(url, headers=owner_headers).status_code == 200

    assert client.get("/api/users/missing").status_code == 404


def test_follow_user_toggles(client, register):
    _, target = register(email="target@example.com", name="Target")
    headers, me = register(email="fan@example.com", name="Fan")

    first = client.post(f"/api/users/{target['id']}/follow", headers=headers)
    assert first.json() == {"following": True, "follower_count": 1}
    second = client.post(f"/api/users/{target['id']}/follow", headers=headers)
    assert second.json() == {"following": False, "follower_count": 0}

    assert client.post(f"/api/users/{me['id']}/follow", headers=headers).status_code == 400
    assert client.post("/api/users/nobody/follow", headers=headers).status_code == 404
