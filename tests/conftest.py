"""
Test configuration and fixtures for the Permaculture Planner backend.

This module provides common test fixtures and configuration for both unit and integration tests.
Every test gets its own SQLite database file under pytest's tmp_path.
"""
import asyncio

import pytest
from fastapi.testclient import TestClient

from permaculture_planner.config import Config
from permaculture_planner.main import app
from permaculture_planner.services import db_operations, model_settings
from permaculture_planner.services.rate_limit import rate_limiter
from permaculture_planner.services.response_cache import response_cache
from permaculture_planner.services.seed import seed_database

ADMIN_EMAIL = "admin@example.com"
DEFAULT_PASSWORD = "password123"


@pytest.fixture(autouse=True)
def reset_process_state():
    """Clear in-memory caches and limiters shared across requests."""
    rate_limiter.reset()
    response_cache.clear()
    model_settings.clear_settings_cache()
    yield
    rate_limiter.reset()
    response_cache.clear()
    model_settings.clear_settings_cache()


@pytest.fixture
def database_url(tmp_path):
    """Point the engine at a fresh SQLite file."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'planner.db'}"
    db_operations.configure_engine(url)
    yield url
    db_operations.configure_engine(Config.DATABASE_URL)


@pytest.fixture
def db(database_url):
    """An initialized, empty schema."""
    asyncio.run(db_operations.init_db())
    return database_url


@pytest.fixture
def seeded_db(db):
    """Schema plus the reference data from seed.yaml."""
    asyncio.run(seed_database())
    return db


@pytest.fixture
def client(database_url, monkeypatch):
    """TestClient with the app lifespan (schema creation and seeding) running."""
    monkeypatch.setattr(Config, "ADMIN_EMAILS", [ADMIN_EMAIL])
    monkeypatch.setattr(Config, "SEED_ON_STARTUP", True)
    monkeypatch.setattr(Config, "RAG_AUTO_SCAN", False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register a user and return ``(headers, user)``."""
    def _register(email="grower@example.com", name="Test Grower", password=DEFAULT_PASSWORD):
        response = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert response.status_code == 200, response.text
        data = response.json()
        return {"Authorization": f"Bearer {data['access_token']}"}, data["user"]

    return _register


@pytest.fixture
def auth_headers(register):
    headers, _ = register()
    return headers


@pytest.fixture
def admin_headers(register):
    headers, user = register(email=ADMIN_EMAIL, name="Site Admin")
    assert user["role"] == "admin"
    return headers


SQUARE_BOUNDARY = {
    "type": "Polygon",
    "coordinates": [[
        [-72.60, 42.30],
        [-72.59, 42.30],
        [-72.59, 42.31],
        [-72.60, 42.31],
        [-72.60, 42.30],
    ]],
}


@pytest.fixture
def make_farm(client):
    """Create a farm for the given headers and return its JSON."""
    def _make_farm(headers, **overrides):
        payload = {
            "name": "Hilltop Homestead",
            "boundary_geometry": SQUARE_BOUNDARY,
            "climate_zone": "6a",
            "rainfall_inches": 42,
            **overrides,
        }
        response = client.post("/api/farms", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _make_farm
