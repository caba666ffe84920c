"""
Authentication and user profile routes.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException

from permaculture_planner.auth import (
    USER_COLUMNS,
    create_access_token,
    get_current_user,
    get_optional_user,
    hash_password,
    verify_password,
)
from permaculture_planner.config import Config
from permaculture_planner.logging_config import get_logger
from permaculture_planner.schemas.auth import LoginRequest, ProfileUpdate, RegisterRequest, TokenResponse
from permaculture_planner.services import feed
from permaculture_planner.services.db_operations import (
    build_update,
    decode_json,
    encode_json,
    execute,
    fetch_one,
    fetch_value,
    new_id,
    now_ts,
)

logger = get_logger(__name__)

router = APIRouter(tags=["auth"])

PROFILE_FIELDS = (
    "name",
    "bio",
    "location",
    "website",
    "social_links",
    "interests",
    "experience_level",
    "climate_zone",
    "profile_visibility",
)
JSON_PROFILE_FIELDS = ("social_links", "interests")


def format_user(row: Dict[str, Any]) -> Dict[str, Any]:
    user = {key: value for key, value in row.items() if key != "password_hash"}
    user["social_links"] = decode_json(user.get("social_links"), {})
    user["interests"] = decode_json(user.get("interests"), [])
    return user


async def _load_user(user_id: str) -> Dict[str, Any]:
    return await fetch_one(f"SELECT {USER_COLUMNS} FROM users WHERE id = :id", {"id": user_id})


@router.post("/api/auth/register", response_model=TokenResponse)
async def register(body: RegisterRequest):
    """Create an account and return a bearer token for it."""
    existing = await fetch_one("SELECT id FROM users WHERE email = :email", {"email": body.email})
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")

    user_id = new_id()
    role = "admin" if body.email in Config.ADMIN_EMAILS else "user"
    ts = now_ts()
    await execute("""
        INSERT INTO users (id, name, email, password_hash, role, profile_visibility, created_at, updated_at)
        VALUES (:id, :name, :email, :password_hash, :role, 'public', :ts, :ts)
    """, {
        "id": user_id,
        "name": body.name.strip(),
        "email": body.email,
        "password_hash": hash_password(body.password),
        "role": role,
        "ts": ts,
    })
    logger.info("Registered user %s (%s)", user_id, role)

    user = format_user(await _load_user(user_id))
    return TokenResponse(user=user, access_token=create_access_token(user_id, role))


@router.post("/api/auth/login", response_model=TokenResponse)
async def login(body: LoginRequest):
    row = await fetch_one(
        f"SELECT {USER_COLUMNS}, password_hash FROM users WHERE email = :email",
        {"email": body.email.strip().lower()},
    )
    if row is None or not verify_password(body.password, row["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    user = format_user(row)
    return TokenResponse(user=user, access_token=create_access_token(user["id"], user["role"]))


@router.get("/api/auth/me")
@router.get("/api/users/me")
async def me(user: Dict[str, Any] = Depends(get_current_user)):
    return format_user(user)


@router.patch("/api/users/me")
async def update_profile(body: ProfileUpdate, user: Dict[str, Any] = Depends(get_current_user)):
    updates = {
        field: value
        for field, value in body.model_dump(exclude_unset=True).items()
        if field in PROFILE_FIELDS and value is not None
    }
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")

    for field in JSON_PROFILE_FIELDS:
        if field in updates:
            updates[field] = encode_json(updates[field])

    sql, params = build_update("users", updates, "id = :id", {"id": user["id"]})
    await execute(sql, params)
    return format_user(await _load_user(user["id"]))


@router.get("/api/users/{user_id}")
async def public_profile(user_id: str, viewer: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    """A user's public profile, honouring their visibility setting."""
    row = await _load_user(user_id)
    if row is None:
        raise HTTPException(status_code=404, detail="User not found")

    is_self = viewer is not None and viewer["id"] == user_id
    visibility = row.get("profile_visibility") or "public"
    if visibility == "private" and not is_self:
        raise HTTPException(status_code=404, detail="User not found")
    if visibility == "registered" and viewer is None:
        raise HTTPException(status_code=401, detail="Sign in to view this profile")

    profile = format_user(row)
    if not is_self:
        profile.pop("email", None)
    profile["follower_count"] = await fetch_value(
        "SELECT COUNT(*) FROM user_follows WHERE followed_id = :id", {"id": user_id}, default=0
    )
    profile["public_farm_count"] = await fetch_value(
        "SELECT COUNT(*) FROM farms WHERE user_id = :id AND is_public = 1", {"id": user_id}, default=0
    )
    return profile


@router.post("/api/users/{user_id}/follow")
async def follow_user(user_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    return await feed.toggle_user_follow(user_id, user["id"])
