"""
Request and response schemas for authentication and user profiles.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

EXPERIENCE_LEVELS = ("beginner", "intermediate", "advanced", "expert")
PROFILE_VISIBILITY = ("public", "registered", "private")


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Display name")
    email: str = Field(..., min_length=3, description="Login email, stored lowercased")
    password: str = Field(..., description="At least 8 characters")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("Invalid email address")
        return value

    @field_validator("password")
    @classmethod
    def password_length(cls, value: str) -> str:
        if len(value) < 8:
            raise ValueError("Password must be at least 8 characters")
        return value


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    """Returned by register and login."""
    user: Dict[str, Any] = Field(..., description="The authenticated user")
    access_token: str = Field(..., description="Bearer JWT")
    token_type: str = Field("bearer", description="Always 'bearer'")


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = None
    website: Optional[str] = Field(None, max_length=500)
    social_links: Optional[Dict[str, str]] = None
    interests: Optional[List[str]] = None
    experience_level: Optional[str] = None
    climate_zone: Optional[str] = None
    profile_visibility: Optional[str] = None

    @field_validator("experience_level")
    @classmethod
    def check_experience(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in EXPERIENCE_LEVELS:
            raise ValueError(f"experience_level must be one of {', '.join(EXPERIENCE_LEVELS)}")
        return value

    @field_validator("profile_visibility")
    @classmethod
    def check_visibility(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in PROFILE_VISIBILITY:
            raise ValueError(f"profile_visibility must be one of {', '.join(PROFILE_VISIBILITY)}")
        return value


class RoleUpdate(BaseModel):
    role: str = Field(..., description="user or admin")

    @field_validator("role")
    @classmethod
    def check_role(cls, value: str) -> str:
        if value not in ("user", "admin"):
            raise ValueError("role must be 'user' or 'admin'")
        return value
