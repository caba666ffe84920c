"""
Authentication module for the permaculture planner.

Handles password hashing, JWT issue/validation and the current-user dependencies.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from permaculture_planner.config import Config
from permaculture_planner.services.db_operations import fetch_one

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)

USER_COLUMNS = (
    "id, name, email, image, role, bio, location, website, social_links, interests, "
    "experience_level, climate_zone, profile_visibility, created_at"
)


class AuthError(Exception):
    """Custom exception for authentication errors."""
    def __init__(self, message: str, status_code: int = 401):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(user_id: str, role: str = "user", expires_minutes: Optional[int] = None) -> str:
    """Issue a signed bearer token carrying the user id and role."""
    minutes = expires_minutes if expires_minutes is not None else Config.ACCESS_TOKEN_EXPIRE_MINUTES
    payload = {
        "sub": user_id,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, Config.JWT_SECRET_KEY, algorithm=Config.JWT_ALGORITHM)


async def _user_from_token(token: str) -> Dict[str, Any]:
    payload = jwt.decode(token, Config.JWT_SECRET_KEY, algorithms=[Config.JWT_ALGORITHM])

    user_id = payload.get("sub")
    if not user_id:
        raise AuthError("Token missing sub claim")

    user = await fetch_one(f"SELECT {USER_COLUMNS} FROM users WHERE id = :id", {"id": user_id})
    if user is None:
        raise AuthError("User no longer exists")
    return user


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Dict[str, Any]:
    """
    Resolve the authenticated user from the bearer token.

    Args:
        request: FastAPI request object
        credentials: JWT credentials from Authorization header

    Returns:
        The user row (without the password hash)

    Raises:
        HTTPException: If the token is invalid or the user is gone
    """
    try:
        user = await _user_from_token(credentials.credentials)
        request.state.user_id = user["id"]
        return user

    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except AuthError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security)
) -> Optional[Dict[str, Any]]:
    """Same as ``get_current_user`` but returns None for anonymous requests."""
    if credentials is None:
        return None
    return await get_current_user(request, credentials)


async def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
