"""
AI model settings stored in ai_model_settings and editable by admins.
"""
import time
from typing import Any, Dict, List, Optional

from permaculture_planner.logging_config import get_logger
from permaculture_planner.services.db_operations import decode_json, execute, fetch_all, fetch_one, now_ts

logger = get_logger(__name__)

CACHE_SECONDS = 60

_cache: Dict[str, Any] = {"settings": None, "loaded_at": 0.0}


def clear_settings_cache() -> None:
    _cache["settings"] = None
    _cache["loaded_at"] = 0.0


async def list_model_settings() -> List[Dict[str, Any]]:
    return await fetch_all("SELECT key, value, description, updated_by, updated_at FROM ai_model_settings ORDER BY key")


async def get_model_settings() -> Dict[str, str]:
    """Settings as a key -> value dict, cached for a minute."""
    if _cache["settings"] is not None and time.monotonic() - _cache["loaded_at"] < CACHE_SECONDS:
        return _cache["settings"]
    rows = await list_model_settings()
    settings = {row["key"]: row["value"] for row in rows}
    _cache["settings"] = settings
    _cache["loaded_at"] = time.monotonic()
    return settings


async def update_model_setting(key: str, value: str, updated_by: str) -> Optional[Dict[str, Any]]:
    """Update one setting; returns None for an unknown key."""
    rowcount = await execute(
        "UPDATE ai_model_settings SET value = :value, updated_by = :updated_by, updated_at = :ts WHERE key = :key",
        {"key": key, "value": value, "updated_by": updated_by, "ts": now_ts()},
    )
    if not rowcount:
        return None
    clear_settings_cache()
    logger.info("Model setting %s changed to %s by %s", key, value, updated_by)
    return await fetch_one("SELECT key, value, description, updated_by, updated_at FROM ai_model_settings WHERE key = :key", {"key": key})


async def get_chat_model_chain() -> List[str]:
    """Free models first, then the tutor model."""
    settings = await get_model_settings()
    chain = [m for m in decode_json(settings.get("fallback_models"), default=[]) if isinstance(m, str)]
    tutor = settings.get("ai_tutor_model")
    if tutor and tutor not in chain:
        chain.append(tutor)
    return chain
