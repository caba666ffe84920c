"""
Learning routes: catalog, progress, lesson completion and badges.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from permaculture_planner.auth import get_current_user, get_optional_user
from permaculture_planner.services import learning

router = APIRouter(prefix="/api/learning", tags=["learning"])


@router.get("/paths")
async def list_paths():
    return await learning.list_paths()


@router.get("/paths/{slug}")
async def get_path(slug: str):
    return await learning.get_path(slug)


@router.post("/paths/{slug}/enroll")
async def enroll(slug: str, user: Dict[str, Any] = Depends(get_current_user)):
    return await learning.enroll_in_path(user["id"], slug)


@router.get("/topics")
async def list_topics():
    return await learning.list_topics()


@router.get("/topics/{slug}")
async def get_topic(slug: str):
    return await learning.get_topic(slug)


@router.get("/lessons/{slug}")
async def get_lesson(slug: str):
    return await learning.get_lesson(slug)


@router.post("/lessons/{slug}/complete")
async def complete_lesson(slug: str, user: Dict[str, Any] = Depends(get_current_user)):
    return await learning.complete_lesson(user["id"], slug)


@router.get("/progress")
async def get_progress(user: Dict[str, Any] = Depends(get_current_user)):
    return await learning.get_progress(user["id"])


@router.get("/badges")
async def list_badges(user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    return await learning.list_badges(user["id"] if user else None)
