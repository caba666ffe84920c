from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from permaculture_planner.auth import get_current_user
from permaculture_planner.services import search as search_service

router = APIRouter(tags=["search"])


@router.get("/api/search")
async def search(
    q: str = Query("", description="Search text, at least three characters"),
    context: str = Query("global", description="my-farms, community or global"),
    user: Dict[str, Any] = Depends(get_current_user),
):
    return {
        "query": q,
        "context": context if context in search_service.SEARCH_CONTEXTS else "global",
        "results": await search_service.search(q, context, user["id"]),
    }
