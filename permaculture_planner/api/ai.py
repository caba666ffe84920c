"""
AI assistant and knowledge base routes.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from permaculture_planner.auth import get_current_user
from permaculture_planner.config import Config
from permaculture_planner.logging_config import get_logger
from permaculture_planner.rag import semantic_search
from permaculture_planner.schemas.community import ChatRequest, ChatResponse
from permaculture_planner.services import assistant, farms
from permaculture_planner.services.rate_limit import check_rate_limit, rate_limit_headers

logger = get_logger(__name__)

router = APIRouter(tags=["ai"])


@router.post("/api/ai/chat", response_model=ChatResponse)
async def chat(body: ChatRequest, user: Dict[str, Any] = Depends(get_current_user)):
    """
    Ask the permaculture assistant a question.

    Args:
        body: The question plus an optional conversation and farm
        user: Authenticated caller

    Returns:
        ChatResponse with the answer and the ids needed to continue the conversation
    """
    limit = check_rate_limit(
        f"{user['id']}:ai-chat", Config.AI_RATE_LIMIT_REQUESTS, Config.AI_RATE_LIMIT_WINDOW_SECONDS
    )
    if not limit["allowed"]:
        logger.warning("AI chat rate limit hit for user %s", user["id"])
        return JSONResponse(
            status_code=429,
            content={"detail": "Rate limit exceeded. Please try again later."},
            headers=rate_limit_headers(limit),
        )

    try:
        farm = await farms.require_farm_owner(body.farmId, user) if body.farmId else None
        result = await assistant.chat(user["id"], body.query, body.conversationId, farm)
        return ChatResponse(**result)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Error in chat endpoint: %s: %s", type(e).__name__, e)
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/api/ai/conversations")
async def list_conversations(user: Dict[str, Any] = Depends(get_current_user)):
    return await assistant.list_conversations(user["id"])


@router.get("/api/ai/conversations/{conversation_id}")
async def get_conversation(conversation_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    conversation = await assistant.get_conversation(conversation_id, user["id"])
    messages = await assistant.get_conversation_messages(conversation_id)
    return {**conversation, "messages": messages}


@router.delete("/api/ai/conversations/{conversation_id}")
async def delete_conversation(conversation_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await assistant.delete_conversation(conversation_id, user["id"])
    return {"success": True}


@router.get("/api/knowledge/stats")
async def knowledge_stats(user: Dict[str, Any] = Depends(get_current_user)):
    return await semantic_search.get_knowledge_stats()


@router.get("/api/knowledge/search")
async def knowledge_search(
    q: str = Query(..., min_length=1),
    top_k: int = Query(semantic_search.DEFAULT_TOP_K, ge=1, le=20),
    user: Dict[str, Any] = Depends(get_current_user),
):
    try:
        results = await semantic_search.semantic_search(q, top_k=top_k)
    except Exception as e:
        logger.error("Knowledge search failed: %s", e)
        raise HTTPException(status_code=503, detail="Knowledge search is unavailable")
    return {"query": q, "results": results}
