"""
Permaculture AI assistant.

This module provides:
1. Conversation storage (conversations and their question/answer exchanges)
2. Farm context assembly for the prompt
3. The chat pipeline: history management, knowledge lookup, response cache,
   model fallback chain and persistence
"""
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from permaculture_planner.logging_config import get_logger
from permaculture_planner.rag import semantic_search
from permaculture_planner.services import llm_provider
from permaculture_planner.services.context_manager import manage_conversation_context
from permaculture_planner.services.db_operations import (
    decode_json,
    execute,
    execute_sql_query,
    fetch_all,
    fetch_one,
    fetch_value,
    new_id,
    now_ts,
    transaction,
)
from permaculture_planner.services.prompts import (
    GENERAL_PERMACULTURE_SYSTEM_PROMPT,
    create_general_chat_prompt,
)
from permaculture_planner.services.response_cache import generate_cache_key, hash_context, response_cache

logger = get_logger(__name__)

MAX_HISTORY_EXCHANGES = 50
TITLE_MAX_LENGTH = 50
KNOWLEDGE_TOP_K = 5
KNOWLEDGE_MIN_SIMILARITY = 0.5


def conversation_title(query: str) -> str:
    query = query.strip()
    if len(query) > TITLE_MAX_LENGTH:
        return query[:47] + "..."
    return query


async def build_farm_context(farm: Dict[str, Any]) -> Dict[str, Any]:
    zone_count = await fetch_value(
        "SELECT COUNT(*) FROM zones WHERE farm_id = :id AND zone_type != 'farm_boundary'",
        {"id": farm["id"]},
        default=0,
    )
    planting_count = await fetch_value(
        "SELECT COUNT(*) FROM plantings WHERE farm_id = :id", {"id": farm["id"]}, default=0
    )
    goals = await fetch_all(
        "SELECT goal_category, description, priority, targets, timeline FROM farmer_goals "
        "WHERE farm_id = :id ORDER BY priority DESC, created_at",
        {"id": farm["id"]},
    )
    return {
        "name": farm["name"],
        "acres": farm.get("acres"),
        "climate_zone": farm.get("climate_zone"),
        "soil_type": farm.get("soil_type"),
        "rainfall_inches": farm.get("rainfall_inches"),
        "zone_count": zone_count,
        "planting_count": planting_count,
        "goals": [{**goal, "targets": decode_json(goal["targets"], [])} for goal in goals],
    }


async def get_conversation(conversation_id: str, user_id: str) -> Dict[str, Any]:
    conversation = await fetch_one(
        "SELECT * FROM ai_conversations WHERE id = :id AND user_id = :user_id",
        {"id": conversation_id, "user_id": user_id},
    )
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


async def list_conversations(user_id: str) -> List[Dict[str, Any]]:
    return await fetch_all("""
        SELECT c.*, (SELECT COUNT(*) FROM ai_analyses a WHERE a.conversation_id = c.id) AS message_count
        FROM ai_conversations c
        WHERE c.user_id = :user_id
        ORDER BY c.updated_at DESC, c.id
    """, {"user_id": user_id})


async def get_conversation_messages(conversation_id: str, limit: int = MAX_HISTORY_EXCHANGES) -> List[Dict[str, Any]]:
    """The last ``limit`` exchanges, oldest first."""
    rows = await fetch_all("""
        SELECT * FROM (
            SELECT id, user_query, ai_response, model, created_at, rowid AS seq
            FROM ai_analyses
            WHERE conversation_id = :conversation_id
            ORDER BY created_at DESC, rowid DESC
            LIMIT :limit
        ) ORDER BY created_at ASC, seq ASC
    """, {"conversation_id": conversation_id, "limit": limit})
    for row in rows:
        row.pop("seq", None)
    return rows


def exchanges_to_history(exchanges: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    history = []
    for exchange in exchanges:
        history.append({"role": "user", "content": exchange["user_query"]})
        history.append({"role": "assistant", "content": exchange["ai_response"]})
    return history


async def delete_conversation(conversation_id: str, user_id: str) -> None:
    await get_conversation(conversation_id, user_id)
    async with transaction() as conn:
        await execute_sql_query(
            conn, "DELETE FROM ai_analyses WHERE conversation_id = :id", {"id": conversation_id}
        )
        await execute_sql_query(conn, "DELETE FROM ai_conversations WHERE id = :id", {"id": conversation_id})


async def _knowledge_context(query: str) -> Optional[str]:
    """Formatted knowledge base matches, or None when the lookup fails or finds nothing."""
    try:
        results = await semantic_search.semantic_search(
            query, top_k=KNOWLEDGE_TOP_K, min_similarity=KNOWLEDGE_MIN_SIMILARITY
        )
    except Exception as e:
        logger.warning("Knowledge base lookup failed, continuing without it: %s", e)
        return None
    if not results:
        return None
    return semantic_search.format_results_for_ai(results)


async def chat(
    user_id: str,
    query: str,
    conversation_id: Optional[str] = None,
    farm: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Answer a question from the assistant.

    Args:
        user_id: The caller
        query: The question
        conversation_id: Existing conversation to continue; a new one is created when None
        farm: The caller's farm to ground the answer in, already ownership-checked

    Returns:
        Dict with response, analysisId, conversationId and cached
    """
    ts = now_ts()
    if conversation_id:
        await get_conversation(conversation_id, user_id)
    else:
        conversation_id = new_id()
        await execute("""
            INSERT INTO ai_conversations (id, user_id, farm_id, title, created_at, updated_at)
            VALUES (:id, :user_id, :farm_id, :title, :ts, :ts)
        """, {
            "id": conversation_id,
            "user_id": user_id,
            "farm_id": farm["id"] if farm else None,
            "title": conversation_title(query),
            "ts": ts,
        })

    exchanges = await get_conversation_messages(conversation_id)
    managed = manage_conversation_context(exchanges_to_history(exchanges))
    if managed["was_compressed"]:
        logger.info("Compressed conversation %s history: %s", conversation_id, managed["stats"])

    farm_context = await build_farm_context(farm) if farm else None
    knowledge = await _knowledge_context(query)
    user_message = create_general_chat_prompt(query, farm_context, knowledge)

    # follow-ups depend on the conversation so only opening questions are cached
    cache_key = None
    cached_response = None
    if not managed["managed_history"]:
        cache_key = generate_cache_key(query, hash_context({"farm": farm_context, "knowledge": knowledge}))
        cached_response = response_cache.get(cache_key)
    if cached_response is not None:
        content, model, cached = cached_response, "cache", True
    else:
        messages = [{"role": "system", "content": GENERAL_PERMACULTURE_SYSTEM_PROMPT}]
        messages.extend(managed["managed_history"])
        messages.append({"role": "user", "content": user_message})
        completion = await llm_provider.generate_chat_completion(messages)
        content, model, cached = completion["content"], completion["model"], False
        if cache_key is not None:
            response_cache.set(cache_key, content, model)

    analysis_id = new_id()
    ts = now_ts()
    async with transaction() as conn:
        await execute_sql_query(conn, """
            INSERT INTO ai_analyses (id, user_id, conversation_id, farm_id, user_query, ai_response, model, created_at)
            VALUES (:id, :user_id, :conversation_id, :farm_id, :query, :response, :model, :ts)
        """, {
            "id": analysis_id,
            "user_id": user_id,
            "conversation_id": conversation_id,
            "farm_id": farm["id"] if farm else None,
            "query": query,
            "response": content,
            "model": model,
            "ts": ts,
        })
        await execute_sql_query(
            conn, "UPDATE ai_conversations SET updated_at = :ts WHERE id = :id", {"id": conversation_id, "ts": ts}
        )

    return {"response": content, "analysisId": analysis_id, "conversationId": conversation_id, "cached": cached}
