"""
Site-wide search across farms, posts, species, zones, users and AI conversations.

The ``context`` decides the scope: ``my-farms`` only looks at the caller's own
data, ``community`` at public farms and posts, and ``global`` at both.
"""
from typing import Any, Dict, List

from permaculture_planner.logging_config import get_logger
from permaculture_planner.services.db_operations import escape_like, fetch_all

logger = get_logger(__name__)

SEARCH_CONTEXTS = ("my-farms", "community", "global")
MIN_QUERY_LENGTH = 3
RESULTS_PER_KIND = 3
RESULT_KINDS = ("farms", "posts", "species", "zones", "users", "ai_conversations")


def empty_results() -> Dict[str, List[Dict[str, Any]]]:
    return {kind: [] for kind in RESULT_KINDS}


async def _search_farms(context: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
    scope = {
        "my-farms": "f.user_id = :user_id",
        "community": "f.is_public = 1",
        "global": "(f.user_id = :user_id OR f.is_public = 1)",
    }[context]
    rows = await fetch_all(f"""
        SELECT f.id, f.name, f.description, f.is_public, f.acres,
               u.name AS owner_name, u.image AS owner_image
        FROM farms f
        JOIN users u ON u.id = f.user_id
        WHERE {scope}
          AND (f.name LIKE :pattern ESCAPE '\\' OR f.description LIKE :pattern ESCAPE '\\')
        ORDER BY f.updated_at DESC
        LIMIT :limit
    """, params)
    return [{**row, "is_public": bool(row["is_public"])} for row in rows]


async def _search_posts(params: Dict[str, Any]) -> List[Dict[str, Any]]:
    rows = await fetch_all("""
        SELECT p.id, p.farm_id, p.post_type, p.content, p.created_at,
               f.name AS farm_name, u.name AS author_name, u.image AS author_image
        FROM farm_posts p
        JOIN users u ON u.id = p.author_id
        JOIN farms f ON f.id = p.farm_id
        WHERE p.is_published = 1
          AND f.is_public = 1
          AND (p.content LIKE :pattern ESCAPE '\\' OR p.hashtags LIKE :pattern ESCAPE '\\')
        ORDER BY p.created_at DESC
        LIMIT :limit
    """, params)
    return [
        {
            "id": row["id"],
            "farm_id": row["farm_id"],
            "farm_name": row["farm_name"],
            "content_preview": (row["content"] or "")[:100],
            "author_name": row["author_name"],
            "author_image": row["author_image"],
            "type": row["post_type"],
            "created_at": row["created_at"],
        }
        for row in rows
    ]


async def _search_species(params: Dict[str, Any]) -> List[Dict[str, Any]]:
    return await fetch_all("""
        SELECT id, common_name, scientific_name, layer, description
        FROM species
        WHERE common_name LIKE :pattern ESCAPE '\\' OR scientific_name LIKE :pattern ESCAPE '\\'
        ORDER BY common_name ASC
        LIMIT :limit
    """, params)


async def _search_zones(params: Dict[str, Any]) -> List[Dict[str, Any]]:
    return await fetch_all("""
        SELECT z.id, z.farm_id, f.name AS farm_name, z.name, z.zone_type
        FROM zones z
        JOIN farms f ON f.id = z.farm_id
        WHERE f.user_id = :user_id
          AND (z.name LIKE :pattern ESCAPE '\\' OR z.zone_type LIKE :pattern ESCAPE '\\')
        ORDER BY z.updated_at DESC
        LIMIT :limit
    """, params)


async def _search_users(params: Dict[str, Any]) -> List[Dict[str, Any]]:
    return await fetch_all("""
        SELECT u.id, u.name, u.image,
               (SELECT COUNT(*) FROM farms WHERE user_id = u.id AND is_public = 1) AS farm_count
        FROM users u
        WHERE u.name LIKE :pattern ESCAPE '\\' AND u.profile_visibility != 'private'
        ORDER BY u.name
        LIMIT :limit
    """, params)


async def _search_conversations(params: Dict[str, Any]) -> List[Dict[str, Any]]:
    return await fetch_all("""
        SELECT c.id, c.farm_id, f.name AS farm_name, c.title, c.created_at
        FROM ai_conversations c
        LEFT JOIN farms f ON f.id = c.farm_id
        WHERE c.user_id = :user_id AND c.title LIKE :pattern ESCAPE '\\'
        ORDER BY c.updated_at DESC
        LIMIT :limit
    """, params)


async def search(query: str, context: str, user_id: str) -> Dict[str, List[Dict[str, Any]]]:
    """
    Run a scoped search.

    Args:
        query: Search text; anything shorter than three characters returns nothing
        context: my-farms, community or global (unknown values mean global)
        user_id: The caller, used to scope private data

    Returns:
        Dict of result lists keyed by kind, at most three results each
    """
    query = (query or "").strip()
    if context not in SEARCH_CONTEXTS:
        context = "global"
    results = empty_results()
    if len(query) < MIN_QUERY_LENGTH:
        return results

    params = {"pattern": f"%{escape_like(query)}%", "user_id": user_id, "limit": RESULTS_PER_KIND}

    results["farms"] = await _search_farms(context, params)
    results["species"] = await _search_species(params)
    if context in ("community", "global"):
        results["posts"] = await _search_posts(params)
    if context in ("my-farms", "global"):
        results["zones"] = await _search_zones(params)
        results["ai_conversations"] = await _search_conversations(params)
    if context == "global":
        results["users"] = await _search_users(params)

    logger.debug("Search %r (%s) for %s", query, context, user_id)
    return results
