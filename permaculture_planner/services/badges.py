"""
Badge awarding for the learning system.

Badge criteria are JSON objects with a ``type`` of topic_complete,
lesson_count, xp_threshold or path_complete.
"""
from typing import Any, Dict, List

from permaculture_planner.logging_config import get_logger
from permaculture_planner.services.db_operations import (
    decode_json,
    execute,
    fetch_all,
    fetch_one,
    fetch_value,
    new_id,
    now_ts,
)

logger = get_logger(__name__)


async def _completed_all(user_id: str, lesson_ids: List[str]) -> bool:
    if not lesson_ids:
        return False
    completed = await fetch_value(
        "SELECT COUNT(*) FROM lesson_completions WHERE user_id = :user_id AND lesson_id IN :lesson_ids",
        {"user_id": user_id, "lesson_ids": lesson_ids},
        default=0,
    )
    return completed == len(lesson_ids)


async def meets_criteria(user_id: str, criteria: Dict[str, Any]) -> bool:
    kind = criteria.get("type")

    if kind == "lesson_count":
        count = await fetch_value(
            "SELECT COUNT(*) FROM lesson_completions WHERE user_id = :user_id", {"user_id": user_id}, default=0
        )
        return count >= int(criteria.get("count", 0))

    if kind == "xp_threshold":
        total_xp = await fetch_value(
            "SELECT total_xp FROM user_progress WHERE user_id = :user_id", {"user_id": user_id}, default=0
        )
        return total_xp >= int(criteria.get("xp", 0))

    if kind == "topic_complete":
        rows = await fetch_all("""
            SELECT l.id FROM lessons l JOIN topics t ON t.id = l.topic_id
            WHERE t.slug = :slug OR t.id = :slug
        """, {"slug": criteria.get("topic_slug") or criteria.get("topic_id")})
        return await _completed_all(user_id, [row["id"] for row in rows])

    if kind == "path_complete":
        rows = await fetch_all("""
            SELECT pl.lesson_id AS id FROM path_lessons pl JOIN learning_paths p ON p.id = pl.path_id
            WHERE p.slug = :slug OR p.id = :slug
        """, {"slug": criteria.get("path_slug") or criteria.get("path_id")})
        return await _completed_all(user_id, [row["id"] for row in rows])

    logger.warning("Unknown badge criteria type: %r", kind)
    return False


async def check_and_award_badge(user_id: str, badge: Dict[str, Any]) -> bool:
    """Award ``badge`` if the user qualifies and does not have it yet."""
    existing = await fetch_one(
        "SELECT id FROM user_badges WHERE user_id = :user_id AND badge_id = :badge_id",
        {"user_id": user_id, "badge_id": badge["id"]},
    )
    if existing:
        return False

    if not await meets_criteria(user_id, decode_json(badge["criteria"], {})):
        return False

    await execute("""
        INSERT INTO user_badges (id, user_id, badge_id, earned_at)
        VALUES (:id, :user_id, :badge_id, :ts)
        ON CONFLICT (user_id, badge_id) DO NOTHING
    """, {"id": new_id(), "user_id": user_id, "badge_id": badge["id"], "ts": now_ts()})
    logger.info("User %s earned badge %s", user_id, badge["slug"])
    return True


async def check_all_badges(user_id: str) -> List[str]:
    """Check every badge and return the ids of the ones newly awarded."""
    badges = await fetch_all("SELECT * FROM badges ORDER BY created_at, slug")
    newly_earned = []
    for badge in badges:
        if await check_and_award_badge(user_id, badge):
            newly_earned.append(badge["id"])
    return newly_earned
