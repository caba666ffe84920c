"""
Learning paths, lessons and user progress.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from permaculture_planner.logging_config import get_logger
from permaculture_planner.services.badges import check_all_badges
from permaculture_planner.services.db_operations import (
    decode_json,
    execute,
    execute_sql_query,
    fetch_all,
    fetch_one,
    new_id,
    now_ts,
    transaction,
)

logger = get_logger(__name__)

XP_PER_LEVEL = 100


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def next_streak(progress: Dict[str, Any], today: date) -> Dict[str, Any]:
    """
    Streak after activity on ``today``.

    Activity on the same day keeps the streak, activity the day after the last
    one extends it and anything later starts over at 1.
    """
    current = progress.get("current_streak") or 0
    longest = progress.get("longest_streak") or 0
    last = progress.get("last_activity_date")
    last_date = date.fromisoformat(last) if last else None

    if last_date == today:
        streak = max(current, 1)
    elif last_date == today - timedelta(days=1):
        streak = current + 1
    else:
        streak = 1
    return {
        "current_streak": streak,
        "longest_streak": max(longest, streak),
        "last_activity_date": today.isoformat(),
    }


def format_lesson(row: Dict[str, Any]) -> Dict[str, Any]:
    lesson = dict(row)
    lesson["content"] = decode_json(lesson.get("content"), {})
    return lesson


async def list_paths() -> List[Dict[str, Any]]:
    return await fetch_all("""
        SELECT p.*, (SELECT COUNT(*) FROM path_lessons pl WHERE pl.path_id = p.id) AS lesson_count
        FROM learning_paths p
        ORDER BY p.display_order, p.name
    """)


async def get_path(slug: str) -> Dict[str, Any]:
    path = await fetch_one("SELECT * FROM learning_paths WHERE slug = :slug", {"slug": slug})
    if path is None:
        raise HTTPException(status_code=404, detail="Learning path not found")
    lessons = await fetch_all("""
        SELECT l.id, l.slug, l.title, l.estimated_minutes, l.xp_reward, l.difficulty, pl.order_index
        FROM path_lessons pl
        JOIN lessons l ON l.id = pl.lesson_id
        WHERE pl.path_id = :path_id
        ORDER BY pl.order_index
    """, {"path_id": path["id"]})
    return {**path, "lessons": lessons}


async def list_topics() -> List[Dict[str, Any]]:
    return await fetch_all("""
        SELECT t.*, (SELECT COUNT(*) FROM lessons l WHERE l.topic_id = t.id) AS lesson_count
        FROM topics t
        ORDER BY t.display_order, t.name
    """)


async def get_topic(slug: str) -> Dict[str, Any]:
    topic = await fetch_one("SELECT * FROM topics WHERE slug = :slug", {"slug": slug})
    if topic is None:
        raise HTTPException(status_code=404, detail="Topic not found")
    lessons = await fetch_all("""
        SELECT id, slug, title, estimated_minutes, xp_reward, difficulty, display_order
        FROM lessons WHERE topic_id = :topic_id
        ORDER BY display_order, title
    """, {"topic_id": topic["id"]})
    return {**topic, "lessons": lessons}


async def get_lesson(slug: str) -> Dict[str, Any]:
    row = await fetch_one("""
        SELECT l.*, t.slug AS topic_slug, t.name AS topic_name
        FROM lessons l JOIN topics t ON t.id = l.topic_id
        WHERE l.slug = :slug
    """, {"slug": slug})
    if row is None:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return format_lesson(row)


async def ensure_progress(user_id: str) -> Dict[str, Any]:
    """Fetch the user's progress record, creating an empty one when missing."""
    ts = now_ts()
    await execute("""
        INSERT INTO user_progress (id, user_id, total_xp, current_level, created_at, updated_at)
        VALUES (:id, :user_id, 0, 0, :ts, :ts)
        ON CONFLICT (user_id) DO NOTHING
    """, {"id": new_id(), "user_id": user_id, "ts": ts})
    return await fetch_one("SELECT * FROM user_progress WHERE user_id = :user_id", {"user_id": user_id})


async def get_progress(user_id: str) -> Dict[str, Any]:
    progress = await ensure_progress(user_id)
    completed = await fetch_all("""
        SELECT l.slug, l.title, c.xp_earned, c.completed_at
        FROM lesson_completions c JOIN lessons l ON l.id = c.lesson_id
        WHERE c.user_id = :user_id
        ORDER BY c.completed_at
    """, {"user_id": user_id})
    return {**progress, "completed_lessons": completed}


async def enroll_in_path(user_id: str, slug: str) -> Dict[str, Any]:
    path = await fetch_one("SELECT id FROM learning_paths WHERE slug = :slug", {"slug": slug})
    if path is None:
        raise HTTPException(status_code=404, detail="Learning path not found")
    await ensure_progress(user_id)
    await execute(
        "UPDATE user_progress SET learning_path_id = :path_id, updated_at = :ts WHERE user_id = :user_id",
        {"path_id": path["id"], "user_id": user_id, "ts": now_ts()},
    )
    return await fetch_one("SELECT * FROM user_progress WHERE user_id = :user_id", {"user_id": user_id})


async def complete_lesson(user_id: str, slug: str, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Record a lesson completion, award XP and update the streak.

    Returns:
        Dict with success, xp_earned, the updated progress and badges_earned
    """
    lesson = await fetch_one("SELECT id, xp_reward FROM lessons WHERE slug = :slug", {"slug": slug})
    if lesson is None:
        raise HTTPException(status_code=404, detail="Lesson not found")

    existing = await fetch_one(
        "SELECT id FROM lesson_completions WHERE user_id = :user_id AND lesson_id = :lesson_id",
        {"user_id": user_id, "lesson_id": lesson["id"]},
    )
    if existing:
        raise HTTPException(status_code=400, detail="Lesson already completed")

    progress = await ensure_progress(user_id)
    xp = lesson["xp_reward"]
    streak = next_streak(progress, today or today_utc())
    ts = now_ts()

    try:
        async with transaction() as conn:
            await execute_sql_query(conn, """
                INSERT INTO lesson_completions (id, user_id, lesson_id, xp_earned, completed_at)
                VALUES (:id, :user_id, :lesson_id, :xp, :ts)
            """, {"id": new_id(), "user_id": user_id, "lesson_id": lesson["id"], "xp": xp, "ts": ts})
            # total_xp is incremented in place, never written from the earlier read
            await execute_sql_query(conn, """
                UPDATE user_progress
                SET total_xp = total_xp + :xp, current_level = (total_xp + :xp) / :xp_per_level,
                    current_streak = :current_streak, longest_streak = :longest_streak,
                    last_activity_date = :last_activity_date, updated_at = :ts
                WHERE user_id = :user_id
            """, {
                "xp": xp,
                "xp_per_level": XP_PER_LEVEL,
                "user_id": user_id,
                "ts": ts,
                **streak,
            })
    except IntegrityError:
        raise HTTPException(status_code=400, detail="Lesson already completed")

    badges_earned = await check_all_badges(user_id)
    updated = await fetch_one("SELECT * FROM user_progress WHERE user_id = :user_id", {"user_id": user_id})
    logger.info("User %s completed lesson %s (+%d XP)", user_id, slug, xp)
    return {"success": True, "xp_earned": xp, "progress": updated, "badges_earned": badges_earned}


async def list_badges(user_id: Optional[str]) -> List[Dict[str, Any]]:
    rows = await fetch_all("""
        SELECT b.*, ub.earned_at
        FROM badges b
        LEFT JOIN user_badges ub ON ub.badge_id = b.id AND ub.user_id = :user_id
        ORDER BY b.created_at, b.slug
    """, {"user_id": user_id})
    return [
        {**row, "criteria": decode_json(row["criteria"], {}), "earned": row["earned_at"] is not None}
        for row in rows
    ]
