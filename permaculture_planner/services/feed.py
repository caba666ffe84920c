"""
Community feed service.

This module provides:
1. Post formatting with author, decoded JSON fields and the caller's reaction/save state
2. Reaction, save and follow toggles with their counters
3. Threaded comments and notifications
4. Cursor-paginated global and following feeds, saved posts and trending hashtags
"""
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException

from permaculture_planner.logging_config import get_logger
from permaculture_planner.services.db_operations import (
    decode_json,
    encode_json,
    execute,
    execute_sql_query,
    fetch_all,
    fetch_one,
    fetch_value,
    new_id,
    now_ts,
    transaction,
)

logger = get_logger(__name__)

POST_TYPES = ("text", "photo", "ai_insight")
REACTION_TYPES = ("heart", "seedling", "bulb", "fire")
TRENDING_PERIODS = {"7_days": 7, "30_days": 30}
PREVIEW_LENGTH = 100
MAX_FEED_LIMIT = 50
FARM_POSTS_LIMIT = 50

POST_SELECT = """
    SELECT p.*,
           u.name AS author_name,
           u.image AS author_image,
           f.name AS farm_name,
           (SELECT reaction_type FROM post_reactions
            WHERE post_id = p.id AND user_id = :viewer_id) AS user_reaction,
           EXISTS(SELECT 1 FROM post_saves
                  WHERE post_id = p.id AND user_id = :viewer_id) AS is_saved
    FROM farm_posts p
    JOIN users u ON u.id = p.author_id
    JOIN farms f ON f.id = p.farm_id
"""


def normalize_hashtag(tag: str) -> str:
    return tag.strip().lstrip("#").strip()


def format_post(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "farm_id": row["farm_id"],
        "farm_name": row.get("farm_name"),
        "post_type": row["post_type"],
        "content": row.get("content"),
        "caption": row.get("caption"),
        "media_urls": decode_json(row.get("media_urls"), []),
        "tagged_zones": decode_json(row.get("tagged_zones"), []),
        "hashtags": decode_json(row.get("hashtags"), []),
        "ai_analysis_id": row.get("ai_analysis_id"),
        "author": {
            "id": row["author_id"],
            "name": row.get("author_name"),
            "image": row.get("author_image"),
        },
        "reaction_count": row["reaction_count"],
        "comment_count": row["comment_count"],
        "view_count": row["view_count"],
        "save_count": row["save_count"],
        "is_published": bool(row["is_published"]),
        "user_reaction": row.get("user_reaction"),
        "is_saved": bool(row.get("is_saved")),
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


async def get_post(post_id: str, viewer_id: Optional[str] = None) -> Dict[str, Any]:
    row = await fetch_one(
        POST_SELECT + " WHERE p.id = :post_id",
        {"post_id": post_id, "viewer_id": viewer_id},
    )
    if row is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return format_post(row)


async def get_post_row(post_id: str) -> Dict[str, Any]:
    row = await fetch_one("SELECT * FROM farm_posts WHERE id = :id", {"id": post_id})
    if row is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return row


async def create_notification(
    user_id: str,
    notification_type: str,
    actor_id: str,
    post_id: Optional[str] = None,
    comment_id: Optional[str] = None,
    farm_id: Optional[str] = None,
    content_preview: Optional[str] = None,
    conn=None,
) -> Optional[str]:
    """Record a notification for ``user_id``. Nobody is notified about their own actions."""
    if user_id == actor_id:
        return None
    notification_id = new_id()
    sql = """
        INSERT INTO notifications (
            id, user_id, type, actor_id, post_id, comment_id, farm_id, content_preview, is_read, created_at
        ) VALUES (
            :id, :user_id, :type, :actor_id, :post_id, :comment_id, :farm_id, :preview, 0, :ts
        )
    """
    params = {
        "id": notification_id,
        "user_id": user_id,
        "type": notification_type,
        "actor_id": actor_id,
        "post_id": post_id,
        "comment_id": comment_id,
        "farm_id": farm_id,
        "preview": content_preview[:PREVIEW_LENGTH] if content_preview else None,
        "ts": now_ts(),
    }
    if conn is not None:
        await execute_sql_query(conn, sql, params)
    else:
        await execute(sql, params)
    return notification_id


async def create_post(farm_id: str, author_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    post_id = new_id()
    ts = now_ts()
    hashtags = [normalize_hashtag(tag) for tag in data.get("hashtags") or []]
    await execute("""
        INSERT INTO farm_posts (
            id, farm_id, author_id, post_type, content, media_urls, caption,
            tagged_zones, hashtags, ai_analysis_id, created_at, updated_at
        ) VALUES (
            :id, :farm_id, :author_id, :post_type, :content, :media_urls, :caption,
            :tagged_zones, :hashtags, :ai_analysis_id, :ts, :ts
        )
    """, {
        "id": post_id,
        "farm_id": farm_id,
        "author_id": author_id,
        "post_type": data["post_type"],
        "content": data.get("content"),
        "media_urls": encode_json(data.get("media_urls") or []),
        "caption": data.get("caption"),
        "tagged_zones": encode_json(data.get("tagged_zones") or []),
        "hashtags": encode_json([tag for tag in hashtags if tag]),
        "ai_analysis_id": data.get("ai_analysis_id"),
        "ts": ts,
    })
    logger.info("User %s posted %s on farm %s", author_id, post_id, farm_id)
    return await get_post(post_id, author_id)


async def list_farm_posts(farm_id: str, viewer_id: Optional[str]) -> List[Dict[str, Any]]:
    rows = await fetch_all(
        POST_SELECT + """
        WHERE p.farm_id = :farm_id AND p.is_published = 1
        ORDER BY p.created_at DESC, p.id DESC
        LIMIT :limit
        """,
        {"farm_id": farm_id, "viewer_id": viewer_id, "limit": FARM_POSTS_LIMIT},
    )
    return [format_post(row) for row in rows]


async def delete_post(post_id: str, user_id: str) -> None:
    post = await get_post_row(post_id)
    if post["author_id"] != user_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    async with transaction() as conn:
        for table in ("post_comments", "post_reactions", "post_saves", "notifications"):
            await execute_sql_query(conn, f"DELETE FROM {table} WHERE post_id = :id", {"id": post_id})
        await execute_sql_query(conn, "DELETE FROM farm_posts WHERE id = :id", {"id": post_id})


async def toggle_reaction(post_id: str, user_id: str, reaction_type: str) -> Dict[str, Any]:
    """
    Add, switch or remove the user's reaction on a post.

    The same reaction twice removes it; a different one replaces it without
    changing the count.
    """
    post = await get_post_row(post_id)
    existing = await fetch_one(
        "SELECT id, reaction_type FROM post_reactions WHERE post_id = :post_id AND user_id = :user_id",
        {"post_id": post_id, "user_id": user_id},
    )

    async with transaction() as conn:
        if existing and existing["reaction_type"] == reaction_type:
            await execute_sql_query(conn, "DELETE FROM post_reactions WHERE id = :id", {"id": existing["id"]})
            await execute_sql_query(
                conn,
                "UPDATE farm_posts SET reaction_count = MAX(0, reaction_count - 1) WHERE id = :id",
                {"id": post_id},
            )
            action, user_reaction = "removed", None
        elif existing:
            await execute_sql_query(
                conn,
                "UPDATE post_reactions SET reaction_type = :type WHERE id = :id",
                {"id": existing["id"], "type": reaction_type},
            )
            action, user_reaction = "changed", reaction_type
        else:
            await execute_sql_query(conn, """
                INSERT INTO post_reactions (id, post_id, user_id, reaction_type, created_at)
                VALUES (:id, :post_id, :user_id, :type, :ts)
            """, {"id": new_id(), "post_id": post_id, "user_id": user_id, "type": reaction_type, "ts": now_ts()})
            await execute_sql_query(
                conn,
                "UPDATE farm_posts SET reaction_count = reaction_count + 1 WHERE id = :id",
                {"id": post_id},
            )
            await create_notification(
                post["author_id"], "reaction", user_id,
                post_id=post_id, farm_id=post["farm_id"], content_preview=post.get("content"), conn=conn,
            )
            action, user_reaction = "added", reaction_type

    new_count = await fetch_value(
        "SELECT reaction_count FROM farm_posts WHERE id = :id", {"id": post_id}, default=0
    )
    counts = {reaction: 0 for reaction in REACTION_TYPES}
    for row in await fetch_all(
        "SELECT reaction_type, COUNT(*) AS count FROM post_reactions WHERE post_id = :id GROUP BY reaction_type",
        {"id": post_id},
    ):
        counts[row["reaction_type"]] = row["count"]
    return {"action": action, "new_count": new_count, "user_reaction": user_reaction, "counts": counts}


def build_comment_tree(comments: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Nest comments under their parents, keeping chronological order at every level.

    Replies whose parent is missing are shown at the top level.
    """
    by_id = {}
    for comment in comments:
        by_id[comment["id"]] = {**comment, "replies": []}

    roots = []
    for comment in comments:
        node = by_id[comment["id"]]
        parent = by_id.get(comment.get("parent_comment_id"))
        if parent is not None:
            parent["replies"].append(node)
        else:
            roots.append(node)
    return roots


def _format_comment(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "post_id": row["post_id"],
        "parent_comment_id": row.get("parent_comment_id"),
        "content": row["content"],
        "author": {"id": row["author_id"], "name": row.get("author_name"), "image": row.get("author_image")},
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


async def list_comments(post_id: str) -> List[Dict[str, Any]]:
    await get_post_row(post_id)
    rows = await fetch_all("""
        SELECT c.*, u.name AS author_name, u.image AS author_image
        FROM post_comments c
        JOIN users u ON u.id = c.author_id
        WHERE c.post_id = :post_id
        ORDER BY c.created_at ASC, c.rowid ASC
    """, {"post_id": post_id})
    return build_comment_tree([_format_comment(row) for row in rows])


async def add_comment(
    post_id: str, user_id: str, content: str, parent_comment_id: Optional[str] = None
) -> Dict[str, Any]:
    post = await get_post_row(post_id)
    parent = None
    if parent_comment_id:
        parent = await fetch_one(
            "SELECT id, author_id FROM post_comments WHERE id = :id AND post_id = :post_id",
            {"id": parent_comment_id, "post_id": post_id},
        )
        if parent is None:
            raise HTTPException(status_code=400, detail="Parent comment does not belong to this post")

    comment_id = new_id()
    ts = now_ts()
    async with transaction() as conn:
        await execute_sql_query(conn, """
            INSERT INTO post_comments (id, post_id, author_id, parent_comment_id, content, created_at, updated_at)
            VALUES (:id, :post_id, :author_id, :parent_id, :content, :ts, :ts)
        """, {
            "id": comment_id,
            "post_id": post_id,
            "author_id": user_id,
            "parent_id": parent_comment_id,
            "content": content,
            "ts": ts,
        })
        await execute_sql_query(
            conn, "UPDATE farm_posts SET comment_count = comment_count + 1 WHERE id = :id", {"id": post_id}
        )
        if parent is not None:
            recipient, kind = parent["author_id"], "reply"
        else:
            recipient, kind = post["author_id"], "comment"
        await create_notification(
            recipient, kind, user_id,
            post_id=post_id, comment_id=comment_id, farm_id=post["farm_id"], content_preview=content, conn=conn,
        )

    row = await fetch_one("""
        SELECT c.*, u.name AS author_name, u.image AS author_image
        FROM post_comments c JOIN users u ON u.id = c.author_id
        WHERE c.id = :id
    """, {"id": comment_id})
    new_count = await fetch_value("SELECT comment_count FROM farm_posts WHERE id = :id", {"id": post_id}, default=0)
    return {"comment": {**_format_comment(row), "replies": []}, "new_comment_count": new_count}


async def delete_comment(comment_id: str, user_id: str) -> Dict[str, Any]:
    comment = await fetch_one("SELECT * FROM post_comments WHERE id = :id", {"id": comment_id})
    if comment is None:
        raise HTTPException(status_code=404, detail="Comment not found")
    if comment["author_id"] != user_id:
        raise HTTPException(status_code=403, detail="Forbidden")

    async with transaction() as conn:
        await execute_sql_query(conn, "DELETE FROM notifications WHERE comment_id = :id", {"id": comment_id})
        await execute_sql_query(conn, "DELETE FROM post_comments WHERE id = :id", {"id": comment_id})
        await execute_sql_query(
            conn,
            "UPDATE post_comments SET parent_comment_id = NULL WHERE parent_comment_id = :id",
            {"id": comment_id},
        )
        await execute_sql_query(
            conn,
            "UPDATE farm_posts SET comment_count = MAX(0, comment_count - 1) WHERE id = :id",
            {"id": comment["post_id"]},
        )
    new_count = await fetch_value(
        "SELECT comment_count FROM farm_posts WHERE id = :id", {"id": comment["post_id"]}, default=0
    )
    return {"success": True, "new_comment_count": new_count}


async def toggle_save(post_id: str, user_id: str) -> Dict[str, Any]:
    await get_post_row(post_id)
    existing = await fetch_one(
        "SELECT id FROM post_saves WHERE post_id = :post_id AND user_id = :user_id",
        {"post_id": post_id, "user_id": user_id},
    )
    async with transaction() as conn:
        if existing:
            await execute_sql_query(conn, "DELETE FROM post_saves WHERE id = :id", {"id": existing["id"]})
            await execute_sql_query(
                conn, "UPDATE farm_posts SET save_count = MAX(0, save_count - 1) WHERE id = :id", {"id": post_id}
            )
        else:
            await execute_sql_query(conn, """
                INSERT INTO post_saves (id, post_id, user_id, created_at)
                VALUES (:id, :post_id, :user_id, :ts)
            """, {"id": new_id(), "post_id": post_id, "user_id": user_id, "ts": now_ts()})
            await execute_sql_query(
                conn, "UPDATE farm_posts SET save_count = save_count + 1 WHERE id = :id", {"id": post_id}
            )
    save_count = await fetch_value("SELECT save_count FROM farm_posts WHERE id = :id", {"id": post_id}, default=0)
    return {"saved": existing is None, "save_count": save_count}


async def toggle_farm_follow(farm: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    params = {"farm_id": farm["id"], "user_id": user_id}
    existing = await fetch_one(
        "SELECT id FROM farm_follows WHERE farm_id = :farm_id AND follower_id = :user_id", params
    )
    if existing:
        await execute("DELETE FROM farm_follows WHERE id = :id", {"id": existing["id"]})
    else:
        async with transaction() as conn:
            await execute_sql_query(conn, """
                INSERT INTO farm_follows (id, follower_id, farm_id, created_at)
                VALUES (:id, :user_id, :farm_id, :ts)
            """, {**params, "id": new_id(), "ts": now_ts()})
            await create_notification(farm["user_id"], "follow", user_id, farm_id=farm["id"], conn=conn)
    count = await fetch_value(
        "SELECT COUNT(*) FROM farm_follows WHERE farm_id = :farm_id", {"farm_id": farm["id"]}, default=0
    )
    return {"following": existing is None, "follower_count": count}


async def toggle_user_follow(followed_id: str, user_id: str) -> Dict[str, Any]:
    if followed_id == user_id:
        raise HTTPException(status_code=400, detail="You cannot follow yourself")
    target = await fetch_one("SELECT id FROM users WHERE id = :id", {"id": followed_id})
    if target is None:
        raise HTTPException(status_code=404, detail="User not found")

    params = {"followed_id": followed_id, "user_id": user_id}
    existing = await fetch_one(
        "SELECT id FROM user_follows WHERE followed_id = :followed_id AND follower_id = :user_id", params
    )
    if existing:
        await execute("DELETE FROM user_follows WHERE id = :id", {"id": existing["id"]})
    else:
        await execute("""
            INSERT INTO user_follows (id, follower_id, followed_id, created_at)
            VALUES (:id, :user_id, :followed_id, :ts)
        """, {**params, "id": new_id(), "ts": now_ts()})
    count = await fetch_value(
        "SELECT COUNT(*) FROM user_follows WHERE followed_id = :id", {"id": followed_id}, default=0
    )
    return {"following": existing is None, "follower_count": count}


def parse_cursor(cursor: Optional[str]) -> Optional[Tuple[int, str]]:
    """Split a ``"{created_at}_{id}"`` cursor. Malformed cursors are ignored."""
    if not cursor:
        return None
    created_at, sep, post_id = cursor.partition("_")
    if not sep or not post_id:
        return None
    try:
        return int(created_at), post_id
    except ValueError:
        return None


def make_cursor(post: Dict[str, Any]) -> str:
    return f"{post['created_at']}_{post['id']}"


async def _paginate(
    where: List[str],
    params: Dict[str, Any],
    limit: int,
    cursor: Optional[str],
) -> Dict[str, Any]:
    limit = max(1, min(limit, MAX_FEED_LIMIT))
    parsed = parse_cursor(cursor)
    if parsed:
        where.append("(p.created_at < :cursor_ts OR (p.created_at = :cursor_ts AND p.id < :cursor_id))")
        params["cursor_ts"], params["cursor_id"] = parsed

    rows = await fetch_all(
        POST_SELECT
        + " WHERE " + " AND ".join(where)
        + " ORDER BY p.created_at DESC, p.id DESC LIMIT :limit",
        {**params, "limit": limit + 1},
    )
    has_more = len(rows) > limit
    posts = [format_post(row) for row in rows[:limit]]
    return {
        "posts": posts,
        "next_cursor": make_cursor(posts[-1]) if has_more and posts else None,
        "has_more": has_more,
    }


async def global_feed(
    viewer_id: Optional[str],
    limit: int = 20,
    cursor: Optional[str] = None,
    post_type: Optional[str] = None,
    hashtag: Optional[str] = None,
) -> Dict[str, Any]:
    """Published posts from public farms, newest first."""
    where = ["f.is_public = 1", "p.is_published = 1"]
    params: Dict[str, Any] = {"viewer_id": viewer_id}
    if post_type and post_type != "all":
        where.append("p.post_type = :post_type")
        params["post_type"] = post_type
    if hashtag and normalize_hashtag(hashtag):
        where.append(
            "EXISTS (SELECT 1 FROM json_each(p.hashtags) WHERE LOWER(json_each.value) = :hashtag)"
        )
        params["hashtag"] = normalize_hashtag(hashtag).lower()
    return await _paginate(where, params, limit, cursor)


async def following_feed(viewer_id: str, limit: int = 20, cursor: Optional[str] = None) -> Dict[str, Any]:
    """Posts from farms and users the viewer follows."""
    where = [
        "p.is_published = 1",
        "(f.is_public = 1 OR f.user_id = :viewer_id)",
        """(
            p.farm_id IN (SELECT farm_id FROM farm_follows WHERE follower_id = :viewer_id)
            OR p.author_id IN (SELECT followed_id FROM user_follows WHERE follower_id = :viewer_id)
        )""",
    ]
    return await _paginate(where, {"viewer_id": viewer_id}, limit, cursor)


async def saved_posts(viewer_id: str) -> List[Dict[str, Any]]:
    rows = await fetch_all(
        POST_SELECT + """
        JOIN post_saves s ON s.post_id = p.id AND s.user_id = :viewer_id
        ORDER BY s.created_at DESC, p.id DESC
        """,
        {"viewer_id": viewer_id},
    )
    return [format_post(row) for row in rows]


def count_hashtags(hashtag_lists: List[Any], limit: int) -> List[Dict[str, Any]]:
    counts: Dict[str, int] = {}
    for tags in hashtag_lists:
        if not isinstance(tags, list):
            continue
        for tag in tags:
            if isinstance(tag, str) and tag:
                counts[tag] = counts.get(tag, 0) + 1
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [{"hashtag": tag, "count": count} for tag, count in ranked[:limit]]


async def trending_hashtags(limit: int = 10, period: str = "30_days") -> Dict[str, Any]:
    days = TRENDING_PERIODS.get(period, 30)
    since = now_ts() - days * 86400
    rows = await fetch_all("""
        SELECT p.hashtags
        FROM farm_posts p
        JOIN farms f ON f.id = p.farm_id
        WHERE p.created_at > :since
          AND p.is_published = 1
          AND f.is_public = 1
          AND p.hashtags IS NOT NULL
          AND p.hashtags != '[]'
    """, {"since": since})
    hashtag_lists = [decode_json(row["hashtags"], []) for row in rows]
    return {"hashtags": count_hashtags(hashtag_lists, limit), "period": f"{days}_days"}


async def list_notifications(user_id: str, unread_only: bool = False) -> Dict[str, Any]:
    where = "n.user_id = :user_id" + (" AND n.is_read = 0" if unread_only else "")
    rows = await fetch_all(f"""
        SELECT n.*, u.name AS actor_name, u.image AS actor_image
        FROM notifications n
        LEFT JOIN users u ON u.id = n.actor_id
        WHERE {where}
        ORDER BY n.created_at DESC, n.rowid DESC
        LIMIT 100
    """, {"user_id": user_id})
    unread = await fetch_value(
        "SELECT COUNT(*) FROM notifications WHERE user_id = :user_id AND is_read = 0",
        {"user_id": user_id},
        default=0,
    )
    notifications = [{**row, "is_read": bool(row["is_read"])} for row in rows]
    return {"notifications": notifications, "unread_count": unread}


async def mark_notification_read(notification_id: str, user_id: str) -> None:
    updated = await execute(
        "UPDATE notifications SET is_read = 1 WHERE id = :id AND user_id = :user_id",
        {"id": notification_id, "user_id": user_id},
    )
    if not updated:
        raise HTTPException(status_code=404, detail="Notification not found")


async def mark_all_notifications_read(user_id: str) -> int:
    return await execute(
        "UPDATE notifications SET is_read = 1 WHERE user_id = :user_id AND is_read = 0", {"user_id": user_id}
    )
