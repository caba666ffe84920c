"""
Admin routes.

This module provides:
1. User listing and role changes
2. Site statistics
3. AI model settings
4. Lesson and blog authoring
5. Knowledge base scanning and processing
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from permaculture_planner.api.content import format_blog_post
from permaculture_planner.auth import USER_COLUMNS, require_admin
from permaculture_planner.logging_config import get_logger
from permaculture_planner.rag import startup
from permaculture_planner.rag.auto_scanner import scan_knowledge_folder
from permaculture_planner.schemas.auth import RoleUpdate
from permaculture_planner.schemas.community import (
    BlogPostCreate,
    BlogPostUpdate,
    LessonCreate,
    LessonUpdate,
    ModelSettingUpdate,
)
from permaculture_planner.services import learning, model_settings
from permaculture_planner.services.db_operations import (
    build_update,
    encode_json,
    execute,
    fetch_all,
    fetch_one,
    fetch_value,
    new_id,
    now_ts,
)
from permaculture_planner.services.shop import slugify, unique_slug

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


# --- users and stats ---

@router.get("/users")
async def list_users(admin: Dict[str, Any] = Depends(require_admin)):
    return await fetch_all(f"SELECT {USER_COLUMNS} FROM users ORDER BY created_at DESC, id")


@router.patch("/users/{user_id}/role")
async def update_role(user_id: str, body: RoleUpdate, admin: Dict[str, Any] = Depends(require_admin)):
    updated = await execute(
        "UPDATE users SET role = :role, updated_at = :ts WHERE id = :id",
        {"id": user_id, "role": body.role, "ts": now_ts()},
    )
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("Admin %s set role of %s to %s", admin["id"], user_id, body.role)
    return await fetch_one(f"SELECT {USER_COLUMNS} FROM users WHERE id = :id", {"id": user_id})


@router.get("/stats")
async def site_stats(admin: Dict[str, Any] = Depends(require_admin)):
    counts = {
        "users": "SELECT COUNT(*) FROM users",
        "farms": "SELECT COUNT(*) FROM farms",
        "posts": "SELECT COUNT(*) FROM farm_posts",
        "lessons": "SELECT COUNT(*) FROM lessons",
        "knowledge_chunks": "SELECT COUNT(*) FROM knowledge_chunks",
    }
    return {name: await fetch_value(sql, default=0) for name, sql in counts.items()}


# --- model settings ---

@router.get("/model-settings")
async def get_model_settings(admin: Dict[str, Any] = Depends(require_admin)):
    return await model_settings.list_model_settings()


@router.patch("/model-settings/{key}")
async def update_model_setting(key: str, body: ModelSettingUpdate, admin: Dict[str, Any] = Depends(require_admin)):
    setting = await model_settings.update_model_setting(key, body.value.strip(), admin["id"])
    if setting is None:
        raise HTTPException(status_code=404, detail=f"Unknown model setting: {key}")
    return setting


# --- lessons ---

@router.post("/lessons", status_code=201)
async def create_lesson(body: LessonCreate, admin: Dict[str, Any] = Depends(require_admin)):
    topic = await fetch_one("SELECT id FROM topics WHERE slug = :slug", {"slug": body.topic_slug})
    if topic is None:
        raise HTTPException(status_code=404, detail="Topic not found")

    slug = slugify(body.slug or body.title)
    if not slug:
        raise HTTPException(status_code=400, detail="Lesson slug is empty")
    if await fetch_one("SELECT id FROM lessons WHERE slug = :slug", {"slug": slug}):
        raise HTTPException(status_code=400, detail="A lesson with this slug already exists")

    display_order = await fetch_value(
        "SELECT COALESCE(MAX(display_order), -1) + 1 FROM lessons WHERE topic_id = :topic_id",
        {"topic_id": topic["id"]},
        default=0,
    )
    ts = now_ts()
    await execute("""
        INSERT INTO lessons (
            id, topic_id, slug, title, content, estimated_minutes, xp_reward, difficulty,
            display_order, created_at, updated_at
        ) VALUES (
            :id, :topic_id, :slug, :title, :content, :estimated_minutes, :xp_reward, :difficulty,
            :display_order, :ts, :ts
        )
    """, {
        "id": new_id(),
        "topic_id": topic["id"],
        "slug": slug,
        "title": body.title,
        "content": encode_json(body.content),
        "estimated_minutes": body.estimated_minutes,
        "xp_reward": body.xp_reward,
        "difficulty": body.difficulty,
        "display_order": display_order,
        "ts": ts,
    })
    logger.info("Admin %s created lesson %s", admin["id"], slug)
    return await learning.get_lesson(slug)


@router.patch("/lessons/{slug}")
async def update_lesson(slug: str, body: LessonUpdate, admin: Dict[str, Any] = Depends(require_admin)):
    await learning.get_lesson(slug)
    updates = body.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    if "content" in updates:
        updates["content"] = encode_json(updates["content"])
    sql, params = build_update("lessons", updates, "slug = :slug", {"slug": slug})
    await execute(sql, params)
    return await learning.get_lesson(slug)


# --- blog ---

async def _unique_blog_slug(title: str, exclude_id: Optional[str] = None) -> str:
    return await unique_slug("blog_posts", slugify(title) or "post", exclude_id=exclude_id)


async def _get_blog_post(post_id: str) -> Dict[str, Any]:
    row = await fetch_one("SELECT * FROM blog_posts WHERE id = :id", {"id": post_id})
    if row is None:
        raise HTTPException(status_code=404, detail="Blog post not found")
    return format_blog_post(row)


@router.get("/blog")
async def list_all_blog_posts(admin: Dict[str, Any] = Depends(require_admin)):
    rows = await fetch_all("SELECT * FROM blog_posts ORDER BY created_at DESC, id")
    return [format_blog_post(row) for row in rows]


@router.post("/blog", status_code=201)
async def create_blog_post(body: BlogPostCreate, admin: Dict[str, Any] = Depends(require_admin)):
    post_id = new_id()
    ts = now_ts()
    await execute("""
        INSERT INTO blog_posts (
            id, slug, title, excerpt, content, cover_image_url, author_id, tags,
            is_published, published_at, created_at, updated_at
        ) VALUES (
            :id, :slug, :title, :excerpt, :content, :cover_image_url, :author_id, :tags,
            :is_published, :published_at, :ts, :ts
        )
    """, {
        "id": post_id,
        "slug": await _unique_blog_slug(body.title),
        "title": body.title,
        "excerpt": body.excerpt,
        "content": body.content,
        "cover_image_url": body.cover_image_url,
        "author_id": admin["id"],
        "tags": encode_json(body.tags),
        "is_published": 1 if body.is_published else 0,
        "published_at": ts if body.is_published else None,
        "ts": ts,
    })
    return await _get_blog_post(post_id)


@router.patch("/blog/{post_id}")
async def update_blog_post(post_id: str, body: BlogPostUpdate, admin: Dict[str, Any] = Depends(require_admin)):
    post = await _get_blog_post(post_id)
    updates = body.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    if updates.get("title"):
        updates["slug"] = await _unique_blog_slug(updates["title"], exclude_id=post_id)
    if "tags" in updates:
        updates["tags"] = encode_json(updates["tags"] or [])
    if "is_published" in updates:
        publish = bool(updates["is_published"])
        updates["is_published"] = 1 if publish else 0
        if publish and post.get("published_at") is None:
            updates["published_at"] = now_ts()

    sql, params = build_update("blog_posts", updates, "id = :id", {"id": post_id})
    await execute(sql, params)
    return await _get_blog_post(post_id)


@router.delete("/blog/{post_id}")
async def delete_blog_post(post_id: str, admin: Dict[str, Any] = Depends(require_admin)):
    if not await execute("DELETE FROM blog_posts WHERE id = :id", {"id": post_id}):
        raise HTTPException(status_code=404, detail="Blog post not found")
    return {"success": True}


# --- knowledge base ---

@router.post("/knowledge/scan")
async def scan_knowledge(admin: Dict[str, Any] = Depends(require_admin)):
    try:
        return await scan_knowledge_folder()
    except Exception as e:
        logger.error("Knowledge scan failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/knowledge/process")
async def process_knowledge(
    max_batches: int = Query(1, ge=1, le=50),
    admin: Dict[str, Any] = Depends(require_admin),
):
    try:
        return await startup.process_pending_knowledge(max_batches=max_batches)
    except Exception as e:
        logger.error("Knowledge processing failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/knowledge/sources")
async def list_knowledge_sources(admin: Dict[str, Any] = Depends(require_admin)):
    return await fetch_all("""
        SELECT s.id, s.filename, s.title, s.author, s.publication_year, s.status, s.num_pages,
               s.error_message, s.processed_at, s.created_at,
               (SELECT COUNT(*) FROM knowledge_chunks c WHERE c.source_id = s.id) AS chunk_count,
               (SELECT COUNT(*) FROM knowledge_chunks c
                WHERE c.source_id = s.id AND c.embedding IS NOT NULL) AS embedded_count
        FROM knowledge_sources s
        ORDER BY s.created_at DESC, s.filename
    """)
