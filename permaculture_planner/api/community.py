"""
Community routes: farm posts, reactions, comments, saves, feeds and notifications.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from permaculture_planner.auth import get_current_user, get_optional_user
from permaculture_planner.schemas.community import CommentCreate, PostCreate, ReactionRequest
from permaculture_planner.services import farms, feed

router = APIRouter(tags=["community"])


def _viewer_id(user: Optional[Dict[str, Any]]) -> Optional[str]:
    return user["id"] if user else None


@router.post("/api/farms/{farm_id}/posts", status_code=201)
async def create_post(farm_id: str, body: PostCreate, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    return await feed.create_post(farm_id, user["id"], body.model_dump())


@router.get("/api/farms/{farm_id}/posts")
async def list_farm_posts(farm_id: str, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    await farms.require_farm_viewer(farm_id, user)
    return await feed.list_farm_posts(farm_id, _viewer_id(user))


@router.delete("/api/posts/{post_id}")
async def delete_post(post_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await feed.delete_post(post_id, user["id"])
    return {"success": True}


@router.post("/api/posts/{post_id}/reactions")
async def react(post_id: str, body: ReactionRequest, user: Dict[str, Any] = Depends(get_current_user)):
    return await feed.toggle_reaction(post_id, user["id"], body.reaction_type)


@router.get("/api/posts/{post_id}/comments")
async def list_comments(post_id: str):
    return {"comments": await feed.list_comments(post_id)}


@router.post("/api/posts/{post_id}/comments", status_code=201)
async def add_comment(post_id: str, body: CommentCreate, user: Dict[str, Any] = Depends(get_current_user)):
    return await feed.add_comment(post_id, user["id"], body.content, body.parent_comment_id)


@router.delete("/api/comments/{comment_id}")
async def delete_comment(comment_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    return await feed.delete_comment(comment_id, user["id"])


@router.post("/api/posts/{post_id}/save")
async def save_post(post_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    return await feed.toggle_save(post_id, user["id"])


# --- feeds ---

@router.get("/api/feed")
async def global_feed(
    limit: int = Query(20, ge=1),
    cursor: Optional[str] = None,
    type: Optional[str] = Query(None, description="Post type filter; 'all' disables it"),
    hashtag: Optional[str] = None,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
):
    return await feed.global_feed(_viewer_id(user), limit=limit, cursor=cursor, post_type=type, hashtag=hashtag)


@router.get("/api/feed/following")
async def following_feed(
    limit: int = Query(20, ge=1),
    cursor: Optional[str] = None,
    user: Dict[str, Any] = Depends(get_current_user),
):
    return await feed.following_feed(user["id"], limit=limit, cursor=cursor)


@router.get("/api/feed/saved")
async def saved_posts(user: Dict[str, Any] = Depends(get_current_user)):
    return {"posts": await feed.saved_posts(user["id"])}


@router.get("/api/feed/trending-hashtags")
async def trending_hashtags(limit: int = Query(10, ge=1, le=50), period: str = "30_days"):
    return await feed.trending_hashtags(limit=limit, period=period)


# --- notifications ---

@router.get("/api/notifications")
async def list_notifications(unread_only: bool = False, user: Dict[str, Any] = Depends(get_current_user)):
    return await feed.list_notifications(user["id"], unread_only=unread_only)


@router.post("/api/notifications/read-all")
async def mark_all_read(user: Dict[str, Any] = Depends(get_current_user)):
    updated = await feed.mark_all_notifications_read(user["id"])
    return {"success": True, "updated": updated}


@router.post("/api/notifications/{notification_id}/read")
async def mark_read(notification_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await feed.mark_notification_read(notification_id, user["id"])
    return {"success": True}
