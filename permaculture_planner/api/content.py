"""
Public content routes: the blog and the species catalog.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from permaculture_planner.auth import require_admin
from permaculture_planner.schemas.community import SpeciesCreate
from permaculture_planner.services import species
from permaculture_planner.services.db_operations import decode_json, fetch_all, fetch_one

router = APIRouter(tags=["content"])


def format_blog_post(row: Dict[str, Any]) -> Dict[str, Any]:
    post = dict(row)
    post["tags"] = decode_json(post.get("tags"), [])
    post["is_published"] = bool(post.get("is_published"))
    return post


@router.get("/api/blog")
async def list_blog_posts(tag: Optional[str] = None):
    rows = await fetch_all("""
        SELECT b.id, b.slug, b.title, b.excerpt, b.cover_image_url, b.tags, b.is_published,
               b.published_at, b.created_at, b.updated_at, u.name AS author_name
        FROM blog_posts b
        LEFT JOIN users u ON u.id = b.author_id
        WHERE b.is_published = 1
        ORDER BY b.published_at DESC, b.id DESC
    """)
    posts = [format_blog_post(row) for row in rows]
    if tag:
        posts = [p for p in posts if tag in p["tags"]]
    return posts


@router.get("/api/blog/{slug}")
async def get_blog_post(slug: str):
    row = await fetch_one("""
        SELECT b.*, u.name AS author_name
        FROM blog_posts b
        LEFT JOIN users u ON u.id = b.author_id
        WHERE b.slug = :slug AND b.is_published = 1
    """, {"slug": slug})
    if row is None:
        raise HTTPException(status_code=404, detail="Blog post not found")
    return format_blog_post(row)


@router.get("/api/species")
async def list_species(
    q: Optional[str] = Query(None, description="Common or scientific name"),
    layer: Optional[str] = None,
    native_region: Optional[str] = None,
):
    return await species.list_species(q, layer, native_region)


@router.get("/api/species/{species_id}")
async def get_species(species_id: str):
    return await species.get_species(species_id)


@router.post("/api/species", status_code=201)
async def create_species(body: SpeciesCreate, admin: Dict[str, Any] = Depends(require_admin)):
    return await species.create_species(body.model_dump())
