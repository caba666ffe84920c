"""
Farm shop products and storefront settings.
"""
import re
from typing import Any, Dict, List, Optional, Set

from fastapi import HTTPException

from permaculture_planner.logging_config import get_logger
from permaculture_planner.services.db_operations import (
    escape_like,
    execute,
    fetch_all,
    fetch_one,
    new_id,
    now_ts,
)

logger = get_logger(__name__)

PRODUCT_CATEGORIES = (
    "nursery_stock",
    "seeds",
    "vegetable_box",
    "cut_flowers",
    "teas_herbs",
    "value_added",
    "tour",
    "event",
    "digital",
    "other",
)

MAX_SLUG_LENGTH = 80

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """'Heirloom Tomato Seeds (50ct)' -> 'heirloom-tomato-seeds-50ct'"""
    slug = _NON_ALNUM.sub("-", text.lower()).strip("-")
    return slug[:MAX_SLUG_LENGTH]


def first_free_slug(slug: str, taken: Set[str]) -> str:
    """``slug`` itself, or the first of ``slug-2``, ``slug-3``... not in ``taken``."""
    if slug not in taken:
        return slug
    n = 2
    while f"{slug}-{n}" in taken:
        n += 1
    return f"{slug}-{n}"


async def unique_slug(
    table: str,
    slug: str,
    scope: str = "1 = 1",
    params: Optional[Dict[str, Any]] = None,
    exclude_id: Optional[str] = None,
) -> str:
    rows = await fetch_all(
        f"""
        SELECT slug FROM {table}
        WHERE {scope} AND id != :exclude_id
          AND (slug = :slug OR slug LIKE :pattern ESCAPE '\\')
        """,
        {**(params or {}), "slug": slug, "pattern": escape_like(slug) + "-%", "exclude_id": exclude_id or ""},
    )
    return first_free_slug(slug, {row["slug"] for row in rows})


async def unique_product_slug(farm_id: str, name: str, exclude_id: Optional[str] = None) -> str:
    return await unique_slug(
        "shop_products", slugify(name) or "product", "farm_id = :farm_id", {"farm_id": farm_id}, exclude_id
    )


def format_product(row: Dict[str, Any]) -> Dict[str, Any]:
    product = dict(row)
    product["is_published"] = bool(product.get("is_published"))
    return product


def shop_is_public(farm: Dict[str, Any]) -> bool:
    return bool(farm.get("is_public")) and bool(farm.get("is_shop_enabled"))


async def list_products(farm: Dict[str, Any], user: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Products for the owner, or the published ones for visitors of an open shop."""
    is_owner = user is not None and user["id"] == farm["user_id"]
    if not is_owner and not shop_is_public(farm):
        raise HTTPException(status_code=403, detail="This shop is not available")

    where = "farm_id = :farm_id" + ("" if is_owner else " AND is_published = 1")
    rows = await fetch_all(
        f"SELECT * FROM shop_products WHERE {where} ORDER BY created_at DESC, id DESC",
        {"farm_id": farm["id"]},
    )
    return [format_product(row) for row in rows]


async def get_product(farm_id: str, product_id: str) -> Dict[str, Any]:
    row = await fetch_one(
        "SELECT * FROM shop_products WHERE id = :id AND farm_id = :farm_id",
        {"id": product_id, "farm_id": farm_id},
    )
    if row is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return format_product(row)


async def create_product(farm_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    product_id = new_id()
    ts = now_ts()
    await execute("""
        INSERT INTO shop_products (
            id, farm_id, slug, name, description, category, price_cents,
            quantity_in_stock, unit, image_url, is_published, created_at, updated_at
        ) VALUES (
            :id, :farm_id, :slug, :name, :description, :category, :price_cents,
            :quantity_in_stock, :unit, :image_url, :is_published, :ts, :ts
        )
    """, {
        "id": product_id,
        "farm_id": farm_id,
        "slug": await unique_product_slug(farm_id, data["name"]),
        "name": data["name"],
        "description": data.get("description"),
        "category": data["category"],
        "price_cents": data["price_cents"],
        "quantity_in_stock": data.get("quantity_in_stock"),
        "unit": data.get("unit"),
        "image_url": data.get("image_url"),
        "is_published": 0 if data.get("is_published") is False else 1,
        "ts": ts,
    })
    logger.info("Created product %s on farm %s", product_id, farm_id)
    return await get_product(farm_id, product_id)


async def list_shops() -> List[Dict[str, Any]]:
    """Public farms with an enabled shop and at least one published product."""
    rows = await fetch_all("""
        SELECT f.id, f.name, f.description, f.shop_headline, f.shop_banner_url,
               f.accepts_pickup, f.accepts_shipping, f.accepts_delivery,
               COUNT(p.id) AS product_count
        FROM farms f
        JOIN shop_products p ON p.farm_id = f.id AND p.is_published = 1
        WHERE f.is_shop_enabled = 1 AND f.is_public = 1
        GROUP BY f.id
        ORDER BY f.name
    """)
    for row in rows:
        for field in ("accepts_pickup", "accepts_shipping", "accepts_delivery"):
            row[field] = bool(row[field])
    return rows
