"""
Farm shop routes.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException

from permaculture_planner.auth import get_current_user, get_optional_user
from permaculture_planner.logging_config import get_logger
from permaculture_planner.schemas.community import ProductCreate, ProductUpdate, ShopSettingsUpdate
from permaculture_planner.services import farms, shop
from permaculture_planner.services.db_operations import build_update, execute

logger = get_logger(__name__)

router = APIRouter(tags=["shop"])

SHOP_BOOLEAN_FIELDS = ("is_shop_enabled", "accepts_pickup", "accepts_shipping", "accepts_delivery")


@router.get("/api/shops")
async def list_shops():
    return await shop.list_shops()


@router.get("/api/farms/{farm_id}/products")
async def list_products(farm_id: str, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    farm = await farms.get_farm_or_404(farm_id)
    return await shop.list_products(farm, user)


@router.post("/api/farms/{farm_id}/products", status_code=201)
async def create_product(farm_id: str, body: ProductCreate, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    return await shop.create_product(farm_id, body.model_dump())


@router.patch("/api/farms/{farm_id}/products/{product_id}")
async def update_product(
    farm_id: str, product_id: str, body: ProductUpdate, user: Dict[str, Any] = Depends(get_current_user)
):
    await farms.require_farm_owner(farm_id, user)
    await shop.get_product(farm_id, product_id)

    updates = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    if "name" in updates:
        updates["slug"] = await shop.unique_product_slug(farm_id, updates["name"], exclude_id=product_id)
    if "is_published" in updates:
        updates["is_published"] = 1 if updates["is_published"] else 0

    sql, params = build_update(
        "shop_products", updates, "id = :id AND farm_id = :farm_id", {"id": product_id, "farm_id": farm_id}
    )
    await execute(sql, params)
    return await shop.get_product(farm_id, product_id)


@router.delete("/api/farms/{farm_id}/products/{product_id}")
async def delete_product(farm_id: str, product_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await farms.require_farm_owner(farm_id, user)
    deleted = await execute(
        "DELETE FROM shop_products WHERE id = :id AND farm_id = :farm_id", {"id": product_id, "farm_id": farm_id}
    )
    if not deleted:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"success": True}


@router.patch("/api/farms/{farm_id}/shop-settings")
async def update_shop_settings(
    farm_id: str, body: ShopSettingsUpdate, user: Dict[str, Any] = Depends(get_current_user)
):
    await farms.require_farm_owner(farm_id, user)
    updates = body.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    for field in SHOP_BOOLEAN_FIELDS:
        if updates.get(field) is not None:
            updates[field] = 1 if updates[field] else 0

    sql, params = build_update("farms", updates, "id = :id", {"id": farm_id})
    await execute(sql, params)
    logger.info("Updated shop settings for farm %s: %s", farm_id, ", ".join(sorted(updates)))
    return await farms.get_farm_or_404(farm_id)
