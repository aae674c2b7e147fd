import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

import config
from database import create_document, get_document_by_id, get_documents, to_utc, utcnow
from inventory import expire_items, with_effective_price
from schemas import Fooditem, FoodItemCreate, FoodCategory, FoodStatus, UserRole
from security import require_roles

logger = logging.getLogger(__name__)

router = APIRouter(tags=["items"])


def create_food_item(business_id: str, payload: FoodItemCreate) -> dict:
    item = Fooditem(
        **payload.model_dump(exclude={"expiry_date"}),
        expiry_date=to_utc(payload.expiry_date),
        business_id=business_id,
    )
    item_id = create_document("fooditem", item)
    logger.info("Business %s listed food item %s (%s x%d)", business_id, item_id, item.name, item.quantity)
    return get_document_by_id("fooditem", item_id)


@router.get("/items")
def list_items(
    q: Optional[str] = None,
    category: Optional[FoodCategory] = None,
    business_id: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
):
    now = utcnow()
    filter_q = {"status": FoodStatus.AVAILABLE.value, "expiry_date": {"$gt": now}}
    if category:
        filter_q["category"] = category.value
    if business_id:
        filter_q["business_id"] = business_id
    if q:
        pattern = re.escape(q)
        filter_q["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]
    if min_price is not None or max_price is not None:
        price_filter = {}
        if min_price is not None:
            price_filter["$gte"] = min_price
        if max_price is not None:
            price_filter["$lte"] = max_price
        filter_q["price"] = price_filter
    items = get_documents("fooditem", filter_q, sort=[("created_at", -1)], skip=skip, limit=limit)
    logger.debug("Listing %d food item(s)", len(items))
    return [with_effective_price(i, now) for i in items]


@router.get("/items/{item_id}")
def get_item(item_id: str):
    item = get_document_by_id("fooditem", item_id)
    if not item:
        raise HTTPException(404, "Item not found")
    return with_effective_price(item)


@router.post("/items", status_code=201)
def create_item(payload: FoodItemCreate, user: dict = Depends(require_roles(UserRole.BUSINESS))):
    return create_food_item(user["_id"], payload)


@router.post("/admin/items/expire")
def expire_stale_items(_admin: dict = Depends(require_roles(UserRole.ADMIN))):
    return {"expired": expire_items()}
