"""
Stock and pricing operations on food listings.

Quantities are changed with conditional single-document updates so two
orders racing for the last units cannot drive a listing below zero.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from fastapi import HTTPException

import database
from database import get_document_by_id, object_id, update_where, utcnow
from schemas import FoodStatus

logger = logging.getLogger(__name__)


def effective_price(item: dict, now: Optional[datetime] = None) -> float:
    """Listing price after the dynamic discount, if one is in effect."""
    price = float(item["price"])
    pct = item.get("discount_percentage")
    threshold = item.get("discount_threshold")
    if not pct or threshold is None:
        return price
    now = now or utcnow()
    if item["expiry_date"] - now <= timedelta(hours=threshold):
        return round(price * (1 - pct / 100.0), 2)
    return price


def with_effective_price(item: dict, now: Optional[datetime] = None) -> dict:
    item["effective_price"] = effective_price(item, now)
    return item


def is_orderable(item: dict, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return item.get("status") == FoodStatus.AVAILABLE and item["expiry_date"] > now


def _take(item_id: str, quantity: int) -> Optional[dict]:
    item = update_where(
        "fooditem",
        item_id,
        {"status": FoodStatus.AVAILABLE.value, "quantity": {"$gte": quantity}},
        {"$inc": {"quantity": -quantity}},
    )
    if item and item["quantity"] == 0:
        update_where("fooditem", item_id, {"quantity": 0}, {"$set": {"status": FoodStatus.SOLD.value}})
    return item


def _give_back(item_id: str, quantity: int):
    item = update_where("fooditem", item_id, {}, {"$inc": {"quantity": quantity}})
    if item is None:
        # Listing was deleted since the order was placed
        logger.warning("Cannot restock missing food item %s", item_id)
        return
    if item["status"] == FoodStatus.SOLD and item["quantity"] > 0:
        update_where("fooditem", item_id, {"status": FoodStatus.SOLD.value}, {"$set": {"status": FoodStatus.AVAILABLE.value}})


def reserve_items(lines: Dict[str, int]):
    """Decrement stock for every line or for none of them."""
    taken: List[tuple] = []
    for item_id, quantity in lines.items():
        if _take(item_id, quantity) is None:
            for done_id, done_qty in taken:
                _give_back(done_id, done_qty)
            current = get_document_by_id("fooditem", item_id)
            name = current["name"] if current else item_id
            logger.info("Reservation failed on %s, rolled back %d line(s)", item_id, len(taken))
            raise HTTPException(400, f"Insufficient quantity for {name}")
        taken.append((item_id, quantity))
    logger.info("Reserved stock for %d food item(s)", len(taken))


def restock_items(order_items: List[dict]):
    for line in order_items:
        _give_back(line["food_item_id"], line["quantity"])
    logger.info("Restocked %d line(s)", len(order_items))


def expire_items(now: Optional[datetime] = None) -> int:
    database._ensure_db()
    now = now or utcnow()
    result = database.db["fooditem"].update_many(
        {
            "status": {"$in": [FoodStatus.AVAILABLE.value, FoodStatus.RESERVED.value]},
            "expiry_date": {"$lte": now},
        },
        {"$set": {"status": FoodStatus.EXPIRED.value, "updated_at": now}},
    )
    if result.modified_count:
        logger.info("Marked %d food item(s) as expired", result.modified_count)
    return result.modified_count


def load_items(item_ids: List[str]) -> List[dict]:
    oids = [oid for oid in (object_id(i) for i in item_ids) if oid is not None]
    return database.get_documents("fooditem", {"_id": {"$in": oids}})
