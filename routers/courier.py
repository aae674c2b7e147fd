import logging
import math
from collections import OrderedDict

from fastapi import APIRouter, Depends, HTTPException

import config
from database import get_document_by_id, get_documents
from lifecycle import ACTIVE_DELIVERY, COMPLETED_DELIVERY, OPEN_REQUEST, transition_order
from schemas import OrderStatus, OrderStatusUpdate, UserRole
from security import require_roles

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/courier", tags=["courier"])
courier_only = require_roles(UserRole.COURIER)

HISTORY = [OrderStatus.CONFIRMED, OrderStatus.PICKED_UP, OrderStatus.COURIER_DELIVERED, OrderStatus.DELIVERED]


def _values(statuses):
    return [s.value for s in statuses]


def reward(total_amount: float) -> float:
    return round(total_amount * config.COURIER_REWARD_RATE, 2)


def _parties(order: dict):
    consumer = get_document_by_id("user", order["consumer_id"]) or {}
    business = get_document_by_id("user", order["business_id"]) or {}
    return consumer, business


def _delivery_view(order: dict) -> dict:
    consumer, business = _parties(order)
    completed = order.get("completed_at")
    if completed is None and order["status"] in _values(COMPLETED_DELIVERY):
        completed = order["updated_at"]
    return {
        "_id": order["_id"],
        "order_id": order["_id"],
        "status": order["status"],
        "customer_name": order.get("customer_name") or consumer.get("name"),
        "customer_email": consumer.get("email"),
        "phone_number": order.get("phone_number"),
        "business_name": business.get("business_name") or business.get("name"),
        "pickup_address": business.get("business_address"),
        "delivery_address": order["delivery_address"],
        "total_amount": order["total_amount"],
        "reward": reward(order["total_amount"]),
        "completed_at": completed,
    }


def _own_delivery(courier: dict, order_id: str) -> dict:
    order = get_document_by_id("order", order_id, {"courier_id": courier["_id"]})
    if not order:
        raise HTTPException(404, f"Delivery with ID {order_id} not found")
    return order


def _completed(courier: dict):
    return get_documents(
        "order",
        {"courier_id": courier["_id"], "status": {"$in": _values(COMPLETED_DELIVERY)}},
        sort=[("updated_at", -1)],
    )


@router.get("/new-requests")
def get_new_requests(courier: dict = Depends(courier_only)):
    orders = get_documents(
        "order",
        {"courier_id": None, "status": {"$in": _values(OPEN_REQUEST)}},
        sort=[("created_at", 1)],
    )
    out = []
    for order in orders:
        consumer, business = _parties(order)
        out.append({
            "_id": order["_id"],
            "customer_name": order.get("customer_name") or consumer.get("name"),
            "customer_photo_url": consumer.get("image"),
            "pickup_address": business.get("business_address"),
            "delivery_address": order["delivery_address"],
            "reward": reward(order["total_amount"]),
        })
    return out


@router.put("/deliveries/{order_id}/accept")
def accept_delivery(order_id: str, courier: dict = Depends(courier_only)):
    if not courier.get("is_available"):
        raise HTTPException(400, "Set yourself available before accepting deliveries")
    order = get_document_by_id("order", order_id, {"courier_id": None, "status": {"$in": _values(OPEN_REQUEST)}})
    if not order:
        raise HTTPException(404, f"Delivery with ID {order_id} not found or not available")
    accepted = transition_order(
        order,
        OrderStatus.CONFIRMED,
        UserRole.COURIER,
        extra={"courier_id": courier["_id"]},
        match={"courier_id": None},
    )
    return _delivery_view(accepted)


@router.put("/deliveries/{order_id}/status")
def update_delivery_status(order_id: str, payload: OrderStatusUpdate, courier: dict = Depends(courier_only)):
    order = _own_delivery(courier, order_id)
    return _delivery_view(transition_order(order, payload.status, UserRole.COURIER))


@router.get("/active-delivery")
def get_active_delivery(courier: dict = Depends(courier_only)):
    orders = get_documents(
        "order",
        {"courier_id": courier["_id"], "status": {"$in": _values(ACTIVE_DELIVERY)}},
        sort=[("updated_at", -1)],
        limit=1,
    )
    return _delivery_view(orders[0]) if orders else None


@router.get("/history")
def get_history(courier: dict = Depends(courier_only)):
    orders = get_documents(
        "order",
        {"courier_id": courier["_id"], "status": {"$in": _values(HISTORY)}},
        sort=[("updated_at", -1)],
    )
    return [_delivery_view(o) for o in orders]


@router.get("/stats")
def get_stats(courier: dict = Depends(courier_only)):
    done = _completed(courier)
    total = sum(o["total_amount"] for o in done)
    return {
        "completed": len(done),
        "earnings": math.floor(total * config.COURIER_REWARD_RATE),
    }


@router.get("/earnings")
def get_earnings(courier: dict = Depends(courier_only)):
    by_date = OrderedDict()
    for order in _completed(courier):
        day = (order.get("completed_at") or order["updated_at"]).date().isoformat()
        entry = by_date.setdefault(day, {"id": day, "date": day, "amount": 0, "delivery_count": 0})
        entry["amount"] += math.floor(order["total_amount"] * config.COURIER_REWARD_RATE)
        entry["delivery_count"] += 1
    entries = list(by_date.values())
    return {"entries": entries, "total": sum(e["amount"] for e in entries)}


@router.get("/profile")
def get_profile(courier: dict = Depends(courier_only)):
    return {
        "_id": courier["_id"],
        "name": courier.get("name") or "",
        "email": courier["email"],
        "avatar_url": courier.get("image") or "",
        "is_available": courier.get("is_available", False),
        "vehicle_type": courier.get("vehicle_type"),
        "current_location": courier.get("current_location"),
    }
