import logging
from collections import OrderedDict

from fastapi import APIRouter, Depends, HTTPException

from database import create_document, get_document_by_id, get_documents, object_id, utcnow
from inventory import effective_price, is_orderable, load_items, reserve_items
from lifecycle import transition_order
from schemas import Order, OrderItem, OrderStatus, CreateOrderRequest, StatusChange, UserRole
from security import require_roles

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/consumer", tags=["consumer"])
consumer_only = require_roles(UserRole.CONSUMER)


def _merge_lines(payload: CreateOrderRequest) -> "OrderedDict[str, int]":
    lines = OrderedDict()
    for line in payload.items:
        oid = object_id(line.food_item_id)
        key = str(oid) if oid else line.food_item_id
        lines[key] = lines.get(key, 0) + line.quantity
    return lines


def place_orders(consumer: dict, payload: CreateOrderRequest) -> list:
    """Create one order per business for the requested lines.

    Stock is reserved before any order is written; if the reservation fails
    nothing is stored.
    """
    lines = _merge_lines(payload)
    items = {i["_id"]: i for i in load_items(list(lines))}
    if len(items) != len(lines):
        raise HTTPException(400, "One or more food items not found")

    now = utcnow()
    by_business = OrderedDict()
    for item_id, quantity in lines.items():
        item = items[item_id]
        if not is_orderable(item, now):
            raise HTTPException(400, f"{item['name']} is no longer available")
        if item["quantity"] < quantity:
            raise HTTPException(400, f"Insufficient quantity for {item['name']}")
        line = OrderItem(food_item_id=item_id, name=item["name"], quantity=quantity, price=effective_price(item, now))
        by_business.setdefault(item["business_id"], []).append(line)

    reserve_items(lines)

    orders = []
    for business_id, order_items in by_business.items():
        order = Order(
            consumer_id=consumer["_id"],
            business_id=business_id,
            items=order_items,
            total_amount=round(sum(i.price * i.quantity for i in order_items), 2),
            delivery_address=payload.delivery_address,
            customer_name=payload.customer_name,
            phone_number=payload.phone_number,
            payment_method=payload.payment_method,
            status_history=[StatusChange(status=OrderStatus.PENDING, role=UserRole.CONSUMER, at=now)],
        )
        order_id = create_document("order", order)
        logger.info("Consumer %s placed order %s at business %s total=%.2f",
                    consumer["_id"], order_id, business_id, order.total_amount)
        orders.append(get_document_by_id("order", order_id))
    return orders


def _consumer_view(order: dict) -> dict:
    business = get_document_by_id("user", order["business_id"]) or {}
    return {
        "_id": order["_id"],
        "status": order["status"],
        "business_name": business.get("business_name") or business.get("name"),
        "business_address": business.get("business_address"),
        "courier_id": order.get("courier_id"),
        "total_amount": order["total_amount"],
        "delivery_address": order["delivery_address"],
        "payment_method": order.get("payment_method"),
        "created_at": order["created_at"],
        "updated_at": order["updated_at"],
        "items": [
            {"food_item_id": i["food_item_id"], "name": i["name"], "quantity": i["quantity"], "price": i["price"]}
            for i in order["items"]
        ],
    }


def _owned_order(consumer: dict, order_id: str) -> dict:
    order = get_document_by_id("order", order_id, {"consumer_id": consumer["_id"]})
    if not order:
        raise HTTPException(404, f"Order with ID {order_id} not found")
    return order


@router.post("/orders", status_code=201)
def create_order(payload: CreateOrderRequest, consumer: dict = Depends(consumer_only)):
    return place_orders(consumer, payload)


@router.get("/orders")
def get_orders(consumer: dict = Depends(consumer_only)):
    orders = get_documents("order", {"consumer_id": consumer["_id"]}, sort=[("created_at", -1)])
    return [_consumer_view(o) for o in orders]


@router.get("/orders/{order_id}")
def get_order(order_id: str, consumer: dict = Depends(consumer_only)):
    return _consumer_view(_owned_order(consumer, order_id))


@router.post("/orders/{order_id}/cancel")
def cancel_order(order_id: str, consumer: dict = Depends(consumer_only)):
    order = _owned_order(consumer, order_id)
    return _consumer_view(transition_order(order, OrderStatus.CANCELLED, UserRole.CONSUMER))


@router.post("/orders/{order_id}/confirm-delivery")
def confirm_delivery(order_id: str, consumer: dict = Depends(consumer_only)):
    order = _owned_order(consumer, order_id)
    return _consumer_view(transition_order(order, OrderStatus.DELIVERED, UserRole.CONSUMER))
