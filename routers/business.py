import logging

from fastapi import APIRouter, Depends, HTTPException

from database import delete_document, get_document_by_id, get_documents, to_utc, update_document
from lifecycle import transition_order
from routers.items import create_food_item
from schemas import (
    UserRole,
    BusinessUpdate,
    FoodItemCreate,
    FoodItemUpdate,
    FoodStatus,
    FoodStatusUpdate,
    PriceUpdate,
    DynamicPricingUpdate,
    OrderStatusUpdate,
)
from security import format_user, require_roles

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/business", tags=["business"])
business_only = require_roles(UserRole.BUSINESS)


def _owned_item(business: dict, item_id: str) -> dict:
    item = get_document_by_id("fooditem", item_id, {"business_id": business["_id"]})
    if not item:
        raise HTTPException(404, f"Food item with ID {item_id} not found")
    return item


def _update_item(business: dict, item_id: str, fields: dict) -> dict:
    item = _owned_item(business, item_id)
    # Stock level drives SOLD unless the caller sets a status itself
    if fields.get("quantity") is not None and "status" not in fields:
        if fields["quantity"] == 0 and item["status"] == FoodStatus.AVAILABLE:
            fields["status"] = FoodStatus.SOLD.value
        elif fields["quantity"] > 0 and item["status"] == FoodStatus.SOLD:
            fields["status"] = FoodStatus.AVAILABLE.value
    update_document("fooditem", item_id, fields)
    return get_document_by_id("fooditem", item_id)


def _user_summary(user_id):
    if not user_id:
        return None
    user = get_document_by_id("user", user_id)
    if not user:
        return None
    return {"_id": user["_id"], "name": user.get("name"), "email": user["email"]}


def _with_parties(order: dict) -> dict:
    order["consumer"] = _user_summary(order.get("consumer_id"))
    order["courier"] = _user_summary(order.get("courier_id"))
    return order


def _owned_order(business: dict, order_id: str) -> dict:
    order = get_document_by_id("order", order_id, {"business_id": business["_id"]})
    if not order:
        raise HTTPException(404, f"Order with ID {order_id} not found")
    return order


# ===================== Profile =====================

@router.get("/profile")
def get_business_profile(business: dict = Depends(business_only)):
    return format_user(business)


@router.patch("/profile")
def update_business_profile(payload: BusinessUpdate, business: dict = Depends(business_only)):
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(400, "Nothing to update")
    update_document("user", business["_id"], fields)
    logger.info("Business %s updated profile fields %s", business["_id"], sorted(fields))
    return format_user(get_document_by_id("user", business["_id"]))


# ===================== Food items =====================

@router.post("/food-items", status_code=201)
def create_business_food_item(payload: FoodItemCreate, business: dict = Depends(business_only)):
    return create_food_item(business["_id"], payload)


@router.get("/food-items")
def list_business_food_items(business: dict = Depends(business_only)):
    return get_documents("fooditem", {"business_id": business["_id"]}, sort=[("created_at", -1)])


@router.get("/food-items/{item_id}")
def get_business_food_item(item_id: str, business: dict = Depends(business_only)):
    return _owned_item(business, item_id)


@router.patch("/food-items/{item_id}")
def update_business_food_item(item_id: str, payload: FoodItemUpdate, business: dict = Depends(business_only)):
    fields = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if not fields:
        raise HTTPException(400, "Nothing to update")
    if "expiry_date" in fields:
        fields["expiry_date"] = to_utc(fields["expiry_date"])
    return _update_item(business, item_id, fields)


@router.delete("/food-items/{item_id}")
def remove_business_food_item(item_id: str, business: dict = Depends(business_only)):
    item = _owned_item(business, item_id)
    delete_document("fooditem", item_id)
    logger.info("Business %s removed food item %s", business["_id"], item_id)
    return item


@router.patch("/food-items/{item_id}/status")
def update_food_item_status(item_id: str, payload: FoodStatusUpdate, business: dict = Depends(business_only)):
    return _update_item(business, item_id, {"status": payload.status.value})


@router.patch("/food-items/{item_id}/price")
def update_food_item_price(item_id: str, payload: PriceUpdate, business: dict = Depends(business_only)):
    return _update_item(business, item_id, {"price": payload.price})


@router.patch("/food-items/{item_id}/dynamic-pricing")
def update_dynamic_pricing(item_id: str, payload: DynamicPricingUpdate, business: dict = Depends(business_only)):
    return _update_item(business, item_id, payload.model_dump())


@router.delete("/food-items/{item_id}/dynamic-pricing")
def remove_dynamic_pricing(item_id: str, business: dict = Depends(business_only)):
    return _update_item(business, item_id, {"discount_percentage": None, "discount_threshold": None})


# ===================== Orders =====================

@router.get("/orders")
def list_business_orders(business: dict = Depends(business_only)):
    orders = get_documents("order", {"business_id": business["_id"]}, sort=[("created_at", -1)])
    return [_with_parties(o) for o in orders]


@router.get("/orders/{order_id}")
def get_business_order(order_id: str, business: dict = Depends(business_only)):
    return _with_parties(_owned_order(business, order_id))


@router.patch("/orders/{order_id}/status")
def update_business_order_status(order_id: str, payload: OrderStatusUpdate, business: dict = Depends(business_only)):
    order = _owned_order(business, order_id)
    return _with_parties(transition_order(order, payload.status, UserRole.BUSINESS))
