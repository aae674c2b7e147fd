import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from database import get_document_by_id, get_documents
from lifecycle import transition_order
from schemas import OrderStatus, OrderStatusUpdate, UserRole
from security import require_roles

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])
admin_only = require_roles(UserRole.ADMIN)


@router.get("/orders")
def list_orders(status: Optional[OrderStatus] = None, _admin: dict = Depends(admin_only)):
    filt = {"status": status.value} if status else {}
    return get_documents("order", filt, sort=[("created_at", -1)])


@router.patch("/orders/{order_id}/status")
def update_order_status(order_id: str, payload: OrderStatusUpdate, admin: dict = Depends(admin_only)):
    order = get_document_by_id("order", order_id)
    if not order:
        raise HTTPException(404, f"Order with ID {order_id} not found")
    logger.info("Admin %s moves order %s to %s", admin["_id"], order_id, OrderStatus(payload.status).value)
    return transition_order(order, payload.status, UserRole.ADMIN)
