import logging
import re

from fastapi import APIRouter, Depends, HTTPException, Response

import database
from database import create_document, delete_document, get_document_by_id, get_documents, update_document
from schemas import Paymentmethod, PaymentMethodCreate, PaymentType
from security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users/payments", tags=["payments"])

VISA = re.compile(r"^4[0-9]{12}(?:[0-9]{3})?$")
MASTERCARD = re.compile(r"^(5[1-5][0-9]{14}|2[2-7][0-9]{14})$")
EXPIRY = re.compile(r"^\d{2}/\d{2}$")


def card_brand(card_number: str) -> str:
    if VISA.match(card_number):
        return "VISA"
    if MASTERCARD.match(card_number):
        return "MASTERCARD"
    raise HTTPException(400, "Only VISA and Mastercard are supported")


def build_payment_method(user_id: str, payload: PaymentMethodCreate) -> Paymentmethod:
    if payload.type == PaymentType.PAYPAL:
        return Paymentmethod(user_id=user_id, type=PaymentType.PAYPAL, card_brand="PAYPAL", is_default=payload.is_default)

    digits = re.sub(r"\D", "", payload.card_number or "")
    if len(digits) < 13 or len(digits) > 16:
        raise HTTPException(400, "Invalid card number")
    if not EXPIRY.match(payload.expiry_date or "") or not 1 <= int(payload.expiry_date[:2]) <= 12:
        raise HTTPException(400, "Invalid expiry date format. Use MM/YY")
    return Paymentmethod(
        user_id=user_id,
        type=payload.type,
        card_number=digits[-4:],
        card_brand=card_brand(digits),
        expiry_date=payload.expiry_date,
        is_default=payload.is_default,
    )


def _clear_default(user_id: str):
    database._ensure_db()
    database.db["paymentmethod"].update_many(
        {"user_id": user_id, "is_default": True},
        {"$set": {"is_default": False, "updated_at": database.utcnow()}},
    )


@router.get("/methods")
def get_payment_methods(user: dict = Depends(get_current_user)):
    return get_documents("paymentmethod", {"user_id": user["_id"]}, sort=[("is_default", -1), ("created_at", -1)])


@router.post("/methods", status_code=201)
def add_payment_method(payload: PaymentMethodCreate, user: dict = Depends(get_current_user)):
    method = build_payment_method(user["_id"], payload)
    if method.is_default:
        _clear_default(user["_id"])
    method_id = create_document("paymentmethod", method)
    logger.info("Added %s payment method %s for user %s", method.card_brand, method_id, user["_id"])
    return get_document_by_id("paymentmethod", method_id)


@router.patch("/methods/{method_id}/default")
def set_default_payment_method(method_id: str, user: dict = Depends(get_current_user)):
    if not get_document_by_id("paymentmethod", method_id, {"user_id": user["_id"]}):
        raise HTTPException(404, "Payment method not found")
    _clear_default(user["_id"])
    update_document("paymentmethod", method_id, {"is_default": True})
    return get_document_by_id("paymentmethod", method_id)


@router.delete("/methods/{method_id}", status_code=204)
def delete_payment_method(method_id: str, user: dict = Depends(get_current_user)):
    if not delete_document("paymentmethod", method_id, {"user_id": user["_id"]}):
        raise HTTPException(404, "Payment method not found")
    return Response(status_code=204)
