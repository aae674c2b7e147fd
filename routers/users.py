import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import DuplicateKeyError

from database import create_document, delete_document, get_document_by_id, get_documents, update_document
from schemas import (
    User,
    UserRole,
    UserCreate,
    UserUpdate,
    UpdateRoleRequest,
    DeliveryAddressUpdate,
    CourierStatusUpdate,
    CourierLocationUpdate,
)
from security import format_user, get_current_user, hash_password, require_roles

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _require_self(user: dict, user_id: str):
    if user["_id"] != user_id and user.get("role") != UserRole.ADMIN:
        raise HTTPException(403, "Cannot modify another user")


def _update_user(user_id: str, fields: dict) -> dict:
    if not update_document("user", user_id, fields):
        raise HTTPException(404, "User not found")
    return format_user(get_document_by_id("user", user_id))


@router.patch("/update-role")
def update_role(payload: UpdateRoleRequest, user: dict = Depends(get_current_user)):
    if payload.role == UserRole.ADMIN and user.get("role") != UserRole.ADMIN:
        raise HTTPException(403, "ADMIN role cannot be self-assigned")
    logger.info("User %s changes role %s -> %s", user["_id"], user.get("role"), payload.role.value)
    return _update_user(user["_id"], {"role": payload.role.value})


@router.get("")
def list_users(role: Optional[UserRole] = None, _admin: dict = Depends(require_roles(UserRole.ADMIN))):
    filt = {"role": role.value} if role else {}
    return [format_user(u) for u in get_documents("user", filt, sort=[("created_at", -1)])]


@router.post("", status_code=201)
def create_user(payload: UserCreate, _admin: dict = Depends(require_roles(UserRole.ADMIN))):
    if get_documents("user", {"email": payload.email}, limit=1):
        raise HTTPException(409, "User already exists")
    data = payload.model_dump(exclude={"password"})
    if payload.password:
        data["password_hash"] = hash_password(payload.password)
    try:
        user_id = create_document("user", User(**data))
    except DuplicateKeyError:
        raise HTTPException(409, "User already exists")
    return format_user(get_document_by_id("user", user_id))


@router.get("/{user_id}")
def get_user(user_id: str, _user: dict = Depends(get_current_user)):
    found = get_document_by_id("user", user_id)
    if not found:
        raise HTTPException(404, "User not found")
    return format_user(found)


@router.patch("/{user_id}")
def update_user(user_id: str, payload: UserUpdate, user: dict = Depends(get_current_user)):
    _require_self(user, user_id)
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(400, "Nothing to update")
    return _update_user(user_id, fields)


@router.delete("/{user_id}")
def remove_user(user_id: str, _admin: dict = Depends(require_roles(UserRole.ADMIN))):
    if not delete_document("user", user_id):
        raise HTTPException(404, "User not found")
    logger.info("Deleted user %s", user_id)
    return {"deleted": True}


# Role-specific profile fields

@router.patch("/{user_id}/delivery-address")
def update_delivery_address(user_id: str, payload: DeliveryAddressUpdate,
                            user: dict = Depends(require_roles(UserRole.CONSUMER))):
    _require_self(user, user_id)
    return _update_user(user_id, {"delivery_address": payload.delivery_address})


@router.patch("/{user_id}/courier-status")
def update_courier_status(user_id: str, payload: CourierStatusUpdate,
                          user: dict = Depends(require_roles(UserRole.COURIER))):
    _require_self(user, user_id)
    return _update_user(user_id, {"is_available": payload.is_available})


@router.patch("/{user_id}/courier-location")
def update_courier_location(user_id: str, payload: CourierLocationUpdate,
                            user: dict = Depends(require_roles(UserRole.COURIER))):
    _require_self(user, user_id)
    return _update_user(user_id, {"current_location": payload.current_location})
