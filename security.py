import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

import config
from database import get_document_by_id
from schemas import UserRole

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=config.BCRYPT_ROUNDS)
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def create_access_token(user: dict) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user["_id"],
        "email": user["email"],
        "role": user.get("role", UserRole.UNASSIGNED.value),
        "iat": now,
        "exp": now + timedelta(seconds=config.JWT_EXPIRY_SECONDS),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])


def token_response(user: dict) -> dict:
    return {
        "access_token": create_access_token(user),
        "token_type": "bearer",
        "user": format_user(user),
    }


def format_user(user: dict) -> dict:
    """Public view of a user: common fields plus the ones of its role."""
    out = {
        "_id": user["_id"],
        "email": user["email"],
        "name": user.get("name"),
        "role": user.get("role"),
        "image": user.get("image"),
    }
    role = user.get("role")
    if role == UserRole.BUSINESS:
        out.update(
            business_name=user.get("business_name"),
            business_address=user.get("business_address"),
            business_phone=user.get("business_phone"),
        )
    elif role == UserRole.CONSUMER:
        out["delivery_address"] = user.get("delivery_address")
    elif role == UserRole.COURIER:
        out.update(
            is_available=user.get("is_available", False),
            current_location=user.get("current_location"),
            vehicle_type=user.get("vehicle_type"),
        )
    return out


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> dict:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"})
    try:
        payload = decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired", headers={"WWW-Authenticate": "Bearer"})
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid or expired token", headers={"WWW-Authenticate": "Bearer"})

    # Role comes from the stored user, not the token
    user = get_document_by_id("user", payload.get("sub", ""))
    if not user:
        logger.warning("Token subject %s no longer exists", payload.get("sub"))
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return user


def require_roles(*roles: UserRole):
    allowed = {r.value for r in roles}

    def guard(user: dict = Depends(get_current_user)) -> dict:
        if user.get("role") not in allowed:
            logger.info("User %s with role %s denied, requires %s", user["_id"], user.get("role"), sorted(allowed))
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return guard
