import logging

from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import DuplicateKeyError

from database import create_document, get_document_by_id, get_documents
from schemas import User, RegisterRequest, LoginRequest
from security import format_user, get_current_user, hash_password, token_response, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=201)
def register(payload: RegisterRequest):
    existing = get_documents("user", {"email": payload.email}, limit=1)
    if existing:
        raise HTTPException(status_code=409, detail="User already exists")
    user = User(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        role=payload.role,
    )
    try:
        user_id = create_document("user", user)
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail="User already exists")
    logger.info("Registered user %s with role %s", user_id, user.role)
    return token_response(get_document_by_id("user", user_id))


@router.post("/login")
def login(payload: LoginRequest):
    users = get_documents("user", {"email": payload.email}, limit=1)
    if not users or not verify_password(payload.password, users[0].get("password_hash")):
        logger.info("Failed login for %s", payload.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return token_response(users[0])


@router.get("/me")
def me(user: dict = Depends(get_current_user)):
    return format_user(user)


@router.get("/test")
def test():
    return {"message": "Auth module is working!"}
