"""
Database Helper Functions

MongoDB helpers shared by every route module.
Each collection is named after the lowercase schema class (e.g. Fooditem -> "fooditem").
"""

import logging
from datetime import datetime, timezone
from typing import Union, Optional, Dict, Any, List

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import MongoClient, ReturnDocument

import config

logger = logging.getLogger(__name__)

_client = None
db = None

if config.DATABASE_URL and config.DATABASE_NAME:
    _client = MongoClient(config.DATABASE_URL)
    db = _client[config.DATABASE_NAME]


class DatabaseUnavailable(Exception):
    pass


def _ensure_db():
    if db is None:
        raise DatabaseUnavailable("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")


def _to_dict(data: Union[BaseModel, dict]) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="python")
    return dict(data)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form MongoDB hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def object_id(_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(_id)
    except (InvalidId, TypeError):
        return None


# CRUD helpers

def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    _ensure_db()
    payload = _to_dict(data)
    now = utcnow()
    payload.setdefault('created_at', now)
    payload['updated_at'] = now
    result = db[collection_name].insert_one(payload)
    logger.debug("Inserted %s into %s", result.inserted_id, collection_name)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None, sort: Optional[list] = None, skip: Optional[int] = None) -> List[dict]:
    _ensure_db()
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if skip:
        cursor = cursor.skip(int(skip))
    if limit:
        cursor = cursor.limit(int(limit))
    return [serialize_doc(doc) for doc in cursor]


def get_document_by_id(collection_name: str, _id: str, filter_dict: Optional[dict] = None) -> Optional[dict]:
    _ensure_db()
    oid = object_id(_id)
    if oid is None:
        return None
    query = {"_id": oid}
    query.update(filter_dict or {})
    doc = db[collection_name].find_one(query)
    return serialize_doc(doc) if doc else None


def update_document(collection_name: str, _id: str, update_data: Dict[str, Any]) -> bool:
    _ensure_db()
    oid = object_id(_id)
    if oid is None:
        return False
    update = {"$set": _to_dict(update_data)}
    update["$set"]["updated_at"] = utcnow()
    result = db[collection_name].update_one({"_id": oid}, update)
    return result.matched_count > 0


def update_where(collection_name: str, _id: str, match: Dict[str, Any], update: Dict[str, Any]) -> Optional[dict]:
    """Apply a raw update only if the document still matches `match`.

    Returns the updated document, or None when nothing matched.
    """
    _ensure_db()
    oid = object_id(_id)
    if oid is None:
        return None
    query = {"_id": oid}
    query.update(match)
    update = dict(update)
    update.setdefault("$set", {})
    update["$set"] = dict(update["$set"], updated_at=utcnow())
    doc = db[collection_name].find_one_and_update(query, update, return_document=ReturnDocument.AFTER)
    return serialize_doc(doc) if doc else None


def delete_document(collection_name: str, _id: str, filter_dict: Optional[dict] = None) -> bool:
    _ensure_db()
    oid = object_id(_id)
    if oid is None:
        return False
    query = {"_id": oid}
    query.update(filter_dict or {})
    result = db[collection_name].delete_one(query)
    return result.deleted_count > 0


def ensure_indexes():
    _ensure_db()
    db["user"].create_index("email", unique=True)
    db["fooditem"].create_index([("business_id", 1), ("created_at", -1)])
    db["order"].create_index([("consumer_id", 1), ("created_at", -1)])
    db["order"].create_index([("business_id", 1), ("created_at", -1)])
    db["order"].create_index("courier_id")
    db["paymentmethod"].create_index("user_id")
    logger.info("Database indexes ensured")


def ping() -> bool:
    _ensure_db()
    return db.command("ping").get("ok") == 1


# Utility

def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None
    d = dict(doc)
    if "_id" in d:
        d["_id"] = str(d["_id"])  # convert ObjectId to string
    return d
