"""
Database helpers

Thin layer over pymongo. Collections are named after the lowercase schema
class (Order -> "order", User -> "user"). Every document written through
these helpers carries UTC `created_at` / `updated_at` timestamps.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient, ReturnDocument

from errors import DatabaseUnavailable, ValidationError

load_dotenv()

logger = structlog.get_logger(__name__)

logging.getLogger("pymongo").setLevel(logging.WARNING)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

client = MongoClient(DATABASE_URL, tz_aware=True) if DATABASE_URL and DATABASE_NAME else None
db = client[DATABASE_NAME] if client is not None else None

UNIQUE_INDEXES = {
    "user": ["email"],
    "product": ["product_id"],
    "category": ["slug", "name"],
    "wishlist": ["user_id"],
}


def now() -> datetime:
    return datetime.now(timezone.utc)


def collection(name: str):
    if db is None:
        raise DatabaseUnavailable()
    return db[name]


def ensure_indexes():
    """Create the unique indexes the managers rely on for duplicate checks."""
    if db is None:
        logger.warning("Skipping index creation, database not configured")
        return
    for name, fields in UNIQUE_INDEXES.items():
        for field in fields:
            db[name].create_index([(field, ASCENDING)], unique=True)


def to_object_id(value: Any, label: str = "ID") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {label}")


def is_object_id(value: Any) -> bool:
    return isinstance(value, ObjectId) or (isinstance(value, str) and ObjectId.is_valid(value))


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document and return its id as a string."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = data.copy()

    timestamp = now()
    data_dict["created_at"] = timestamp
    data_dict["updated_at"] = timestamp

    result = collection(collection_name).insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(
    collection_name: str,
    filter_dict: Optional[dict] = None,
    limit: Optional[int] = None,
    sort: Optional[List[tuple]] = None,
    projection: Optional[dict] = None,
) -> List[dict]:
    cursor = collection(collection_name).find(filter_dict or {}, projection)
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def get_document(collection_name: str, filter_dict: dict, projection: Optional[dict] = None) -> Optional[dict]:
    return collection(collection_name).find_one(filter_dict, projection)


def update_document(collection_name: str, filter_dict: dict, changes: dict) -> Optional[dict]:
    """Apply a $set and return the updated document, or None if nothing matched."""
    changes = dict(changes)
    changes["updated_at"] = now()
    return collection(collection_name).find_one_and_update(
        filter_dict,
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )


def replace_document(collection_name: str, document: dict) -> dict:
    """Persist a whole loaded document back under its own _id."""
    document["updated_at"] = now()
    collection(collection_name).replace_one({"_id": document["_id"]}, document)
    return document


def delete_document(collection_name: str, filter_dict: dict) -> Optional[dict]:
    return collection(collection_name).find_one_and_delete(filter_dict)


def serialize_document(value: Any) -> Any:
    """Make a stored document JSON friendly: ObjectId -> str, datetime -> ISO-8601."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: serialize_document(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_document(item) for item in value]
    return value


def serialize_documents(documents: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize_document(d) for d in documents]
