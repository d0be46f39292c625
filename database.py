"""
MongoDB access for the thoughts API.

`db` is the live database handle (None when DATABASE_URL / DATABASE_NAME are
not set). Collection names are the lowercased schema class names: "user",
"thought".

Besides the generic helpers (create_document, get_documents) this module is
the document store adapter: every operation below is a single atomic
store-level update. Nothing here spans two documents, so callers that
create a child and then link it to a parent get two independent steps.
"""
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from bson.errors import InvalidId
from bson.objectid import ObjectId
from pydantic import BaseModel, ValidationError
from pymongo import ASCENDING, MongoClient, ReturnDocument

from errors import NotFound, StorageUnavailable, ValidationFailed
from schemas import COLLECTIONS

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL)
    db = client[DATABASE_NAME]
else:
    client = None
    db = None

# Human readable names used in 404 messages
LABELS = {"user": "User", "thought": "Thought"}


def _now():
    return datetime.now(timezone.utc)


def _collection(kind: str):
    if db is None:
        raise StorageUnavailable("Database is not configured")
    return db[kind]


def object_id(value: Union[str, ObjectId]) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ValidationFailed(f"'{value}' is not a valid id")


def _not_found(kind: str) -> NotFound:
    return NotFound(f"No {LABELS.get(kind, kind.title())} found with this id!")


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document, stamping created_at/updated_at and the version key."""
    if isinstance(data, BaseModel):
        data = data.model_dump()
    doc = dict(data)
    now = _now()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    doc["__v"] = 0
    result = _collection(collection_name).insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None, sort: Optional[List] = None) -> List[Dict[str, Any]]:
    cursor = _collection(collection_name).find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def ensure_indexes():
    """Username and email uniqueness lives in the store, not in the API."""
    users = _collection("user")
    users.create_index([("username", ASCENDING)], unique=True)
    users.create_index([("email", ASCENDING)], unique=True)
    logger.info("Unique indexes ensured on user.username and user.email")


# Document store adapter

def create_entity(kind: str, payload: Union[BaseModel, Dict[str, Any]]) -> str:
    if isinstance(payload, dict):
        model = COLLECTIONS[kind]
        try:
            payload = model(**payload)
        except ValidationError as e:
            raise ValidationFailed(f"Invalid {LABELS.get(kind, kind)}", e.errors(include_url=False, include_context=False))
    return create_document(kind, payload)


def find_entity(kind: str, entity_id: str) -> Dict[str, Any]:
    doc = _collection(kind).find_one({"_id": object_id(entity_id)})
    if doc is None:
        raise _not_found(kind)
    return doc


def find_entities(kind: str, ids: Iterable[str]) -> List[Dict[str, Any]]:
    """Fetch documents by id, in the order of `ids`. Missing ids are skipped."""
    oids = [object_id(i) for i in ids]
    by_id = {d["_id"]: d for d in _collection(kind).find({"_id": {"$in": oids}})}
    return [by_id[o] for o in oids if o in by_id]


def update_entity(kind: str, entity_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    changes = dict(fields)
    changes["updated_at"] = _now()
    doc = _collection(kind).find_one_and_update(
        {"_id": object_id(entity_id)},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        raise _not_found(kind)
    return doc


def append_reference(parent_kind: str, parent_id: str, list_field: str, child_id: Any,
                     unique: bool = False) -> Dict[str, Any]:
    """$push (or $addToSet when `unique`) `child_id` onto the parent's list."""
    op = "$addToSet" if unique else "$push"
    doc = _collection(parent_kind).find_one_and_update(
        {"_id": object_id(parent_id)},
        {op: {list_field: child_id}, "$set": {"updated_at": _now()}},
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        raise _not_found(parent_kind)
    return doc


def remove_reference(parent_kind: str, parent_id: str, list_field: str, child_matcher: Any) -> Dict[str, Any]:
    """$pull entries equal to `child_matcher`.

    For embedded sub-documents pass a dict such as {"reactionId": rid}; the
    pull then matches on that field rather than on array position.
    """
    doc = _collection(parent_kind).find_one_and_update(
        {"_id": object_id(parent_id)},
        {"$pull": {list_field: child_matcher}, "$set": {"updated_at": _now()}},
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        raise _not_found(parent_kind)
    return doc


def delete_entity(kind: str, entity_id: str) -> Dict[str, Any]:
    doc = _collection(kind).find_one_and_delete({"_id": object_id(entity_id)})
    if doc is None:
        raise _not_found(kind)
    return doc
