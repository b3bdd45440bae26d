"""
MongoDB access for the storefront.

`db` is None when DATABASE_URL / DATABASE_NAME are not configured so the
app can still boot; request handlers get the handle through get_db(),
which fails loudly in that case.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient, ReturnDocument
from pymongo.database import Database

import config
from errors import DatabaseUnavailableError

db: Optional[Database] = None

if config.DATABASE_URL and config.DATABASE_NAME:
    _client = MongoClient(config.DATABASE_URL)
    db = _client[config.DATABASE_NAME]


def get_db() -> Database:
    if db is None:
        raise DatabaseUnavailableError()
    return db


def now() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id string, returning None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def serialize_document(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Turn a raw Mongo document into a JSON friendly dict with an `id` key."""
    if doc is None:
        return None
    out = {"id": str(doc["_id"])}
    for key, value in doc.items():
        if key == "_id":
            continue
        out[key] = str(value) if isinstance(value, ObjectId) else value
    return out


def create_document(database: Database, collection_name: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Insert a document stamped with createdAt / updatedAt and return it."""
    stamp = now()
    doc = dict(data)
    doc["createdAt"] = stamp
    doc["updatedAt"] = stamp
    result = database[collection_name].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


def get_documents(database: Database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def get_document(database: Database, collection_name: str, doc_id: Any) -> Optional[Dict[str, Any]]:
    oid = to_object_id(doc_id)
    if oid is None:
        return None
    return database[collection_name].find_one({"_id": oid})


def update_document(database: Database, collection_name: str, doc_id: Any,
                    changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Apply a partial $set and return the updated document (None if absent)."""
    oid = to_object_id(doc_id)
    if oid is None:
        return None
    update = dict(changes)
    update["updatedAt"] = now()
    return database[collection_name].find_one_and_update(
        {"_id": oid}, {"$set": update}, return_document=ReturnDocument.AFTER
    )


def delete_document(database: Database, collection_name: str, doc_id: Any) -> bool:
    oid = to_object_id(doc_id)
    if oid is None:
        return False
    return database[collection_name].delete_one({"_id": oid}).deleted_count == 1
