"""
Store handle around a MongoDB database.

The handle is created once at startup and passed explicitly to the app and
services, so tests can hand in a mongomock database instead.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from config import Settings
from errors import AlreadyExists

logger = logging.getLogger(__name__)

# collection -> fields that must be unique
UNIQUE_FIELDS = {
    "user": "email",
    "product": "sku",
    "order": "order_id",
    "session": "refresh_token",
}


def now() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def serialize(value: Any) -> Any:
    """Make a document JSON friendly (ObjectId -> str), recursively."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: serialize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize(v) for v in value]
    return value


class Store:
    def __init__(self, db: Database):
        self.db = db

    def collection(self, name: str):
        return self.db[name]

    def ensure_indexes(self):
        for name, field in UNIQUE_FIELDS.items():
            self.db[name].create_index([(field, ASCENDING)], unique=True)

    def create_document(self, collection_name: str, data: Union[BaseModel, dict]) -> str:
        """Insert a document with timestamps and return its id as a string."""
        if isinstance(data, BaseModel):
            doc = data.model_dump()
        else:
            doc = dict(data)
        stamp = now()
        doc.setdefault("created_at", stamp)
        doc["updated_at"] = stamp
        try:
            result = self.db[collection_name].insert_one(doc)
        except DuplicateKeyError:
            field = UNIQUE_FIELDS.get(collection_name, "key")
            raise AlreadyExists(f"{collection_name.capitalize()} with this {field} already exists")
        return str(result.inserted_id)

    def find_by_id(self, collection_name: str, doc_id: Any) -> Optional[dict]:
        oid = to_object_id(doc_id)
        if oid is None:
            return None
        return self.db[collection_name].find_one({"_id": oid})

    def update_by_id(self, collection_name: str, doc_id: Any, changes: dict) -> Optional[dict]:
        oid = to_object_id(doc_id)
        if oid is None:
            return None
        try:
            res = self.db[collection_name].update_one({"_id": oid}, {"$set": {**changes, "updated_at": now()}})
        except DuplicateKeyError:
            field = UNIQUE_FIELDS.get(collection_name, "key")
            raise AlreadyExists(f"{collection_name.capitalize()} with this {field} already exists")
        if res.matched_count == 0:
            return None
        return self.db[collection_name].find_one({"_id": oid})


def connect(settings: Settings) -> Store:
    """Open the MongoDB connection; failure here is fatal for the process."""
    try:
        client = MongoClient(settings.database_url, serverSelectionTimeoutMS=5000)
        client.admin.command("ping")
    except PyMongoError as e:
        logger.critical("Could not connect to database: %s", e)
        raise SystemExit(1)
    store = Store(client[settings.database_name])
    store.ensure_indexes()
    logger.info("MongoDB connected, database: %s", settings.database_name)
    return store
