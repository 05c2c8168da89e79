"""
Document store adapter

Thin async wrapper around a MongoDB database. Lost connections and timeouts
become the retryable StoreUnavailable, a query the server refuses becomes
QueryRejected, any other driver error StoreError. Cancellation is left
alone: an aborted request cancels the pending driver call.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import AsyncMongoClient, ReturnDocument
from pymongo.errors import ConnectionFailure, ExecutionTimeout, OperationFailure, PyMongoError, WTimeoutError

from errors import InvalidReference, QueryRejected, StoreError, StoreUnavailable

logger = logging.getLogger(__name__)


def is_well_formed_id(value) -> bool:
    return isinstance(value, str) and ObjectId.is_valid(value)


def object_id(value, label: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not is_well_formed_id(value):
        raise InvalidReference(f"Invalid {label}")
    return ObjectId(value)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def store_error(e: PyMongoError):
    if isinstance(e, (ConnectionFailure, ExecutionTimeout, WTimeoutError)):
        return StoreUnavailable()
    if isinstance(e, OperationFailure):
        return QueryRejected(f"Query rejected by the database: {(e.details or {}).get('errmsg', e)}")
    return StoreError()


class MongoStore:
    def __init__(self, db):
        self.db = db

    @property
    def name(self) -> str:
        return self.db.name

    async def aggregate(self, collection: str, stages: List[dict]) -> List[dict]:
        try:
            cursor = await self.db[collection].aggregate(stages)
            return await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error("aggregate on %s failed: %s", collection, e)
            raise store_error(e) from e

    async def count(self, collection: str, stages: List[dict]) -> int:
        docs = await self.aggregate(collection, list(stages) + [{"$count": "total"}])
        return docs[0]["total"] if docs else 0

    async def create_document(self, collection: str, data: Union[BaseModel, dict]) -> str:
        if isinstance(data, BaseModel):
            data = data.model_dump()
        doc = dict(data)
        now = utcnow()
        doc["created_at"] = now
        doc["updated_at"] = now
        try:
            result = await self.db[collection].insert_one(doc)
        except PyMongoError as e:
            logger.error("insert into %s failed: %s", collection, e)
            raise store_error(e) from e
        return str(result.inserted_id)

    async def get_document(self, collection: str, filter_dict: Dict[str, Any]) -> Optional[dict]:
        try:
            return await self.db[collection].find_one(filter_dict)
        except PyMongoError as e:
            logger.error("find_one on %s failed: %s", collection, e)
            raise store_error(e) from e

    async def update_document(self, collection: str, filter_dict: Dict[str, Any], update: Dict[str, Any]) -> Optional[dict]:
        """Apply an update and return the document after it, or None if nothing matched."""
        update = dict(update)
        update.setdefault("$set", {})
        update["$set"] = {**update["$set"], "updated_at": utcnow()}
        try:
            return await self.db[collection].find_one_and_update(
                filter_dict, update, return_document=ReturnDocument.AFTER
            )
        except PyMongoError as e:
            logger.error("update on %s failed: %s", collection, e)
            raise store_error(e) from e

    async def delete_document(self, collection: str, filter_dict: Dict[str, Any]) -> bool:
        try:
            result = await self.db[collection].delete_one(filter_dict)
        except PyMongoError as e:
            logger.error("delete on %s failed: %s", collection, e)
            raise store_error(e) from e
        return result.deleted_count > 0

    async def list_collection_names(self) -> List[str]:
        try:
            return await self.db.list_collection_names()
        except PyMongoError as e:
            raise store_error(e) from e


# Process-wide handle, owned by the application startup/shutdown hooks
_client: Optional[AsyncMongoClient] = None
_store: Optional[MongoStore] = None


def connect(settings) -> MongoStore:
    global _client, _store
    _client = AsyncMongoClient(settings.database_url, serverSelectionTimeoutMS=5000)
    _store = MongoStore(_client[settings.database_name])
    logger.info("MongoDB client created for database %s", settings.database_name)
    return _store


async def disconnect() -> None:
    global _client, _store
    if _client is not None:
        await _client.close()
        logger.info("MongoDB client closed")
    _client = None
    _store = None


def get_store() -> MongoStore:
    if _store is None:
        raise StoreUnavailable("Database not initialized")
    return _store
