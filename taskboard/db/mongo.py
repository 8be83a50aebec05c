# db/mongo.py

import logging
import uuid
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, OperationFailure, PyMongoError

from taskboard.config import MONGODB_DB, MONGODB_URL
from taskboard.db.store import TASKS, USERS
from taskboard.errors import DuplicateError, StoreError, ValidationError
from taskboard.services.query import ListQuery

logger = logging.getLogger(__name__)


def connect(url: str = MONGODB_URL) -> AsyncIOMotorClient:
    logger.info("Connecting to MongoDB at %s", url)
    return AsyncIOMotorClient(url, tz_aware=True, serverSelectionTimeoutMS=5000)


class MongoEntityStore:
    """
    EntityStore on top of motor.

    Documents are keyed by a string `_id` (uuid4 hex) so ids travel through
    JSON and query filters unchanged.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    @classmethod
    def from_client(cls, client: AsyncIOMotorClient, db_name: str = MONGODB_DB) -> "MongoEntityStore":
        return cls(client[db_name])

    async def ensure_indexes(self) -> None:
        try:
            await self.db[USERS].create_index([("email", ASCENDING)], unique=True)
            await self.db[TASKS].create_index([("assignedUser", ASCENDING)])
        except PyMongoError as e:
            raise StoreError(f"index creation failed: {e}") from e
        logger.info("MongoDB indexes ensured on %s", self.db.name)

    async def get(self, kind: str, entity_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.db[kind].find_one({"_id": entity_id})
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    async def create(self, kind: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        doc = {**fields, "_id": uuid.uuid4().hex}
        try:
            await self.db[kind].insert_one(doc)
        except DuplicateKeyError as e:
            raise DuplicateError(str(e)) from e
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        return doc

    async def replace(self, kind: str, entity_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        body = {k: v for k, v in fields.items() if k != "_id"}
        try:
            return await self.db[kind].find_one_and_replace(
                {"_id": entity_id}, body, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError as e:
            raise DuplicateError(str(e)) from e
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    async def delete(self, kind: str, entity_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.db[kind].find_one_and_delete({"_id": entity_id})
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    async def add_to_set(self, kind: str, entity_id: str, field: str, value: Any) -> None:
        await self._update_one(kind, entity_id, {"$addToSet": {field: value}})

    async def remove_from_set(self, kind: str, entity_id: str, field: str, value: Any) -> None:
        await self._update_one(kind, entity_id, {"$pull": {field: value}})

    async def update_fields(self, kind: str, entity_id: str, partial: Dict[str, Any]) -> None:
        await self._update_one(kind, entity_id, {"$set": partial})

    async def _update_one(self, kind: str, entity_id: str, update: Dict[str, Any]) -> None:
        try:
            await self.db[kind].update_one({"_id": entity_id}, update)
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    async def find_many(self, kind: str, filter: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            return await self.db[kind].find(filter).to_list(length=None)
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    async def find(self, kind: str, query: ListQuery) -> List[Dict[str, Any]]:
        try:
            cursor = self.db[kind].find(query.where, projection=query.select or None)
            if query.sort:
                cursor = cursor.sort(list(query.sort.items()))
            if query.skip:
                cursor = cursor.skip(query.skip)
            if query.limit:
                cursor = cursor.limit(query.limit)
            return await cursor.to_list(length=None)
        except OperationFailure as e:
            raise ValidationError(f"Invalid query: {e}") from e
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    async def count(self, kind: str, filter: Dict[str, Any]) -> int:
        try:
            return await self.db[kind].count_documents(filter)
        except OperationFailure as e:
            raise ValidationError(f"Invalid query: {e}") from e
        except PyMongoError as e:
            raise StoreError(str(e)) from e
