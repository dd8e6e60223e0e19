"""
MongoDB Document Store Implementation

Production store using PyMongo's asyncio client.
Used when STORAGE_BACKEND=mongo (the default).

Requirements:
    - MONGODB_URI must point at a reachable MongoDB deployment
    - Text search needs the text index created by initialize()

Collections:
    users       unique indexes on email and phoneNumber
    menu_items  unique index on name, compound (category, isAvailable),
                price, and a text index over name/description/ingredients
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, TEXT, AsyncMongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError

from menu_api.core.exceptions import ConflictError
from menu_api.services.storage.base import (
    BaseDocumentStore,
    BaseMenuStore,
    BaseUserStore,
    MenuQuery,
    PriceStats,
)

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
MENU_COLLECTION = "menu_items"


def _object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Replace _id with its string form under "id"."""
    if not doc:
        return None
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    d.pop("score", None)
    return d


def _timestamps(document: dict[str, Any]) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    payload = {k: v for k, v in document.items() if k != "id"}
    payload["createdAt"] = now
    payload["updatedAt"] = now
    return payload


def build_filter(query: MenuQuery) -> dict[str, Any]:
    """MongoDB filter document for a catalog query."""
    criteria: dict[str, Any] = {}
    if query.is_search:
        criteria["$text"] = {"$search": query.text}
    if query.category is not None:
        criteria["category"] = query.category
    if query.is_available is not None:
        criteria["isAvailable"] = query.is_available
    if query.min_price is not None or query.max_price is not None:
        price: dict[str, float] = {}
        if query.min_price is not None:
            price["$gte"] = query.min_price
        if query.max_price is not None:
            price["$lte"] = query.max_price
        criteria["price"] = price
    return criteria


def build_sort(query: MenuQuery) -> list[tuple[str, Any]]:
    """MongoDB sort specification for a catalog query."""
    if query.is_search:
        return [("score", {"$meta": "textScore"}), ("createdAt", DESCENDING)]
    direction = ASCENDING if query.sort_direction > 0 else DESCENDING
    return [(query.sort_field, direction)]


def build_projection(query: MenuQuery) -> Optional[dict[str, Any]]:
    """Projection selecting the requested fields (plus relevance when searching)."""
    projection: dict[str, Any] = {field_name: 1 for field_name in query.fields}
    if query.is_search:
        projection["score"] = {"$meta": "textScore"}
    return projection or None


class MongoUserStore(BaseUserStore):

    def __init__(self, collection):
        self._collection = collection

    @property
    def provider_name(self) -> str:
        return "mongo"

    async def ensure_indexes(self) -> None:
        await self._collection.create_index([("email", ASCENDING)], unique=True)
        await self._collection.create_index([("phoneNumber", ASCENDING)], unique=True)

    async def create(self, document: dict[str, Any]) -> dict[str, Any]:
        payload = _timestamps(document)
        try:
            result = await self._collection.insert_one(payload)
        except DuplicateKeyError as e:
            raise ConflictError("User with this email or phone number already exists") from e
        payload["_id"] = result.inserted_id
        return serialize_doc(payload)

    async def find_by_id(self, user_id: str) -> Optional[dict[str, Any]]:
        oid = _object_id(user_id)
        if oid is None:
            return None
        return serialize_doc(await self._collection.find_one({"_id": oid}))

    async def find_by_email(self, email: str) -> Optional[dict[str, Any]]:
        return serialize_doc(await self._collection.find_one({"email": email}))

    async def find_by_email_or_phone(self, email: str, phone_number: str) -> Optional[dict[str, Any]]:
        return serialize_doc(
            await self._collection.find_one({"$or": [{"email": email}, {"phoneNumber": phone_number}]})
        )

    async def update(self, user_id: str, changes: dict[str, Any]) -> Optional[dict[str, Any]]:
        oid = _object_id(user_id)
        if oid is None:
            return None
        update = {"$set": {**changes, "updatedAt": datetime.now(timezone.utc)}}
        try:
            doc = await self._collection.find_one_and_update(
                {"_id": oid}, update, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError as e:
            raise ConflictError("User with this email or phone number already exists") from e
        return serialize_doc(doc)


class MongoMenuStore(BaseMenuStore):

    def __init__(self, collection):
        self._collection = collection

    @property
    def provider_name(self) -> str:
        return "mongo"

    async def ensure_indexes(self) -> None:
        await self._collection.create_index([("name", ASCENDING)], unique=True)
        await self._collection.create_index([("category", ASCENDING), ("isAvailable", ASCENDING)])
        await self._collection.create_index([("price", ASCENDING)])
        await self._collection.create_index(
            [("name", TEXT), ("description", TEXT), ("ingredients", TEXT)],
            name="menu_text",
        )

    async def create(self, document: dict[str, Any]) -> dict[str, Any]:
        payload = _timestamps(document)
        try:
            result = await self._collection.insert_one(payload)
        except DuplicateKeyError as e:
            raise ConflictError("Menu item with this name already exists") from e
        payload["_id"] = result.inserted_id
        return serialize_doc(payload)

    async def find_by_id(self, item_id: str) -> Optional[dict[str, Any]]:
        oid = _object_id(item_id)
        if oid is None:
            return None
        return serialize_doc(await self._collection.find_one({"_id": oid}))

    async def find_by_name(self, name: str) -> Optional[dict[str, Any]]:
        return serialize_doc(await self._collection.find_one({"name": name}))

    async def update(self, item_id: str, changes: dict[str, Any]) -> Optional[dict[str, Any]]:
        oid = _object_id(item_id)
        if oid is None:
            return None
        update = {"$set": {**changes, "updatedAt": datetime.now(timezone.utc)}}
        try:
            doc = await self._collection.find_one_and_update(
                {"_id": oid}, update, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError as e:
            raise ConflictError("Menu item with this name already exists") from e
        return serialize_doc(doc)

    async def delete(self, item_id: str) -> Optional[dict[str, Any]]:
        oid = _object_id(item_id)
        if oid is None:
            return None
        return serialize_doc(await self._collection.find_one_and_delete({"_id": oid}))

    async def find(self, query: MenuQuery) -> list[dict[str, Any]]:
        cursor = (
            self._collection.find(build_filter(query), build_projection(query))
            .sort(build_sort(query))
            .skip(query.skip)
            .limit(query.limit)
        )
        return [serialize_doc(doc) async for doc in cursor]

    async def count(self, query: MenuQuery) -> int:
        return await self._collection.count_documents(build_filter(query))

    async def distinct_categories(self) -> list[str]:
        return [c for c in await self._collection.distinct("category") if c]

    async def price_stats(self) -> PriceStats:
        cursor = await self._collection.aggregate([
            {
                "$group": {
                    "_id": None,
                    "minPrice": {"$min": "$price"},
                    "maxPrice": {"$max": "$price"},
                    "avgPrice": {"$avg": "$price"},
                }
            }
        ])
        rows = await cursor.to_list(length=1)
        if not rows:
            return PriceStats()
        row = rows[0]
        return PriceStats(
            min_price=row.get("minPrice"),
            max_price=row.get("maxPrice"),
            avg_price=row.get("avgPrice"),
        )


class MongoDocumentStore(BaseDocumentStore):
    """
    MongoDB-backed store.

    One client (and its connection pool) is created per store instance; the
    factory in this package caches the instance so the pool is reused for
    the life of the process.
    """

    def __init__(self, uri: str, database: str):
        self._client = AsyncMongoClient(
            uri,
            maxPoolSize=10,
            serverSelectionTimeoutMS=5000,
            socketTimeoutMS=45000,
            tz_aware=True,
        )
        self._db = self._client.get_default_database(default=database)
        self.users = MongoUserStore(self._db[USERS_COLLECTION])
        self.menu = MongoMenuStore(self._db[MENU_COLLECTION])
        logger.info(f"MongoDocumentStore configured (database: {self._db.name})")

    @property
    def provider_name(self) -> str:
        return "mongo"

    async def initialize(self) -> None:
        await self._client.admin.command("ping")
        await self.users.ensure_indexes()
        await self.menu.ensure_indexes()
        logger.info("✅ Connected to database successfully")

    async def close(self) -> None:
        await self._client.close()

    async def health_check(self) -> bool:
        try:
            await self._client.admin.command("ping")
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False
