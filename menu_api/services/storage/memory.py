"""
In-Memory Document Store

Keeps users and menu items in process memory with the same behaviour as the
MongoDB store: ObjectId identifiers, store-managed timestamps, unique keys,
filtered/sorted/paged listing and a simple relevance-scored text search.

Used when STORAGE_BACKEND=memory (local runs without a database, tests).
Data is lost when the process exits.
"""

import copy
import logging
import re
import threading
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId

from menu_api.core.exceptions import ConflictError
from menu_api.services.storage.base import (
    SORT_DESCENDING,
    BaseDocumentStore,
    BaseMenuStore,
    BaseUserStore,
    MenuQuery,
    PriceStats,
)

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("name", "description", "ingredients")

_WORD = re.compile(r"\w+")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _tokens(value: Optional[str]) -> list[str]:
    return _WORD.findall(value.lower()) if value else []


def text_score(document: dict[str, Any], text: str) -> float:
    """Occurrences of the search terms in the indexed text fields."""
    terms = set(_tokens(text))
    if not terms:
        return 0.0
    score = 0.0
    for field_name in TEXT_FIELDS:
        words = _tokens(document.get(field_name))
        score += sum(1 for word in words if word in terms)
    return score


def _sort_key(value: Any) -> tuple:
    # Missing values order before present ones, as in MongoDB
    return (value is not None, value if value is not None else 0)


class _Collection:
    """Dict of documents by id, guarded by a lock."""

    def __init__(self, name: str, unique_fields: tuple[str, ...]):
        self.name = name
        self.unique_fields = unique_fields
        self.documents: dict[str, dict[str, Any]] = {}
        self.lock = threading.Lock()

    def _check_unique(self, document: dict[str, Any], exclude_id: Optional[str] = None) -> None:
        for field_name in self.unique_fields:
            value = document.get(field_name)
            if value is None:
                continue
            for doc_id, existing in self.documents.items():
                if doc_id != exclude_id and existing.get(field_name) == value:
                    raise ConflictError(f"Duplicate value for {field_name}")

    def insert(self, document: dict[str, Any]) -> dict[str, Any]:
        with self.lock:
            self._check_unique(document)
            now = _now()
            stored = copy.deepcopy(document)
            stored["id"] = str(ObjectId())
            stored["createdAt"] = now
            stored["updatedAt"] = now
            self.documents[stored["id"]] = stored
            return copy.deepcopy(stored)

    def get(self, doc_id: str) -> Optional[dict[str, Any]]:
        with self.lock:
            doc = self.documents.get(doc_id)
            return copy.deepcopy(doc) if doc else None

    def find_one(self, **criteria: Any) -> Optional[dict[str, Any]]:
        with self.lock:
            for doc in self.documents.values():
                if all(doc.get(k) == v for k, v in criteria.items()):
                    return copy.deepcopy(doc)
        return None

    def update(self, doc_id: str, changes: dict[str, Any]) -> Optional[dict[str, Any]]:
        with self.lock:
            doc = self.documents.get(doc_id)
            if doc is None:
                return None
            merged = {**doc, **copy.deepcopy(changes)}
            self._check_unique(merged, exclude_id=doc_id)
            merged["updatedAt"] = _now()
            self.documents[doc_id] = merged
            return copy.deepcopy(merged)

    def delete(self, doc_id: str) -> Optional[dict[str, Any]]:
        with self.lock:
            doc = self.documents.pop(doc_id, None)
            return copy.deepcopy(doc) if doc else None

    def snapshot(self) -> list[dict[str, Any]]:
        with self.lock:
            return [copy.deepcopy(doc) for doc in self.documents.values()]

    def clear(self) -> None:
        with self.lock:
            self.documents.clear()


class MemoryUserStore(BaseUserStore):
    """Users kept in a dict; email and phone number unique."""

    def __init__(self):
        self._users = _Collection("users", unique_fields=("email", "phoneNumber"))

    @property
    def provider_name(self) -> str:
        return "memory"

    async def create(self, document: dict[str, Any]) -> dict[str, Any]:
        return self._users.insert(document)

    async def find_by_id(self, user_id: str) -> Optional[dict[str, Any]]:
        return self._users.get(user_id)

    async def find_by_email(self, email: str) -> Optional[dict[str, Any]]:
        return self._users.find_one(email=email)

    async def find_by_email_or_phone(self, email: str, phone_number: str) -> Optional[dict[str, Any]]:
        return self._users.find_one(email=email) or self._users.find_one(phoneNumber=phone_number)

    async def update(self, user_id: str, changes: dict[str, Any]) -> Optional[dict[str, Any]]:
        return self._users.update(user_id, changes)

    def clear(self) -> None:
        self._users.clear()


class MemoryMenuStore(BaseMenuStore):
    """Menu items kept in a dict; names unique."""

    def __init__(self):
        self._items = _Collection("menu_items", unique_fields=("name",))

    @property
    def provider_name(self) -> str:
        return "memory"

    async def create(self, document: dict[str, Any]) -> dict[str, Any]:
        return self._items.insert(document)

    async def find_by_id(self, item_id: str) -> Optional[dict[str, Any]]:
        return self._items.get(item_id)

    async def find_by_name(self, name: str) -> Optional[dict[str, Any]]:
        return self._items.find_one(name=name)

    async def update(self, item_id: str, changes: dict[str, Any]) -> Optional[dict[str, Any]]:
        return self._items.update(item_id, changes)

    async def delete(self, item_id: str) -> Optional[dict[str, Any]]:
        return self._items.delete(item_id)

    def _matches(self, doc: dict[str, Any], query: MenuQuery) -> bool:
        if query.category is not None and doc.get("category") != query.category:
            return False
        if query.is_available is not None and doc.get("isAvailable") != query.is_available:
            return False
        price = doc.get("price")
        if query.min_price is not None and (price is None or price < query.min_price):
            return False
        if query.max_price is not None and (price is None or price > query.max_price):
            return False
        return True

    def _select(self, query: MenuQuery) -> list[tuple[float, dict[str, Any]]]:
        selected = []
        for doc in self._items.snapshot():
            if not self._matches(doc, query):
                continue
            score = 0.0
            if query.is_search:
                score = text_score(doc, query.text)
                if score <= 0:
                    continue
            selected.append((score, doc))
        return selected

    async def find(self, query: MenuQuery) -> list[dict[str, Any]]:
        selected = self._select(query)

        if query.is_search:
            selected.sort(key=lambda pair: pair[1]["createdAt"], reverse=True)
            selected.sort(key=lambda pair: pair[0], reverse=True)
        else:
            selected.sort(
                key=lambda pair: _sort_key(pair[1].get(query.sort_field)),
                reverse=query.sort_direction == SORT_DESCENDING,
            )

        page = [doc for _, doc in selected[query.skip:query.skip + query.limit]]

        if query.fields:
            keep = {"id", *query.fields}
            page = [{k: v for k, v in doc.items() if k in keep} for doc in page]
        return page

    async def count(self, query: MenuQuery) -> int:
        return len(self._select(query))

    async def distinct_categories(self) -> list[str]:
        return list({doc["category"] for doc in self._items.snapshot() if doc.get("category")})

    async def price_stats(self) -> PriceStats:
        prices = [doc["price"] for doc in self._items.snapshot() if doc.get("price") is not None]
        if not prices:
            return PriceStats()
        return PriceStats(
            min_price=min(prices),
            max_price=max(prices),
            avg_price=sum(prices) / len(prices),
        )

    def clear(self) -> None:
        self._items.clear()


class MemoryDocumentStore(BaseDocumentStore):
    """
    In-process store for development and tests.

    Example:
        >>> store = MemoryDocumentStore()
        >>> item = await store.menu.create({"name": "Puff Puff", "price": 500, "category": "APPETIZERS"})
        >>> len(item["id"])
        24
    """

    def __init__(self):
        self.users = MemoryUserStore()
        self.menu = MemoryMenuStore()

    @property
    def provider_name(self) -> str:
        return "memory"

    async def initialize(self) -> None:
        logger.info("MemoryDocumentStore ready (data is not persisted)")

    async def health_check(self) -> bool:
        return True

    def clear(self) -> None:
        """Drop every document."""
        self.users.clear()
        self.menu.clear()
