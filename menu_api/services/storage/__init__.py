"""
Document Store Factory

Provides a single entry point for obtaining the document store. The rest of
the application stays agnostic about which implementation is active.

Usage:
    from menu_api.services.storage import get_document_store

    store = get_document_store()
    item = await store.menu.find_by_id(item_id)

Backend switching:
    - STORAGE_BACKEND=mongo  → MongoDocumentStore (MONGODB_URI)
    - STORAGE_BACKEND=memory → MemoryDocumentStore (no database needed)
"""

import logging
from functools import lru_cache

from menu_api.core.config import StorageBackend, get_settings
from menu_api.services.storage.base import (
    BaseDocumentStore,
    BaseMenuStore,
    BaseUserStore,
    MenuQuery,
    PriceStats,
    SORT_ASCENDING,
    SORT_DESCENDING,
)
from menu_api.services.storage.memory import MemoryDocumentStore
from menu_api.services.storage.mongo import MongoDocumentStore

logger = logging.getLogger(__name__)


@lru_cache()
def get_document_store() -> BaseDocumentStore:
    """
    Get the configured document store instance.

    The instance is cached so every request shares one connection pool
    (or one in-memory data set).
    """
    settings = get_settings()

    if settings.storage_backend == StorageBackend.MEMORY:
        logger.info("Document Store: Using MemoryDocumentStore")
        return MemoryDocumentStore()

    logger.info("Document Store: Using MongoDocumentStore")
    return MongoDocumentStore(settings.mongodb_uri, settings.mongodb_database)


def reset_document_store() -> None:
    """
    Clear the cached store instance.

    The next call to get_document_store() creates a new one.
    """
    get_document_store.cache_clear()
    logger.debug("Document store cache cleared")


__all__ = [
    "get_document_store",
    "reset_document_store",
    "BaseDocumentStore",
    "BaseMenuStore",
    "BaseUserStore",
    "MenuQuery",
    "PriceStats",
    "SORT_ASCENDING",
    "SORT_DESCENDING",
    "MemoryDocumentStore",
    "MongoDocumentStore",
]
