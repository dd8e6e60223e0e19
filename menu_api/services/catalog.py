"""
Menu Catalog Service

Creates, reads, updates and deletes menu items and answers listing
requests. Listing parameters arrive as loosely-typed query strings and are
translated into a MenuQuery:

    q            full-text search over name/description/ingredients
    category     exact match after normalizing to the stored (upper) case
    isAvailable  boolean filter
    minPrice     inclusive lower price bound
    maxPrice     inclusive upper price bound
    sortBy       one of ALLOWED_SORT_FIELDS, else createdAt
    sortOrder    "asc" or anything else for descending
    page         clamped to >= 1
    limit        clamped to [1, 50]
    fields       comma-separated projection, filtered by an allow-list
    includeMeta  "true" adds distinct categories and price statistics

Every store call goes through db_operation_with_timeout.
"""

import asyncio
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import ValidationError

from menu_api.core.exceptions import ConflictError, InvalidInputError, NotFoundError
from menu_api.core.resilience import db_operation_with_timeout
from menu_api.models import MenuCategory
from menu_api.schemas import MenuItemCreate, MenuItemUpdate
from menu_api.services.storage import (
    SORT_ASCENDING,
    SORT_DESCENDING,
    BaseMenuStore,
    MenuQuery,
    PriceStats,
    get_document_store,
)

logger = logging.getLogger(__name__)

ALLOWED_SORT_FIELDS = ("name", "price", "createdAt", "updatedAt", "category")
DEFAULT_SORT_FIELD = "createdAt"

ALLOWED_FIELDS = (
    "name", "price", "description", "featuredImage",
    "images", "isAvailable", "ingredients", "category",
    "preparationTime", "nutritionalInfo", "allergens", "spicyLevel",
    "createdAt", "updatedAt",
)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 50

IMMUTABLE_FIELDS = ("id", "_id", "createdAt", "updatedAt", "created_at", "updated_at")

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


@dataclass
class ListParams:
    """
    Listing parameters. Typed filters are already parsed; `received` keeps
    the query string values exactly as sent for the filters echo.
    """
    q: Optional[str] = None
    category: Optional[str] = None
    is_available: Optional[bool] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    sort_by: str = DEFAULT_SORT_FIELD
    sort_order: str = "desc"
    page: Any = DEFAULT_PAGE
    limit: Any = DEFAULT_LIMIT
    fields: Optional[str] = None
    include_meta: bool = False
    received: dict[str, str] = field(default_factory=dict)

    @property
    def search_text(self) -> Optional[str]:
        if self.q and self.q.strip():
            return self.q.strip()
        return None

    def echo_filters(self) -> dict[str, Any]:
        """Applied filters, using the raw query values when there are any."""
        return {
            "category": self.received.get("category", self.category),
            "isAvailable": self.received.get("isAvailable", self.is_available),
            "minPrice": self.received.get("minPrice", self.min_price),
            "maxPrice": self.received.get("maxPrice", self.max_price),
            "sortBy": self.sort_by,
            "sortOrder": self.sort_order,
        }


def parse_int(value: Any, default: int) -> int:
    """Integer from a query value, or the default when it is not one."""
    if value is None:
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def effective_page(page: Any) -> int:
    return max(1, parse_int(page, DEFAULT_PAGE))


def effective_limit(limit: Any) -> int:
    return min(MAX_LIMIT, max(1, parse_int(limit, DEFAULT_LIMIT)))


def select_fields(fields: Optional[str]) -> tuple[str, ...]:
    """Requested projection fields that are on the allow-list, in order."""
    if not fields:
        return ()
    requested = [f.strip() for f in fields.split(",")]
    return tuple(dict.fromkeys(f for f in requested if f in ALLOWED_FIELDS))


def build_menu_query(params: ListParams) -> MenuQuery:
    """
    Translate listing parameters into a store query.

    Raises:
        InvalidInputError: A price bound is NaN or infinite
    """
    bounds = (("minPrice", params.min_price), ("maxPrice", params.max_price))
    errors = [f"{name} must be a finite number" for name, bound in bounds
              if bound is not None and not math.isfinite(bound)]
    if errors:
        raise InvalidInputError("Validation failed", errors=errors)

    page = effective_page(params.page)
    limit = effective_limit(params.limit)

    sort_field = params.sort_by if params.sort_by in ALLOWED_SORT_FIELDS else DEFAULT_SORT_FIELD
    sort_direction = SORT_ASCENDING if params.sort_order == "asc" else SORT_DESCENDING

    category = None
    if params.category and params.category.strip():
        category = MenuCategory.normalize(params.category)

    return MenuQuery(
        text=params.search_text,
        category=category,
        is_available=params.is_available,
        min_price=params.min_price,
        max_price=params.max_price,
        sort_field=sort_field,
        sort_direction=sort_direction,
        skip=(page - 1) * limit,
        limit=limit,
        fields=select_fields(params.fields),
    )


def pagination_block(page: int, limit: int, total: int) -> dict[str, Any]:
    total_pages = math.ceil(total / limit) if total else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalItems": total,
        "itemsPerPage": limit,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }


def summarize_prices(stats: PriceStats) -> dict[str, float]:
    """Min floored, max ceiled, average to 2 decimals; 0 for an empty catalog."""
    return {
        "minPrice": math.floor(stats.min_price or 0),
        "maxPrice": math.ceil(stats.max_price or 0),
        "avgPrice": round(stats.avg_price or 0, 2),
    }


def validate_item_id(item_id: str) -> str:
    if not OBJECT_ID_PATTERN.match(item_id or ""):
        raise InvalidInputError("Invalid menu item ID")
    return item_id


class CatalogService:
    """Menu item operations over a menu store."""

    def __init__(self, store: BaseMenuStore):
        self.store = store

    # =========================================================================
    # LISTING
    # =========================================================================

    async def list_items(self, params: ListParams) -> dict[str, Any]:
        """Filtered, sorted, paginated listing with optional metadata."""
        query = build_menu_query(params)
        page = effective_page(params.page)

        tasks = [
            db_operation_with_timeout(lambda: self.store.find(query)),
            db_operation_with_timeout(lambda: self.store.count(query)),
        ]
        if params.include_meta:
            tasks.append(self._categories())
            tasks.append(self._price_stats())

        results = await asyncio.gather(*tasks)
        items, total = results[0], results[1]

        response: dict[str, Any] = {
            "success": True,
            "data": items,
            "pagination": pagination_block(page, query.limit, total),
        }

        if query.is_search:
            response["searchInfo"] = {
                "query": params.q,
                "resultsFound": len(items),
            }

        response["filters"] = params.echo_filters()

        if params.include_meta:
            response["metadata"] = {
                "categories": results[2],
                "priceRange": summarize_prices(results[3]),
            }

        logger.debug(
            f"Listed {len(items)}/{total} items (page {page}, limit {query.limit}, "
            f"search={query.is_search})"
        )
        return response

    async def _categories(self) -> list[str]:
        categories = await db_operation_with_timeout(self.store.distinct_categories)
        return sorted(categories)

    async def _price_stats(self) -> PriceStats:
        return await db_operation_with_timeout(self.store.price_stats)

    async def list_categories(self) -> list[str]:
        """Distinct categories in use, sorted."""
        return await self._categories()

    async def price_range(self) -> dict[str, float]:
        """Price statistics across the catalog."""
        return summarize_prices(await self._price_stats())

    # =========================================================================
    # SINGLE ITEMS
    # =========================================================================

    async def get_item(self, item_id: str) -> dict[str, Any]:
        validate_item_id(item_id)
        item = await db_operation_with_timeout(lambda: self.store.find_by_id(item_id))
        if not item:
            raise NotFoundError("Menu item not found")
        return item

    async def create_item(self, payload: MenuItemCreate) -> dict[str, Any]:
        """
        Add an item.

        Raises:
            ConflictError: An item with the same (trimmed) name exists
        """
        existing = await db_operation_with_timeout(lambda: self.store.find_by_name(payload.name))
        if existing:
            raise ConflictError("Menu item with this name already exists")

        document = payload.to_document(exclude_none=True)
        item = await db_operation_with_timeout(lambda: self.store.create(document))
        logger.info(f"Menu item created: {item['name']} ({item['id']})")
        return item

    async def update_item(self, item_id: str, updates: Any) -> dict[str, Any]:
        """
        Partially update an item.

        id and timestamps are stripped; the rest must satisfy MenuItemUpdate.

        Raises:
            InvalidInputError: Bad id or payload
            ConflictError: The new name belongs to another item
            NotFoundError: No such item
        """
        validate_item_id(item_id)
        if not isinstance(updates, dict):
            raise InvalidInputError("Request body must be a JSON object")

        payload = {k: v for k, v in updates.items() if k not in IMMUTABLE_FIELDS}
        try:
            validated = MenuItemUpdate.model_validate(payload)
        except ValidationError as e:
            raise InvalidInputError.from_validation_error(e)

        changes = validated.to_document(exclude_unset=True)

        if "name" in changes:
            clash = await db_operation_with_timeout(lambda: self.store.find_by_name(changes["name"]))
            if clash and clash["id"] != item_id:
                raise ConflictError("Menu item with this name already exists")

        item = await db_operation_with_timeout(lambda: self.store.update(item_id, changes))
        if not item:
            raise NotFoundError("Menu item not found")
        logger.info(f"Menu item updated: {item_id} ({', '.join(changes) or 'no fields'})")
        return item

    async def delete_item(self, item_id: str) -> dict[str, Any]:
        """Remove an item and return it."""
        validate_item_id(item_id)
        item = await db_operation_with_timeout(lambda: self.store.delete(item_id))
        if not item:
            raise NotFoundError("Menu item not found")
        logger.info(f"Menu item deleted: {item.get('name')} ({item_id})")
        return item


def get_catalog_service() -> CatalogService:
    """Catalog service bound to the active document store."""
    return CatalogService(get_document_store().menu)
