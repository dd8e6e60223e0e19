"""
Document Store Abstract Base Classes

Defines the interface contract for the user and menu item stores. Both the
MongoDB implementation and the in-memory implementation must provide these
methods, so services behave identically whichever store is active.

Documents cross this boundary as plain dicts keyed by their stored
(camelCase) names, with the identifier under "id" as a 24-character hex
string.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


SORT_ASCENDING = 1
SORT_DESCENDING = -1


@dataclass(frozen=True)
class MenuQuery:
    """
    A translated catalog listing request.

    Attributes:
        text: Full-text search terms; when set, results are ordered by
            relevance then newest first and sort_field is ignored
        category: Exact category match
        is_available: Availability flag match
        min_price: Inclusive lower price bound
        max_price: Inclusive upper price bound
        sort_field: Field to order by when not searching
        sort_direction: SORT_ASCENDING or SORT_DESCENDING
        skip: Number of matching items to skip
        limit: Maximum number of items to return
        fields: Projection; empty means full documents
    """
    text: Optional[str] = None
    category: Optional[str] = None
    is_available: Optional[bool] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    sort_field: str = "createdAt"
    sort_direction: int = SORT_DESCENDING
    skip: int = 0
    limit: int = 10
    fields: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_search(self) -> bool:
        return bool(self.text)


@dataclass
class PriceStats:
    """Raw price aggregates; None values when the catalog is empty."""
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    avg_price: Optional[float] = None


class BaseUserStore(ABC):
    """
    Abstract base class for user account storage.

    Implementations enforce unique email and phone number and raise
    ConflictError on violation.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the store name (e.g., "mongo", "memory")."""

    @abstractmethod
    async def create(self, document: dict[str, Any]) -> dict[str, Any]:
        """Insert a user; returns it with id and timestamps."""

    @abstractmethod
    async def find_by_id(self, user_id: str) -> Optional[dict[str, Any]]:
        """Look up a user by id."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[dict[str, Any]]:
        """Look up a user by (normalized) email."""

    @abstractmethod
    async def find_by_email_or_phone(self, email: str, phone_number: str) -> Optional[dict[str, Any]]:
        """First user holding either the email or the phone number."""

    @abstractmethod
    async def update(self, user_id: str, changes: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Apply changes; returns the updated user or None if unknown."""


class BaseMenuStore(ABC):
    """
    Abstract base class for menu item storage.

    Implementations enforce unique item names and raise ConflictError on
    violation.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the store name (e.g., "mongo", "memory")."""

    @abstractmethod
    async def create(self, document: dict[str, Any]) -> dict[str, Any]:
        """Insert an item; returns it with id and timestamps."""

    @abstractmethod
    async def find_by_id(self, item_id: str) -> Optional[dict[str, Any]]:
        """Look up an item by id."""

    @abstractmethod
    async def find_by_name(self, name: str) -> Optional[dict[str, Any]]:
        """Exact (case-sensitive) name lookup."""

    @abstractmethod
    async def update(self, item_id: str, changes: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Apply changes; returns the updated item or None if unknown."""

    @abstractmethod
    async def delete(self, item_id: str) -> Optional[dict[str, Any]]:
        """Remove an item; returns the removed document or None."""

    @abstractmethod
    async def find(self, query: MenuQuery) -> list[dict[str, Any]]:
        """One page of items matching the query."""

    @abstractmethod
    async def count(self, query: MenuQuery) -> int:
        """Number of items matching the query filters (ignores paging)."""

    @abstractmethod
    async def distinct_categories(self) -> list[str]:
        """Categories in use."""

    @abstractmethod
    async def price_stats(self) -> PriceStats:
        """Minimum, maximum and mean price across all items."""


class BaseDocumentStore(ABC):
    """Owns the connection and hands out the two collections."""

    users: BaseUserStore
    menu: BaseMenuStore

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the store name."""

    async def initialize(self) -> None:
        """Prepare the store (connect, create indexes)."""

    async def close(self) -> None:
        """Release connections."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify the store is reachable."""
