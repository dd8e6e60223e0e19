"""
Document Models

Shapes of the records kept in the document store. Stored keys are the
camelCase names used on the wire, so query, sort and projection field names
are the same everywhere:

    users:       name, email, phoneNumber, role, passwordHash, isActive,
                 lastLogin, createdAt, updatedAt
    menu_items:  name, price, description, featuredImage, images,
                 isAvailable, ingredients, category, preparationTime,
                 nutritionalInfo, allergens, spicyLevel, createdAt, updatedAt

Identifiers (`_id` in MongoDB) surface as `id`; timestamps are set by the
store.
"""

import enum
import re
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class UserRole(str, enum.Enum):
    """Account roles."""
    ADMIN = "admin"
    USER = "user"


class MenuCategory(str, enum.Enum):
    """Recognized menu sections. Stored upper case."""
    SOUPS_AND_SWALLOW = "SOUPS & SWALLOW"
    BREAD_LOVERS_CORNER = "BREAD LOVERS CORNER"
    PEPPERSOUP_CORNER = "PEPPERSOUP CORNER"
    APPETIZERS = "APPETIZERS"
    DESSERT = "DESSERT"
    BEVERAGE = "BEVERAGE"
    LIGHT_FOOD_OPTIONS = "LIGHT FOOD OPTIONS"
    BREAKFAST_MENU = "BREAKFAST MENU"
    SPECIAL = "SPECIAL"

    @classmethod
    def normalize(cls, value: Any) -> Any:
        """Canonical (upper) case for category input; other types pass through."""
        if isinstance(value, str):
            return " ".join(value.split()).upper()
        return value


class Allergen(str, enum.Enum):
    GLUTEN = "gluten"
    DAIRY = "dairy"
    NUTS = "nuts"
    EGGS = "eggs"
    SOY = "soy"
    SHELLFISH = "shellfish"
    FISH = "fish"


EMAIL_PATTERN = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$")
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{0,15}$")

CATEGORY_VALUES = [c.value for c in MenuCategory]


class DocumentModel(BaseModel):
    """camelCase aliases, trimmed strings, enums stored as plain values."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
    )

    def to_document(self, **kwargs) -> dict[str, Any]:
        """Dump with stored (camelCase) keys."""
        return self.model_dump(by_alias=True, **kwargs)


# =============================================================================
# USERS
# =============================================================================

class UserDocument(DocumentModel):
    """A user account as persisted."""

    name: str = Field(..., min_length=2, max_length=50)
    email: str
    phone_number: str
    role: UserRole = UserRole.USER
    password_hash: str = Field(..., min_length=1)
    is_active: bool = True
    last_login: Optional[datetime] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Please enter a valid email")
        return v

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        if not PHONE_PATTERN.match(v):
            raise ValueError("Please enter a valid phone number")
        return v


# =============================================================================
# MENU ITEMS
# =============================================================================

class NutritionalInfo(DocumentModel):
    """Optional per-serving nutrition figures."""

    model_config = ConfigDict(extra="forbid")

    calories: Optional[float] = Field(None, ge=0)
    protein: Optional[float] = Field(None, ge=0)
    carbs: Optional[float] = Field(None, ge=0)
    fat: Optional[float] = Field(None, ge=0)


class MenuItemFields(DocumentModel):
    """
    Field constraints shared by menu item creation and update.

    Subclasses decide which fields are required.
    """

    @field_validator("category", mode="before", check_fields=False)
    @classmethod
    def normalize_category(cls, v: Any) -> Any:
        return MenuCategory.normalize(v)

    @field_validator("images", check_fields=False)
    @classmethod
    def validate_images(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is not None and any(not url for url in v):
            raise ValueError("All image URLs must be valid strings")
        return v

    @field_validator("allergens", mode="before", check_fields=False)
    @classmethod
    def normalize_allergens(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [a.strip().lower() if isinstance(a, str) else a for a in v]
        return v


class MenuItemDocument(MenuItemFields):
    """A menu item as persisted."""

    name: str = Field(..., min_length=2, max_length=100)
    price: float = Field(..., ge=0, strict=True, allow_inf_nan=False)
    description: Optional[str] = Field(None, max_length=1000)
    featured_image: Optional[str] = None
    images: list[str] = Field(default_factory=list)
    is_available: bool = True
    ingredients: Optional[str] = Field(None, max_length=500)
    category: MenuCategory
    preparation_time: Optional[int] = Field(None, ge=1, le=180)
    nutritional_info: Optional[NutritionalInfo] = None
    allergens: list[Allergen] = Field(default_factory=list)
    spicy_level: int = Field(default=0, ge=0, le=5)


# =============================================================================
# PUBLIC VIEWS
# =============================================================================

USER_PUBLIC_FIELDS = (
    "id", "name", "email", "phoneNumber", "role",
    "isActive", "lastLogin", "createdAt", "updatedAt",
)


def public_user(doc: dict[str, Any]) -> dict[str, Any]:
    """User fields safe to return; never includes the password hash."""
    return {key: doc.get(key) for key in USER_PUBLIC_FIELDS}
