"""
Pydantic Schemas for Request/Response Validation
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from menu_api.models import (
    Allergen,
    MenuCategory,
    MenuItemDocument,
    MenuItemFields,
    NutritionalInfo,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class RegisterRequest(CamelModel):
    """
    Account registration (also used for admin creation).

    Fields are optional here so a missing value is reported together with
    blank ones as "<field> is required".
    """
    name: Optional[str] = Field(None, examples=["Ada Obi"])
    email: Optional[str] = Field(None, examples=["ada@example.com"])
    phone_number: Optional[str] = Field(None, examples=["+2348012345678"])
    password: Optional[str] = Field(None, examples=["s3cret-pass"])


class LoginRequest(CamelModel):
    email: Optional[str] = Field(None, examples=["ada@example.com"])
    password: Optional[str] = Field(None, examples=["s3cret-pass"])


class MenuItemCreate(MenuItemDocument):
    """Request schema for creating a menu item. Unknown keys are ignored."""


class MenuItemUpdate(MenuItemFields):
    """
    Partial update of a menu item.

    Same constraints as creation, every field optional. Unknown fields are
    rejected and fields required at creation may not be set to null.
    """

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    price: Optional[float] = Field(None, ge=0, strict=True, allow_inf_nan=False)
    description: Optional[str] = Field(None, max_length=1000)
    featured_image: Optional[str] = None
    images: Optional[list[str]] = None
    is_available: Optional[bool] = None
    ingredients: Optional[str] = Field(None, max_length=500)
    category: Optional[MenuCategory] = None
    preparation_time: Optional[int] = Field(None, ge=1, le=180)
    nutritional_info: Optional[NutritionalInfo] = None
    allergens: Optional[list[Allergen]] = None
    spicy_level: Optional[int] = Field(None, ge=0, le=5)

    @field_validator("name", "price", "category", "is_available", "images", "allergens", "spicy_level")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("may not be null")
        return v


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class UserPublic(CamelModel):
    """User as returned to clients."""
    id: str
    name: str
    email: str
    phone_number: str
    role: str
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuthResponse(CamelModel):
    """Response after registration, admin creation or login."""
    success: bool = True
    message: str
    token: Optional[str] = None
    user: UserPublic


class ProfileResponse(CamelModel):
    success: bool = True
    user: UserPublic


class PriceRange(CamelModel):
    min_price: float
    max_price: float
    avg_price: float


class PriceRangeResponse(CamelModel):
    success: bool = True
    data: PriceRange


class CategoriesResponse(CamelModel):
    success: bool = True
    data: list[str]


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    message: str
    errors: Optional[list[str]] = None


class HealthResponse(BaseModel):
    """Liveness and store reachability."""
    success: bool
    message: str
    timestamp: datetime
    uptime: float
    database: str
