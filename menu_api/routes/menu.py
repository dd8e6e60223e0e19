"""
Menu catalog endpoints.

Reads are public; create, update and delete require an admin token.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status

from menu_api.dependencies import authenticate, authorize
from menu_api.models import UserRole
from menu_api.schemas import CategoriesResponse, ErrorResponse, MenuItemCreate, PriceRangeResponse
from menu_api.services.catalog import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    DEFAULT_SORT_FIELD,
    CatalogService,
    ListParams,
    get_catalog_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/menu", tags=["Menu"])

admin_only = [Depends(authenticate), Depends(authorize(UserRole.ADMIN.value))]

error_responses = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.get("", summary="List, search and filter menu items")
async def list_menu(
    request: Request,
    q: Optional[str] = Query(None, description="Full-text search"),
    category: Optional[str] = Query(None),
    is_available: Optional[bool] = Query(None, alias="isAvailable"),
    min_price: Optional[float] = Query(None, alias="minPrice", allow_inf_nan=False),
    max_price: Optional[float] = Query(None, alias="maxPrice", allow_inf_nan=False),
    sort_by: str = Query(DEFAULT_SORT_FIELD, alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    page: Optional[str] = Query(str(DEFAULT_PAGE)),
    limit: Optional[str] = Query(str(DEFAULT_LIMIT)),
    fields: Optional[str] = Query(None, description="Comma-separated projection"),
    include_meta: bool = Query(False, alias="includeMeta"),
    catalog: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    """
    Paginated listing. Page and limit are clamped rather than rejected;
    unknown sort fields fall back to createdAt.
    """
    params = ListParams(
        q=q,
        category=category,
        is_available=is_available,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
        fields=fields,
        include_meta=include_meta,
        received=dict(request.query_params),
    )
    return await catalog.list_items(params)


@router.get("/categories", response_model=CategoriesResponse)
async def list_categories(
    catalog: CatalogService = Depends(get_catalog_service),
) -> CategoriesResponse:
    return CategoriesResponse(data=await catalog.list_categories())


@router.get("/price-range", response_model=PriceRangeResponse)
async def price_range(
    catalog: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    """Floor of the lowest price, ceiling of the highest, mean to 2 places."""
    return {"success": True, "data": await catalog.price_range()}


@router.get("/{item_id}", responses=error_responses)
async def get_menu_item(
    item_id: str,
    catalog: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    return {"success": True, "data": await catalog.get_item(item_id)}


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=admin_only,
    responses={**error_responses, 409: {"model": ErrorResponse}},
)
async def create_menu_item(
    payload: MenuItemCreate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    item = await catalog.create_item(payload)
    return {"success": True, "message": "Menu item created successfully", "data": item}


@router.put(
    "/{item_id}",
    dependencies=admin_only,
    responses={**error_responses, 409: {"model": ErrorResponse}},
)
async def update_menu_item(
    item_id: str,
    updates: Any = Body(..., examples=[{"price": 2800, "isAvailable": False}]),
    catalog: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    """Partial update; id and timestamps in the body are ignored."""
    item = await catalog.update_item(item_id, updates)
    return {"success": True, "message": "Menu item updated successfully", "data": item}


@router.delete("/{item_id}", dependencies=admin_only, responses=error_responses)
async def delete_menu_item(
    item_id: str,
    catalog: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    item = await catalog.delete_item(item_id)
    return {"success": True, "message": "Menu item deleted successfully", "data": item}
