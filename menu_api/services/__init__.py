"""
                        Services Module

Contains the business logic services. Storage follows the hybrid pattern:
a MongoDB implementation for production and an in-memory one for
development and tests, selected by configuration.

Services:
    - accounts: registration, login, profile, admin creation
    - catalog: menu item CRUD and the listing/search query builder
    - storage: document store backends
"""

from menu_api.services.accounts import AccountService, get_account_service
from menu_api.services.catalog import CatalogService, ListParams, get_catalog_service

__all__ = [
    "AccountService",
    "CatalogService",
    "ListParams",
    "get_account_service",
    "get_catalog_service",
]
