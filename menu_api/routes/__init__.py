"""
API Routers

    - menu: /api/v1/menu catalog endpoints
    - auth: /api/v1/auth account endpoints
"""

from menu_api.routes.auth import router as auth_router
from menu_api.routes.menu import router as menu_router

__all__ = ["auth_router", "menu_router"]
