"""
Core module initialization.
Exports configuration and logging utilities.
"""

from menu_api.core.config import (
    get_settings,
    require_settings,
    setup_logging,
    Settings,
    EnvironmentMode,
    StorageBackend,
    RateLimitBackend,
)

__all__ = [
    "get_settings",
    "require_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "StorageBackend",
    "RateLimitBackend",
]
