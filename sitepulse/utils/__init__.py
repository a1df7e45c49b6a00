# ==============================================================================
# SitePulse Utilities
# ==============================================================================
"""
Shared utilities for SitePulse.

This module exports configuration and database helpers.
"""

from sitepulse.utils.config import (
    AnalyticsSettings,
    ServerSettings,
    Settings,
    StoreSettings,
    get_settings,
)
from sitepulse.utils.db import (
    open_store,
    render_schema_sql,
    validate_identifier,
)

__all__ = [
    # Config
    "AnalyticsSettings",
    "ServerSettings",
    "Settings",
    "StoreSettings",
    "get_settings",
    # Database
    "open_store",
    "render_schema_sql",
    "validate_identifier",
]
