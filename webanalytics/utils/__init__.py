# ==============================================================================
# Web Analytics Utilities
# ==============================================================================
"""
Shared utilities: configuration, schema management, retry and logging setup.
"""

from webanalytics.utils.config import (
    AnalyticsSettings,
    GeoSettings,
    PostgresSettings,
    Settings,
    ValkeySettings,
    get_settings,
)
from webanalytics.utils.db import (
    ensure_schema,
    render_schema_sql,
    reset_schema,
)
from webanalytics.utils.logging_setup import configure_logging

__all__ = [
    # Config
    "AnalyticsSettings",
    "GeoSettings",
    "PostgresSettings",
    "Settings",
    "ValkeySettings",
    "get_settings",
    # Database
    "ensure_schema",
    "render_schema_sql",
    "reset_schema",
    # Logging
    "configure_logging",
]
