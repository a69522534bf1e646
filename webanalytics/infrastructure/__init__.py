# ==============================================================================
# Infrastructure Adapters
# ==============================================================================
"""
Adapters for external services (ports-and-adapters architecture).

This module contains concrete implementations of the base/ interfaces:
- cache/ - Cache adapters (Valkey/Redis)
- geo/ - IP geolocation adapters (ipapi.co, cached, null)
- repositories/ - Event store adapters (PostgreSQL, in-memory)
"""

from webanalytics.infrastructure.cache import ValkeyCache, check_valkey_connection
from webanalytics.infrastructure.geo import (
    CachedGeoLookup,
    IpApiGeoLookup,
    NullGeoLookup,
)
from webanalytics.infrastructure.repositories import (
    InMemoryEventStore,
    PostgreSQLEventStore,
    check_postgresql_connection,
)

__all__ = [
    # Cache
    "ValkeyCache",
    "check_valkey_connection",
    # Geo
    "CachedGeoLookup",
    "IpApiGeoLookup",
    "NullGeoLookup",
    # Repositories
    "InMemoryEventStore",
    "PostgreSQLEventStore",
    "check_postgresql_connection",
]
