# ==============================================================================
# Geo Lookup Adapters
# ==============================================================================
"""
Implementations of the GeoLookup interface from base/geo.py.

Available implementations:
- IpApiGeoLookup: ipapi.co HTTP API
- CachedGeoLookup: Valkey-backed cache in front of another lookup
- NullGeoLookup: always empty, for GEO_ENABLED=false
"""

from webanalytics.infrastructure.geo.cached import CachedGeoLookup
from webanalytics.infrastructure.geo.ipapi import (
    EMPTY_GEO,
    LOCAL_GEO,
    IpApiGeoLookup,
    NullGeoLookup,
    is_local_address,
)

__all__ = [
    "CachedGeoLookup",
    "EMPTY_GEO",
    "IpApiGeoLookup",
    "LOCAL_GEO",
    "NullGeoLookup",
    "is_local_address",
]
