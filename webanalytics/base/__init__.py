# ==============================================================================
# Base Abstract Classes
# ==============================================================================
"""
Abstract base classes defining the contracts for the ports-and-adapters architecture.

Concrete implementations live in infrastructure/ and are selected by
services/factory.py from configuration.
"""

from webanalytics.base.cache import Cache
from webanalytics.base.geo import GeoLookup
from webanalytics.base.repositories import EventStore

__all__ = [
    "Cache",
    "EventStore",
    "GeoLookup",
]
