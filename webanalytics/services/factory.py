# ==============================================================================
# Service Factory
# ==============================================================================
"""
Factory functions wiring services to their adapters from configuration.

ANALYTICS_STORE selects the event store implementation:
- "postgresql" (default): PostgreSQLEventStore
- "memory": InMemoryEventStore (process-local, for demos)

GEO_ENABLED / GEO_CACHE_ENABLED select the geo lookup chain.
"""

import logging
from functools import lru_cache

from webanalytics.base import Cache, EventStore, GeoLookup
from webanalytics.core.time_range import get_zone
from webanalytics.services.aggregation import AggregationEngine
from webanalytics.services.ingestion import IngestionService
from webanalytics.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)


def get_event_store(settings: Settings | None = None) -> EventStore:
    """
    Get a connected event store based on configuration.

    Raises:
        ValueError: If an unknown implementation is configured
        StorageError: If the store cannot be reached
    """
    settings = settings or get_settings()
    impl = settings.analytics.store

    match impl:
        case "postgresql":
            from webanalytics.infrastructure.repositories import PostgreSQLEventStore

            store = PostgreSQLEventStore(settings)
        case "memory":
            from webanalytics.infrastructure.repositories import InMemoryEventStore

            store = InMemoryEventStore()
        case _:
            raise ValueError(
                f"Unknown event store implementation: '{impl}'.\n"
                "Valid options are: postgresql, memory"
            )

    store.connect()
    return store


@lru_cache
def get_geo_cache(url: str, socket_timeout: float) -> Cache:
    """
    Get the process-wide Valkey cache for geo lookups.

    One connection pool per URL and timeout, shared by every service built
    in this process.
    """
    from webanalytics.infrastructure.cache import ValkeyCache

    return ValkeyCache(url, socket_timeout=socket_timeout)


def get_geo_lookup(settings: Settings | None = None) -> GeoLookup:
    """Build the geo lookup chain: null, ipapi.co, or ipapi.co behind Valkey."""
    from webanalytics.infrastructure.cache.valkey import CACHE_SOCKET_TIMEOUT
    from webanalytics.infrastructure.geo import CachedGeoLookup, IpApiGeoLookup, NullGeoLookup

    settings = settings or get_settings()
    if not settings.geo.enabled:
        return NullGeoLookup()

    lookup = IpApiGeoLookup(base_url=settings.geo.base_url, timeout=settings.geo.timeout_seconds)
    if not settings.geo.cache_enabled:
        return lookup

    # A cache round trip must stay well inside the API timeout
    socket_timeout = min(CACHE_SOCKET_TIMEOUT, settings.geo.timeout_seconds / 4)
    logger.info("Geo lookups cached in Valkey (ttl=%dh)", settings.geo.cache_ttl_hours)
    return CachedGeoLookup(
        lookup,
        get_geo_cache(settings.valkey.url, socket_timeout),
        ttl_seconds=settings.geo.cache_ttl_hours * 3600,
    )


def get_ingestion_service(
    store: EventStore | None = None, settings: Settings | None = None
) -> IngestionService:
    settings = settings or get_settings()
    return IngestionService(store or get_event_store(settings), get_geo_lookup(settings))


def get_aggregation_engine(
    store: EventStore | None = None, settings: Settings | None = None
) -> AggregationEngine:
    settings = settings or get_settings()
    return AggregationEngine(
        store or get_event_store(settings),
        tz=get_zone(settings.analytics.timezone),
        default_timeout=settings.analytics.query_timeout_seconds,
    )
