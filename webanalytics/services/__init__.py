# ==============================================================================
# Application Services
# ==============================================================================
"""
Services composing the core logic with the infrastructure adapters.

- IngestionService: collect and heartbeat events
- AggregationEngine: dashboard views
- factory: builds both from configuration
"""

from webanalytics.services.aggregation import AggregationEngine
from webanalytics.services.factory import (
    get_aggregation_engine,
    get_event_store,
    get_geo_lookup,
    get_ingestion_service,
)
from webanalytics.services.ingestion import IngestionService, client_ip_from_headers

__all__ = [
    "AggregationEngine",
    "IngestionService",
    "client_ip_from_headers",
    "get_aggregation_engine",
    "get_event_store",
    "get_geo_lookup",
    "get_ingestion_service",
]
