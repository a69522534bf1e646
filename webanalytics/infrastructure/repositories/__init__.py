# ==============================================================================
# Event Store Adapters
# ==============================================================================
"""
Adapters implementing the EventStore interface from base/repositories.py.

Currently supported:
- PostgreSQL (postgresql.py)
- In-memory (memory.py), for tests and local demos
"""

from webanalytics.infrastructure.repositories.memory import InMemoryEventStore
from webanalytics.infrastructure.repositories.postgresql import (
    PostgreSQLEventStore,
    check_postgresql_connection,
)

__all__ = [
    "InMemoryEventStore",
    "PostgreSQLEventStore",
    "check_postgresql_connection",
]
