# ==============================================================================
# Analytics Errors
# ==============================================================================
"""
Exception taxonomy for the analytics engine.

- InvalidEventError: malformed ingestion input, raised before any store access
- StorageError: event store failure, scoped to the single call
- QueryTimeoutError: aggregation read exceeded its statement timeout

Unknown sessions on heartbeat and geo lookup failures are not exceptions:
the former is reported through HeartbeatResult, the latter is absorbed by
the geo adapter.
"""

from pydantic import ValidationError


class AnalyticsError(Exception):
    """Base class for analytics engine errors."""


class InvalidEventError(AnalyticsError, ValueError):
    """An ingestion event failed validation."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_validation_error(cls, kind: str, exc: ValidationError) -> "InvalidEventError":
        """Build from a pydantic ValidationError, keeping field locations."""
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        fields = ", ".join(e["field"] for e in errors) or "unknown"
        return cls(f"Invalid {kind} event ({fields})", errors)


class StorageError(AnalyticsError):
    """The event store failed to complete an operation."""


class QueryTimeoutError(StorageError):
    """An aggregation read was cancelled by its statement timeout."""
