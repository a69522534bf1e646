# ==============================================================================
# Cached Geo Lookup
# ==============================================================================
"""
Cache-aside decorator for any GeoLookup.

Results are stored under "geo:{ip}" with a TTL. Empty results are not
cached so a transient API failure is retried on the next new session.
The lookup itself must never raise:
- A cache read or write error is logged, and the cache is then skipped
  for a cooldown period so a dead Valkey costs one socket timeout, not one
  per collect
- A cached entry that does not validate as a GeoLocation is dropped and
  the inner lookup is used instead
"""

import logging
import time
from typing import Any, Callable

from pydantic import ValidationError
from redis.exceptions import RedisError

from webanalytics.base import Cache, GeoLookup
from webanalytics.core.models import GeoLocation

logger = logging.getLogger(__name__)

GEO_KEY_PREFIX = "geo:"

# How long to stop talking to the cache after it fails
CACHE_COOLDOWN_SECONDS = 30.0


def geo_cache_key(ip: str) -> str:
    return f"{GEO_KEY_PREFIX}{ip}"


class CachedGeoLookup(GeoLookup):
    """Wraps a GeoLookup with a Cache keyed by IP address."""

    def __init__(
        self,
        inner: GeoLookup,
        cache: Cache,
        ttl_seconds: int = 24 * 3600,
        cooldown_seconds: float = CACHE_COOLDOWN_SECONDS,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.inner = inner
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.cooldown_seconds = cooldown_seconds
        self._monotonic = monotonic
        self._skip_cache_until = 0.0

    @property
    def cache_available(self) -> bool:
        return self._monotonic() >= self._skip_cache_until

    def _cache_failed(self, action: str, key: str, error: RedisError) -> None:
        logger.warning(
            "Geo cache %s failed for %s, bypassing cache for %.0fs: %s",
            action,
            key,
            self.cooldown_seconds,
            error,
        )
        self._skip_cache_until = self._monotonic() + self.cooldown_seconds

    def _read(self, key: str) -> GeoLocation | None:
        try:
            cached: Any = self.cache.get(key)
        except RedisError as e:
            self._cache_failed("read", key, e)
            return None
        if cached is None:
            return None

        try:
            return GeoLocation.model_validate(cached)
        except (ValidationError, TypeError) as e:
            logger.warning("Discarding malformed geo cache entry %s: %s", key, e)

        try:
            self.cache.delete(key)
        except RedisError as e:
            self._cache_failed("delete", key, e)
        return None

    def lookup(self, ip: str | None) -> GeoLocation:
        if not ip or not self.cache_available:
            return self.inner.lookup(ip)

        key = geo_cache_key(ip.strip())
        cached = self._read(key)
        if cached is not None:
            return cached

        geo = self.inner.lookup(ip)
        if geo.is_empty or not self.cache_available:
            return geo

        try:
            self.cache.set(key, geo.model_dump(), ttl_seconds=self.ttl_seconds)
        except RedisError as e:
            self._cache_failed("write", key, e)
        return geo

    def clear(self) -> int:
        """Remove every cached lookup. Returns the number of keys deleted."""
        return self.cache.delete_pattern(f"{GEO_KEY_PREFIX}*")
