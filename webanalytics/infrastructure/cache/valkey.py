# ==============================================================================
# Valkey Cache Implementation
# ==============================================================================
"""
Valkey/Redis implementation of the Cache interface, tuned for geo lookups.

The only consumer sits on the ingestion path, so a slow or unreachable
Valkey must cost at most one short socket timeout per call:
- Sub-second connect and read timeouts
- No client-side retries (a miss just falls through to the geo API)
- Values stored as JSON strings; undecodable values read as a miss
"""

import json
import logging

import redis
from redis.backoff import NoBackoff
from redis.retry import Retry

from webanalytics.base import Cache
from webanalytics.utils.config import get_settings

logger = logging.getLogger(__name__)

# Per-call socket budget for cache reads and writes on the ingestion path
CACHE_SOCKET_TIMEOUT = 0.25  # seconds


def _connect(url: str, socket_timeout: float, retries: int) -> redis.Redis:
    return redis.from_url(
        url,
        decode_responses=True,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
        retry=Retry(NoBackoff(), retries),
    )


class ValkeyCache(Cache):
    """
    JSON-over-Valkey key/value cache with TTL.

    Usage:
        cache = ValkeyCache(settings.valkey.url)
        cache.set("geo:8.8.8.8", {"city": "Mountain View"}, ttl_seconds=3600)
        cache.get("geo:8.8.8.8")

    Errors from redis-py (ConnectionError, TimeoutError) propagate; callers
    decide whether a cache failure matters.
    """

    def __init__(
        self,
        url: str | None = None,
        socket_timeout: float = CACHE_SOCKET_TIMEOUT,
        retries: int = 0,
    ):
        """
        Args:
            url: Valkey/Redis connection URL. If None, uses settings.
            socket_timeout: Connect and read timeout in seconds
            retries: redis-py retries after a failed command (default: none)
        """
        self._url = url or get_settings().valkey.url
        self._client = _connect(self._url, socket_timeout, retries)

    def get(self, key: str) -> dict | None:
        raw = self._client.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring undecodable cache value under %s", key)
            return None

    def set(self, key: str, value: dict, ttl_seconds: int | None = None) -> None:
        self._client.set(key, json.dumps(value), ex=ttl_seconds)

    def delete(self, key: str) -> bool:
        return bool(self._client.delete(key))

    def delete_pattern(self, pattern: str) -> int:
        deleted = 0
        for key in self._client.scan_iter(match=pattern):
            deleted += self._client.delete(key)
        return deleted

    def ping(self) -> bool:
        """True if Valkey answers a PING."""
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False

    def close(self) -> None:
        self._client.close()


def check_valkey_connection() -> bool:
    """Check if the configured Valkey is reachable (5s budget, for CLI use)."""
    cache = ValkeyCache(get_settings().valkey.url, socket_timeout=5)
    try:
        return cache.ping()
    finally:
        cache.close()
