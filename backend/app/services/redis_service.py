"""
Optional Redis backing for the summary cache and request rate limiting.

With REDIS_URL empty, or Redis unreachable, every helper here degrades to a
no-op: cache reads miss, writes report False and the limiter allows all.
After a failed connect or command no reconnect is attempted for
REDIS_RETRY_SECONDS, so a dead server costs one timeout per window rather
than one per request.
"""

import json
import time
from typing import Any, Optional

import redis

from app.config import settings
from app.services.logging_service import logger

REDIS_RETRY_SECONDS = 30

# Connected client, created on first successful use
redis_client: Optional[redis.Redis] = None
# Monotonic time before which no reconnect is attempted
_retry_after = 0.0


def _mark_unavailable(error: Exception) -> None:
    global redis_client, _retry_after

    redis_client = None
    _retry_after = time.monotonic() + REDIS_RETRY_SECONDS
    logger.warning(
        "Redis unavailable, caching and rate limiting disabled",
        error=str(error),
        retry_in_seconds=REDIS_RETRY_SECONDS
    )


def get_redis_client() -> Optional[redis.Redis]:
    """Shared client, or None when Redis is disabled or recently failed."""
    global redis_client

    if not settings.REDIS_URL:
        return None
    if redis_client is not None:
        return redis_client
    if time.monotonic() < _retry_after:
        return None

    try:
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            health_check_interval=30
        )
        client.ping()
    except redis.RedisError as e:
        _mark_unavailable(e)
        return None

    redis_client = client
    logger.info("Redis connected", redis_url=settings.REDIS_URL.rsplit("@", 1)[-1])
    return redis_client


def is_redis_available() -> bool:
    return get_redis_client() is not None


class RedisCache:
    """
    JSON values under ``<prefix>:<key>``.

    Redis errors are logged and reported as a miss (``get``), False (``set``)
    or None (``increment``) so callers never fail because of the cache.
    """

    def __init__(self, prefix: str = "cache"):
        self.prefix = prefix

    @property
    def client(self) -> Optional[redis.Redis]:
        return get_redis_client()

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def get(self, key: str) -> Optional[Any]:
        client = self.client
        if client is None:
            return None

        try:
            raw = client.get(self._make_key(key))
            return json.loads(raw) if raw else None
        except (redis.ConnectionError, redis.TimeoutError) as e:
            _mark_unavailable(e)
            return None
        except (redis.RedisError, ValueError) as e:
            logger.warning("Cache read failed", key=self._make_key(key), error=str(e))
            return None

    def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Store ``value`` as JSON for ``ttl`` seconds."""
        client = self.client
        if client is None:
            return False

        try:
            client.setex(self._make_key(key), ttl, json.dumps(value))
        except (redis.ConnectionError, redis.TimeoutError) as e:
            _mark_unavailable(e)
            return False
        except (redis.RedisError, TypeError) as e:
            logger.warning("Cache write failed", key=self._make_key(key), error=str(e))
            return False
        return True

    def increment(self, key: str, amount: int = 1, ttl: Optional[int] = None) -> Optional[int]:
        """
        Add ``amount`` to a counter and return the new value.

        ``ttl`` is applied only while the key has no expiry, which starts a
        fixed window on the first increment.
        """
        client = self.client
        if client is None:
            return None

        full_key = self._make_key(key)
        try:
            value = client.incrby(full_key, amount)
            # TTL of -1 means no expiry set yet
            if ttl and client.ttl(full_key) < 0:
                client.expire(full_key, ttl)
        except (redis.ConnectionError, redis.TimeoutError) as e:
            _mark_unavailable(e)
            return None
        except redis.RedisError as e:
            logger.warning("Counter increment failed", key=full_key, error=str(e))
            return None
        return value


class RateLimiter:
    """Fixed-window request counter per identifier (token tail or client IP)."""

    def __init__(self, max_requests: int = 60, window_seconds: int = 60):
        self.cache = RedisCache(prefix="ratelimit")
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    def is_allowed(self, identifier: str) -> bool:
        """Count this request; False once the window's budget is spent."""
        current = self.cache.increment(identifier, ttl=self.window_seconds)
        return current is None or current <= self.max_requests

    def get_remaining(self, identifier: str) -> int:
        current = self.cache.get(identifier)
        if current is None:
            return self.max_requests
        return max(0, self.max_requests - int(current))


summary_cache = RedisCache(prefix="summary")
rate_limiter = RateLimiter(max_requests=settings.RATE_LIMIT_PER_MINUTE, window_seconds=60)
