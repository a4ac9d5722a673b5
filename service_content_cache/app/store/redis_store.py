"""
Redis-backed store adapter for rendered content.
"""

from typing import Optional, Protocol, Tuple

import redis.asyncio as redis

from shared.circuit_breaker import CircuitBreaker
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..models import ContentIdentifier


class StoreAdapter(Protocol):
    """Bucket-namespaced key-value store with TTL support."""

    @property
    def available(self) -> bool: ...

    async def get(self, bucket: str, key: ContentIdentifier) -> Tuple[Optional[str], bool]: ...

    async def set(self, bucket: str, key: ContentIdentifier, value: str, ttl: int) -> bool: ...

    async def delete(self, bucket: str, key: ContentIdentifier) -> bool: ...


class RedisStore:
    """Store adapter over a shared Redis instance.

    Backend failures never reach the caller: a failed read is reported as
    not found, a failed write or delete returns False. Calls go through a
    circuit breaker and the store reports itself unavailable while the
    breaker is blocking calls.
    """

    def __init__(
        self,
        redis_url: Optional[str],
        key_prefix: str = "tiny_cache",
        *,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        metrics: Optional[MetricsCollector] = None,
        client: Optional[redis.Redis] = None,
    ):
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.metrics = metrics
        self.logger = get_logger("content_cache.store.redis")
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            name="content_store",
        )
        self._redis: Optional[redis.Redis] = client

    @property
    def available(self) -> bool:
        """Whether the backend is configured and not blocked by the breaker."""
        if self._redis is None and not self.redis_url:
            return False
        return self.circuit_breaker.allows_calls()

    def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        return self._redis

    def make_key(self, bucket: str, key: ContentIdentifier) -> str:
        """Generate the Redis key for a bucket entry."""
        bucket_name = getattr(bucket, "value", bucket)
        return f"{self.key_prefix}:{bucket_name}:{key}"

    def _record_error(self, operation: str, cache_key: str, error: Exception):
        self.logger.warning(
            "Store operation failed",
            operation=operation,
            cache_key=cache_key,
            error=str(error),
        )
        if self.metrics:
            self.metrics.increment_counter("content_cache_store_errors_total", operation=operation)

    async def get(self, bucket: str, key: ContentIdentifier) -> Tuple[Optional[str], bool]:
        """Get a stored value and whether it was found."""
        cache_key = self.make_key(bucket, key)
        try:
            value = await self.circuit_breaker.call(self._get_redis().get, cache_key)
        except Exception as e:
            self._record_error("get", cache_key, e)
            return None, False

        if value is None:
            return None, False
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value, True

    async def set(self, bucket: str, key: ContentIdentifier, value: str, ttl: int) -> bool:
        """Store a value with a TTL in seconds, replacing any previous value."""
        cache_key = self.make_key(bucket, key)
        try:
            await self.circuit_breaker.call(self._get_redis().setex, cache_key, ttl, value)
        except Exception as e:
            self._record_error("set", cache_key, e)
            return False

        self.logger.debug("Stored rendered content", cache_key=cache_key, ttl=ttl)
        return True

    async def delete(self, bucket: str, key: ContentIdentifier) -> bool:
        """Delete a value. Deleting an absent key succeeds."""
        cache_key = self.make_key(bucket, key)
        try:
            await self.circuit_breaker.call(self._get_redis().delete, cache_key)
        except Exception as e:
            self._record_error("delete", cache_key, e)
            return False

        return True

    async def ping(self) -> bool:
        """Check Redis health."""
        try:
            return bool(await self._get_redis().ping())
        except Exception:
            return False

    async def close(self):
        """Close the Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
