"""
Unit tests for the Redis store adapter.
"""

import pytest
from unittest.mock import AsyncMock, patch

from service_content_cache.app.models import CacheBucket
from service_content_cache.app.store.redis_store import RedisStore
from shared.metrics import MetricsCollector


class TestRedisStore:
    """Test cases for RedisStore."""

    @pytest.fixture
    def redis_client(self):
        """Mock Redis client."""
        return AsyncMock()

    @pytest.fixture
    def redis_store(self, redis_client):
        """Create RedisStore instance with a mocked client."""
        return RedisStore("redis://localhost:6379/0", client=redis_client, failure_threshold=2)

    def test_make_key_uses_bucket_value(self, redis_store):
        """Test keys are namespaced by prefix and bucket."""
        assert redis_store.make_key(CacheBucket.EMIT, 42) == "tiny_cache:the_content:42"
        assert redis_store.make_key("get_the_content", "abc") == "tiny_cache:get_the_content:abc"

    @pytest.mark.asyncio
    async def test_get_hit(self, redis_store, redis_client):
        """Test a stored value is reported as found."""
        redis_client.get.return_value = "<p>cached</p>"

        value, found = await redis_store.get(CacheBucket.RETURN, 42)

        assert (value, found) == ("<p>cached</p>", True)
        redis_client.get.assert_awaited_once_with("tiny_cache:get_the_content:42")

    @pytest.mark.asyncio
    async def test_get_decodes_bytes(self, redis_store, redis_client):
        """Test byte responses are decoded."""
        redis_client.get.return_value = b"<p>bytes</p>"

        assert await redis_store.get(CacheBucket.RETURN, 42) == ("<p>bytes</p>", True)

    @pytest.mark.asyncio
    async def test_get_empty_string_is_found(self, redis_store, redis_client):
        """Test an empty cached body still counts as a hit."""
        redis_client.get.return_value = ""

        assert await redis_store.get(CacheBucket.RETURN, 42) == ("", True)

    @pytest.mark.asyncio
    async def test_get_miss(self, redis_store, redis_client):
        """Test a missing key is reported as not found."""
        redis_client.get.return_value = None

        assert await redis_store.get(CacheBucket.RETURN, 42) == (None, False)

    @pytest.mark.asyncio
    async def test_get_error_is_a_miss(self, redis_client):
        """Test backend errors are reported as not found and counted."""
        metrics = MetricsCollector("content_cache")
        redis_store = RedisStore("redis://localhost:6379/0", client=redis_client, metrics=metrics)
        redis_client.get.side_effect = ConnectionError("down")

        assert await redis_store.get(CacheBucket.RETURN, 42) == (None, False)
        assert metrics.get_counter_value("content_cache_store_errors_total", operation="get") == 1

    @pytest.mark.asyncio
    async def test_set_uses_setex(self, redis_store, redis_client):
        """Test values are written with their TTL."""
        assert await redis_store.set(CacheBucket.EMIT, 42, "<p>x</p>", 86400) is True

        redis_client.setex.assert_awaited_once_with("tiny_cache:the_content:42", 86400, "<p>x</p>")

    @pytest.mark.asyncio
    async def test_set_error_returns_false(self, redis_store, redis_client):
        """Test write failures are absorbed."""
        redis_client.setex.side_effect = TimeoutError("slow")

        assert await redis_store.set(CacheBucket.EMIT, 42, "<p>x</p>", 60) is False

    @pytest.mark.asyncio
    async def test_delete_absent_key_succeeds(self, redis_store, redis_client):
        """Test deleting a key that does not exist is not an error."""
        redis_client.delete.return_value = 0

        assert await redis_store.delete(CacheBucket.EMIT, 42) is True
        assert await redis_store.delete(CacheBucket.EMIT, 42) is True
        assert redis_client.delete.await_count == 2

    @pytest.mark.asyncio
    async def test_delete_error_returns_false(self, redis_store, redis_client):
        """Test delete failures are absorbed."""
        redis_client.delete.side_effect = ConnectionError("down")

        assert await redis_store.delete(CacheBucket.EMIT, 42) is False

    @pytest.mark.asyncio
    async def test_repeated_failures_make_store_unavailable(self, redis_store, redis_client):
        """Test the circuit breaker takes the backend out of rotation."""
        redis_client.get.side_effect = ConnectionError("down")

        assert redis_store.available is True
        await redis_store.get(CacheBucket.RETURN, 1)
        await redis_store.get(CacheBucket.RETURN, 2)

        assert redis_store.available is False
        redis_client.get.reset_mock()
        assert await redis_store.get(CacheBucket.RETURN, 3) == (None, False)
        redis_client.get.assert_not_called()

    def test_unconfigured_store_is_unavailable(self):
        """Test a store without a URL or client reports unavailable."""
        assert RedisStore(None).available is False
        assert RedisStore("").available is False

    @pytest.mark.asyncio
    async def test_client_created_lazily_from_url(self):
        """Test the Redis client is built from the URL on first use."""
        with patch("redis.asyncio.from_url") as mock_from_url:
            client = AsyncMock()
            client.get.return_value = None
            mock_from_url.return_value = client

            redis_store = RedisStore("redis://cache:6379/1")
            await redis_store.get(CacheBucket.RETURN, 42)

            mock_from_url.assert_called_once()
            assert mock_from_url.call_args.args[0] == "redis://cache:6379/1"

    @pytest.mark.asyncio
    async def test_ping(self, redis_store, redis_client):
        """Test health ping reflects the backend."""
        redis_client.ping.return_value = True
        assert await redis_store.ping() is True

        redis_client.ping.side_effect = ConnectionError("down")
        assert await redis_store.ping() is False

    @pytest.mark.asyncio
    async def test_close(self, redis_store, redis_client):
        """Test closing releases the client."""
        await redis_store.close()

        redis_client.aclose.assert_awaited_once()
