"""
Shared fixtures for content cache tests.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from service_content_cache.app.caching.callbacks import await_if_needed
from service_content_cache.app.caching.capture import RenderCapture
from service_content_cache.app.caching.engine import ContentCache
from service_content_cache.app.models import ContentRecord, ContentStatus, RequestContext
from shared.metrics import MetricsCollector


FIXED_NOW = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
MARKER = "<!-- Cached content generated by Tiny cache on 2024-01-01T00:00:00Z -->"


class InMemoryStore:
    """Store adapter double that records every call."""

    def __init__(self, available: bool = True):
        self.available = available
        self.data: Dict[Tuple[str, str], str] = {}
        self.ttls: Dict[Tuple[str, str], int] = {}
        self.calls: List[Tuple[str, str, str]] = []

    @staticmethod
    def _key(bucket, key) -> Tuple[str, str]:
        return getattr(bucket, "value", bucket), str(key)

    def ops(self, operation: str) -> List[Tuple[str, str, str]]:
        return [call for call in self.calls if call[0] == operation]

    async def get(self, bucket, key):
        self.calls.append(("get",) + self._key(bucket, key))
        value = self.data.get(self._key(bucket, key))
        return value, value is not None

    async def set(self, bucket, key, value, ttl):
        self.calls.append(("set",) + self._key(bucket, key))
        self.data[self._key(bucket, key)] = value
        self.ttls[self._key(bucket, key)] = ttl
        return True

    async def delete(self, bucket, key):
        self.calls.append(("delete",) + self._key(bucket, key))
        self.data.pop(self._key(bucket, key), None)
        return True


class FakeContentSource:
    """Record loader and render callbacks with invocation counters."""

    def __init__(self, body_chunks: Optional[List[str]] = None):
        self.body_chunks = body_chunks or ["<p>", "Hello", "</p>"]
        self.records: Dict[str, ContentRecord] = {}
        self.render_calls = 0
        self.record_calls = 0

    def add(self, content_id, status: str = ContentStatus.PUBLISHED, password: Optional[str] = None):
        self.records[str(content_id)] = ContentRecord(content_id=content_id, status=status, password=password)

    async def get_record(self, content_id):
        self.record_calls += 1
        return self.records.get(str(content_id))

    async def render(self, ctx, params):
        self.render_calls += 1
        return "".join(self.body_chunks)

    async def render_stream(self, ctx, params, sink):
        self.render_calls += 1
        for chunk in self.body_chunks:
            await await_if_needed(sink(chunk))


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def source():
    content = FakeContentSource()
    content.add(42)
    return content


@pytest.fixture
def metrics():
    return MetricsCollector("content_cache")


@pytest.fixture
def content_cache(store, source, metrics):
    return ContentCache(
        store,
        source.get_record,
        return_renderer=source.render,
        emit_renderer=source.render_stream,
        capture=RenderCapture(store, clock=lambda: FIXED_NOW, metrics=metrics),
        metrics=metrics,
    )


@pytest.fixture
def anonymous_get():
    return RequestContext(content_id=42, method="GET")
