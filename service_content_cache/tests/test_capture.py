"""
Unit tests for the render-and-capture pipeline.
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from service_content_cache.app.caching.capture import (
    CapturingSink,
    RenderCapture,
    provenance_marker,
)
from service_content_cache.app.models import CacheBucket, RenderParameters, RequestContext


GENERATED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestProvenanceMarker:
    """Test cases for provenance marker formatting."""

    def test_marker_format(self):
        """Test the marker records the generation time in UTC."""
        assert provenance_marker(GENERATED_AT) == (
            "<!-- Cached content generated by Tiny cache on 2024-01-01T00:00:00Z -->"
        )

    def test_marker_converts_to_utc(self):
        """Test non-UTC timestamps are normalised."""
        local = datetime(2024, 1, 1, 2, 30, tzinfo=timezone(timedelta(hours=2)))

        assert "2024-01-01T00:30:00Z" in provenance_marker(local)

    def test_naive_timestamp_is_treated_as_utc(self):
        """Test naive datetimes are assumed to be UTC."""
        assert "2024-03-05T06:07:08Z" in provenance_marker(datetime(2024, 3, 5, 6, 7, 8))


class TestCapturingSink:
    """Test cases for the capturing sink."""

    @pytest.mark.asyncio
    async def test_forwards_and_records(self):
        """Test chunks reach the wrapped sink in order and are kept."""
        received = []
        sink = CapturingSink(received.append)

        await sink("<p>")
        await sink("Hi</p>")

        assert received == ["<p>", "Hi</p>"]
        assert sink.captured == "<p>Hi</p>"

    @pytest.mark.asyncio
    async def test_awaits_async_sinks(self):
        """Test coroutine sinks are awaited."""
        target = AsyncMock()
        sink = CapturingSink(target)

        await sink("chunk")

        target.assert_awaited_once_with("chunk")


class TestRenderCapture:
    """Test cases for RenderCapture."""

    @pytest.fixture
    def capture(self, store):
        return RenderCapture(store, ttl=600, clock=lambda: GENERATED_AT)

    @pytest.mark.asyncio
    async def test_return_not_publishable_skips_annotation(self, capture, store):
        """Test no marker is generated when the content is not publishable."""
        clock = AsyncMock()
        capture.clock = clock
        renderer = AsyncMock(return_value="<p>draft</p>")

        result = await capture.render_return(
            CacheBucket.RETURN, 42, RenderParameters(), False, renderer, RequestContext(content_id=42)
        )

        assert result == "<p>draft</p>"
        clock.assert_not_called()
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_return_publishable_writes_with_ttl(self, capture, store):
        """Test the annotated output is written with the configured TTL."""
        renderer = AsyncMock(return_value="<p>live</p>")

        result = await capture.render_return(
            CacheBucket.RETURN, 42, RenderParameters(), True, renderer, RequestContext(content_id=42)
        )

        assert result == store.data[("get_the_content", "42")]
        assert store.ttls[("get_the_content", "42")] == 600
        renderer.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_emit_publishable_writes_everything_the_sink_saw(self, capture, store):
        """Test the stored value is byte-identical to the emitted output."""
        async def render(ctx, params, sink):
            await sink("a")
            await sink("b")

        emitted = []
        await capture.render_emit(
            CacheBucket.EMIT, 42, RenderParameters(), True, render, emitted.append, RequestContext(content_id=42)
        )

        assert store.data[("the_content", "42")] == "".join(emitted)
        assert emitted[-1].startswith("<!-- Cached content generated")

    @pytest.mark.asyncio
    async def test_emit_not_publishable_passes_sink_through(self, capture, store):
        """Test the caller's own sink is used when nothing will be cached."""
        seen_sinks = []
        emitted = []

        def render(ctx, params, sink):
            seen_sinks.append(sink)
            sink("x")

        await capture.render_emit(
            CacheBucket.EMIT, 42, RenderParameters(), False, render, emitted.append, RequestContext(content_id=42)
        )

        assert seen_sinks == [emitted.append]
        assert emitted == ["x"]
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_failed_write_still_delivers(self, store):
        """Test a rejected store write does not change the delivered output."""
        store.set = AsyncMock(return_value=False)
        capture = RenderCapture(store, clock=lambda: GENERATED_AT)

        result = await capture.render_return(
            CacheBucket.RETURN, 42, RenderParameters(), True,
            lambda ctx, params: "<p>x</p>", RequestContext(content_id=42)
        )

        assert result.startswith("<p>x</p><!-- Cached content")
        store.set.assert_awaited_once()
