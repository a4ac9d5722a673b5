"""
Render-and-capture pipeline.

Wraps the host's render callbacks. When the content is publishable the
rendered output is annotated with a provenance marker and written to the
store; otherwise the callback runs untouched and nothing is annotated.
"""

import html
from datetime import datetime, timezone
from typing import Callable, List, Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..models import ContentIdentifier, RenderParameters, RequestContext
from ..store.redis_store import StoreAdapter
from .callbacks import EmitRenderer, ReturnRenderer, Sink, await_if_needed


DEFAULT_TTL_SECONDS = 24 * 60 * 60

PROVENANCE_TEMPLATE = "<!-- Cached content generated by Tiny cache on {timestamp} -->"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def provenance_marker(generated_at: datetime) -> str:
    """Comment recording when a cache entry was generated."""
    if generated_at.tzinfo is None:
        generated_at = generated_at.replace(tzinfo=timezone.utc)
    timestamp = generated_at.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return PROVENANCE_TEMPLATE.format(timestamp=html.escape(timestamp))


class CapturingSink:
    """Last-stage output hook: forwards every chunk and keeps a copy."""

    def __init__(self, sink: Sink):
        self._sink = sink
        self._chunks: List[str] = []

    async def __call__(self, chunk: str) -> None:
        self._chunks.append(chunk)
        await await_if_needed(self._sink(chunk))

    @property
    def captured(self) -> str:
        return "".join(self._chunks)


class RenderCapture:
    """Runs exactly one render per call and populates the store when allowed."""

    def __init__(
        self,
        store: StoreAdapter,
        ttl: int = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], datetime] = utc_now,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.ttl = ttl
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("content_cache.capture")

    def _should_write(self, publishable: bool, ctx: RequestContext) -> bool:
        if not publishable:
            return False
        if ctx.suspend_cache_addition:
            self.logger.debug("Cache addition suspended, skipping write")
            return False
        return True

    async def _write(self, bucket: str, content_id: ContentIdentifier, value: str) -> None:
        stored = await self.store.set(bucket, content_id, value, self.ttl)
        if not stored:
            return
        if self.metrics:
            self.metrics.increment_counter("content_cache_writes_total", bucket=getattr(bucket, "value", bucket))
        self.logger.info(
            "Cached rendered content",
            bucket=getattr(bucket, "value", bucket),
            content_id=content_id,
            ttl=self.ttl,
        )

    async def render_return(
        self,
        bucket: str,
        content_id: ContentIdentifier,
        params: RenderParameters,
        publishable: bool,
        render: ReturnRenderer,
        ctx: RequestContext,
    ) -> str:
        """Render and return the output, annotated and stored when publishable."""
        output = await await_if_needed(render(ctx, params))
        if not self._should_write(publishable, ctx):
            return output

        annotated = output + provenance_marker(self.clock())
        await self._write(bucket, content_id, annotated)
        return annotated

    async def render_emit(
        self,
        bucket: str,
        content_id: ContentIdentifier,
        params: RenderParameters,
        publishable: bool,
        render: EmitRenderer,
        sink: Sink,
        ctx: RequestContext,
    ) -> None:
        """Render into the sink; when publishable, capture what reached it and store it."""
        if not self._should_write(publishable, ctx):
            await await_if_needed(render(ctx, params, sink))
            return

        capturing = CapturingSink(sink)
        await await_if_needed(render(ctx, params, capturing))

        marker = provenance_marker(self.clock())
        await await_if_needed(sink(marker))
        await self._write(bucket, content_id, capturing.captured + marker)
