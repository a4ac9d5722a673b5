"""
Cache decision engine: the two cache-aware render entry points.
"""

from dataclasses import dataclass
from typing import Optional

from shared.logging import get_logger, set_content_context
from shared.metrics import MetricsCollector

from ..models import (
    CacheBucket,
    ContentIdentifier,
    ContentRecord,
    DEFAULT_RENDER_PARAMETERS,
    RenderParameters,
    RequestContext,
    normalize_content_id,
)
from ..store.redis_store import StoreAdapter
from .callbacks import EmitRenderer, RecordLoader, ReturnRenderer, Sink, await_if_needed
from .capture import RenderCapture
from .eligibility import EligibilityContext, bypass_reason
from .publish_gate import is_publishable


OUTCOME_BYPASS = "bypass"
OUTCOME_HIT = "hit"
OUTCOME_MISS = "miss"


@dataclass(frozen=True)
class CacheDecision:
    """Result of the lookup phase shared by both entry points."""
    outcome: str
    content_id: Optional[ContentIdentifier] = None
    value: Optional[str] = None
    reason: Optional[str] = None


class ContentCache:
    """Memoizes rendered content bodies per content identifier.

    ``render_cached_emit`` writes output to a sink, ``render_cached_return``
    returns it. Both make the same decision: bypass for ineligible requests,
    serve stored output on a hit, and on a miss render once and store the
    result when the content is publishable.
    """

    def __init__(
        self,
        store: StoreAdapter,
        record_loader: RecordLoader,
        *,
        return_renderer: ReturnRenderer,
        emit_renderer: EmitRenderer,
        capture: Optional[RenderCapture] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.record_loader = record_loader
        self.return_renderer = return_renderer
        self.emit_renderer = emit_renderer
        self.capture = capture or RenderCapture(store, metrics=metrics)
        self.metrics = metrics
        self.logger = get_logger("content_cache.engine")

    async def render_cached_emit(
        self,
        ctx: RequestContext,
        sink: Sink,
        params: Optional[RenderParameters] = None,
    ) -> None:
        """Emit rendered content to ``sink``, from cache when possible."""
        params = params if params is not None else DEFAULT_RENDER_PARAMETERS
        decision = await self._decide(CacheBucket.EMIT, ctx, params)

        if decision.outcome == OUTCOME_BYPASS:
            await await_if_needed(self.emit_renderer(ctx, params, sink))
            return

        if decision.outcome == OUTCOME_HIT:
            await await_if_needed(sink(decision.value))
            return

        publishable = await self._is_publishable(decision.content_id)
        await self.capture.render_emit(
            CacheBucket.EMIT,
            decision.content_id,
            params,
            publishable,
            self.emit_renderer,
            sink,
            ctx,
        )

    async def render_cached_return(
        self,
        ctx: RequestContext,
        params: Optional[RenderParameters] = None,
    ) -> str:
        """Return rendered content, from cache when possible."""
        params = params if params is not None else DEFAULT_RENDER_PARAMETERS
        decision = await self._decide(CacheBucket.RETURN, ctx, params)

        if decision.outcome == OUTCOME_BYPASS:
            return await await_if_needed(self.return_renderer(ctx, params))

        if decision.outcome == OUTCOME_HIT:
            return decision.value

        publishable = await self._is_publishable(decision.content_id)
        return await self.capture.render_return(
            CacheBucket.RETURN,
            decision.content_id,
            params,
            publishable,
            self.return_renderer,
            ctx,
        )

    async def _decide(
        self,
        bucket: CacheBucket,
        ctx: RequestContext,
        params: RenderParameters,
    ) -> CacheDecision:
        """Eligibility check and store lookup."""
        content_id = normalize_content_id(ctx.content_id)
        set_content_context(content_id)

        reason = bypass_reason(EligibilityContext(
            backend_available=self.store.available,
            is_authenticated=ctx.is_authenticated,
            method=ctx.method,
            content_id=content_id,
            do_not_cache=ctx.do_not_cache,
            params=params,
        ))
        if reason is not None:
            self.logger.debug("Bypassing content cache", bucket=bucket.value, reason=reason)
            self._record(bucket, OUTCOME_BYPASS, reason=reason)
            return CacheDecision(OUTCOME_BYPASS, content_id=content_id, reason=reason)

        value, found = await self.store.get(bucket, content_id)
        if found:
            self.logger.debug("Content cache hit", bucket=bucket.value, content_id=content_id)
            self._record(bucket, OUTCOME_HIT)
            return CacheDecision(OUTCOME_HIT, content_id=content_id, value=value)

        self.logger.debug("Content cache miss", bucket=bucket.value, content_id=content_id)
        self._record(bucket, OUTCOME_MISS)
        return CacheDecision(OUTCOME_MISS, content_id=content_id)

    async def _is_publishable(self, content_id: ContentIdentifier) -> bool:
        """Load the record and apply the publish gate. Loader failures count as missing."""
        record: Optional[ContentRecord]
        try:
            record = await await_if_needed(self.record_loader(content_id))
        except Exception as e:
            self.logger.warning("Content record lookup failed", content_id=content_id, error=str(e))
            record = None
        return is_publishable(record)

    def _record(self, bucket: CacheBucket, outcome: str, reason: Optional[str] = None):
        if not self.metrics:
            return
        self.metrics.increment_counter("content_cache_requests_total", variant=bucket.value, outcome=outcome)
        if reason is not None:
            self.metrics.increment_counter("content_cache_bypass_total", reason=reason)
