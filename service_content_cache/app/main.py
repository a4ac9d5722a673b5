"""
Content cache service for Tiny Content Cache.

Sits between HTTP callers and the upstream content service, serving
rendered content bodies through the cache engine and purging entries on
lifecycle events.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Dict, List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import HTMLResponse

from shared.base_service import BaseService
from shared.config import ContentCacheConfig
from shared.errors import ValidationError
from shared.metrics import MetricsCollector

from .adapters.content_client import ContentServiceClient
from .caching.capture import RenderCapture, utc_now
from .caching.engine import ContentCache
from .invalidation.coordinator import InvalidationCoordinator
from .invalidation.events import LifecycleEventBus
from .invalidation.kafka_listener import KafkaLifecycleListener
from .models import (
    LifecycleEventRequest,
    LifecycleEventResponse,
    RenderParameters,
    RequestContext,
    normalize_content_id,
)
from .store.redis_store import RedisStore, StoreAdapter


class ContentCacheService(BaseService):
    """Content cache service implementation."""

    def __init__(
        self,
        config: Optional[ContentCacheConfig] = None,
        *,
        store: Optional[StoreAdapter] = None,
        content_client: Optional[ContentServiceClient] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(config, metrics)

        self.store = store or RedisStore(
            self.config.redis_url,
            self.config.key_prefix,
            failure_threshold=self.config.store_failure_threshold,
            recovery_timeout=self.config.store_recovery_timeout,
            metrics=self.metrics,
        )
        self.content_client = content_client or ContentServiceClient(
            self.config.content_service_url,
            timeout=self.config.content_service_timeout,
        )

        self.bus = LifecycleEventBus()
        self.coordinator = InvalidationCoordinator(self.store, metrics=self.metrics)
        self.coordinator.register(self.bus)

        self.cache = ContentCache(
            self.store,
            self.content_client.get_record,
            return_renderer=self.content_client.render,
            emit_renderer=self.content_client.render_stream,
            capture=RenderCapture(self.store, self.config.ttl_seconds, clock=clock, metrics=self.metrics),
            metrics=self.metrics,
        )

        self.lifecycle_listener: Optional[KafkaLifecycleListener] = None
        if self.config.enable_lifecycle_consumer:
            self.lifecycle_listener = KafkaLifecycleListener(
                self.config.kafka_bootstrap,
                self.config.lifecycle_topic,
                self.config.kafka_group_id,
                self.bus,
            )

        self._setup_content_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        """Start the lifecycle consumer and release the store around the app's lifetime."""
        if self.lifecycle_listener:
            await self.lifecycle_listener.start()
        try:
            yield
        finally:
            if self.lifecycle_listener:
                await self.lifecycle_listener.stop()
            close = getattr(self.store, "close", None)
            if close:
                await close()

    def request_context(self, request: Request, content_id: str) -> RequestContext:
        """Build the per-request cache context from the incoming request."""
        cookie_name = self.config.session_cookie_name
        is_authenticated = "authorization" in request.headers or bool(
            cookie_name and request.cookies.get(cookie_name)
        )
        cache_control = request.headers.get("cache-control", "").lower()
        do_not_cache = getattr(request.state, "do_not_cache", False) or "no-cache" in cache_control

        return RequestContext(
            content_id=content_id,
            method=request.method,
            is_authenticated=is_authenticated,
            do_not_cache=do_not_cache,
            suspend_cache_addition=getattr(request.state, "suspend_cache_addition", False),
        )

    def _setup_content_routes(self):
        """Set up content-cache routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": self.service_name,
                "message": "Tiny Content Cache",
                "version": "0.5.0",
                "capabilities": ["content_cache", "lifecycle_invalidation"]
            }

        @self.app.api_route("/posts/{content_id}/content", methods=["GET", "POST"], response_class=HTMLResponse)
        async def get_content(
            request: Request,
            content_id: str,
            more_link_text: Optional[str] = Query(None, description="Custom 'more' link text"),
            strip_teaser: bool = Query(False, description="Strip the teaser before the 'more' tag"),
        ):
            """Rendered content body, returned as a value."""
            ctx = self.request_context(request, content_id)
            params = RenderParameters(more_link_text=more_link_text, strip_teaser=strip_teaser)
            body = await self.cache.render_cached_return(ctx, params)
            return HTMLResponse(body)

        @self.app.api_route("/posts/{content_id}/content/emit", methods=["GET", "POST"], response_class=HTMLResponse)
        async def emit_content(
            request: Request,
            content_id: str,
            more_link_text: Optional[str] = Query(None, description="Custom 'more' link text"),
            strip_teaser: bool = Query(False, description="Strip the teaser before the 'more' tag"),
        ):
            """Rendered content body, written chunk by chunk as it is produced."""
            ctx = self.request_context(request, content_id)
            params = RenderParameters(more_link_text=more_link_text, strip_teaser=strip_teaser)
            chunks: List[str] = []
            await self.cache.render_cached_emit(ctx, chunks.append, params)
            return HTMLResponse("".join(chunks))

        @self.app.post("/events", response_model=LifecycleEventResponse)
        async def lifecycle_event(event: LifecycleEventRequest):
            """Deliver a content lifecycle event."""
            if normalize_content_id(event.content_id) is None:
                raise ValidationError(
                    "Invalid content identifier",
                    details={"content_id": event.content_id}
                )

            invoked = await self.bus.publish(event.to_signal())
            return LifecycleEventResponse(
                event=event.event,
                content_id=event.content_id,
                handlers_invoked=invoked,
            )

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check service dependencies."""
        ping = getattr(self.store, "ping", None)
        store_ok = await ping() if ping else self.store.available
        dependencies = {"redis": "ok" if store_ok else "unavailable"}
        if self.lifecycle_listener:
            dependencies["kafka"] = "ok" if self.lifecycle_listener.is_running() else "stopped"
        return dependencies


def create_app(config: Optional[ContentCacheConfig] = None, **kwargs) -> FastAPI:
    """Create the content cache FastAPI application."""
    return ContentCacheService(config, **kwargs).app


if __name__ == "__main__":
    ContentCacheService().run()
