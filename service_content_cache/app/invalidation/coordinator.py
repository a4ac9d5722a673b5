"""
Invalidation coordinator: evicts cached content when it changes state.
"""

from typing import Callable, Dict, Iterable, Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..models import (
    ContentIdentifier,
    ContentStatus,
    KNOWN_BUCKETS,
    LifecycleEventType,
    LifecycleSignal,
)
from ..store.redis_store import StoreAdapter
from .events import LifecycleEventBus


def crosses_published_boundary(new_status: Optional[str], old_status: Optional[str]) -> bool:
    """Whether a status transition publishes or unpublishes content."""
    was_published = old_status == ContentStatus.PUBLISHED
    is_published = new_status == ContentStatus.PUBLISHED
    return was_published != is_published


class InvalidationCoordinator:
    """Deletes cache entries in every known bucket on lifecycle signals."""

    def __init__(
        self,
        store: StoreAdapter,
        buckets: Iterable[str] = KNOWN_BUCKETS,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.buckets = tuple(buckets)
        self.metrics = metrics
        self.logger = get_logger("content_cache.invalidation")
        self._handlers: Dict[LifecycleEventType, Callable] = {
            LifecycleEventType.POST_PUBLISHED: self.on_content_changed,
            LifecycleEventType.POST_EDITED: self.on_content_changed,
            LifecycleEventType.POST_DELETED: self.on_content_changed,
            LifecycleEventType.POST_TRASHED: self.on_content_changed,
            LifecycleEventType.CACHE_CLEAN: self.on_content_changed,
            LifecycleEventType.STATUS_TRANSITION: self.on_status_transition,
        }

    @property
    def handlers(self) -> Dict[LifecycleEventType, Callable]:
        """The event-to-handler table."""
        return dict(self._handlers)

    def register(self, bus: LifecycleEventBus):
        """Subscribe every handler in the table on the bus."""
        for event_type, handler in self._handlers.items():
            bus.subscribe(event_type, handler)
        self.logger.info("Invalidation handlers registered", events=[e.value for e in self._handlers])

    async def purge(self, content_id: ContentIdentifier, event: str = "manual") -> bool:
        """Delete the entry for ``content_id`` in every bucket.

        Returns False when the store failed any of the deletes.
        """
        failed = []
        for bucket in self.buckets:
            if not await self.store.delete(bucket, content_id):
                failed.append(getattr(bucket, "value", bucket))

        if failed:
            self.logger.warning(
                "Failed to purge cached content",
                content_id=content_id,
                lifecycle_event=event,
                failed_buckets=failed,
            )
            return False

        if self.metrics:
            self.metrics.increment_counter("content_cache_invalidations_total", event=event)
        self.logger.info("Purged cached content", content_id=content_id, lifecycle_event=event)
        return True

    async def on_content_changed(self, signal: LifecycleSignal) -> bool:
        """Handle publish, edit, delete, trash and cache-clean signals."""
        content_id = signal.resolved_content_id
        if content_id is None:
            self.logger.warning("Lifecycle signal without content id", event_type=signal.event_type.value)
            return False

        return await self.purge(content_id, event=signal.event_type.value)

    async def on_status_transition(self, signal: LifecycleSignal) -> bool:
        """Purge only when the transition crosses the published boundary."""
        if not crosses_published_boundary(signal.new_status, signal.old_status):
            return False
        return await self.on_content_changed(signal)

    async def dispatch(self, signal: LifecycleSignal) -> bool:
        """Run the handler for a signal directly, without a bus."""
        return await self._handlers[signal.event_type](signal)
