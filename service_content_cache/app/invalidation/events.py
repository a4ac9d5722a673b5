"""
Lifecycle event bus: the host publishes content lifecycle signals here and
cache components subscribe to them.
"""

from typing import Callable, Dict, List

from shared.logging import get_logger

from ..caching.callbacks import await_if_needed
from ..models import LifecycleEventType, LifecycleSignal


LifecycleHandler = Callable[[LifecycleSignal], object]


class LifecycleEventBus:
    """Dispatches lifecycle signals to handlers subscribed per event type."""

    def __init__(self):
        self.logger = get_logger("content_cache.events")
        self._handlers: Dict[LifecycleEventType, List[LifecycleHandler]] = {
            event_type: [] for event_type in LifecycleEventType
        }

    def subscribe(self, event_type: LifecycleEventType, handler: LifecycleHandler):
        """Register a handler for an event type."""
        event_type = LifecycleEventType(event_type)
        if handler in self._handlers[event_type]:
            self.logger.warning("Handler already subscribed", event_type=event_type.value)
            return
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: LifecycleEventType, handler: LifecycleHandler):
        """Remove a previously registered handler."""
        handlers = self._handlers[LifecycleEventType(event_type)]
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event_type: LifecycleEventType) -> List[LifecycleHandler]:
        return list(self._handlers[LifecycleEventType(event_type)])

    async def publish(self, signal: LifecycleSignal) -> int:
        """Deliver a signal to its subscribers and return how many ran.

        A failing handler is logged and does not prevent the others from
        running.
        """
        invoked = 0
        for handler in self.handlers_for(signal.event_type):
            try:
                await await_if_needed(handler(signal))
                invoked += 1
            except Exception as e:
                self.logger.error(
                    "Lifecycle handler failed",
                    event_type=signal.event_type.value,
                    content_id=signal.content_id,
                    error=str(e),
                )
        return invoked
