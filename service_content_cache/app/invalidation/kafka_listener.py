"""
Kafka consumer that feeds content lifecycle events into the event bus.
"""

import asyncio
import json
from typing import Any, Dict, Optional

import kafka
from kafka.errors import KafkaError

from shared.errors import ContentCacheException
from shared.logging import get_logger

from ..models import ContentRecord, LifecycleEventType, LifecycleSignal
from .events import LifecycleEventBus


def parse_lifecycle_message(value: bytes) -> Optional[LifecycleSignal]:
    """Decode a JSON lifecycle message; None when it is not a valid signal."""
    try:
        payload: Dict[str, Any] = json.loads(value)
        event_type = LifecycleEventType(payload["event"])
    except (ValueError, KeyError, TypeError):
        return None

    record = None
    new_status = payload.get("new_status")
    if event_type == LifecycleEventType.STATUS_TRANSITION and new_status is not None:
        record = ContentRecord(content_id=payload.get("content_id"), status=new_status)

    return LifecycleSignal(
        event_type=event_type,
        content_id=payload.get("content_id"),
        new_status=new_status,
        old_status=payload.get("old_status"),
        record=record,
    )


class KafkaLifecycleListener:
    """Consumes a lifecycle topic and publishes each event on the bus."""

    def __init__(self, bootstrap_servers: str, topic: str, group_id: str, bus: LifecycleEventBus):
        self.bootstrap_servers = bootstrap_servers
        self.topic = topic
        self.group_id = group_id
        self.bus = bus
        self.logger = get_logger("content_cache.kafka.lifecycle")
        self.consumer: Optional[kafka.KafkaConsumer] = None
        self.running = False
        self._consumer_task: Optional[asyncio.Task] = None

    async def start(self, start_loop: bool = True):
        """Start the Kafka consumer."""
        try:
            self.consumer = kafka.KafkaConsumer(
                self.topic,
                bootstrap_servers=self.bootstrap_servers,
                group_id=self.group_id,
                value_deserializer=lambda x: x,
                auto_offset_reset='latest',
                enable_auto_commit=True,
                max_poll_records=100,
            )
        except Exception as e:
            self.logger.error("Failed to start lifecycle consumer", error=str(e))
            raise ContentCacheException("LIFECYCLE_CONSUMER_START_FAILED", str(e))

        self.running = True
        if start_loop:
            self._consumer_task = asyncio.create_task(self._consume_loop())
        self.logger.info("Lifecycle consumer started", topic=self.topic, group_id=self.group_id)

    async def stop(self):
        """Stop the Kafka consumer once the in-flight poll has returned."""
        self.running = False
        if self._consumer_task:
            await self._consumer_task
            self._consumer_task = None

        if self.consumer:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self.consumer.close)
            self.consumer = None
            self.logger.info("Lifecycle consumer stopped")

    async def handle_message(self, message) -> bool:
        """Publish one consumed record on the bus."""
        signal = parse_lifecycle_message(message.value)
        if signal is None:
            self.logger.warning(
                "Skipping invalid lifecycle message",
                topic=message.topic,
                offset=message.offset,
            )
            return False

        await self.bus.publish(signal)
        return True

    async def poll_once(self, timeout_ms: int = 1000) -> int:
        """Poll one batch and handle it; returns the number of messages seen."""
        loop = asyncio.get_running_loop()
        message_batch = await loop.run_in_executor(None, lambda: self.consumer.poll(timeout_ms=timeout_ms))
        if not message_batch:
            return 0

        seen = 0
        for messages in message_batch.values():
            for message in messages:
                seen += 1
                try:
                    await self.handle_message(message)
                except Exception as e:
                    self.logger.error(
                        "Error processing lifecycle message",
                        topic=message.topic,
                        offset=message.offset,
                        error=str(e),
                    )
        return seen

    async def _consume_loop(self):
        """Main consumption loop."""
        while self.running:
            try:
                await self.poll_once()
            except KafkaError as e:
                self.logger.error("Kafka error in consume loop", error=str(e))
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.logger.error("Unexpected error in consume loop", error=str(e))
                await asyncio.sleep(1)

    def is_running(self) -> bool:
        return self.running
