"""
Kafka consumer delivering commerce domain events to their subscribers.

Each mutation kind is its own topic (topic name == event name), so a
subscriber only ever receives the event names it was registered for.
"""

import asyncio
import functools
import json
from typing import Any, Awaitable, Callable, Dict, List, Optional
from dataclasses import dataclass
import kafka
from kafka.errors import KafkaError

from shared.logging import get_logger
from shared.errors import AccessLayerException
from ..events.models import DomainEvent, EventValidationError, parse_event


EventHandler = Callable[[DomainEvent], Awaitable[Any]]


@dataclass
class KafkaMessage:
    """Kafka message wrapper."""
    topic: str
    partition: int
    offset: int
    key: Optional[bytes]
    value: bytes
    timestamp: Optional[int]
    headers: Optional[Dict[str, bytes]]


class EventBusConsumer:
    """Consumes domain events from Kafka and dispatches them by event name."""

    def __init__(self, bootstrap_servers: str, group_id: str):
        self.bootstrap_servers = bootstrap_servers
        self.group_id = group_id
        self.logger = get_logger("notifier.kafka.consumer")
        self.consumer: Optional[kafka.KafkaConsumer] = None
        self.subscribed_topics: List[str] = []
        self.event_handlers: Dict[str, EventHandler] = {}
        self.running = False
        self._consumer_task: Optional[asyncio.Task] = None

    @staticmethod
    async def _await_if_needed(result):
        if asyncio.iscoroutine(result):
            return await result
        return result

    async def start(self, start_loop: bool = False):
        """Start the Kafka consumer."""
        try:
            self.consumer = kafka.KafkaConsumer(
                bootstrap_servers=self.bootstrap_servers,
                group_id=self.group_id,
                value_deserializer=lambda x: x,  # Decoded per message in _decode
                key_deserializer=lambda x: x,
                auto_offset_reset='latest',
                enable_auto_commit=True,
                max_poll_records=100,
                session_timeout_ms=30000,
                heartbeat_interval_ms=10000
            )

            self.running = True
            if start_loop:
                self._consumer_task = asyncio.create_task(self._consume_loop())
            self.logger.info("Kafka consumer started", group_id=self.group_id)

        except Exception as e:
            self.logger.error("Failed to start Kafka consumer", error=str(e))
            raise AccessLayerException("KAFKA_CONSUMER_START_FAILED", str(e))

    async def stop(self):
        """Stop the Kafka consumer.

        The poll loop is allowed to finish its current poll and dispatch that
        batch before the consumer is closed, so ``close`` never races a poll
        still running in the executor.
        """
        self.running = False
        if self._consumer_task:
            await self._consumer_task
            self._consumer_task = None

        if self.consumer:
            await self._await_if_needed(self.consumer.close())
            self.logger.info("Kafka consumer stopped")

    async def subscribe(self, event_name: str, handler: EventHandler):
        """Register ``handler`` for one event name."""
        if event_name in self.subscribed_topics:
            self.logger.warning("Already subscribed to event", topic=event_name)
            return

        if not self.consumer:
            raise AccessLayerException("KAFKA_CONSUMER_NOT_STARTED", "Consumer not started")

        try:
            # kafka-python replaces the subscription, so always pass the full set
            await self._await_if_needed(self.consumer.subscribe(self.subscribed_topics + [event_name]))
            self.subscribed_topics.append(event_name)
            self.event_handlers[event_name] = handler

            self.logger.info("Subscribed to event", topic=event_name)

        except Exception as e:
            self.logger.error("Failed to subscribe to event", topic=event_name, error=str(e))
            raise AccessLayerException("KAFKA_SUBSCRIBE_FAILED", str(e))

    async def unsubscribe(self, event_name: str):
        """Remove the handler for one event name."""
        if event_name not in self.subscribed_topics:
            self.logger.warning("Not subscribed to event", topic=event_name)
            raise AccessLayerException("KAFKA_UNSUBSCRIBE_FAILED", "Not subscribed to topic")

        try:
            self.subscribed_topics.remove(event_name)
            self.event_handlers.pop(event_name, None)

            # Re-subscribe with remaining topics
            if self.subscribed_topics:
                await self._await_if_needed(self.consumer.subscribe(self.subscribed_topics))
            else:
                await self._await_if_needed(self.consumer.unsubscribe())

            self.logger.info("Unsubscribed from event", topic=event_name)

        except Exception as e:
            self.logger.error("Failed to unsubscribe from event", topic=event_name, error=str(e))
            raise AccessLayerException("KAFKA_UNSUBSCRIBE_FAILED", str(e))

    @staticmethod
    def _decode(message: KafkaMessage) -> DomainEvent:
        """Build a typed event from a message; the topic names the event."""
        try:
            payload = json.loads(message.value)
        except (TypeError, ValueError) as exc:
            raise EventValidationError("Event payload is not valid JSON", details={"topic": message.topic}) from exc

        if isinstance(payload, dict) and "data" in payload:
            payload = payload["data"]

        return parse_event({"name": message.topic, "data": payload})

    async def _dispatch(self, message: KafkaMessage):
        handler = self.event_handlers.get(message.topic)
        if handler is None:
            return

        event = self._decode(message)
        await handler(event)

    async def _consume_loop(self):
        """Main consumption loop."""
        loop = asyncio.get_running_loop()
        while self.running:
            try:
                if not self.consumer:
                    await asyncio.sleep(1)
                    continue

                # Poll for messages off the event loop
                message_batch = await loop.run_in_executor(
                    None, functools.partial(self.consumer.poll, timeout_ms=1000)
                )
                message_batch = await self._await_if_needed(message_batch)

                if not message_batch or not isinstance(message_batch, dict):
                    await asyncio.sleep(0)
                    continue

                for topic_partition, messages in message_batch.items():
                    for message in messages:
                        try:
                            await self._dispatch(
                                KafkaMessage(
                                    topic=message.topic,
                                    partition=message.partition,
                                    offset=message.offset,
                                    key=message.key,
                                    value=message.value,
                                    timestamp=message.timestamp,
                                    headers=dict(message.headers) if message.headers else None
                                )
                            )
                        except EventValidationError as e:
                            self.logger.warning(
                                "Dropping invalid event",
                                topic=message.topic,
                                offset=message.offset,
                                details=e.details
                            )
                        except Exception as e:
                            self.logger.error(
                                "Error processing message",
                                topic=message.topic,
                                offset=message.offset,
                                error=str(e)
                            )

            except KafkaError as e:
                self.logger.error("Kafka error in consume loop", error=str(e))
                await asyncio.sleep(5)  # Back off on errors

            except asyncio.CancelledError:
                break

            except Exception as e:
                self.logger.error("Unexpected error in consume loop", error=str(e))
                await asyncio.sleep(1)

    def get_subscribed_topics(self) -> List[str]:
        """Get list of subscribed event names."""
        return self.subscribed_topics.copy()

    def is_running(self) -> bool:
        """Check if consumer is running."""
        return self.running
