"""
Unit tests for the event bus Kafka consumer.
"""

import asyncio
import json
import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from service_notifier.app.events.models import EventValidationError, ProductUpdated
from service_notifier.app.kafka.consumer import EventBusConsumer, KafkaMessage
from shared.errors import AccessLayerException


def _message(topic: str, value: bytes, offset: int = 0) -> KafkaMessage:
    return KafkaMessage(
        topic=topic,
        partition=0,
        offset=offset,
        key=None,
        value=value,
        timestamp=1640995200000,
        headers=None,
    )


class TestEventBusConsumer:
    """Test cases for EventBusConsumer."""

    @pytest.fixture
    def consumer(self):
        """Create EventBusConsumer instance."""
        return EventBusConsumer("localhost:9092", "test-group")

    @pytest.fixture
    def handler(self):
        return AsyncMock()

    @pytest.mark.asyncio
    async def test_start_success(self, consumer):
        """Test successful consumer start."""
        with patch('kafka.KafkaConsumer') as mock_consumer_class:
            mock_consumer_class.return_value = AsyncMock()

            await consumer.start()

            assert consumer.is_running() is True
            assert consumer.consumer is not None
            mock_consumer_class.assert_called_once()
            assert mock_consumer_class.call_args.kwargs["group_id"] == "test-group"

    @pytest.mark.asyncio
    async def test_start_failure(self, consumer):
        """Test consumer start failure."""
        with patch('kafka.KafkaConsumer') as mock_consumer_class:
            mock_consumer_class.side_effect = Exception("Connection failed")

            with pytest.raises(AccessLayerException) as exc_info:
                await consumer.start()

            assert exc_info.value.code == "KAFKA_CONSUMER_START_FAILED"
            assert consumer.is_running() is False

    @pytest.mark.asyncio
    async def test_stop_success(self, consumer):
        """Test successful consumer stop."""
        with patch('kafka.KafkaConsumer') as mock_consumer_class:
            mock_consumer = AsyncMock()
            mock_consumer_class.return_value = mock_consumer

            await consumer.start()
            await consumer.stop()

            assert consumer.is_running() is False
            mock_consumer.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_subscribe_passes_full_topic_set(self, consumer, handler):
        """Test each subscription re-subscribes to every registered event."""
        with patch('kafka.KafkaConsumer') as mock_consumer_class:
            mock_consumer = AsyncMock()
            mock_consumer_class.return_value = mock_consumer

            await consumer.start()
            await consumer.subscribe("product.created", handler)
            await consumer.subscribe("product.updated", handler)

            mock_consumer.subscribe.assert_called_with(["product.created", "product.updated"])
            assert consumer.get_subscribed_topics() == ["product.created", "product.updated"]
            assert consumer.event_handlers["product.updated"] is handler

    @pytest.mark.asyncio
    async def test_subscribe_twice_is_ignored(self, consumer, handler):
        """Test a duplicate subscription keeps the first handler."""
        other = AsyncMock()
        with patch('kafka.KafkaConsumer') as mock_consumer_class:
            mock_consumer_class.return_value = AsyncMock()

            await consumer.start()
            await consumer.subscribe("product.updated", handler)
            await consumer.subscribe("product.updated", other)

            assert consumer.get_subscribed_topics() == ["product.updated"]
            assert consumer.event_handlers["product.updated"] is handler

    @pytest.mark.asyncio
    async def test_subscribe_not_started(self, consumer, handler):
        """Test subscription when consumer not started."""
        with pytest.raises(AccessLayerException) as exc_info:
            await consumer.subscribe("product.updated", handler)

        assert exc_info.value.code == "KAFKA_CONSUMER_NOT_STARTED"

    @pytest.mark.asyncio
    async def test_subscribe_failure(self, consumer, handler):
        """Test a broker error during subscription."""
        with patch('kafka.KafkaConsumer') as mock_consumer_class:
            mock_consumer = AsyncMock()
            mock_consumer.subscribe.side_effect = Exception("Broker unavailable")
            mock_consumer_class.return_value = mock_consumer

            await consumer.start()

            with pytest.raises(AccessLayerException) as exc_info:
                await consumer.subscribe("product.updated", handler)

            assert exc_info.value.code == "KAFKA_SUBSCRIBE_FAILED"
            assert consumer.get_subscribed_topics() == []

    @pytest.mark.asyncio
    async def test_unsubscribe_success(self, consumer, handler):
        """Test successful unsubscription."""
        with patch('kafka.KafkaConsumer') as mock_consumer_class:
            mock_consumer = AsyncMock()
            mock_consumer_class.return_value = mock_consumer

            await consumer.start()
            await consumer.subscribe("product.created", handler)
            await consumer.subscribe("product.updated", handler)
            await consumer.unsubscribe("product.created")

            mock_consumer.subscribe.assert_called_with(["product.updated"])
            assert "product.created" not in consumer.event_handlers

            await consumer.unsubscribe("product.updated")
            mock_consumer.unsubscribe.assert_called_once()

    @pytest.mark.asyncio
    async def test_unsubscribe_not_subscribed(self, consumer):
        """Test unsubscription from an event that is not subscribed."""
        with patch('kafka.KafkaConsumer') as mock_consumer_class:
            mock_consumer_class.return_value = AsyncMock()

            await consumer.start()

            with pytest.raises(AccessLayerException) as exc_info:
                await consumer.unsubscribe("product.updated")

            assert exc_info.value.code == "KAFKA_UNSUBSCRIBE_FAILED"

    def test_decode_bare_payload(self, make_payload):
        """Test the topic names the event for a bare data payload."""
        event = EventBusConsumer._decode(_message("product.updated", make_payload("prod_9")))

        assert isinstance(event, ProductUpdated)
        assert event.subject_id == "prod_9"
        assert event.data.model_extra == {"handle": "linen-shirt"}

    def test_decode_envelope(self, make_payload):
        """Test an enveloped payload is unwrapped."""
        value = make_payload("prod_9", envelope="product.updated")

        event = EventBusConsumer._decode(_message("product.updated", value))

        assert event.subject_id == "prod_9"

    @pytest.mark.parametrize("value", [
        b"not json",
        b"",
        json.dumps({"handle": "no-id"}).encode(),
        json.dumps(["prod_1"]).encode(),
    ])
    def test_decode_invalid_payload(self, value):
        """Test unparseable or incomplete payloads are rejected."""
        with pytest.raises(EventValidationError):
            EventBusConsumer._decode(_message("product.updated", value))

    @pytest.mark.asyncio
    async def test_dispatch_routes_by_event_name(self, consumer, handler, make_payload):
        """Test only the handler registered for the topic is invoked."""
        consumer.event_handlers = {"product.updated": handler}

        await consumer._dispatch(_message("product.updated", make_payload()))

        handler.assert_awaited_once()
        assert handler.call_args[0][0].name == "product.updated"

    @pytest.mark.asyncio
    async def test_dispatch_ignores_unsubscribed_events(self, consumer, handler, make_payload):
        """Test events outside the subscribed set never reach a handler."""
        consumer.event_handlers = {"product.updated": handler}

        await consumer._dispatch(_message("product.variant_updated", make_payload()))
        await consumer._dispatch(_message("order.placed", make_payload()))

        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_consume_loop_drops_invalid_events(self, consumer, handler, make_payload):
        """Test a bad message is skipped and the next one is still delivered."""
        bad = MagicMock(topic="product.updated", partition=0, offset=1, key=None, value=b"{", timestamp=0, headers=None)
        good = MagicMock(
            topic="product.updated", partition=0, offset=2, key=None,
            value=make_payload("prod_2"), timestamp=0, headers=None,
        )
        polls = [{("product.updated", 0): [bad, good]}]

        def poll(timeout_ms):
            if polls:
                return polls.pop()
            consumer.running = False
            return {}

        consumer.consumer = MagicMock()
        consumer.consumer.poll.side_effect = poll
        consumer.event_handlers = {"product.updated": handler}
        consumer.running = True

        await consumer._consume_loop()

        handler.assert_awaited_once()
        assert handler.call_args[0][0].subject_id == "prod_2"

    @pytest.mark.asyncio
    async def test_stop_waits_for_poll_before_close(self, consumer, handler, make_payload):
        """Test close runs only after the in-flight poll returned and its batch was dispatched."""
        calls = []
        message = MagicMock(
            topic="product.updated", partition=0, offset=7, key=None,
            value=make_payload("prod_7"), timestamp=0, headers=None,
        )
        batches = [{("product.updated", 0): [message]}]

        def poll(timeout_ms):
            time.sleep(0.05)
            calls.append("poll")
            return batches.pop() if batches else {}

        consumer.consumer = MagicMock()
        consumer.consumer.poll.side_effect = poll
        consumer.consumer.close.side_effect = lambda: calls.append("close")
        consumer.event_handlers = {"product.updated": handler}
        consumer.running = True
        consumer._consumer_task = asyncio.create_task(consumer._consume_loop())

        await asyncio.sleep(0.01)
        await consumer.stop()

        assert calls == ["poll", "close"]
        handler.assert_awaited_once()
        assert consumer._consumer_task is None
        assert consumer.is_running() is False
