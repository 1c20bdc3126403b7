"""
End-to-end tests: product event -> notifier -> revalidation gateway.

The notifier's HTTP client is pointed at the gateway application in-process
through an ASGI transport, so the whole path runs without a network.
"""

import httpx
import pytest

from service_notifier.app.adapters.revalidation_client import RevalidationClient, RevalidationTarget
from service_notifier.app.subscribers.product_revalidation import ProductRevalidationSubscriber
from service_revalidation.app.main import RevalidationService
from shared.config import GatewayConfig


class TestRevalidationFlow:
    """Integration tests for the full revalidation path."""

    @pytest.fixture
    def gateway_logger(self, recording_logger_factory):
        return recording_logger_factory()

    @pytest.fixture
    def gateway(self, secret, memory_invalidator, gateway_logger):
        service = RevalidationService(
            GatewayConfig(revalidate_secret=secret, tag_registry_file=None),
            invalidator=memory_invalidator,
        )
        service.gateway.logger = gateway_logger
        return service

    def _subscriber(self, gateway, storefront_url, secret, logger):
        target = RevalidationTarget(storefront_url, secret)
        client = RevalidationClient(target, transport=httpx.ASGITransport(app=gateway.app))
        return ProductRevalidationSubscriber(target, client=client, logger=logger)

    @pytest.mark.asyncio
    async def test_product_update_invalidates_product_pages(
        self, gateway, gateway_logger, storefront_url, secret, memory_invalidator, recording_logger, make_event
    ):
        """Test a product event revalidates every product page on the storefront."""
        subscriber = self._subscriber(gateway, storefront_url, secret, recording_logger)

        await (await subscriber.handle(make_event("product.updated", "prod_01")))

        assert recording_logger.events() == ["Subscriber triggered", "Revalidation succeeded"]
        assert len(memory_invalidator.invalidated()) == 7

        notifier_id = recording_logger.records[0]["correlation_id"]
        called = [r for r in gateway_logger.records if r["event"] == "Revalidation endpoint called"][0]
        assert called["upstream_correlation_id"] == notifier_id
        assert called["correlation_id"] != notifier_id
        assert "Revalidation succeeded" in gateway_logger.events()

    @pytest.mark.asyncio
    async def test_secret_mismatch_is_contained(
        self, gateway, storefront_url, memory_invalidator, recording_logger, make_event
    ):
        """Test a rejected notification is logged by the notifier and nothing is invalidated."""
        subscriber = self._subscriber(gateway, storefront_url, "stale-secret", recording_logger)

        task = await subscriber.handle(make_event("product.deleted"))
        assert await task is None

        failure = [r for r in recording_logger.records if r["level"] == "error"][0]
        assert failure["event"] == "Revalidation failed"
        assert failure["status"] == 401
        assert memory_invalidator.calls == 0

    @pytest.mark.asyncio
    async def test_burst_of_events(
        self, gateway, storefront_url, secret, memory_invalidator, recording_logger, make_event
    ):
        """Test every event in a burst reaches the gateway."""
        subscriber = self._subscriber(gateway, storefront_url, secret, recording_logger)

        for index in range(5):
            await subscriber.handle(make_event(product_id=f"prod_{index}"))
        await subscriber.drain()

        assert recording_logger.events().count("Revalidation succeeded") == 5
        assert memory_invalidator.calls == 35
