"""
Product event notifier service for the product revalidation bridge.
"""

from typing import Dict, Optional

from shared.base_service import BaseService
from shared.config import NotifierConfig, get_notifier_config

from .adapters.revalidation_client import RevalidationTarget
from .events.models import PRODUCT_MUTATION_EVENTS
from .kafka.consumer import EventBusConsumer
from .subscribers.product_revalidation import ProductRevalidationSubscriber


class NotifierService(BaseService):
    """Notifier service implementation."""

    def __init__(
        self,
        config: Optional[NotifierConfig] = None,
        *,
        subscriber: Optional[ProductRevalidationSubscriber] = None,
        consumer: Optional[EventBusConsumer] = None,
    ):
        super().__init__(config or get_notifier_config())

        # Resolved once; None keeps the subscriber in its not-configured branch
        self.target = RevalidationTarget.from_settings(
            self.config.storefront_url,
            self.config.revalidate_secret,
        )
        self.subscriber = subscriber or ProductRevalidationSubscriber(
            self.target,
            timeout=self.config.notify_timeout_seconds,
            max_concurrency=self.config.max_concurrent_notifications,
            metrics=self.metrics,
        )
        self.consumer = consumer or EventBusConsumer(
            bootstrap_servers=self.config.kafka_bootstrap,
            group_id=self.config.kafka_group_id,
        )

        self._setup_notifier_routes()
        self.app.state.notifier_service = self

    def _setup_notifier_routes(self):
        """Set up notifier routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": self.service_name,
                "message": "Product Revalidation Bridge - Product Event Notifier",
                "version": "1.0.0",
                "revalidation": "enabled" if self.subscriber.enabled else "disabled",
                "events": list(PRODUCT_MUTATION_EVENTS),
                "pending_notifications": self.subscriber.pending,
            }

    async def start(self):
        """Start consuming product mutation events."""
        await self.consumer.start(start_loop=self.config.kafka_consume_loop)
        for event_name in PRODUCT_MUTATION_EVENTS:
            await self.consumer.subscribe(event_name, self.subscriber.handle)

        self.logger.info(
            "Notifier service components started",
            events=list(PRODUCT_MUTATION_EVENTS),
            revalidation="enabled" if self.subscriber.enabled else "disabled",
        )

    async def stop(self):
        """Stop consuming and let in-flight notifications finish."""
        await self.consumer.stop()
        await self.subscriber.drain()
        self.logger.info("Notifier service components stopped")

    async def _check_dependencies(self) -> Dict[str, str]:
        return {"kafka": "ok" if self.consumer.is_running() else "stopped"}


def create_app(config: Optional[NotifierConfig] = None, **kwargs):
    """Create notifier service application."""
    service = NotifierService(config, **kwargs)
    return service.app


if __name__ == "__main__":
    service = NotifierService()
    service.run()
