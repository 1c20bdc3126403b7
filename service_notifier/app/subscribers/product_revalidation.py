"""
Product revalidation subscriber.

Turns product mutation events into best-effort revalidation requests for the
storefront. Delivery is at-most-once: there is no retry, backoff or
dead-lettering, and a failed notification never fails the event pipeline.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional, Set, TYPE_CHECKING

import httpx

from shared.logging import get_logger, new_correlation_id, set_correlation_id
from ..adapters.revalidation_client import RevalidationClient, RevalidationRequest, RevalidationTarget
from ..events.models import DomainEvent

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


# Every product mutation invalidates the whole product tag group.
PRODUCTS_TAG = "products"


class ProductRevalidationSubscriber:
    """Dispatches one revalidation notification per product mutation event."""

    def __init__(
        self,
        target: Optional[RevalidationTarget],
        *,
        client: Optional[RevalidationClient] = None,
        timeout: float = 10.0,
        max_concurrency: int = 10,
        metrics: Optional["MetricsCollector"] = None,
        logger: Any = None,
    ):
        self.target = target
        self.metrics = metrics
        self.logger = logger if logger is not None else get_logger("notifier.product_revalidation")
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._tasks: Set[asyncio.Task] = set()

        if target is None:
            self.client = None
            self.logger.info("Revalidation not configured; product events will not notify the storefront")
        else:
            self.client = client or RevalidationClient(target, timeout=timeout)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    @property
    def pending(self) -> int:
        """Number of notifications submitted but not finished."""
        return len(self._tasks)

    async def handle(self, event: DomainEvent) -> Optional[asyncio.Task]:
        """Submit a notification for ``event`` without waiting for it."""
        if self.client is None:
            return None

        correlation_id = new_correlation_id()
        log = self.logger.bind(
            correlation_id=correlation_id,
            event_name=event.name,
            product_id=event.subject_id,
        )
        log.info("Subscriber triggered", timestamp=datetime.now(timezone.utc).isoformat())
        if self.metrics:
            self.metrics.increment_counter("events_received_total", event=event.name)

        request = self.client.build_request((PRODUCTS_TAG,), correlation_id)
        task = asyncio.create_task(self._dispatch(request, log))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _dispatch(self, request: RevalidationRequest, log: Any) -> None:
        set_correlation_id(request.correlation_id)
        async with self._semaphore:
            try:
                response = await self.client.send(request)
            except httpx.HTTPError as exc:
                log.error("Revalidation error", error=str(exc), error_type=type(exc).__name__)
                self._record("error")
                return
            except Exception as exc:
                log.error("Revalidation error", error=str(exc), error_type=type(exc).__name__, exc_info=True)
                self._record("error")
                return

        if response.is_success:
            log.info("Revalidation succeeded", status=response.status_code)
            self._record("success")
        else:
            log.error(
                "Revalidation failed",
                status=response.status_code,
                status_text=response.reason_phrase,
            )
            self._record("failed")

    def _record(self, outcome: str):
        if self.metrics:
            self.metrics.increment_counter("revalidation_notifications_total", outcome=outcome)

    async def drain(self):
        """Wait for every submitted notification to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
