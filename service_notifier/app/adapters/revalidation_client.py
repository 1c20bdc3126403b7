"""
Revalidation gateway client for the notifier.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import httpx

from shared.logging import get_logger


USER_AGENT = "Product-Revalidation-Notifier/1.0"


@dataclass(frozen=True)
class RevalidationTarget:
    """Where and how to send revalidation requests."""

    base_url: str
    secret: str

    @classmethod
    def from_settings(cls, base_url: Optional[str], secret: Optional[str]) -> Optional["RevalidationTarget"]:
        """Resolve the target once; None means revalidation is not configured."""
        if not base_url or not secret:
            return None
        return cls(base_url=base_url.rstrip("/"), secret=secret)


@dataclass(frozen=True)
class RevalidationRequest:
    """One outbound revalidation request, built once per triggering event."""

    tags: Tuple[str, ...]
    secret: str
    correlation_id: str


class RevalidationClient:
    """Client for the storefront's revalidation endpoint."""

    def __init__(
        self,
        target: RevalidationTarget,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.target = target
        self.timeout = timeout
        self._transport = transport
        self.logger = get_logger("notifier.revalidation_client")

    def build_request(self, tags: Tuple[str, ...], correlation_id: str) -> RevalidationRequest:
        return RevalidationRequest(tags=tuple(tags), secret=self.target.secret, correlation_id=correlation_id)

    def url_for(self, request: RevalidationRequest) -> str:
        return f"{self.target.base_url}/api/revalidate?tags={','.join(request.tags)}"

    async def send(self, request: RevalidationRequest) -> httpx.Response:
        """Issue the request. Transport errors propagate as httpx.HTTPError."""
        url = self.url_for(request)
        self.logger.info("Sending revalidation request", correlation_id=request.correlation_id, url=url)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            return await client.get(
                url,
                headers={
                    "X-Revalidate-Secret": request.secret,
                    "Content-Type": "application/json",
                    "User-Agent": USER_AGENT,
                    "X-Correlation-ID": request.correlation_id,
                },
            )
