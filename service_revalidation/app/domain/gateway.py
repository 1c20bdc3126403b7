"""
Revalidation gateway: authenticates a revalidation request, expands its tags
through the tag registry and invalidates every resolved path.

A request moves through RECEIVED -> AUTHENTICATING -> PARSING -> PROCESSING
-> RESPONDING. The terminal failures are raised as exceptions from
``domain.errors`` carrying the request's correlation id.
"""

import asyncio
import hmac
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Tuple, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from shared.logging import get_logger, set_correlation_id
from ..invalidation.invalidator import PathInvalidator
from ..tags.registry import PathSpec, TagRegistry
from .errors import RevalidationBadRequest, RevalidationFailed, RevalidationUnauthorized

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class OutcomeStatus(str, Enum):
    INVALIDATED = "invalidated"
    SKIPPED_UNKNOWN = "skipped_unknown"


class RevalidationOutcome(BaseModel):
    """Result of processing one tag."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    tag: str
    status: OutcomeStatus
    paths_affected: int = Field(alias="pathsAffected")


class RevalidationResponse(BaseModel):
    """Success body returned to the caller."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = "Revalidated successfully"
    tags: List[str]
    timestamp: str
    correlation_id: str = Field(alias="correlationId")
    outcomes: List[RevalidationOutcome]

    def skipped(self) -> List[str]:
        return [o.tag for o in self.outcomes if o.status == OutcomeStatus.SKIPPED_UNKNOWN]

    def to_body(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


def parse_tags(raw: Optional[str]) -> List[str]:
    """Split a comma-separated tag list, trimming entries and dropping blanks.

    Duplicates are preserved; each occurrence is processed on its own.
    """
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


class RevalidationGateway:
    """Executes authenticated revalidation requests against a tag registry."""

    def __init__(
        self,
        registry: TagRegistry,
        invalidator: PathInvalidator,
        secret: Optional[str],
        *,
        metrics: Optional["MetricsCollector"] = None,
        logger: Any = None,
    ):
        self.registry = registry
        self.invalidator = invalidator
        self._secret = secret
        self.metrics = metrics
        self.logger = logger if logger is not None else get_logger("revalidation.gateway")

    def _authorized(self, supplied: Optional[str]) -> bool:
        if not supplied or not self._secret:
            return False
        return hmac.compare_digest(supplied.encode("utf-8"), self._secret.encode("utf-8"))

    def _count(self, metric_name: str, amount: float = 1, **labels):
        if self.metrics:
            self.metrics.increment_counter(metric_name, amount, **labels)

    async def revalidate(
        self,
        *,
        secret: Optional[str],
        tags: Optional[str],
        user_agent: Optional[str] = None,
        upstream_correlation_id: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> RevalidationResponse:
        """Run one revalidation request to completion.

        ``correlation_id`` is the id assigned where the request was received;
        a fresh one is generated when the caller has none.
        """
        # RECEIVED
        correlation_id = set_correlation_id(correlation_id)
        log = self.logger.bind(correlation_id=correlation_id)
        started = time.time()

        log.info(
            "Revalidation endpoint called",
            secret="PRESENT" if secret else "MISSING",
            user_agent=user_agent,
            upstream_correlation_id=upstream_correlation_id,
        )

        # AUTHENTICATING
        if not self._authorized(secret):
            log.warning(
                "Unauthorized revalidation request",
                secret="PROVIDED" if secret else "MISSING",
                configured_secret="SET" if self._secret else "NOT SET",
            )
            self._count("revalidation_requests_total", status="unauthorized")
            raise RevalidationUnauthorized(correlation_id, secret_present=bool(secret))

        # PARSING
        tag_list = parse_tags(tags)
        if not tag_list:
            log.info("No tags provided")
            self._count("revalidation_requests_total", status="bad_request")
            raise RevalidationBadRequest(correlation_id)

        # PROCESSING
        log.info("Processing tags", tags=tag_list)
        results = await asyncio.gather(
            *(self._process_tag(tag, log) for tag in tag_list),
            return_exceptions=True,
        )

        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            log.error(
                "Revalidation error",
                error=str(failures[0]),
                error_type=type(failures[0]).__name__,
                failed_tags=len(failures),
                tags=tag_list,
            )
            self._count("revalidation_requests_total", status="error")
            raise RevalidationFailed(correlation_id, failures[0]) from failures[0]

        # RESPONDING
        outcomes = list(results)
        response = RevalidationResponse(
            tags=tag_list,
            timestamp=datetime.now(timezone.utc).isoformat(),
            correlation_id=correlation_id,
            outcomes=outcomes,
        )

        log.info(
            "Revalidation succeeded",
            tags=tag_list,
            skipped=response.skipped(),
            paths_affected=sum(o.paths_affected for o in outcomes),
        )
        self._count("revalidation_requests_total", status="success")
        if self.metrics:
            self.metrics.observe_histogram("revalidation_duration_seconds", time.time() - started)
        return response

    async def _process_tag(self, tag: str, log: Any) -> RevalidationOutcome:
        specs = self.registry.resolve(tag)
        if specs is None:
            log.warning("Unknown tag", tag=tag)
            self._count("revalidation_tags_skipped_total")
            return RevalidationOutcome(tag=tag, status=OutcomeStatus.SKIPPED_UNKNOWN, paths_affected=0)

        log.info("Revalidating tag", tag=tag, paths=len(specs))
        await self._invalidate_all(specs)
        self._count("revalidation_paths_invalidated_total", len(specs), tag=tag)
        return RevalidationOutcome(tag=tag, status=OutcomeStatus.INVALIDATED, paths_affected=len(specs))

    async def _invalidate_all(self, specs: Tuple[PathSpec, ...]) -> None:
        # One unordered batch; every call runs to completion before a fault is raised.
        results = await asyncio.gather(
            *(self.invalidator.invalidate(spec) for spec in specs),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
