"""
Domain logic for the revalidation gateway.

Holds the request state machine and its terminal error types; transport
concerns stay in ``app.main``.
"""

from .errors import RevalidationBadRequest, RevalidationFailed, RevalidationUnauthorized
from .gateway import (
    OutcomeStatus,
    RevalidationGateway,
    RevalidationOutcome,
    RevalidationResponse,
    parse_tags,
)

__all__ = [
    "OutcomeStatus",
    "RevalidationBadRequest",
    "RevalidationFailed",
    "RevalidationGateway",
    "RevalidationOutcome",
    "RevalidationResponse",
    "RevalidationUnauthorized",
    "parse_tags",
]
