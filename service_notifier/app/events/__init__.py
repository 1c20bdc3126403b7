"""
Product mutation events, validated at the event bus boundary.
"""

from .models import (
    PRODUCT_CREATED,
    PRODUCT_DELETED,
    PRODUCT_MUTATION_EVENTS,
    PRODUCT_UPDATED,
    DomainEvent,
    EventValidationError,
    ProductCreated,
    ProductDeleted,
    ProductEventData,
    ProductUpdated,
    parse_event,
)

__all__ = [
    "PRODUCT_CREATED",
    "PRODUCT_DELETED",
    "PRODUCT_MUTATION_EVENTS",
    "PRODUCT_UPDATED",
    "DomainEvent",
    "EventValidationError",
    "ProductCreated",
    "ProductDeleted",
    "ProductEventData",
    "ProductUpdated",
    "parse_event",
]
