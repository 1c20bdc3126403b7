"""
Typed product mutation events delivered by the commerce event bus.
"""

from typing import Annotated, Any, Dict, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from shared.errors import ValidationError


PRODUCT_CREATED = "product.created"
PRODUCT_UPDATED = "product.updated"
PRODUCT_DELETED = "product.deleted"

PRODUCT_MUTATION_EVENTS = (PRODUCT_UPDATED, PRODUCT_CREATED, PRODUCT_DELETED)


class EventValidationError(ValidationError):
    """An event payload failed boundary validation."""

    def __init__(self, message: str = "Invalid event payload", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.code = "EVENT_VALIDATION_ERROR"


class ProductEventData(BaseModel):
    """Event subject; ``id`` is required, any other fields are kept as-is."""

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str = Field(min_length=1)


class _ProductEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: ProductEventData

    @property
    def subject_id(self) -> str:
        return self.data.id


class ProductCreated(_ProductEvent):
    name: Literal["product.created"] = PRODUCT_CREATED


class ProductUpdated(_ProductEvent):
    name: Literal["product.updated"] = PRODUCT_UPDATED


class ProductDeleted(_ProductEvent):
    name: Literal["product.deleted"] = PRODUCT_DELETED


DomainEvent = Annotated[
    Union[ProductCreated, ProductUpdated, ProductDeleted],
    Field(discriminator="name"),
]

_domain_event_adapter: TypeAdapter = TypeAdapter(DomainEvent)


def parse_event(payload: Mapping[str, Any]) -> DomainEvent:
    """Validate a raw ``{name, data}`` payload into a typed event."""
    try:
        return _domain_event_adapter.validate_python(payload)
    except PydanticValidationError as exc:
        raise EventValidationError(
            details={
                "event": payload.get("name") if isinstance(payload, Mapping) else None,
                "errors": exc.errors(include_url=False),
            }
        ) from exc
