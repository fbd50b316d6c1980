"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderItemDTO``: input for a single order line item.
- ``CreateOrderDTO``: input for order creation (nested items).
- ``UpdateOrderDTO``: partial update of schedule, notes and items.
- ``UpdateOrderStatusDTO``: requested status plus optional description.
- ``AssignOrderDTO``: employee selected as assignee.
- ``CancelOrderDTO``: optional cancellation reason.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from django.utils import timezone
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.orders.constants import (
    MAX_HISTORY_DESCRIPTION_LENGTH,
    MAX_ITEM_NOTES_LENGTH,
    MAX_ITEM_QUANTITY,
    MAX_ORDER_NOTES_LENGTH,
    OrderStatus,
)


def _reject_past(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    if value < timezone.now():
        raise ValueError("Scheduled date cannot be in the past.")
    return value


def _strip(value: Any) -> Any:
    """Trim surrounding whitespace before the length bound is checked."""
    if isinstance(value, str):
        return value.strip()
    return value


def _reject_duplicate_products(items: List[CreateOrderItemDTO]) -> None:
    product_ids = [item.product_id for item in items]
    if len(product_ids) != len(set(product_ids)):
        raise ValueError("Duplicate product IDs are not allowed in the same order.")


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderItemDTO(BaseModel):
    """Immutable DTO for a single order item.

    The model re-validates the same bounds in ``OrderItem.build``; the DTO
    rejects bad payloads before any query runs.
    """

    model_config = ConfigDict(frozen=True)

    product_id: int
    requested_quantity: int = Field(ge=1, le=MAX_ITEM_QUANTITY)
    notes: Optional[str] = Field(default=None, max_length=MAX_ITEM_NOTES_LENGTH)

    @field_validator("notes", mode="before")
    @classmethod
    def trim_notes(cls, v: Optional[str]) -> Optional[str]:
        # Blank notes are not stored.
        return _strip(v) or None


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    Validates:
    - ``items`` must contain at least one item, each product at most once.
    - ``scheduled_date`` cannot be in the past.
    """

    model_config = ConfigDict(frozen=True)

    customer_id: UUID
    address_id: int
    items: List[CreateOrderItemDTO]
    scheduled_date: Optional[datetime] = None
    notes: Optional[str] = Field(default="", max_length=MAX_ORDER_NOTES_LENGTH)
    delivery_notes: Optional[str] = Field(default="", max_length=MAX_ORDER_NOTES_LENGTH)

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @field_validator("scheduled_date")
    @classmethod
    def scheduled_date_not_in_past(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _reject_past(v)

    @model_validator(mode="after")
    def no_duplicate_products(self):
        _reject_duplicate_products(self.items)
        return self


class UpdateOrderDTO(BaseModel):
    """Partial update: only the fields that are set are applied.

    ``items``, when given, replaces the whole active item set.
    """

    model_config = ConfigDict(frozen=True)

    scheduled_date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=MAX_ORDER_NOTES_LENGTH)
    delivery_notes: Optional[str] = Field(default=None, max_length=MAX_ORDER_NOTES_LENGTH)
    items: Optional[List[CreateOrderItemDTO]] = None

    @field_validator("scheduled_date")
    @classmethod
    def scheduled_date_not_in_past(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _reject_past(v)

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: Optional[List[CreateOrderItemDTO]]
    ) -> Optional[List[CreateOrderItemDTO]]:
        if v is not None and not v:
            raise ValueError("Order must have at least one item.")
        return v

    @model_validator(mode="after")
    def at_least_one_field(self):
        fields = (self.scheduled_date, self.notes, self.delivery_notes, self.items)
        if all(value is None for value in fields):
            raise ValueError("At least one field must be provided.")
        if self.items:
            _reject_duplicate_products(self.items)
        return self


class UpdateOrderStatusDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str
    description: Optional[str] = Field(
        default=None, max_length=MAX_HISTORY_DESCRIPTION_LENGTH
    )

    @field_validator("description", mode="before")
    @classmethod
    def trim_description(cls, v: Optional[str]) -> Optional[str]:
        return _strip(v)

    @field_validator("status")
    @classmethod
    def status_must_be_known(cls, v: str) -> str:
        normalized = v.strip().upper()
        if normalized not in OrderStatus.values:
            raise ValueError(
                f"Status must be one of: {', '.join(OrderStatus.values)}."
            )
        return normalized


class AssignOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    employee_id: UUID


class CancelOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: Optional[str] = Field(default=None, max_length=MAX_HISTORY_DESCRIPTION_LENGTH)

    @field_validator("reason", mode="before")
    @classmethod
    def trim_reason(cls, v: Optional[str]) -> Optional[str]:
        return _strip(v)
