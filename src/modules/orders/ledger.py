"""Status ledger for orders.

The ledger is the append-only timeline of an order's status.  ``append``
validates and builds an entry; the repository persists it in the same
transaction as the order fields it accompanies.  Corrections are new
entries, never edits.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional

from django.utils import timezone

from modules.orders.constants import (
    DESCRIBABLE_STATUSES,
    MAX_HISTORY_DESCRIPTION_LENGTH,
    OrderStatus,
)
from modules.orders.exceptions import InvalidHistoryDescription, OrderValidationError
from modules.orders.models import OrderStatusHistory

if TYPE_CHECKING:
    from modules.orders.models import Order


class StatusLedger:
    """Builds and reads ledger entries for an order."""

    @staticmethod
    def validate_description(status: str, description: Optional[str]) -> Optional[str]:
        """Return the trimmed description, or ``None`` when none was given.

        Raises:
            InvalidHistoryDescription: description on a status that does not
                accept one, blank after trimming, or too long.
        """
        if description is None:
            return None
        if status not in DESCRIBABLE_STATUSES:
            raise InvalidHistoryDescription(
                "Only cancelled or returned statuses accept a description."
            )
        trimmed = description.strip()
        if not trimmed:
            raise InvalidHistoryDescription("The description cannot be blank.")
        if len(trimmed) > MAX_HISTORY_DESCRIPTION_LENGTH:
            raise InvalidHistoryDescription(
                f"The description cannot exceed {MAX_HISTORY_DESCRIPTION_LENGTH} characters."
            )
        return trimmed

    @classmethod
    def append(
        cls,
        order: Order,
        status: str,
        actor: Any = None,
        description: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Build the next (unsaved) entry for ``order``."""
        if status not in OrderStatus.values:
            raise OrderValidationError(
                f"Status must be one of: {', '.join(OrderStatus.values)}."
            )
        return OrderStatusHistory(
            order=order,
            status=status,
            description=cls.validate_description(status, description),
            changed_at=timezone.now(),
            changed_by=actor,
        )

    @staticmethod
    def current_status(order: Order) -> str:
        """Status of the latest entry; raises ``NoStatusHistory`` if empty."""
        return order.current_status

    @staticmethod
    def entries(order: Order) -> List[OrderStatusHistory]:
        """Full timeline, oldest first."""
        return list(order.status_history.order_by("changed_at", "id"))
