"""Order, OrderItem, and OrderStatusHistory models.

Business rules implemented:
- The status ledger (``OrderStatusHistory``) is the only source of the
  current status.  Every ``is_<status>`` predicate reads the latest entry;
  assignee, scheduled date and delivered date are independent facts that
  the guards cross-check.
- Every mutation of an order goes through a guard method on ``Order``
  (``assign``, ``unassign``, ``schedule``, ``mark_delivered``, ``cancel``,
  ``ensure_can_transition_to``).  A violated guard raises; nothing is
  silently skipped.
- Tracking code (``PD-BBBBBB-YYYY-CC``) assigned once at creation.
- Ledger entries are append-only: no update, no delete.
- Soft delete via ``is_active`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Any, Optional

import structlog
from django.conf import settings
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel, SoftDeleteModel
from modules.orders.constants import (
    DESCRIBABLE_STATUSES,
    MAX_ITEM_NOTES_LENGTH,
    MAX_ITEM_QUANTITY,
    URGENT_PENDING_DAYS,
    OrderStatus,
)
from modules.orders.exceptions import (
    ImmutableHistoryError,
    NoStatusHistory,
    OrderAlreadyAssigned,
    OrderItemValidationError,
    OrderNotAssignable,
    OrderNotAssigned,
    OrderNotCancellable,
    OrderNotDispatched,
    OrderNotSchedulable,
    OrderNotUnassignable,
    OrderValidationError,
    StatusTransitionForbidden,
)
from modules.orders.tracking import TrackingCode

logger = structlog.get_logger(__name__)

_ONE_DAY = timedelta(days=1)


def _ceil_days(delta: timedelta) -> int:
    return math.ceil(delta / _ONE_DAY)


class Order(SoftDeleteModel):
    """Order aggregate root.

    ``id`` is an integer used for internal references and API look-ups;
    ``tracking_code`` is the checksum-verified identifier shared with
    customers.
    """

    id = models.BigAutoField(primary_key=True)
    tracking_code: models.CharField = models.CharField(
        max_length=17, unique=True, editable=False
    )
    customer: models.ForeignKey = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    customer_address: models.ForeignKey = models.ForeignKey(
        "customers.CustomerAddress",
        on_delete=models.PROTECT,
        related_name="orders",
        null=True,
        blank=True,
    )
    order_date: models.DateTimeField = models.DateTimeField(default=timezone.now)
    scheduled_date: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    delivered_date: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    created_by: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="created_orders",
    )
    assigned_to: models.ForeignKey = models.ForeignKey(
        "employees.Employee",
        on_delete=models.SET_NULL,
        related_name="assigned_orders",
        null=True,
        blank=True,
    )
    notes: models.TextField = models.TextField(blank=True, default="")
    delivery_notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "orders"
        ordering = ["-order_date", "-id"]
        indexes = [
            models.Index(fields=["-order_date"], name="orders_order_date_idx"),
            models.Index(fields=["scheduled_date"], name="orders_scheduled_idx"),
        ]

    # ------------------------------------------------------------------
    # Ledger-derived status
    # ------------------------------------------------------------------

    def latest_history_entry(self) -> Optional[OrderStatusHistory]:
        """Most recent ledger entry, using prefetched rows when available."""
        if self.pk is None:
            return None
        cache = getattr(self, "_prefetched_objects_cache", {})
        if "status_history" in cache:
            return max(
                cache["status_history"],
                key=lambda entry: (entry.changed_at, entry.id),
                default=None,
            )
        return self.status_history.order_by("-changed_at", "-id").first()

    def forget_cached_history(self) -> None:
        getattr(self, "_prefetched_objects_cache", {}).pop("status_history", None)

    @property
    def current_status(self) -> str:
        entry = self.latest_history_entry()
        if entry is None:
            raise NoStatusHistory(f"Order {self.pk} has no status history.")
        return entry.status

    @property
    def parsed_tracking_code(self) -> TrackingCode:
        return TrackingCode.parse(self.tracking_code)

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    @property
    def is_pending(self) -> bool:
        return self.current_status == OrderStatus.PENDING

    @property
    def is_preparing(self) -> bool:
        return self.current_status == OrderStatus.PREPARING

    @property
    def is_dispatched(self) -> bool:
        return self.current_status == OrderStatus.DISPATCHED

    @property
    def is_delivered(self) -> bool:
        return self.current_status == OrderStatus.DELIVERED

    @property
    def is_cancelled(self) -> bool:
        return self.current_status == OrderStatus.CANCELLED

    @property
    def is_returned(self) -> bool:
        return self.current_status == OrderStatus.RETURNED

    @property
    def is_scheduled(self) -> bool:
        return self.scheduled_date is not None

    @property
    def is_assigned(self) -> bool:
        return self.assigned_to_id is not None

    @property
    def has_customer_address(self) -> bool:
        return self.customer_address_id is not None

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        if not self.is_scheduled or self.is_delivered or self.is_cancelled:
            return False
        return (now or timezone.now()) > self.scheduled_date

    def requires_urgent_attention(self, now: Optional[datetime] = None) -> bool:
        if self.is_overdue(now):
            return True
        return self.is_pending and self.days_since_order(now) > URGENT_PENDING_DAYS

    def can_be_assigned(self) -> bool:
        return self.is_active and not self.is_cancelled and not self.is_delivered

    def can_be_unassigned(self) -> bool:
        return self.is_assigned and (
            self.is_pending or self.is_preparing or self.is_dispatched
        )

    def can_be_delivered(self) -> bool:
        return self.is_dispatched

    def can_be_cancelled(self) -> bool:
        return not self.is_delivered and not self.is_cancelled

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def assign(self, employee: Any) -> None:
        if self.is_assigned:
            raise OrderAlreadyAssigned("The order is already assigned.")
        if not self.can_be_assigned():
            raise OrderNotAssignable("The order status does not allow assignment.")
        self.assigned_to = employee

    def unassign(self) -> None:
        if not self.is_assigned:
            raise OrderNotAssigned("The order is not assigned.")
        if not self.can_be_unassigned():
            raise OrderNotUnassignable(
                "The order cannot be unassigned in its current status."
            )
        self.assigned_to = None

    def schedule(self, scheduled_date: datetime) -> None:
        if self.is_cancelled or self.is_delivered:
            raise OrderNotSchedulable(
                "A cancelled or delivered order cannot be scheduled."
            )
        self.scheduled_date = scheduled_date

    def mark_delivered(self, now: Optional[datetime] = None) -> None:
        if not self.can_be_delivered():
            raise OrderNotDispatched("Only a dispatched order can be marked as delivered.")
        self.delivered_date = now or timezone.now()

    def cancel(self) -> None:
        """Veto illegal cancellation; the cancellation itself is a ledger entry."""
        if self.is_delivered:
            raise OrderNotCancellable("A delivered order cannot be cancelled.")

    def ensure_can_transition_to(self, new_status: str) -> None:
        if new_status not in OrderStatus.values:
            raise OrderValidationError(
                f"Status must be one of: {', '.join(OrderStatus.values)}."
            )

        current = self.current_status
        if new_status == current:
            raise StatusTransitionForbidden(
                "The order cannot be changed to its current status."
            )
        if current == OrderStatus.CANCELLED:
            raise StatusTransitionForbidden(
                "The status of a cancelled order cannot be changed."
            )
        if current == OrderStatus.DELIVERED:
            raise StatusTransitionForbidden(
                "The status of a delivered order cannot be changed."
            )
        if new_status == OrderStatus.DELIVERED and not self.is_dispatched:
            raise StatusTransitionForbidden(
                "An order that is not dispatched cannot be marked as delivered."
            )
        if new_status == OrderStatus.DISPATCHED and not self.is_assigned:
            raise StatusTransitionForbidden(
                "An order that is not assigned cannot be marked as dispatched."
            )
        if new_status == OrderStatus.PREPARING and not self.is_pending:
            raise StatusTransitionForbidden(
                "Only a pending order can be marked as preparing."
            )
        if new_status == OrderStatus.PENDING and not self.is_preparing:
            raise StatusTransitionForbidden(
                "Only a preparing order can be returned to pending."
            )

    # ------------------------------------------------------------------
    # Time helpers
    # ------------------------------------------------------------------

    def days_since_order(self, now: Optional[datetime] = None) -> int:
        return _ceil_days((now or timezone.now()) - self.order_date)

    def days_overdue(self, now: Optional[datetime] = None) -> int:
        if not self.is_overdue(now):
            return 0
        return _ceil_days((now or timezone.now()) - self.scheduled_date)

    def days_to_delivery(self, now: Optional[datetime] = None) -> Optional[int]:
        if not self.is_scheduled or self.is_delivered:
            return None
        return _ceil_days(self.scheduled_date - (now or timezone.now()))

    def days_since_delivery(self, now: Optional[datetime] = None) -> Optional[int]:
        if self.delivered_date is None:
            return None
        return _ceil_days((now or timezone.now()) - self.delivered_date)

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    @staticmethod
    def _stamp(existing: str, text: str) -> str:
        entry = f"[{timezone.now().isoformat()}] {text}"
        return f"{existing}\n{entry}" if existing else entry

    def add_notes(self, text: str) -> None:
        self.notes = self._stamp(self.notes, text)

    def add_delivery_notes(self, text: str) -> None:
        self.delivery_notes = self._stamp(self.delivery_notes, text)

    def status_summary(self) -> str:
        summary = f"Status: {self.current_status}"
        if self.is_scheduled:
            summary += f" - Scheduled: {self.scheduled_date:%Y-%m-%d}"
        if self.is_assigned and self.assigned_to is not None:
            summary += f" - Assigned to: {self.assigned_to.full_name}"
        return summary

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def active_items(self) -> list[OrderItem]:
        if "items" in getattr(self, "_prefetched_objects_cache", {}):
            return [item for item in self.items.all() if item.is_active]
        return list(self.items.alive())

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return self.tracking_code


class OrderItem(SoftDeleteModel):
    """Line item linking an Order to a Product.

    Items are never edited one by one: an order update retires the whole
    set (``is_active=False``) and inserts the new one.
    """

    id = models.BigAutoField(primary_key=True)
    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="items",
    )
    product: models.ForeignKey = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    requested_quantity: models.PositiveIntegerField = models.PositiveIntegerField()
    delivered_quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        null=True, blank=True
    )
    notes: models.CharField = models.CharField(  # noqa: DJ01
        max_length=MAX_ITEM_NOTES_LENGTH, null=True, blank=True
    )

    class Meta:
        db_table = "order_items"
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(requested_quantity__gte=1)
                & models.Q(requested_quantity__lte=MAX_ITEM_QUANTITY),
                name="order_items_quantity_range",
            ),
        ]

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def build(
        cls,
        product_id: Any,
        requested_quantity: Any,
        notes: Optional[str] = None,
        order: Optional[Order] = None,
    ) -> OrderItem:
        """Validate and return an unsaved item."""
        if product_id is None:
            raise OrderItemValidationError("Product is required.")
        if isinstance(requested_quantity, bool) or not isinstance(requested_quantity, int):
            raise OrderItemValidationError("Requested quantity must be an integer.")
        if requested_quantity <= 0:
            raise OrderItemValidationError("Requested quantity must be greater than 0.")
        if requested_quantity > MAX_ITEM_QUANTITY:
            raise OrderItemValidationError(
                f"Requested quantity cannot exceed {MAX_ITEM_QUANTITY:,} units."
            )

        normalized_notes: Optional[str] = None
        if notes is not None:
            trimmed = notes.strip()
            if len(trimmed) > MAX_ITEM_NOTES_LENGTH:
                raise OrderItemValidationError(
                    f"Item notes cannot exceed {MAX_ITEM_NOTES_LENGTH} characters."
                )
            normalized_notes = trimmed or None

        item = cls(
            product_id=product_id,
            requested_quantity=requested_quantity,
            notes=normalized_notes,
        )
        if order is not None:
            item.order = order
        return item

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    @property
    def is_fully_delivered(self) -> bool:
        return (
            self.delivered_quantity is not None
            and self.delivered_quantity >= self.requested_quantity
        )

    @property
    def has_notes(self) -> bool:
        return bool(self.notes and self.notes.strip())

    @property
    def has_delivered_quantity(self) -> bool:
        return self.delivered_quantity is not None

    @property
    def can_be_modified(self) -> bool:
        return not self.is_fully_delivered

    def __str__(self) -> str:
        return f"{self.product_id} x{self.requested_quantity}"


class OrderStatusHistoryQuerySet(models.QuerySet):
    def update(self, **kwargs: Any) -> int:
        raise ImmutableHistoryError("Status history entries cannot be updated.")

    def delete(self) -> tuple[int, dict[str, int]]:
        raise ImmutableHistoryError("Status history entries cannot be deleted.")


class OrderStatusHistory(BaseModel):
    """Append-only ledger of status changes.

    The latest entry by ``changed_at`` (ties broken by ``id``) is the
    order's current status.  ``changed_by`` is nullable: ``None`` means
    the change was performed by the system.
    """

    id = models.BigAutoField(primary_key=True)
    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="status_history",
    )
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
    )
    description: models.TextField = models.TextField(null=True, blank=True)  # noqa: DJ01
    changed_at: models.DateTimeField = models.DateTimeField(default=timezone.now)
    changed_by: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_status_changes",
    )

    objects = OrderStatusHistoryQuerySet.as_manager()

    class Meta:
        db_table = "order_status_history"
        ordering = ["changed_at", "id"]
        indexes = [
            models.Index(
                fields=["order", "-changed_at"],
                name="osh_order_changed_idx",
            ),
        ]

    # ------------------------------------------------------------------
    # Append-only
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise ImmutableHistoryError("Status history entries cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):
        raise ImmutableHistoryError("Status history entries cannot be deleted.")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def was_changed_to(self, status: str) -> bool:
        return self.status == status

    def was_changed_by(self, user_id: Any) -> bool:
        return self.changed_by_id == user_id

    def was_changed_before(self, moment: datetime) -> bool:
        return self.changed_at < moment

    def was_changed_after(self, moment: datetime) -> bool:
        return self.changed_at > moment

    @property
    def has_description(self) -> bool:
        return bool(self.description and self.description.strip())

    @property
    def can_be_described(self) -> bool:
        return self.status in DESCRIBABLE_STATUSES

    def __str__(self) -> str:
        return f"{self.order_id} -> {self.status}"
