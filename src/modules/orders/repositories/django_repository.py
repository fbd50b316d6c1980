"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
All write operations are wrapped in ``transaction.atomic()`` so the Order
aggregate (Order + OrderItems + ledger entry) is persisted atomically;
nested inside a service transaction they become savepoints.

Concurrency control on lifecycle operations uses ``select_for_update()``
on the order row.  Back-ends without row locks (SQLite) ignore it and
rely on their database-level write lock.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import OuterRef, Prefetch, Subquery

from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


def _latest_status_subquery() -> Subquery:
    latest = (
        OrderStatusHistory.objects.filter(order=OuterRef("pk"))
        .order_by("-changed_at", "-id")
        .values("status")[:1]
    )
    return Subquery(latest)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    @staticmethod
    def _queryset() -> models.QuerySet:
        """Order queryset with every relation the aggregate reads.

        ``select_related`` for the FKs (single JOIN) and
        ``prefetch_related`` for active items and the ledger (batched
        queries).  Prevents N+1.
        """
        return Order.objects.select_related(
            "customer",
            "customer_address",
            "created_by",
            "assigned_to__user",
        ).prefetch_related(
            Prefetch(
                "items",
                queryset=OrderItem.objects.alive().select_related("product"),
            ),
            "status_history",
        )

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(
        self,
        order: Order,
        items: Sequence[OrderItem],
        initial_entry: OrderStatusHistory,
    ) -> Order:
        order.save()

        for item in items:
            item.order = order
        OrderItem.objects.bulk_create(items)

        initial_entry.order = order
        initial_entry.save()

        logger.info(
            "order.persisted",
            order_id=order.id,
            tracking_code=order.tracking_code,
            item_count=len(items),
        )
        return self.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Returns ``None`` for non-existent or invalid IDs."""
        try:
            return self._queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Only the order row is locked (``of=("self",)``); the nullable
        joins pulled by ``select_related`` stay unlocked.
        """
        try:
            return (
                self._queryset()
                .select_for_update(of=("self",))
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_tracking_code(self, tracking_code: str) -> Optional[Order]:
        return self._queryset().filter(tracking_code=tracking_code).first()

    def tracking_code_exists(self, tracking_code: str) -> bool:
        return Order.objects.filter(tracking_code=tracking_code).exists()

    def get_history(self, order_id: int) -> List[OrderStatusHistory]:
        return list(
            OrderStatusHistory.objects.select_related("changed_by")
            .filter(order_id=order_id)
            .order_by("changed_at", "id")
        )

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        """List orders annotated with ``current_status_value``.

        Examples of valid filters::

            {"is_active": True}
            {"current_status_value": "PENDIENTE", "customer_id": "..."}
        """
        queryset = self._queryset().annotate(
            current_status_value=_latest_status_subquery()
        )
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @transaction.atomic
    def save_order_and_append_history(
        self,
        order: Order,
        entry: Optional[OrderStatusHistory] = None,
        update_fields: Optional[Sequence[str]] = None,
    ) -> Order:
        if update_fields is not None:
            order.save(update_fields=list(update_fields))
        else:
            order.save()

        if entry is not None:
            entry.order = order
            entry.save()
            order.forget_cached_history()

        logger.info(
            "order.history_appended" if entry is not None else "order.saved",
            order_id=order.id,
            status=entry.status if entry is not None else None,
        )
        return order

    @transaction.atomic
    def replace_items(self, order_id: int, items: Sequence[OrderItem]) -> List[OrderItem]:
        retired, _ = OrderItem.objects.filter(order_id=order_id).delete()

        for item in items:
            item.order_id = order_id
        created = OrderItem.objects.bulk_create(items)

        logger.info(
            "order.items_replaced",
            order_id=order_id,
            retired=retired,
            inserted=len(created),
        )
        return created

    def delete(self, id: str) -> bool:
        """Soft-delete an active order; ``False`` when none matched."""
        try:
            deactivated, _ = Order.objects.filter(id=id).delete()
        except (ValueError, ValidationError):
            return False
        if deactivated:
            logger.info("order.soft_deleted", order_id=id)
        return bool(deactivated)
