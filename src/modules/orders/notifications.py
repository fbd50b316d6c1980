"""Post-commit order notifications.

Notifications are scheduled with ``transaction.on_commit`` so a rolled
back command never announces anything.  ``robust=True`` keeps a failing
publisher from breaking the other callbacks of the same commit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from django.conf import settings
from django.db import transaction

from modules.orders.constants import (
    NOTIFICATION_ORDER_ASSIGNED,
    NOTIFICATION_ORDER_UPDATED,
)
from shared.domain.notifications import INotificationPublisher
from shared.infrastructure.notifications import (
    CeleryNotificationPublisher,
    NullNotificationPublisher,
)

if TYPE_CHECKING:
    from modules.employees.models import Employee
    from modules.orders.models import Order

logger = structlog.get_logger(__name__)


def default_publisher() -> INotificationPublisher:
    """Celery-backed publisher, or a no-op one when notifications are off."""
    if not getattr(settings, "ORDER_NOTIFICATIONS_ENABLED", True):
        return NullNotificationPublisher()

    from modules.orders.tasks import publish_order_notification

    return CeleryNotificationPublisher(publish_order_notification)


class OrderNotifier:
    """Schedules ``order:updated`` / ``order:assigned`` after commit."""

    def __init__(self, publisher: Optional[INotificationPublisher] = None) -> None:
        self._publisher = publisher or default_publisher()

    def order_updated(self, order: Order) -> None:
        self._schedule(NOTIFICATION_ORDER_UPDATED, {"orderId": str(order.id)})

    def order_assigned(self, order: Order, employee: Employee) -> None:
        """Addressed to the employee's login; skipped when there is none."""
        if not employee.has_linked_user:
            logger.info(
                "notification.skipped",
                topic=NOTIFICATION_ORDER_ASSIGNED,
                order_id=order.id,
                employee_id=str(employee.id),
                reason="employee_without_user",
            )
            return
        self._schedule(
            NOTIFICATION_ORDER_ASSIGNED,
            {"orderId": str(order.id), "userId": str(employee.user_id)},
        )

    def _schedule(self, topic: str, payload: Dict[str, Any]) -> None:
        transaction.on_commit(
            lambda: self._publisher.publish(topic, payload),
            robust=True,
        )
