"""Integration tests for post-commit order notifications.

Covers:
- order:updated after every successful command, with the order id.
- order:assigned addressed to the driver's login.
- No notification when the command rolls back.
- Drivers without a login: assignment notice skipped, update still sent.
- Celery publisher hands the payload to the task; disabled notifications
  fall back to the null publisher.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from kombu.exceptions import OperationalError

from modules.orders.constants import OrderStatus
from modules.orders.exceptions import StatusTransitionForbidden
from modules.orders.notifications import OrderNotifier, default_publisher
from shared.infrastructure.notifications import (
    CeleryNotificationPublisher,
    NullNotificationPublisher,
)

pytestmark = pytest.mark.integration


@pytest.fixture()
def order(make_order):
    return make_order()


class TestPostCommitDelivery:
    def test_create_publishes_order_updated(
        self, make_order, publisher, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            created = make_order()

        assert publisher.published == [("order:updated", {"orderId": str(created.id)})]

    def test_status_change_publishes_order_updated(
        self, order, order_service, operator, publisher, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            order_service.update_status(order.id, OrderStatus.PREPARING, actor=operator)

        assert publisher.published == [("order:updated", {"orderId": str(order.id)})]

    def test_assign_addresses_driver_login(
        self, order, order_service, operator, driver, publisher,
        django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks(execute=True):
            order_service.assign_order(order.id, driver.id, actor=operator)

        assert publisher.published == [
            ("order:assigned", {"orderId": str(order.id), "userId": str(driver.user_id)}),
            ("order:updated", {"orderId": str(order.id)}),
        ]

    def test_driver_without_login_gets_update_only(
        self, order, order_service, operator, second_driver, publisher,
        django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks(execute=True):
            order_service.assign_order(order.id, second_driver.id, actor=operator)

        assert [topic for topic, _ in publisher.published] == ["order:updated"]

    def test_rejected_command_publishes_nothing(
        self, order, order_service, operator, publisher, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(StatusTransitionForbidden):
                order_service.update_status(
                    order.id, OrderStatus.DISPATCHED, actor=operator
                )

        assert callbacks == []
        assert publisher.published == []

    def test_nothing_published_before_commit(self, order, order_service, operator, publisher):
        order_service.cancel_order(order.id, actor=operator)
        assert publisher.published == []


class TestPublishers:
    def test_celery_publisher_delays_task(self):
        task = MagicMock()

        CeleryNotificationPublisher(task).publish("order:updated", {"orderId": "1"})

        task.delay.assert_called_once_with("order:updated", {"orderId": "1"})

    def test_celery_publisher_survives_broker_outage(self):
        task = MagicMock()
        task.delay.side_effect = OperationalError("broker down")

        CeleryNotificationPublisher(task).publish("order:updated", {"orderId": "1"})

        task.delay.assert_called_once()

    def test_default_publisher_uses_celery(self, settings):
        settings.ORDER_NOTIFICATIONS_ENABLED = True
        assert isinstance(default_publisher(), CeleryNotificationPublisher)

    def test_disabled_notifications_use_null_publisher(self, settings):
        settings.ORDER_NOTIFICATIONS_ENABLED = False
        assert isinstance(default_publisher(), NullNotificationPublisher)

    def test_failing_publisher_does_not_break_commit(
        self, order, django_capture_on_commit_callbacks
    ):
        broken = MagicMock()
        broken.publish.side_effect = RuntimeError("boom")
        notifier = OrderNotifier(broken)

        with django_capture_on_commit_callbacks(execute=True):
            notifier.order_updated(order)

        broken.publish.assert_called_once_with("order:updated", {"orderId": str(order.id)})
