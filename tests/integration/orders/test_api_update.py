"""Integration tests for the order command endpoints.

Covers:
- PATCH: schedule, notes, item replacement; 400 on empty body, 409 on a
  closed order.
- assign / clear-assignation: 204, 404 unknown employee, 409 guards.
- status: 204 and ledger entry, 403 forbidden transitions, 400 invalid
  status or description.
- cancel: 204 with reason, 409 on delivered or already cancelled.
- DELETE: soft delete, 204.
- Deadline expiry: 504 and nothing written.
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch
from uuid import uuid4

import pytest
from django.utils import timezone

from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.views import OrderViewSet

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


@pytest.fixture()
def order(make_order):
    return make_order()


@pytest.fixture()
def assigned_order(order, order_service, operator, driver):
    order_service.assign_order(order.id, driver.id, actor=operator)
    return order


@pytest.fixture()
def dispatched_order(assigned_order, order_service, operator):
    order_service.update_status(assigned_order.id, OrderStatus.DISPATCHED, actor=operator)
    return assigned_order


def _statuses(order):
    return list(
        OrderStatusHistory.objects.filter(order=order)
        .order_by("changed_at", "id")
        .values_list("status", flat=True)
    )


# ---------------------------------------------------------------------------
# PATCH
# ---------------------------------------------------------------------------


class TestPatchOrder:
    def test_patch_notes_returns_full_order(self, auth_client, order):
        response = auth_client.patch(
            f"{URL}{order.id}/", {"delivery_notes": "Portón azul"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["delivery_notes"] == "Portón azul"
        assert "items" in response.json()

    def test_patch_schedule(self, auth_client, order, tomorrow):
        response = auth_client.patch(
            f"{URL}{order.id}/", {"scheduled_date": tomorrow.isoformat()}, format="json"
        )

        assert response.status_code == 200
        assert Order.objects.get(pk=order.pk).scheduled_date is not None

    def test_patch_items_replaces_active_set(self, auth_client, order, product_b):
        response = auth_client.patch(
            f"{URL}{order.id}/",
            {"items": [{"product_id": product_b.id, "requested_quantity": 12}]},
            format="json",
        )

        assert response.status_code == 200
        assert [i["product_id"] for i in response.json()["items"]] == [product_b.id]
        assert OrderItem.objects.filter(order=order).count() == 2
        assert OrderItem.objects.alive().filter(order=order).count() == 1

    def test_patch_does_not_touch_ledger(self, auth_client, order):
        auth_client.patch(f"{URL}{order.id}/", {"notes": "x"}, format="json")
        assert _statuses(order) == [OrderStatus.PENDING]

    def test_empty_patch_returns_400(self, auth_client, order):
        response = auth_client.patch(f"{URL}{order.id}/", {}, format="json")
        assert response.status_code == 400

    def test_schedule_on_cancelled_order_returns_409(
        self, auth_client, order, order_service, operator, tomorrow
    ):
        order_service.cancel_order(order.id, actor=operator)

        response = auth_client.patch(
            f"{URL}{order.id}/", {"scheduled_date": tomorrow.isoformat()}, format="json"
        )

        assert response.status_code == 409

    def test_patch_unknown_order_returns_404(self, auth_client):
        response = auth_client.patch(f"{URL}987654/", {"notes": "x"}, format="json")
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Assignment
# ---------------------------------------------------------------------------


class TestAssignment:
    def test_assign_returns_204(self, auth_client, order, driver):
        response = auth_client.post(
            f"{URL}{order.id}/assign/", {"employee_id": str(driver.id)}, format="json"
        )

        assert response.status_code == 204
        assert Order.objects.get(pk=order.pk).assigned_to_id == driver.id
        assert _statuses(order) == [OrderStatus.PENDING]

    def test_assign_unknown_employee_returns_404(self, auth_client, order):
        response = auth_client.post(
            f"{URL}{order.id}/assign/", {"employee_id": str(uuid4())}, format="json"
        )
        assert response.status_code == 404

    def test_assign_non_driver_returns_409(self, auth_client, order, cashier):
        response = auth_client.post(
            f"{URL}{order.id}/assign/", {"employee_id": str(cashier.id)}, format="json"
        )
        assert response.status_code == 409

    def test_assign_twice_returns_409(self, auth_client, assigned_order, second_driver):
        response = auth_client.post(
            f"{URL}{assigned_order.id}/assign/",
            {"employee_id": str(second_driver.id)},
            format="json",
        )
        assert response.status_code == 409

    def test_assign_invalid_payload_returns_400(self, auth_client, order):
        response = auth_client.post(
            f"{URL}{order.id}/assign/", {"employee_id": "nope"}, format="json"
        )
        assert response.status_code == 400

    def test_clear_assignation_returns_204(self, auth_client, assigned_order):
        response = auth_client.post(f"{URL}{assigned_order.id}/clear-assignation/")

        assert response.status_code == 204
        assert Order.objects.get(pk=assigned_order.pk).assigned_to_id is None

    def test_clear_unassigned_order_returns_409(self, auth_client, order):
        response = auth_client.post(f"{URL}{order.id}/clear-assignation/")
        assert response.status_code == 409


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


class TestChangeStatus:
    def test_status_change_appends_entry(self, auth_client, order):
        response = auth_client.post(
            f"{URL}{order.id}/status/", {"status": "PREPARANDO"}, format="json"
        )

        assert response.status_code == 204
        assert _statuses(order) == [OrderStatus.PENDING, OrderStatus.PREPARING]

    def test_dispatch_without_assignee_returns_403(self, auth_client, order):
        response = auth_client.post(
            f"{URL}{order.id}/status/", {"status": "DESPACHADO"}, format="json"
        )

        assert response.status_code == 403
        assert _statuses(order) == [OrderStatus.PENDING]

    def test_deliver_stamps_delivered_date(self, auth_client, dispatched_order):
        response = auth_client.post(
            f"{URL}{dispatched_order.id}/status/", {"status": "ENTREGADO"}, format="json"
        )

        assert response.status_code == 204
        stored = Order.objects.get(pk=dispatched_order.pk)
        assert stored.delivered_date is not None
        assert stored.is_delivered

    def test_same_status_returns_403(self, auth_client, order):
        response = auth_client.post(
            f"{URL}{order.id}/status/", {"status": "PENDIENTE"}, format="json"
        )
        assert response.status_code == 403

    def test_unknown_status_returns_400(self, auth_client, order):
        response = auth_client.post(
            f"{URL}{order.id}/status/", {"status": "PERDIDO"}, format="json"
        )
        assert response.status_code == 400

    def test_description_on_non_describable_status_returns_400(self, auth_client, order):
        response = auth_client.post(
            f"{URL}{order.id}/status/",
            {"status": "PREPARANDO", "description": "apurado"},
            format="json",
        )

        assert response.status_code == 400
        assert _statuses(order) == [OrderStatus.PENDING]

    def test_return_with_description(self, auth_client, dispatched_order):
        response = auth_client.post(
            f"{URL}{dispatched_order.id}/status/",
            {"status": "DEVUELTO", "description": "Local cerrado"},
            format="json",
        )

        assert response.status_code == 204
        last = OrderStatusHistory.objects.filter(order=dispatched_order).last()
        assert last.status == OrderStatus.RETURNED
        assert last.description == "Local cerrado"


# ---------------------------------------------------------------------------
# Cancel
# ---------------------------------------------------------------------------


class TestCancel:
    def test_cancel_with_reason(self, auth_client, order):
        response = auth_client.post(
            f"{URL}{order.id}/cancel/", {"reason": "Cliente desiste"}, format="json"
        )

        assert response.status_code == 204
        last = OrderStatusHistory.objects.filter(order=order).last()
        assert last.status == OrderStatus.CANCELLED
        assert last.description == "Cliente desiste"

    def test_cancel_without_reason(self, auth_client, order):
        response = auth_client.post(f"{URL}{order.id}/cancel/", {}, format="json")

        assert response.status_code == 204
        assert OrderStatusHistory.objects.filter(order=order).last().description is None

    def test_cancel_twice_returns_409(self, auth_client, order):
        auth_client.post(f"{URL}{order.id}/cancel/", {}, format="json")
        response = auth_client.post(f"{URL}{order.id}/cancel/", {}, format="json")
        assert response.status_code == 409

    def test_cancel_delivered_returns_409(
        self, auth_client, dispatched_order, order_service, operator
    ):
        order_service.update_status(
            dispatched_order.id, OrderStatus.DELIVERED, actor=operator
        )

        response = auth_client.post(f"{URL}{dispatched_order.id}/cancel/", {}, format="json")

        assert response.status_code == 409

    def test_cancel_unknown_order_returns_404(self, auth_client):
        response = auth_client.post(f"{URL}987654/cancel/", {}, format="json")
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Delete / deadline
# ---------------------------------------------------------------------------


class TestDelete:
    def test_delete_soft_deletes(self, auth_client, order):
        response = auth_client.delete(f"{URL}{order.id}/")

        assert response.status_code == 204
        stored = Order.objects.get(pk=order.pk)
        assert not stored.is_active
        assert auth_client.get(f"{URL}{order.id}/").status_code == 200

    def test_delete_unknown_returns_404(self, auth_client):
        assert auth_client.delete(f"{URL}987654/").status_code == 404


class TestDeadline:
    def test_expired_deadline_returns_504(self, auth_client, order):
        expired = timezone.now() - timedelta(seconds=1)

        with patch.object(OrderViewSet, "_deadline", return_value=expired):
            response = auth_client.post(
                f"{URL}{order.id}/status/", {"status": "PREPARANDO"}, format="json"
            )

        assert response.status_code == 504
        assert _statuses(order) == [OrderStatus.PENDING]
