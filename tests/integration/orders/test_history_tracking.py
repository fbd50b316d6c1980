"""Integration scenarios for the status ledger.

Covers:
- Full delivery path PENDIENTE -> PREPARANDO -> DESPACHADO -> ENTREGADO.
- N status changes leave N + 1 entries, each attributed to its actor.
- Entries sharing a timestamp: the highest id wins.
- A cancelled order refuses every later status change.
- A returned order keeps its description and can be re-dispatched.
- Entries cannot be edited or removed.
"""

from __future__ import annotations

import pytest
from freezegun import freeze_time

from modules.orders.constants import OrderStatus
from modules.orders.exceptions import ImmutableHistoryError, StatusTransitionForbidden
from modules.orders.models import Order, OrderStatusHistory

pytestmark = pytest.mark.integration


def _timeline(order):
    return list(
        OrderStatusHistory.objects.filter(order_id=order.id)
        .order_by("changed_at", "id")
        .values_list("status", flat=True)
    )


def test_delivery_happy_path(order_service, make_order, operator, driver):
    order = make_order()

    order_service.update_status(order.id, OrderStatus.PREPARING, actor=operator)
    order_service.assign_order(order.id, driver.id, actor=operator)
    order_service.update_status(order.id, OrderStatus.DISPATCHED, actor=operator)
    delivered = order_service.update_status(order.id, OrderStatus.DELIVERED, actor=operator)

    assert _timeline(order) == [
        OrderStatus.PENDING,
        OrderStatus.PREPARING,
        OrderStatus.DISPATCHED,
        OrderStatus.DELIVERED,
    ]
    last = OrderStatusHistory.objects.filter(order_id=order.id).last()
    assert delivered.delivered_date == last.changed_at
    stored = Order.objects.get(pk=order.pk)
    assert stored.is_delivered
    assert stored.assigned_to_id == driver.id


def test_each_change_adds_exactly_one_entry(order_service, make_order, operator):
    order = make_order()
    changes = [
        OrderStatus.PREPARING,
        OrderStatus.PENDING,
        OrderStatus.PREPARING,
    ]
    for status in changes:
        order_service.update_status(order.id, status, actor=operator)

    entries = OrderStatusHistory.objects.filter(order_id=order.id)
    assert entries.count() == len(changes) + 1
    assert {entry.changed_by_id for entry in entries} == {operator.id}


def test_assignment_changes_add_no_entry(order_service, make_order, operator, driver):
    order = make_order()
    order_service.assign_order(order.id, driver.id, actor=operator)
    order_service.unassign_order(order.id, actor=operator)

    assert _timeline(order) == [OrderStatus.PENDING]


@freeze_time("2025-03-10 12:00:00")
def test_same_timestamp_resolved_by_id(order_service, make_order, operator):
    order = make_order()
    order_service.update_status(order.id, OrderStatus.PREPARING, actor=operator)
    order_service.update_status(order.id, OrderStatus.PENDING, actor=operator)

    stored = Order.objects.get(pk=order.pk)
    assert len({e.changed_at for e in stored.status_history.all()}) == 1
    assert stored.current_status == OrderStatus.PENDING


def test_cancelled_order_is_final(order_service, make_order, operator):
    order = make_order()
    order_service.cancel_order(order.id, actor=operator, reason="Duplicado")

    for status in (OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.RETURNED):
        with pytest.raises(StatusTransitionForbidden):
            order_service.update_status(order.id, status, actor=operator)

    assert _timeline(order) == [OrderStatus.PENDING, OrderStatus.CANCELLED]


def test_return_then_redispatch(order_service, make_order, operator, driver):
    order = make_order()
    order_service.assign_order(order.id, driver.id, actor=operator)
    order_service.update_status(order.id, OrderStatus.DISPATCHED, actor=operator)
    order_service.update_status(
        order.id, OrderStatus.RETURNED, actor=operator, description="  Sin receptor  "
    )
    order_service.update_status(order.id, OrderStatus.DISPATCHED, actor=operator)

    returned = OrderStatusHistory.objects.get(order_id=order.id, status=OrderStatus.RETURNED)
    assert returned.description == "Sin receptor"
    assert Order.objects.get(pk=order.pk).is_dispatched


def test_entries_are_immutable(make_order):
    order = make_order()
    entry = OrderStatusHistory.objects.get(order_id=order.id)

    entry.status = OrderStatus.CANCELLED
    with pytest.raises(ImmutableHistoryError):
        entry.save()
    with pytest.raises(ImmutableHistoryError):
        entry.delete()
    with pytest.raises(ImmutableHistoryError):
        OrderStatusHistory.objects.filter(order_id=order.id).update(description="x")
    with pytest.raises(ImmutableHistoryError):
        OrderStatusHistory.objects.filter(order_id=order.id).delete()
