"""Unit tests for OrderItem construction and predicates."""

from __future__ import annotations

import pytest

from modules.orders.exceptions import OrderItemValidationError, OrderValidationError
from modules.orders.models import OrderItem

pytestmark = pytest.mark.unit


class TestBuild:
    def test_valid_item(self):
        item = OrderItem.build(product_id=7, requested_quantity=12, notes="  frágil  ")
        assert item.product_id == 7
        assert item.requested_quantity == 12
        assert item.notes == "frágil"
        assert item.pk is None

    @pytest.mark.parametrize("quantity", [1, 10_000])
    def test_quantity_bounds_are_inclusive(self, quantity):
        assert OrderItem.build(1, quantity).requested_quantity == quantity

    @pytest.mark.parametrize("quantity", [0, -3, 10_001])
    def test_quantity_out_of_range(self, quantity):
        with pytest.raises(OrderItemValidationError):
            OrderItem.build(1, quantity)

    @pytest.mark.parametrize("quantity", [1.5, "3", None, True])
    def test_quantity_must_be_an_integer(self, quantity):
        with pytest.raises(OrderItemValidationError):
            OrderItem.build(1, quantity)

    def test_product_is_required(self):
        with pytest.raises(OrderItemValidationError):
            OrderItem.build(None, 1)

    def test_blank_notes_become_none(self):
        assert OrderItem.build(1, 1, notes="   ").notes is None

    def test_notes_length_limit(self):
        assert OrderItem.build(1, 1, notes="x" * 500).notes == "x" * 500
        with pytest.raises(OrderItemValidationError):
            OrderItem.build(1, 1, notes="x" * 501)

    def test_error_is_a_validation_error(self):
        assert issubclass(OrderItemValidationError, OrderValidationError)


class TestPredicates:
    def test_delivery_state(self):
        item = OrderItem.build(1, 5)
        assert not item.has_delivered_quantity
        assert not item.is_fully_delivered
        assert item.can_be_modified

        item.delivered_quantity = 3
        assert item.has_delivered_quantity
        assert not item.is_fully_delivered

        item.delivered_quantity = 5
        assert item.is_fully_delivered
        assert not item.can_be_modified

    def test_has_notes(self):
        assert OrderItem.build(1, 1, notes="Sin hielo").has_notes
        assert not OrderItem.build(1, 1).has_notes
