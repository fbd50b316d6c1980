"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import (
    MAX_HISTORY_DESCRIPTION_LENGTH,
    MAX_ITEM_NOTES_LENGTH,
    MAX_ITEM_QUANTITY,
    MAX_ORDER_NOTES_LENGTH,
    OrderStatus,
)
from modules.orders.models import Order, OrderItem, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single item in an order creation or update request."""

    product_id = serializers.IntegerField(min_value=1)
    requested_quantity = serializers.IntegerField(
        min_value=1, max_value=MAX_ITEM_QUANTITY
    )
    notes = serializers.CharField(
        required=False,
        allow_null=True,
        allow_blank=True,
        max_length=MAX_ITEM_NOTES_LENGTH,
    )


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    customer_id = serializers.UUIDField()
    address_id = serializers.IntegerField(min_value=1)
    items = CreateOrderItemSerializer(many=True, allow_empty=False)
    scheduled_date = serializers.DateTimeField(required=False, allow_null=True)
    notes = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=MAX_ORDER_NOTES_LENGTH
    )
    delivery_notes = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=MAX_ORDER_NOTES_LENGTH
    )


class UpdateOrderSerializer(serializers.Serializer):
    """Partial update payload; absent keys are left untouched."""

    scheduled_date = serializers.DateTimeField(required=False)
    notes = serializers.CharField(
        required=False, allow_blank=True, max_length=MAX_ORDER_NOTES_LENGTH
    )
    delivery_notes = serializers.CharField(
        required=False, allow_blank=True, max_length=MAX_ORDER_NOTES_LENGTH
    )
    items = CreateOrderItemSerializer(many=True, required=False, allow_empty=False)


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    description = serializers.CharField(
        required=False,
        allow_null=True,
        allow_blank=True,
        max_length=MAX_HISTORY_DESCRIPTION_LENGTH,
    )


class AssignOrderSerializer(serializers.Serializer):
    employee_id = serializers.UUIDField()


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(
        required=False,
        allow_null=True,
        allow_blank=True,
        max_length=MAX_HISTORY_DESCRIPTION_LENGTH,
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for active order items."""

    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "requested_quantity",
            "delivered_quantity",
            "notes",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for ledger entries."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "status",
            "description",
            "changed_at",
            "changed_by_id",
        ]
        read_only_fields = fields


class _CurrentStatusMixin:
    def get_current_status(self, obj: Order) -> str:
        annotated = getattr(obj, "current_status_value", None)
        return annotated or obj.current_status


class OrderSerializer(_CurrentStatusMixin, serializers.ModelSerializer):
    """Read serializer for orders with nested items and history."""

    current_status = serializers.SerializerMethodField()
    is_overdue = serializers.SerializerMethodField()
    requires_urgent_attention = serializers.SerializerMethodField()
    items = OrderItemSerializer(source="active_items", many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "tracking_code",
            "customer_id",
            "customer_address_id",
            "current_status",
            "order_date",
            "scheduled_date",
            "delivered_date",
            "created_by_id",
            "assigned_to_id",
            "notes",
            "delivery_notes",
            "is_active",
            "is_overdue",
            "requires_urgent_attention",
            "created_at",
            "updated_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields

    def get_is_overdue(self, obj: Order) -> bool:
        return obj.is_overdue()

    def get_requires_urgent_attention(self, obj: Order) -> bool:
        return obj.requires_urgent_attention()


class OrderListSerializer(_CurrentStatusMixin, serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    current_status = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "tracking_code",
            "customer_id",
            "current_status",
            "order_date",
            "scheduled_date",
            "assigned_to_id",
            "is_active",
        ]
        read_only_fields = fields
