"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as DTOValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.customers.repositories.django_repository import CustomerDjangoRepository
from modules.employees.repositories.django_repository import EmployeeDjangoRepository
from modules.orders.dtos import (
    AssignOrderDTO,
    CancelOrderDTO,
    CreateOrderDTO,
    CreateOrderItemDTO,
    UpdateOrderDTO,
    UpdateOrderStatusDTO,
)
from modules.orders.exceptions import (
    Conflict,
    DeadlineExceeded,
    Forbidden,
    NotFound,
    OrderValidationError,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    AssignOrderSerializer,
    CancelOrderSerializer,
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    StatusHistorySerializer,
    UpdateOrderSerializer,
    UpdateOrderStatusSerializer,
)
from modules.orders.services import OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository

_ERROR_STATUS = (
    (OrderValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Forbidden, status.HTTP_403_FORBIDDEN),
    (Conflict, status.HTTP_409_CONFLICT),
    (DeadlineExceeded, status.HTTP_504_GATEWAY_TIMEOUT),
)

DOMAIN_ERRORS = tuple(category for category, _ in _ERROR_STATUS)


def domain_error_response(exc: Exception) -> Response:
    """Translate a domain exception into its HTTP response."""
    for category, status_code in _ERROR_STATUS:
        if isinstance(exc, category):
            return Response({"detail": str(exc)}, status=status_code)
    raise exc


def dto_error_response(exc: DTOValidationError) -> Response:
    return Response(
        {"detail": [error["msg"] for error in exc.errors()]},
        status=status.HTTP_400_BAD_REQUEST,
    )


def _item_dtos(items: List[Dict[str, Any]]) -> List[CreateOrderItemDTO]:
    return [
        CreateOrderItemDTO(
            product_id=item["product_id"],
            requested_quantity=item["requested_quantity"],
            notes=item.get("notes"),
        )
        for item in items
    ]


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.  Commands answer ``204 No Content``.
    """

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    ordering_fields = ["order_date", "scheduled_date", "tracking_code"]
    ordering = ["-order_date", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    lookup_value_regex = r"\d+"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(
            order_repository=OrderDjangoRepository(),
            customer_repository=CustomerDjangoRepository(),
            product_repository=ProductDjangoRepository(),
            employee_repository=EmployeeDjangoRepository(),
        )

    def get_throttles(self) -> list[BaseThrottle]:
        """Define escopos de throttling por ação."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve", "tracking", "history"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    @staticmethod
    def _deadline() -> Optional[datetime]:
        seconds = getattr(settings, "ORDER_COMMAND_TIMEOUT_SECONDS", None)
        if not seconds:
            return None
        return timezone.now() + timedelta(seconds=seconds)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)
        data = create_serializer.validated_data

        try:
            dto = CreateOrderDTO(
                customer_id=data["customer_id"],
                address_id=data["address_id"],
                items=_item_dtos(data["items"]),
                scheduled_date=data.get("scheduled_date"),
                notes=data.get("notes", ""),
                delivery_notes=data.get("delivery_notes", ""),
            )
        except DTOValidationError as exc:
            return dto_error_response(exc)

        try:
            order = self._service.create_order(
                dto, actor=request.user, deadline=self._deadline()
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        out = OrderSerializer(order)
        return Response(out.data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        return self._service.list_orders()

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, customer, tracking code, date range, active
        flag) is handled by ``OrderFilter``.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(pk)
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=["get"], url_path=r"tracking/(?P<code>[^/]+)")
    def tracking(self, request: Request, code: str | None = None) -> Response:
        """GET /api/v1/orders/tracking/{code}/"""
        try:
            order = self._service.get_order_by_tracking_code(code)
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["get"])
    def history(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/history/"""
        try:
            entries = self._service.get_history(pk)
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(StatusHistorySerializer(entries, many=True).data)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/

        Schedule, notes and items.  Status changes go through
        ``POST /orders/{id}/status/``.
        """
        update_serializer = UpdateOrderSerializer(data=request.data)
        update_serializer.is_valid(raise_exception=True)
        data = update_serializer.validated_data

        try:
            dto = UpdateOrderDTO(
                scheduled_date=data.get("scheduled_date"),
                notes=data.get("notes"),
                delivery_notes=data.get("delivery_notes"),
                items=_item_dtos(data["items"]) if "items" in data else None,
            )
        except DTOValidationError as exc:
            return dto_error_response(exc)

        try:
            order = self._service.update_order(
                pk, dto, actor=request.user, deadline=self._deadline()
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/orders/{pk}/ (soft delete)"""
        try:
            self._service.deactivate_order(pk, actor=request.user)
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Lifecycle commands
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def assign(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/assign/"""
        serializer = AssignOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = AssignOrderDTO(employee_id=serializer.validated_data["employee_id"])

        try:
            self._service.assign_order(
                pk, dto.employee_id, actor=request.user, deadline=self._deadline()
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="clear-assignation")
    def clear_assignation(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/clear-assignation/"""
        try:
            self._service.unassign_order(
                pk, actor=request.user, deadline=self._deadline()
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/status/"""
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            dto = UpdateOrderStatusDTO(
                status=data["status"], description=data.get("description")
            )
        except DTOValidationError as exc:
            return dto_error_response(exc)

        try:
            self._service.update_status(
                pk,
                dto.status,
                actor=request.user,
                description=dto.description,
                deadline=self._deadline(),
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/"""
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = CancelOrderDTO(reason=serializer.validated_data.get("reason"))

        try:
            self._service.cancel_order(
                pk, actor=request.user, reason=dto.reason, deadline=self._deadline()
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)
