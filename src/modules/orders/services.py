"""Order service layer (Use Cases).

Orchestrates the order fulfillment lifecycle: creation, edits,
assignment, status changes and cancellation.  All write operations
are atomic; the service defines the unit-of-work boundary.

Every command follows the same shape:

1. Lock the order row (``SELECT FOR UPDATE``) so guards evaluate
   against committed state.
2. Run the aggregate guards; a violation raises and nothing is written.
3. Check the caller's deadline.
4. Persist order fields and the ledger entry in one transaction.
5. Schedule notifications for after commit.

Business rules enforced:
- RN-CLI-003: Customer must be active.
- RN-PRO-002: Products must exist and be active.
- Assignment only to active drivers, never to a closed order.
- Status transitions validated by ``Order.ensure_can_transition_to``.
- One ledger entry per status change; assignment changes add none.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

import structlog
from django.db import IntegrityError, transaction
from django.utils import timezone

from modules.orders.constants import TRACKING_CODE_MAX_RETRIES, OrderStatus
from modules.orders.exceptions import (
    CustomerAddressNotFound,
    CustomerNotFound,
    DeadlineExceeded,
    EmployeeNotDriver,
    EmployeeNotFound,
    InactiveCustomer,
    InvalidTrackingCodeFormat,
    OrderNotCancellable,
    OrderNotFound,
    OrderValidationError,
    ProductNotFound,
    StatusTransitionForbidden,
    TrackingCodeChecksumMismatch,
    TrackingCodeGenerationError,
)
from modules.orders.ledger import StatusLedger
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.notifications import OrderNotifier
from modules.orders.tracking import TrackingCode

if TYPE_CHECKING:
    from modules.customers.models import Customer, CustomerAddress
    from modules.customers.repositories.interfaces import ICustomerRepository
    from modules.employees.repositories.interfaces import IEmployeeRepository
    from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, UpdateOrderDTO
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and the notifier via constructor injection (DIP).
    ``actor`` is the authenticated user performing the command; it is
    recorded as ``created_by`` and as ``changed_by`` on ledger entries.
    ``deadline`` is an optional aware datetime after which the command
    aborts with ``DeadlineExceeded`` instead of writing.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        customer_repository: ICustomerRepository,
        product_repository: IProductRepository,
        employee_repository: IEmployeeRepository,
        notifier: Optional[OrderNotifier] = None,
    ) -> None:
        self._order_repo = order_repository
        self._customer_repo = customer_repository
        self._product_repo = product_repository
        self._employee_repo = employee_repository
        self._notifier = notifier or OrderNotifier()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(
        self,
        dto: CreateOrderDTO,
        actor: Any,
        deadline: Optional[datetime] = None,
    ) -> Order:
        """Create an order with its items and the initial PENDIENTE entry.

        Raises:
            CustomerNotFound: customer does not exist.
            InactiveCustomer: customer is inactive (RN-CLI-003).
            CustomerAddressNotFound: address missing or not the customer's.
            ProductNotFound: a product does not exist or is inactive.
            OrderItemValidationError: an item is malformed.
            TrackingCodeGenerationError: no free tracking code was found.
            DeadlineExceeded: the deadline passed before the write.
        """
        log = logger.bind(customer_id=str(dto.customer_id))
        log.info("order.creation_started", item_count=len(dto.items))

        customer = self._customer_repo.get_by_id(str(dto.customer_id))
        if not customer:
            raise CustomerNotFound(f"Customer {dto.customer_id} not found.")
        if not customer.is_active:
            raise InactiveCustomer(f"Customer {dto.customer_id} is inactive.")

        address = self._customer_repo.get_address(str(customer.id), dto.address_id)
        if not address:
            raise CustomerAddressNotFound(
                f"Address {dto.address_id} not found for customer {dto.customer_id}."
            )

        items = self._build_items(dto.items)
        self._check_deadline(deadline)

        order = self._persist_new_order(dto, customer, address, items, actor)

        log.info(
            "order.created",
            order_id=order.id,
            tracking_code=order.tracking_code,
        )
        self._notifier.order_updated(order)
        return order

    @transaction.atomic
    def update_order(
        self,
        order_id: Any,
        dto: UpdateOrderDTO,
        actor: Any,
        deadline: Optional[datetime] = None,
    ) -> Order:
        """Apply a partial update; ``items`` replaces the whole active set.

        Raises:
            OrderNotFound: order does not exist.
            OrderNotSchedulable: scheduling a cancelled or delivered order.
            ProductNotFound: a product does not exist or is inactive.
            DeadlineExceeded: the deadline passed before the write.
        """
        order = self._lock(order_id)
        log = logger.bind(order_id=order.id, actor_id=getattr(actor, "pk", None))

        if dto.scheduled_date is not None:
            order.schedule(dto.scheduled_date)
        if dto.notes is not None:
            order.notes = dto.notes
        if dto.delivery_notes is not None:
            order.delivery_notes = dto.delivery_notes

        items = self._build_items(dto.items) if dto.items is not None else None
        self._check_deadline(deadline)

        self._order_repo.save_order_and_append_history(order)
        if items is not None:
            self._order_repo.replace_items(order.id, items)

        log.info("order.updated", items_replaced=items is not None)
        self._notifier.order_updated(order)
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def assign_order(
        self,
        order_id: Any,
        employee_id: Any,
        actor: Any,
        deadline: Optional[datetime] = None,
    ) -> Order:
        """Assign an active driver to the order.

        Raises:
            OrderNotFound: order does not exist.
            EmployeeNotFound: employee does not exist.
            EmployeeNotDriver: employee is inactive or not a driver.
            OrderAlreadyAssigned: the order already has an assignee.
            OrderNotAssignable: the order is inactive, cancelled or delivered.
            DeadlineExceeded: the deadline passed before the write.
        """
        order = self._lock(order_id)
        log = logger.bind(order_id=order.id, employee_id=str(employee_id))

        employee = self._employee_repo.get_by_id(str(employee_id))
        if not employee:
            raise EmployeeNotFound(f"Employee {employee_id} not found.")
        if not employee.is_active or not employee.is_driver:
            log.warning("order.assign_rejected", reason="not_an_active_driver")
            raise EmployeeNotDriver("Only active drivers can be assigned to an order.")

        order.assign(employee)
        self._check_deadline(deadline)

        self._order_repo.save_order_and_append_history(
            order, update_fields=["assigned_to", "updated_at"]
        )

        log.info("order.assigned", actor_id=getattr(actor, "pk", None))
        self._notifier.order_assigned(order, employee)
        self._notifier.order_updated(order)
        return order

    @transaction.atomic
    def unassign_order(
        self,
        order_id: Any,
        actor: Any,
        deadline: Optional[datetime] = None,
    ) -> Order:
        """Clear the assignee of an open order.

        Raises:
            OrderNotFound: order does not exist.
            OrderNotAssigned: the order has no assignee.
            OrderNotUnassignable: the order is no longer open.
            DeadlineExceeded: the deadline passed before the write.
        """
        order = self._lock(order_id)
        previous = order.assigned_to_id

        order.unassign()
        self._check_deadline(deadline)

        self._order_repo.save_order_and_append_history(
            order, update_fields=["assigned_to", "updated_at"]
        )

        logger.info(
            "order.unassigned",
            order_id=order.id,
            previous_employee_id=str(previous),
            actor_id=getattr(actor, "pk", None),
        )
        self._notifier.order_updated(order)
        return order

    @transaction.atomic
    def update_status(
        self,
        order_id: Any,
        new_status: str,
        actor: Any,
        description: Optional[str] = None,
        deadline: Optional[datetime] = None,
    ) -> Order:
        """Append a status change to the ledger.

        ENTREGADO also stamps ``delivered_date``.

        Raises:
            OrderNotFound: order does not exist.
            OrderValidationError: unknown status.
            StatusTransitionForbidden: transition not allowed (RN-PED-001).
            InvalidHistoryDescription: description not allowed or malformed.
            DeadlineExceeded: the deadline passed before the write.
        """
        order = self._lock(order_id)
        log = logger.bind(order_id=order.id, new_status=new_status)
        previous = order.current_status

        try:
            order.ensure_can_transition_to(new_status)
        except (OrderValidationError, StatusTransitionForbidden):
            log.warning("order.invalid_transition", current_status=previous)
            raise

        entry = StatusLedger.append(order, new_status, actor, description)
        update_fields: List[str] = ["updated_at"]
        if new_status == OrderStatus.DELIVERED:
            order.mark_delivered(entry.changed_at)
            update_fields.append("delivered_date")
        elif new_status == OrderStatus.CANCELLED:
            order.cancel()

        self._check_deadline(deadline)
        self._order_repo.save_order_and_append_history(
            order, entry, update_fields=update_fields
        )

        log.info("order.status_updated", previous_status=previous)
        self._notifier.order_updated(order)
        return order

    @transaction.atomic
    def cancel_order(
        self,
        order_id: Any,
        actor: Any,
        reason: Optional[str] = None,
        deadline: Optional[datetime] = None,
    ) -> Order:
        """Cancel an order, optionally recording a reason on the ledger.

        Raises:
            OrderNotFound: order does not exist.
            OrderNotCancellable: the order is delivered or already cancelled.
            InvalidHistoryDescription: the reason is blank or too long.
            DeadlineExceeded: the deadline passed before the write.
        """
        order = self._lock(order_id)
        log = logger.bind(order_id=order.id)

        if order.is_cancelled:
            log.warning("order.cancel_not_allowed", reason="already_cancelled")
            raise OrderNotCancellable("The order is already cancelled.")
        order.cancel()

        entry = StatusLedger.append(order, OrderStatus.CANCELLED, actor, reason)
        self._check_deadline(deadline)
        self._order_repo.save_order_and_append_history(
            order, entry, update_fields=["updated_at"]
        )

        log.info("order.cancelled", actor_id=getattr(actor, "pk", None))
        self._notifier.order_updated(order)
        return order

    @transaction.atomic
    def deactivate_order(self, order_id: Any, actor: Any) -> None:
        """Soft-delete an order.  Deactivating twice is a no-op."""
        order = self._lock(order_id)
        if not self._order_repo.delete(str(order.id)):
            return
        logger.info(
            "order.deactivated",
            order_id=order.id,
            actor_id=getattr(actor, "pk", None),
        )
        self._notifier.order_updated(order)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: Any) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def get_order_by_tracking_code(self, code: Any) -> Order:
        """Validate ``code`` before looking it up.

        A malformed code or a checksum mismatch is reported as such,
        never as a missing order.
        """
        try:
            tracking_code = TrackingCode.parse(code)
        except (InvalidTrackingCodeFormat, TrackingCodeChecksumMismatch) as exc:
            logger.warning(
                "order.tracking_code_rejected",
                reason=type(exc).__name__,
                code=str(code)[:32],
            )
            raise

        order = self._order_repo.get_by_tracking_code(tracking_code.value)
        if not order:
            raise OrderNotFound(f"Order {tracking_code} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None):
        """Return a queryset of orders, optionally filtered."""
        return self._order_repo.list(filters)

    def get_history(self, order_id: Any) -> List[OrderStatusHistory]:
        """Ledger of the order, oldest first."""
        order = self.get_order(order_id)
        return self._order_repo.get_history(order.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock(self, order_id: Any) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    @staticmethod
    def _check_deadline(deadline: Optional[datetime]) -> None:
        if deadline is not None and timezone.now() >= deadline:
            logger.warning("order.deadline_exceeded", deadline=deadline.isoformat())
            raise DeadlineExceeded(
                "The request deadline expired before the order could be saved."
            )

    def _build_items(self, item_dtos: Iterable[CreateOrderItemDTO]) -> List[OrderItem]:
        item_dtos = list(item_dtos)
        wanted = {item.product_id for item in item_dtos}
        missing = wanted - self._product_repo.active_ids(wanted)
        if missing:
            raise ProductNotFound(
                f"Products not found or inactive: {', '.join(map(str, sorted(missing)))}."
            )
        return [
            OrderItem.build(item.product_id, item.requested_quantity, item.notes)
            for item in item_dtos
        ]

    def _persist_new_order(
        self,
        dto: CreateOrderDTO,
        customer: Customer,
        address: CustomerAddress,
        items: List[OrderItem],
        actor: Any,
    ) -> Order:
        """Insert the order under a fresh tracking code.

        A code seen as taken (before insert, or through the unique index
        when a concurrent insert wins) is retried with a new one.
        """
        for attempt in range(1, TRACKING_CODE_MAX_RETRIES + 1):
            code = TrackingCode.generate()
            if self._order_repo.tracking_code_exists(code.value):
                logger.warning(
                    "order.tracking_code_collision",
                    attempt=attempt,
                    tracking_code=code.value,
                )
                continue

            order = Order(
                tracking_code=code.value,
                customer=customer,
                customer_address=address,
                created_by=actor,
                scheduled_date=dto.scheduled_date,
                notes=dto.notes or "",
                delivery_notes=dto.delivery_notes or "",
            )
            entry = StatusLedger.append(order, OrderStatus.PENDING, actor)
            try:
                return self._order_repo.create(order, items, entry)
            except IntegrityError:
                if not self._order_repo.tracking_code_exists(code.value):
                    raise
                logger.warning(
                    "order.tracking_code_collision",
                    attempt=attempt,
                    tracking_code=code.value,
                )

        raise TrackingCodeGenerationError(
            f"Could not generate a unique tracking code after "
            f"{TRACKING_CODE_MAX_RETRIES} attempts."
        )
