"""Order repository interface.

Extends ``IRepository[Order]`` with what the order lifecycle needs:
atomic creation with items and the first ledger entry, locked reads,
tracking-code look-ups, the combined "save order + append ledger entry"
write and wholesale item replacement.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from modules.core.repositories.interfaces import IRepository, Queryable

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate includes OrderItem children and OrderStatusHistory
    records.  Every write method is atomic.
    """

    @abstractmethod
    def create(
        self,
        order: Order,
        items: Sequence[OrderItem],
        initial_entry: OrderStatusHistory,
    ) -> Order:
        """Insert the order, its items and its first ledger entry together."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with prefetched items and status history."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order holding a row-level lock until commit."""

    @abstractmethod
    def get_by_tracking_code(self, tracking_code: str) -> Optional[Order]:
        """Retrieve an order by its (already validated) tracking code."""

    @abstractmethod
    def tracking_code_exists(self, tracking_code: str) -> bool:
        """Return ``True`` if any order already uses ``tracking_code``."""

    @abstractmethod
    def save_order_and_append_history(
        self,
        order: Order,
        entry: Optional[OrderStatusHistory] = None,
        update_fields: Optional[Sequence[str]] = None,
    ) -> Order:
        """Persist order fields and (optionally) a new ledger entry atomically."""

    @abstractmethod
    def replace_items(self, order_id: int, items: Sequence[OrderItem]) -> List[OrderItem]:
        """Retire every active item of the order and insert ``items``."""

    @abstractmethod
    def get_history(self, order_id: int) -> List[OrderStatusHistory]:
        """Ledger entries of the order, oldest first."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> Queryable[Order]:
        """List orders with optional filters."""
