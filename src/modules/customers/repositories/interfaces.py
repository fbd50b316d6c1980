"""Customer repository interface.

Read-only look-ups the order lifecycle needs: the customer placing
the order and the delivery address chosen for it.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import ILookupRepository

if TYPE_CHECKING:
    from modules.customers.models import Customer, CustomerAddress


class ICustomerRepository(ILookupRepository["Customer"]):
    """Repository contract for the Customer aggregate."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Customer]:
        """Retrieve a customer by primary key."""

    @abstractmethod
    def get_address(self, customer_id: str, address_id: int) -> Optional[CustomerAddress]:
        """Retrieve an active address belonging to ``customer_id``."""
