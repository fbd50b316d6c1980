"""Employee repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import ILookupRepository

if TYPE_CHECKING:
    from modules.employees.models import Employee


class IEmployeeRepository(ILookupRepository["Employee"]):
    """Repository contract for order assignees."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Employee]:
        """Retrieve an employee (with its linked user) by primary key."""
