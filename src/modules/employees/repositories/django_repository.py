"""Django ORM implementation of the Employee repository."""

from __future__ import annotations

from typing import Optional

from django.core.exceptions import ValidationError

from modules.employees.models import Employee
from modules.employees.repositories.interfaces import IEmployeeRepository


class EmployeeDjangoRepository(IEmployeeRepository):
    def get_by_id(self, id: str) -> Optional[Employee]:
        """Returns ``None`` for non-existent or malformed IDs."""
        try:
            return Employee.objects.select_related("user").filter(id=id).first()
        except (ValueError, ValidationError):
            return None
