"""Employee model.

Employees are the assignees of orders.  Only drivers (``CHOFER``) can
take an order out for delivery.  ``user`` links the employee to a login
identity; when present, assignment notifications are addressed to it.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import SoftDeleteModel


class EmployeePosition(models.TextChoices):
    CHOFER = "CHOFER", "Chofer"
    CAJERO = "CAJERO", "Cajero"
    OPERADOR = "OPERADOR", "Operador"
    SUPERVISOR = "SUPERVISOR", "Supervisor"
    ADMINISTRACION = "ADMINISTRACION", "Administración"


class Employee(SoftDeleteModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="employee",
    )
    employee_code = models.CharField(max_length=4, unique=True)
    name = models.CharField(max_length=120)
    last_name = models.CharField(max_length=120)
    position = models.CharField(max_length=20, choices=EmployeePosition.choices)
    phone_number = models.CharField(max_length=20, blank=True, default="")

    class Meta:
        db_table = "employees"
        ordering = ["employee_code"]

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.last_name}"

    @property
    def is_driver(self) -> bool:
        return self.position == EmployeePosition.CHOFER

    @property
    def has_linked_user(self) -> bool:
        return self.user_id is not None

    def __str__(self) -> str:
        return f"{self.employee_code} - {self.full_name}"
