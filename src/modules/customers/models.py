"""Customer and CustomerAddress models.

Only the fields the fulfillment core reads are modelled here:
- RN-CLI-003: Inactive customer cannot place orders (enforced at service layer).
- An order's delivery address must belong to the ordering customer.
- Soft delete via ``is_active`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

from django.db import models

from modules.core.models import SoftDeleteModel


class Customer(SoftDeleteModel):
    """Customer aggregate root (referenced by orders)."""

    business_name = models.CharField(max_length=255)
    representative_name = models.CharField(max_length=255, blank=True, default="")
    email = models.EmailField(max_length=254, blank=True, default="")

    class Meta:
        db_table = "customers"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.business_name


class CustomerAddress(SoftDeleteModel):
    """Delivery address owned by a customer."""

    id = models.BigAutoField(primary_key=True)
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        related_name="addresses",
    )
    branch_name = models.CharField(max_length=255, blank=True, default="")
    direction = models.CharField(max_length=500)
    city = models.CharField(max_length=120)
    is_primary = models.BooleanField(default=False)

    class Meta:
        db_table = "customer_addresses"
        ordering = ["-is_primary", "id"]

    def __str__(self) -> str:
        return f"{self.direction}, {self.city}"
