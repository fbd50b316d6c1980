"""Product model referenced by order items.

Business rules implemented:
- RN-PRO-002: Inactive product cannot be ordered (enforced at service layer).
- Soft delete via ``is_active`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

from django.db import models

from modules.core.models import SoftDeleteModel


class Product(SoftDeleteModel):
    """Product catalog entry with an integer identifier."""

    id = models.BigAutoField(primary_key=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    unit = models.CharField(max_length=32, default="UNIDAD")
    sku = models.CharField(max_length=64, unique=True, null=True, blank=True)

    class Meta:
        db_table = "products"
        ordering = ["name"]

    def save(self, *args, **kwargs) -> None:
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.name
