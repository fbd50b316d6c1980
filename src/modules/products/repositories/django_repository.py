"""Django ORM implementation of the Product repository."""

from __future__ import annotations

from typing import Iterable, Set

from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def active_ids(self, ids: Iterable[int]) -> Set[int]:
        """Single query regardless of how many ids are checked."""
        wanted = set(ids)
        if not wanted:
            return set()
        return set(
            Product.objects.alive()
            .filter(id__in=wanted)
            .values_list("id", flat=True)
        )
