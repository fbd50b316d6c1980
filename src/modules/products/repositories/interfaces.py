"""Product repository interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Set


class IProductRepository(ABC):
    """Repository contract for the Product catalog (read side only)."""

    @abstractmethod
    def active_ids(self, ids: Iterable[int]) -> Set[int]:
        """Return the subset of ``ids`` that exist and are active."""
